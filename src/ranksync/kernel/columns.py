"""Pydantic models for semantic column descriptors."""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ranksync.codes import ColumnKind


class Category(BaseModel):
    """A member of a categorical column."""
    label: str  # Display name shown in the view
    name: str  # Underlying value

    model_config = ConfigDict(frozen=True)


class ColumnDescriptor(BaseModel):
    """A semantic column definition handed to the data provider.

    Identity is the label alone. source_index is positional and may be
    reassigned whenever the upstream column order changes.
    """
    label: str
    kind: ColumnKind = ColumnKind.STRING
    source_index: int = Field(-1, alias="column")
    color_mapping: Optional[str] = None
    domain: Optional[Tuple[float, float]] = None
    categories: Optional[List[Category]] = None

    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)
