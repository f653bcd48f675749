"""Inbound table schema: the raw rows and column metadata supplied each refresh."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SortDirection(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


class EnumMember(BaseModel):
    """One member of an enumeration-typed column."""
    display_name: str = Field(..., alias="displayName")
    value: str

    model_config = ConfigDict(populate_by_name=True)


class ValueType(BaseModel):
    """Declared value type flags of a source column."""
    boolean: bool = Field(False, alias="bool")
    integer: bool = False
    numeric: bool = False
    date_time: bool = Field(False, alias="dateTime")
    text: bool = False
    enumeration: Optional[List[EnumMember]] = None

    model_config = ConfigDict(populate_by_name=True)


class TableColumn(BaseModel):
    """Column metadata as supplied by the table provider."""
    display_name: str = Field(..., alias="displayName")
    index: int
    type: Optional[ValueType] = None
    roles: Dict[str, bool] = Field(default_factory=dict)
    sort: Optional[SortDirection] = None
    sort_order: Optional[int] = Field(None, alias="sortOrder")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_row_identifier(self) -> bool:
        return bool(self.roles.get("row"))


class DataTable(BaseModel):
    """A refreshed table: ordered rows plus ordered column metadata.

    Rows are either positional sequences (indexed by TableColumn.index) or
    mappings keyed by display name. rows=None means the payload was absent.
    """
    rows: Any = None
    columns: List[TableColumn] = Field(default_factory=list)

    model_config = ConfigDict(arbitrary_types_allowed=True)


def cell_value(row: Any, column: TableColumn) -> Any:
    """Read the cell for column from a positional or mapping row."""
    if isinstance(row, dict):
        return row.get(column.display_name)
    return row[column.index]
