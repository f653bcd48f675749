"""Sort, group and filter configuration, referenced by column label.

Criteria never hold column objects or positions: they must survive a full
rebuild of the column list and are re-attached by label lookup.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SortCriterion(BaseModel):
    column: str  # Column label
    ascending: bool = False

    model_config = ConfigDict(frozen=True)


class GroupCriterion(BaseModel):
    column: str  # Column label

    model_config = ConfigDict(frozen=True)


class GroupSortCriterion(BaseModel):
    column: str  # Column label
    ascending: bool = False

    model_config = ConfigDict(frozen=True)


class NumberFilter(BaseModel):
    """Numeric range filter. None bounds are open."""
    min: Optional[float] = None
    max: Optional[float] = None
    filter_missing: bool = Field(False, alias="filterMissing")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def is_active(self) -> bool:
        return self.min is not None or self.max is not None or self.filter_missing

    def accepts(self, value) -> bool:
        if value is None:
            return not self.filter_missing
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True


class FilterEntry(BaseModel):
    column_label: str
    filter: NumberFilter

    model_config = ConfigDict(frozen=True)
