"""Pydantic models for the persisted ranking dump.

The engine treats a dump as opaque apart from this shape check: a payload
that does not validate is an incompatible dump and is discarded. Unknown
top-level keys are kept so dumps from newer view models still load.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ranksync.kernel.criteria import NumberFilter


class ColumnDump(BaseModel):
    """One column of a dumped ranking."""
    desc: Optional[str] = None  # Descriptor label; None for structural columns
    structural: Optional[str] = None  # "aggregate" | "rank" | "selection"
    label: str  # Display label (may differ from desc after a rename)
    width: float = 100
    visible: bool = True
    filter: Optional[NumberFilter] = None

    model_config = ConfigDict(extra="allow")


class CriterionDump(BaseModel):
    column: str  # Display label
    asc: bool = False


class RankingDump(BaseModel):
    columns: List[ColumnDump] = Field(default_factory=list)
    sort_criteria: List[CriterionDump] = Field(default_factory=list, alias="sortCriteria")
    group_criteria: List[str] = Field(default_factory=list, alias="groupCriteria")
    group_sort_criteria: List[CriterionDump] = Field(default_factory=list, alias="groupSortCriteria")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class PersistedDump(BaseModel):
    """Full view-model snapshot: rankings plus selection and highlight."""
    rankings: List[RankingDump] = Field(default_factory=list)
    selection: List[int] = Field(default_factory=list)
    highlight: int = -1

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_dict(self) -> Dict[str, Any]:
        """Export to JSON-serializable dict."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
