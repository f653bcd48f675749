"""View state store: the engine's memory of what the ranking should contain.

Holds the ordered active column descriptors (structural leading columns
excluded) plus the label-keyed sort, group, group-sort and filter collections.
Only the engine's single control flow mutates it.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from ranksync.kernel.columns import ColumnDescriptor
from ranksync.kernel.criteria import (
    FilterEntry,
    GroupCriterion,
    GroupSortCriterion,
    SortCriterion,
)
from ranksync.kernel.reconcile import ReconcileResult, grow, reconcile_columns, shrink
from ranksync.kernel.view_model import RankingLike

logger = logging.getLogger(__name__)

# aggregate, rank and selection columns lead every ranking
STRUCTURAL_COLUMN_COUNT = 3


@dataclass
class MergeResult:
    """Outcome of an additive criteria merge."""
    appended: List[str] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)


def _dedupe_by_label(columns: Iterable[ColumnDescriptor]) -> List[ColumnDescriptor]:
    seen = set()
    result = []
    for col in columns:
        if col.label in seen:
            logger.debug(f"Dropping duplicate active column label: {col.label!r}")
            continue
        seen.add(col.label)
        result.append(col)
    return result


class ViewStateStore:
    """Authoritative active columns and configuration collections."""

    def __init__(self, structural_count: int = STRUCTURAL_COLUMN_COUNT):
        self.structural_count = structural_count
        self._active: List[ColumnDescriptor] = []
        self.sort_criteria: List[SortCriterion] = []
        self.group_criteria: List[GroupCriterion] = []
        self.group_sort_criteria: List[GroupSortCriterion] = []
        self.filters: List[FilterEntry] = []

    # -- active columns -------------------------------------------------

    def active_columns(self) -> List[ColumnDescriptor]:
        return list(self._active)

    def active_labels(self) -> List[str]:
        return [c.label for c in self._active]

    def replace_active(self, columns: Iterable[ColumnDescriptor]) -> None:
        self._active = _dedupe_by_label(columns)

    def apply_grow(self, cols: List[ColumnDescriptor]) -> List[ColumnDescriptor]:
        result = grow(self._active, cols)
        self._active = result.active
        return result.added

    def apply_shrink(self, cols: List[ColumnDescriptor]) -> List[ColumnDescriptor]:
        result = shrink(self._active, cols)
        self._active = result.active
        return result.removed

    def reconcile(self, cols: List[ColumnDescriptor]) -> ReconcileResult:
        result = reconcile_columns(self._active, cols)
        self._active = result.active
        return result

    def capture_active(self, ranking: RankingLike) -> None:
        """Re-read active columns from the ranking, skipping structural columns."""
        self.replace_active(c.desc for c in ranking.children[self.structural_count:])

    # -- criteria -------------------------------------------------------

    def set_sort_criteria(self, criteria: Sequence[SortCriterion]) -> None:
        self.sort_criteria = list(criteria)

    def merge_group_criteria(self, labels: Sequence[str]) -> MergeResult:
        """Append labels not remembered yet; remembered ones count as duplicates."""
        result = MergeResult()
        known = {g.column for g in self.group_criteria}
        for label in labels:
            if label in known:
                result.duplicates.append(label)
                continue
            self.group_criteria.append(GroupCriterion(column=label))
            known.add(label)
            result.appended.append(label)
        return result

    def merge_group_sort_criteria(self, criteria: Sequence[GroupSortCriterion]) -> MergeResult:
        """Same additive policy as merge_group_criteria, keyed by column label."""
        result = MergeResult()
        known = {g.column for g in self.group_sort_criteria}
        for criterion in criteria:
            if criterion.column in known:
                result.duplicates.append(criterion.column)
                continue
            self.group_sort_criteria.append(criterion)
            known.add(criterion.column)
            result.appended.append(criterion.column)
        return result

    # -- filters --------------------------------------------------------

    def record_filters(self, entries: Iterable[FilterEntry]) -> int:
        """Append-only: a column filtered twice is recorded twice."""
        count = 0
        for entry in entries:
            self.filters.append(entry)
            count += 1
        return count

    def filters_for(self, label: str) -> List[FilterEntry]:
        return [f for f in self.filters if f.column_label == label]

    # -- removal --------------------------------------------------------

    def forget_columns(self, removed: Sequence[ColumnDescriptor]) -> None:
        """Drop configuration that referenced removed columns.

        One group criterion, one group-sort criterion and the FIRST filter
        entry are removed per removed label; later duplicate filter entries
        for the same label are left in place.
        """
        for col in removed:
            for collection in (self.group_criteria, self.group_sort_criteria):
                for position, criterion in enumerate(collection):
                    if criterion.column == col.label:
                        del collection[position]
                        break
            for position, entry in enumerate(self.filters):
                if entry.column_label == col.label:
                    del self.filters[position]
                    break

    # -- capture --------------------------------------------------------

    def capture(self, ranking: RankingLike) -> None:
        """Rebuild every collection from the ranking's current state."""
        self.capture_active(ranking)
        self.sort_criteria = [
            SortCriterion(column=col.desc.label, ascending=asc) for col, asc in ranking.get_sort_criteria()
        ]
        self.group_criteria = [GroupCriterion(column=col.desc.label) for col in ranking.get_group_criteria()]
        self.group_sort_criteria = [
            GroupSortCriterion(column=col.desc.label, ascending=asc)
            for col, asc in ranking.get_group_sort_criteria()
        ]
        self.filters = [
            FilterEntry(column_label=col.desc.label, filter=col.filter)
            for col in ranking.children
            if col.is_filtered()
        ]
