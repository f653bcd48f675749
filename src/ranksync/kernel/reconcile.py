"""Label-based column reconciliation between remembered and refreshed columns.

The source offers no stable column key, so identity is the display label
(case-sensitive, exact match, no fuzzy matching). The policy is selected by
comparing cardinalities, not by a true set diff:

- grow (len(new) >= len(active)): append every new column whose label is not
  remembered yet. Remembered entries are never reordered or removed.
- shrink (len(new) < len(active)): re-index remembered entries against the new
  columns (-1 when missing) and remove the FIRST missing entry only. Removing
  several columns in one refresh therefore takes several cycles to settle.
"""

from dataclasses import dataclass, field
from typing import List, Literal

from ranksync.kernel.columns import ColumnDescriptor

MISSING_INDEX = -1


@dataclass
class ColumnChange:
    """A single column change produced by reconciliation."""
    change_type: Literal[
        "COLUMN_ADDED",  # Label not remembered before
        "COLUMN_REMOVED",  # Remembered label absent from the refresh
        "COLUMN_REINDEXED",  # Same label, new source position
    ]
    label: str
    old_index: int | None = None
    new_index: int | None = None


@dataclass
class ReconcileResult:
    """Outcome of reconciling one refresh."""
    mode: Literal["grow", "shrink"]
    active: List[ColumnDescriptor]
    added: List[ColumnDescriptor] = field(default_factory=list)
    removed: List[ColumnDescriptor] = field(default_factory=list)
    changes: List[ColumnChange] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


def grow(active: List[ColumnDescriptor], new_cols: List[ColumnDescriptor]) -> ReconcileResult:
    """Append new columns whose label is not yet remembered."""
    result = list(active)
    known = {c.label for c in active}
    added: List[ColumnDescriptor] = []
    changes: List[ColumnChange] = []

    for col in new_cols:
        if col.label in known:
            continue
        result.append(col)
        added.append(col)
        known.add(col.label)
        changes.append(ColumnChange(change_type="COLUMN_ADDED", label=col.label, new_index=col.source_index))

    return ReconcileResult(mode="grow", active=result, added=added, changes=changes)


def shrink(active: List[ColumnDescriptor], new_cols: List[ColumnDescriptor]) -> ReconcileResult:
    """Re-index remembered columns and drop the first one missing from the refresh."""
    reindexed: List[ColumnDescriptor] = []
    changes: List[ColumnChange] = []

    for entry in active:
        new_index = MISSING_INDEX
        for col in new_cols:
            if col.label == entry.label:
                new_index = col.source_index
        if new_index != MISSING_INDEX and new_index != entry.source_index:
            changes.append(ColumnChange(
                change_type="COLUMN_REINDEXED",
                label=entry.label,
                old_index=entry.source_index,
                new_index=new_index,
            ))
        reindexed.append(entry.model_copy(update={"source_index": new_index}))

    removed: List[ColumnDescriptor] = []
    for position, entry in enumerate(reindexed):
        if entry.source_index == MISSING_INDEX:
            removed.append(reindexed.pop(position))
            changes.append(ColumnChange(
                change_type="COLUMN_REMOVED",
                label=entry.label,
                old_index=active[position].source_index,
            ))
            break

    return ReconcileResult(mode="shrink", active=reindexed, removed=removed, changes=changes)


def reconcile_columns(active: List[ColumnDescriptor], new_cols: List[ColumnDescriptor]) -> ReconcileResult:
    """Pick grow or shrink by cardinality and apply it."""
    if len(new_cols) >= len(active):
        return grow(active, new_cols)
    return shrink(active, new_cols)
