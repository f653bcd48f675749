"""Enum constants shared across ranksync.

These constants prevent stringly-typed event names and update kinds from
leaking between the engine and the view model.
"""

from enum import Enum


class ColumnKind(str, Enum):
    """Semantic column kinds inferred from the source table."""

    STRING = "string"
    BOOLEAN = "boolean"
    NUMBER = "number"
    DATE = "date"
    CATEGORICAL = "categorical"


class EventKind(str, Enum):
    """Mutation events emitted by a ranking or by the view model."""

    # Ranking-level mutations (persisted)
    WIDTH_CHANGED = "width_changed"
    FILTER_CHANGED = "filter_changed"
    LABEL_CHANGED = "label_changed"
    GROUPS_CHANGED = "groups_changed"
    ADD_COLUMN = "add_column"
    REMOVE_COLUMN = "remove_column"
    MOVE_COLUMN = "move_column"
    GROUP_CRITERIA_CHANGED = "group_criteria_changed"
    GROUP_SORT_CRITERIA_CHANGED = "group_sort_criteria_changed"
    COLUMN_VISIBILITY_CHANGED = "column_visibility_changed"
    SORT_CRITERIA_CHANGED = "sort_criteria_changed"

    # View-level interaction (persisted)
    SELECTION_CHANGED = "selection_changed"
    DIALOG_OPENED = "dialog_opened"
    DIALOG_CLOSED = "dialog_closed"
    HIGHLIGHT_CHANGED = "highlight_changed"

    # Generic dirty signals (never persisted)
    DIRTY = "dirty"
    DIRTY_HEADER = "dirty_header"
    DIRTY_VALUES = "dirty_values"
    DIRTY_CACHES = "dirty_caches"
    DIRTY_ORDER = "dirty_order"
    ORDER_CHANGED = "order_changed"


RANKING_EVENTS = frozenset({
    EventKind.WIDTH_CHANGED,
    EventKind.FILTER_CHANGED,
    EventKind.LABEL_CHANGED,
    EventKind.GROUPS_CHANGED,
    EventKind.ADD_COLUMN,
    EventKind.REMOVE_COLUMN,
    EventKind.MOVE_COLUMN,
    EventKind.GROUP_CRITERIA_CHANGED,
    EventKind.GROUP_SORT_CRITERIA_CHANGED,
    EventKind.COLUMN_VISIBILITY_CHANGED,
    EventKind.SORT_CRITERIA_CHANGED,
})

VIEW_EVENTS = frozenset({
    EventKind.SELECTION_CHANGED,
    EventKind.DIALOG_OPENED,
    EventKind.DIALOG_CLOSED,
    EventKind.HIGHLIGHT_CHANGED,
})

# The fixed catalog of event kinds that trigger a save.
PERSISTED_EVENTS = RANKING_EVENTS | VIEW_EVENTS

# Event kinds that must still propagate while an update is being suppressed
# or a save is in progress.
ALLOWED_DURING_SAVE = frozenset({EventKind.HIGHLIGHT_CHANGED})


class UpdateKind(str, Enum):
    """Why the host invoked the update entry point."""

    DATA = "data"
    RESIZE = "resize"
    RESIZE_END = "resize_end"
    VIEW_MODE = "view_mode"
    STYLE = "style"
    ALL = "all"

    @property
    def is_data_refresh(self) -> bool:
        return self in (UpdateKind.DATA, UpdateKind.ALL)


class RestoreOutcome(str, Enum):
    """How the one-time restore finished.

    Every outcome except DEFERRED opens the save guard. DEFERRED means a valid
    dump was fetched before any data arrived; it is replayed on the first
    update that carries a table, and the guard opens then.
    """

    RESTORED = "restored"
    EMPTY = "empty"
    FAILED = "failed"
    UNAVAILABLE = "unavailable"
    DEFERRED = "deferred"
