"""Reconciliation controller: one refresh cycle from extracted data to view model.

Per cycle the provider is either rebuilt (first cycle, or provider settings
changed), patched (data refresh with new row/column artifacts) or left alone
(resize and other cosmetic updates). The view model is then created,
re-attached or refreshed depending on the view settings, and the active
column memory is re-captured from the ranking so the next cycle reconciles
against ground truth.
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple

from ranksync.codes import ColumnKind, EventKind, UpdateKind
from ranksync.contracts import CycleReport
from ranksync.kernel.columns import ColumnDescriptor
from ranksync.kernel.criteria import FilterEntry, GroupSortCriterion, SortCriterion
from ranksync.kernel.dump import PersistedDump
from ranksync.kernel.equality import shallow_equal
from ranksync.kernel.events import EventEmitter, Handler, SubscriptionSet
from ranksync.kernel.extract import ExtractResult, SortHint
from ranksync.kernel.persistence import PersistenceController
from ranksync.kernel.store import ViewStateStore
from ranksync.kernel.view_model import (
    DataProviderLike,
    ProviderFactory,
    RankingLike,
    ViewFactory,
    ViewModelLike,
)
from ranksync.settings import ProviderSettings, ViewSettings, VisualSettings

logger = logging.getLogger(__name__)

# Ranking events that only need a save
_SAVE_ONLY_RANKING_EVENTS = (
    EventKind.WIDTH_CHANGED,
    EventKind.LABEL_CHANGED,
    EventKind.GROUPS_CHANGED,
    EventKind.COLUMN_VISIBILITY_CHANGED,
)

# Ranking events that change which columns are active
_STRUCTURE_EVENTS = (
    EventKind.ADD_COLUMN,
    EventKind.REMOVE_COLUMN,
    EventKind.MOVE_COLUMN,
)

_VIEW_EVENTS = (
    EventKind.SELECTION_CHANGED,
    EventKind.DIALOG_OPENED,
    EventKind.DIALOG_CLOSED,
    EventKind.HIGHLIGHT_CHANGED,
)


class ReconciliationController:
    """Owns the provider, the view model and the event subscriptions."""

    def __init__(
        self,
        store: ViewStateStore,
        persistence: PersistenceController,
        *,
        provider_factory: ProviderFactory,
        view_factory: ViewFactory,
    ):
        self.store = store
        self.persistence = persistence
        self.provider_factory = provider_factory
        self.view_factory = view_factory

        self.provider: Optional[DataProviderLike] = None
        self.view: Optional[ViewModelLike] = None
        self.ranking: Optional[RankingLike] = None
        self.provider_settings: Optional[ProviderSettings] = None
        self.view_settings: Optional[ViewSettings] = None
        self.rows: Any = None
        self.cols: List[ColumnDescriptor] = []
        self.subscriptions = SubscriptionSet()

    def old_data(self) -> Tuple[Any, List[ColumnDescriptor]]:
        """Rows and columns currently held by the provider."""
        if self.provider is None:
            return None, []
        return self.provider.data, self.provider.get_columns()

    # -- update cycle -----------------------------------------------------

    def run_cycle(self, extracted: ExtractResult, settings: VisualSettings, kind: UpdateKind) -> CycleReport:
        rows, cols = extracted.rows, extracted.cols
        old_rows, old_cols = self.old_data()
        # identity, not deep equality: the refresh boundary decides what changed
        data_changed = not (rows is old_rows and cols is old_cols)
        self.rows, self.cols = rows, cols

        report = CycleReport(data_changed=data_changed)
        removed: List[ColumnDescriptor] = []
        provider_rebuilt = False

        if self.provider is None or not shallow_equal(self.provider_settings, settings.provider):
            self.provider = self.provider_factory(rows, cols, settings.provider)
            self._apply_sort_hint(self.provider.derive_default(), extracted.sort)
            provider_rebuilt = True
            report.provider_action = "rebuilt"
        elif data_changed and kind.is_data_refresh:
            result = self.store.reconcile(cols)
            removed = result.removed
            report.reconcile_mode = result.mode
            report.added_labels = [c.label for c in result.added]
            report.removed_labels = [c.label for c in result.removed]

            self.provider.clear_columns()
            for desc in self.store.active_columns():
                self.provider.push_desc(desc)
            self.provider.set_data(rows)
            self.provider.derive_default()
            report.provider_action = "patched"
        else:
            report.provider_action = "unchanged"
        self.provider_settings = settings.provider

        if self.view is None or not shallow_equal(self.view_settings, settings.view):
            self.view = self.view_factory(self.provider, settings.view)
            report.view_action = "created"
        elif provider_rebuilt:
            self.view.set_data_provider(self.provider)
            report.view_action = "reattached"
        else:
            self.view.update()
            report.view_action = "refreshed"
        self.view_settings = settings.view
        self.persistence.bind(self.view.dump)

        self.ranking = self.view.data.get_last_ranking()
        if report.provider_action != "unchanged":
            self.subscriptions.clear()
            if removed:
                self.store.forget_columns(removed)
            self._reattach_criteria(self.ranking)
        self.subscribe()
        self.store.capture_active(self.ranking)

        logger.debug(
            f"Cycle {kind.value}: provider={report.provider_action} view={report.view_action} "
            f"added={report.added_labels} removed={report.removed_labels}"
        )

        if report.added_labels:
            report.save_requested = self.persistence.notify(EventKind.ADD_COLUMN) or report.save_requested
        if report.removed_labels:
            report.save_requested = self.persistence.notify(EventKind.REMOVE_COLUMN) or report.save_requested
        return report

    def _apply_sort_hint(self, ranking: RankingLike, hint: Sequence[SortHint]) -> None:
        criteria = []
        for h in hint:
            column = ranking.find_by_desc(h.label)
            if column is not None:
                criteria.append((column, h.ascending))
        if criteria:
            ranking.set_sort_criteria(criteria)

    def _reattach_criteria(self, ranking: RankingLike) -> None:
        """Re-apply remembered configuration, keyed by source label, to a rebuilt ranking."""
        if self.store.sort_criteria:
            ranking.set_sort_criteria(self._resolve_pairs(ranking, self.store.sort_criteria))

        if self.store.group_criteria:
            columns = []
            for criterion in self.store.group_criteria:
                column = ranking.find_by_desc(criterion.column)
                if column is not None:
                    columns.append(column)
            ranking.set_group_criteria(columns)
            ranking.set_group_sort_criteria(self._resolve_pairs(ranking, self.store.group_sort_criteria))

        for entry in self.store.filters:
            column = ranking.find_by_desc(entry.column_label)
            if column is not None and column.desc.kind == ColumnKind.NUMBER:
                column.set_filter(entry.filter)

    @staticmethod
    def _resolve_pairs(ranking: RankingLike, criteria: Sequence[Any]) -> List[Tuple[Any, bool]]:
        pairs = []
        for criterion in criteria:
            column = ranking.find_by_desc(criterion.column)
            if column is not None:
                pairs.append((column, criterion.ascending))
        return pairs

    # -- restore ----------------------------------------------------------

    def replay(self, dump: PersistedDump, settings: Optional[VisualSettings] = None) -> None:
        """Replay a dump onto the current (or a freshly built) provider and view."""
        if settings is not None:
            self.provider_settings = settings.provider
            self.view_settings = settings.view

        if self.provider is None:
            self.provider = self.provider_factory(
                self.rows if self.rows is not None else [],
                self.cols,
                self.provider_settings,
            )
            self.provider.derive_default()
        if self.view is None:
            self.view = self.view_factory(self.provider, self.view_settings)

        self.subscriptions.clear()
        try:
            self.view.set_data_provider(self.provider, dump)
        except Exception:
            self._reset_default_ranking()
            raise
        finally:
            # listeners come back whether or not the dump applied
            self.ranking = self.view.data.get_last_ranking()
            self.store.capture(self.ranking)
            self.persistence.bind(self.view.dump)
            self.subscribe()

    def _reset_default_ranking(self) -> None:
        """Drop a half-restored ranking and derive a default one in its place."""
        provider = self.view.data
        descs = self.store.active_columns() or list(self.cols)
        provider.clear_columns()
        for desc in descs:
            provider.push_desc(desc)
        provider.derive_default()
        self.provider = provider

    # -- events -----------------------------------------------------------

    def subscribe(self) -> None:
        """(Re)attach every mutation listener. Safe to call repeatedly."""
        if self.ranking is None or self.view is None:
            return
        bindings: List[Tuple[EventEmitter, EventKind, Handler]] = []
        for kind in _SAVE_ONLY_RANKING_EVENTS:
            bindings.append((self.ranking, kind, self._save_on(kind)))
        for kind in _STRUCTURE_EVENTS:
            bindings.append((self.ranking, kind, self._capture_and_save_on(kind)))
        bindings.append((self.ranking, EventKind.FILTER_CHANGED, self._on_filter_changed))
        bindings.append((self.ranking, EventKind.GROUP_CRITERIA_CHANGED, self._on_group_criteria_changed))
        bindings.append((self.ranking, EventKind.GROUP_SORT_CRITERIA_CHANGED, self._on_group_sort_criteria_changed))
        bindings.append((self.ranking, EventKind.SORT_CRITERIA_CHANGED, self._on_sort_criteria_changed))
        for kind in _VIEW_EVENTS:
            bindings.append((self.view, kind, self._save_on(kind)))
        self.subscriptions.replace(bindings)

    def unsubscribe(self) -> None:
        self.subscriptions.clear()

    def _save_on(self, kind: EventKind) -> Handler:
        def handler(*args: Any) -> None:
            self.persistence.notify(kind)
        return handler

    def _capture_and_save_on(self, kind: EventKind) -> Handler:
        def handler(*args: Any) -> None:
            self.store.capture_active(self.ranking)
            self.persistence.notify(kind)
        return handler

    def _on_filter_changed(self, *args: Any) -> None:
        self.store.record_filters(
            FilterEntry(column_label=column.desc.label, filter=column.filter)
            for column in self.ranking.children
            if column.is_filtered()
        )
        self.persistence.notify(EventKind.FILTER_CHANGED)

    def _on_group_criteria_changed(self, *args: Any) -> None:
        labels = [column.desc.label for column in self.ranking.get_group_criteria()]
        result = self.store.merge_group_criteria(labels)
        if result.duplicates:
            logger.debug(f"Group criteria already remembered: {result.duplicates}")
        self.persistence.notify(EventKind.GROUP_CRITERIA_CHANGED)

    def _on_group_sort_criteria_changed(self, *args: Any) -> None:
        criteria = [
            GroupSortCriterion(column=column.desc.label, ascending=asc)
            for column, asc in self.ranking.get_group_sort_criteria()
        ]
        self.store.merge_group_sort_criteria(criteria)
        self.persistence.notify(EventKind.GROUP_SORT_CRITERIA_CHANGED)

    def _on_sort_criteria_changed(self, *args: Any) -> None:
        self.store.set_sort_criteria([
            SortCriterion(column=column.desc.label, ascending=asc)
            for column, asc in self.ranking.get_sort_criteria()
        ])
        self.persistence.notify(EventKind.SORT_CRITERIA_CHANGED)
