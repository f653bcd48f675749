"""Headless, in-process implementation of the view-model contract.

LocalDataProvider holds rows, column descriptors and rankings;
HeadlessViewModel wraps a provider and adds selection, highlight and dialog
state. Nothing is rendered. Dumps use the PersistedDump shape.
"""

import itertools
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ranksync.codes import ColumnKind, EventKind
from ranksync.kernel.columns import ColumnDescriptor
from ranksync.kernel.criteria import NumberFilter
from ranksync.kernel.dump import ColumnDump, CriterionDump, PersistedDump, RankingDump
from ranksync.kernel.events import EventEmitter
from ranksync.settings import ProviderSettings, ViewSettings

logger = logging.getLogger(__name__)

STRUCTURAL_TYPES = ("aggregate", "rank", "selection")
DEFAULT_WIDTH = 100

_column_ids = itertools.count()
_ranking_ids = itertools.count()


class RankingColumn:
    """A column placed in a ranking: descriptor plus per-ranking view state."""

    def __init__(self, desc: Optional[ColumnDescriptor] = None, *, structural: Optional[str] = None):
        if desc is None and structural is None:
            raise ValueError("RankingColumn needs a descriptor or a structural type")
        self.id = f"col{next(_column_ids)}"
        self.structural = structural
        self.desc = desc if desc is not None else ColumnDescriptor(label=structural)
        self.label = self.desc.label
        self.width: float = DEFAULT_WIDTH
        self.visible = True
        self.filter: Optional[NumberFilter] = None
        self.ranking: Optional["Ranking"] = None

    def __repr__(self):
        return f"RankingColumn({self.label!r})"

    @property
    def is_number(self) -> bool:
        return self.structural is None and self.desc.kind == ColumnKind.NUMBER

    def is_filtered(self) -> bool:
        return self.filter is not None and self.filter.is_active

    def value(self, row: Any) -> Any:
        if isinstance(row, dict):
            return row.get(self.desc.label)
        if 0 <= self.desc.source_index < len(row):
            return row[self.desc.source_index]
        return None

    def _fire(self, kind: EventKind, *args: Any) -> None:
        if self.ranking is not None:
            self.ranking.fire(kind, *args)
            self.ranking.fire(EventKind.DIRTY)

    def set_filter(self, value: Optional[NumberFilter]) -> None:
        if not self.is_number:
            raise TypeError(f"Column {self.label!r} does not accept a numeric filter")
        previous, self.filter = self.filter, value
        self._fire(EventKind.FILTER_CHANGED, previous, value)

    def set_width(self, width: float) -> None:
        previous, self.width = self.width, width
        self._fire(EventKind.WIDTH_CHANGED, previous, width)

    def set_visible(self, visible: bool) -> None:
        previous, self.visible = self.visible, visible
        self._fire(EventKind.COLUMN_VISIBILITY_CHANGED, previous, visible)

    def set_label(self, label: str) -> None:
        previous, self.label = self.label, label
        self._fire(EventKind.LABEL_CHANGED, previous, label)

    def to_dump(self) -> ColumnDump:
        return ColumnDump(
            desc=None if self.structural else self.desc.label,
            structural=self.structural,
            label=self.label,
            width=self.width,
            visible=self.visible,
            filter=self.filter,
        )


class Ranking(EventEmitter):
    """Ordered columns plus sort, group and group-sort criteria."""

    def __init__(self, settings: Optional[ProviderSettings] = None):
        super().__init__()
        self.id = f"rank{next(_ranking_ids)}"
        self.settings = settings or ProviderSettings()
        self.children: List[RankingColumn] = []
        self._sort: List[Tuple[RankingColumn, bool]] = []
        self._group: List[RankingColumn] = []
        self._group_sort: List[Tuple[RankingColumn, bool]] = []

    # -- columns ----------------------------------------------------------

    def insert(self, column: RankingColumn, index: Optional[int] = None) -> RankingColumn:
        index = len(self.children) if index is None else index
        column.ranking = self
        self.children.insert(index, column)
        self.fire(EventKind.ADD_COLUMN, column, index)
        self.fire(EventKind.DIRTY_HEADER)
        return column

    def push(self, column: RankingColumn) -> RankingColumn:
        return self.insert(column)

    def remove(self, column: RankingColumn) -> bool:
        if column not in self.children:
            return False
        index = self.children.index(column)
        del self.children[index]
        column.ranking = None
        self._sort = [(c, asc) for c, asc in self._sort if c is not column]
        self._group = [c for c in self._group if c is not column]
        self._group_sort = [(c, asc) for c, asc in self._group_sort if c is not column]
        self.fire(EventKind.REMOVE_COLUMN, column, index)
        self.fire(EventKind.DIRTY_HEADER)
        return True

    def move(self, column: RankingColumn, index: int) -> None:
        old_index = self.children.index(column)
        del self.children[old_index]
        self.children.insert(index, column)
        self.fire(EventKind.MOVE_COLUMN, column, index, old_index)
        self.fire(EventKind.DIRTY_HEADER)

    def find_by_label(self, label: str) -> Optional[RankingColumn]:
        for column in self.children:
            if column.label == label:
                return column
        return None

    def find_by_desc(self, desc_label: str) -> Optional[RankingColumn]:
        for column in self.children:
            if column.structural is None and column.desc.label == desc_label:
                return column
        return None

    # -- criteria ---------------------------------------------------------

    def get_sort_criteria(self) -> List[Tuple[RankingColumn, bool]]:
        return list(self._sort)

    def set_sort_criteria(self, criteria: Sequence[Tuple[RankingColumn, bool]]) -> None:
        previous = list(self._sort)
        self._sort = list(criteria)[: self.settings.max_nested_sorting_criteria]
        self.fire(EventKind.SORT_CRITERIA_CHANGED, previous, list(self._sort))
        self.fire(EventKind.DIRTY_ORDER)

    def get_group_criteria(self) -> List[RankingColumn]:
        return list(self._group)

    def set_group_criteria(self, columns: Sequence[RankingColumn]) -> None:
        previous = list(self._group)
        self._group = list(columns)[: self.settings.max_group_columns]
        self.fire(EventKind.GROUP_CRITERIA_CHANGED, previous, list(self._group))
        self.fire(EventKind.GROUPS_CHANGED, previous, list(self._group))

    def get_group_sort_criteria(self) -> List[Tuple[RankingColumn, bool]]:
        return list(self._group_sort)

    def set_group_sort_criteria(self, criteria: Sequence[Tuple[RankingColumn, bool]]) -> None:
        previous = list(self._group_sort)
        self._group_sort = list(criteria)[: self.settings.max_nested_sorting_criteria]
        self.fire(EventKind.GROUP_SORT_CRITERIA_CHANGED, previous, list(self._group_sort))

    # -- dump -------------------------------------------------------------

    def to_dump(self) -> RankingDump:
        return RankingDump(
            columns=[c.to_dump() for c in self.children],
            sort_criteria=[CriterionDump(column=c.label, asc=asc) for c, asc in self._sort],
            group_criteria=[c.label for c in self._group],
            group_sort_criteria=[CriterionDump(column=c.label, asc=asc) for c, asc in self._group_sort],
        )


class LocalDataProvider:
    """Rows, column descriptors and rankings held in memory."""

    def __init__(
        self,
        rows: Any = None,
        cols: Optional[Sequence[ColumnDescriptor]] = None,
        settings: Optional[ProviderSettings] = None,
    ):
        self.data = rows if rows is not None else []
        self._columns: List[ColumnDescriptor] = list(cols or [])
        self.settings = settings or ProviderSettings()
        self.rankings: List[Ranking] = []

    def get_columns(self) -> List[ColumnDescriptor]:
        return list(self._columns)

    def find_desc(self, label: str) -> Optional[ColumnDescriptor]:
        for desc in self._columns:
            if desc.label == label:
                return desc
        return None

    def push_desc(self, desc: ColumnDescriptor) -> None:
        self._columns.append(desc)

    def clear_columns(self) -> None:
        """Drop every descriptor and every ranking built from them."""
        self._columns = []
        self.rankings = []

    def set_data(self, rows: Any) -> None:
        self.data = rows if rows is not None else []

    def push_ranking(self) -> Ranking:
        ranking = Ranking(self.settings)
        self.rankings.append(ranking)
        return ranking

    def derive_default(self) -> Ranking:
        """Return the first ranking, creating the default one if none exists."""
        if self.rankings:
            return self.rankings[0]
        ranking = self.push_ranking()
        for structural in STRUCTURAL_TYPES:
            ranking.push(RankingColumn(structural=structural))
        for desc in self._columns:
            ranking.push(RankingColumn(desc))
        return ranking

    def get_last_ranking(self) -> Ranking:
        if not self.rankings:
            return self.derive_default()
        return self.rankings[-1]

    def order(self, ranking: Optional[Ranking] = None) -> List[int]:
        """Row indices after applying the ranking's filters and sort criteria."""
        ranking = ranking or self.get_last_ranking()
        filtered = [c for c in ranking.children if c.is_number and c.is_filtered()]
        indices = [
            i for i, row in enumerate(self.data)
            if all(c.filter.accepts(c.value(row)) for c in filtered)
        ]
        for column, ascending in reversed(ranking.get_sort_criteria()):
            present = [i for i in indices if column.value(self.data[i]) is not None]
            missing = [i for i in indices if column.value(self.data[i]) is None]
            present.sort(key=lambda i: column.value(self.data[i]), reverse=not ascending)
            indices = present + missing
        return indices

    def dump_rankings(self) -> List[RankingDump]:
        return [r.to_dump() for r in self.rankings]

    def restore(self, dump: PersistedDump) -> None:
        """Rebuild rankings from a dump. Columns whose descriptor is gone are skipped."""
        self.rankings = []
        for ranking_dump in dump.rankings:
            ranking = self.push_ranking()
            for column_dump in ranking_dump.columns:
                column = self._restore_column(column_dump)
                if column is not None:
                    column.ranking = ranking
                    ranking.children.append(column)
            ranking._sort = self._restore_pairs(ranking, ranking_dump.sort_criteria)
            ranking._group = [
                c for c in (ranking.find_by_label(label) for label in ranking_dump.group_criteria)
                if c is not None
            ]
            ranking._group_sort = self._restore_pairs(ranking, ranking_dump.group_sort_criteria)
        if not self.rankings:
            self.derive_default()

    def _restore_column(self, column_dump: ColumnDump) -> Optional[RankingColumn]:
        if column_dump.structural is not None:
            column = RankingColumn(structural=column_dump.structural)
        else:
            desc = self.find_desc(column_dump.desc or column_dump.label)
            if desc is None:
                logger.debug(f"Skipping dumped column without descriptor: {column_dump.desc!r}")
                return None
            column = RankingColumn(desc)
            if column.is_number:
                column.filter = column_dump.filter
        column.label = column_dump.label
        column.width = column_dump.width
        column.visible = column_dump.visible
        return column

    @staticmethod
    def _restore_pairs(ranking: Ranking, criteria: Sequence[CriterionDump]) -> List[Tuple[RankingColumn, bool]]:
        pairs = []
        for criterion in criteria:
            column = ranking.find_by_label(criterion.column)
            if column is not None:
                pairs.append((column, criterion.asc))
        return pairs


class HeadlessViewModel(EventEmitter):
    """View model over a LocalDataProvider: selection, highlight, dialogs."""

    def __init__(self, provider: LocalDataProvider, settings: Optional[ViewSettings] = None):
        super().__init__()
        self.data = provider
        self.settings = settings or ViewSettings()
        self.selection: List[int] = []
        self.highlight = -1
        self.open_dialog_name: Optional[str] = None
        self.update_count = 0

    def update(self) -> None:
        self.update_count += 1

    def set_data_provider(self, provider: LocalDataProvider, dump: Union[PersistedDump, Dict[str, Any], None] = None) -> None:
        self.data = provider
        if dump is not None:
            self.restore(dump)
        self.update()

    def restore(self, dump: Union[PersistedDump, Dict[str, Any]]) -> None:
        if not isinstance(dump, PersistedDump):
            dump = PersistedDump.model_validate(dump)
        self.data.restore(dump)
        self.selection = list(dump.selection)
        self.highlight = dump.highlight

    def dump(self) -> Dict[str, Any]:
        return PersistedDump(
            rankings=self.data.dump_rankings(),
            selection=list(self.selection),
            highlight=self.highlight,
        ).to_dict()

    def set_selection(self, indices: Sequence[int]) -> None:
        selection = list(indices)
        if not self.data.settings.multi_selection:
            selection = selection[-1:]
        previous, self.selection = self.selection, selection
        self.fire(EventKind.SELECTION_CHANGED, previous, selection)

    def set_highlight(self, index: int) -> None:
        previous, self.highlight = self.highlight, index
        self.fire(EventKind.HIGHLIGHT_CHANGED, previous, index)

    def open_dialog(self, name: str) -> None:
        self.open_dialog_name = name
        self.fire(EventKind.DIALOG_OPENED, name)

    def close_dialog(self) -> None:
        name, self.open_dialog_name = self.open_dialog_name, None
        self.fire(EventKind.DIALOG_CLOSED, name)


def create_provider(rows: Any, cols: Sequence[ColumnDescriptor], settings: Optional[ProviderSettings] = None) -> LocalDataProvider:
    return LocalDataProvider(rows, cols, settings)


def create_view(provider: LocalDataProvider, settings: Optional[ViewSettings] = None) -> HeadlessViewModel:
    return HeadlessViewModel(provider, settings)
