"""The narrow contract the engine needs from the view model and its data provider.

Anything satisfying these protocols can be driven by the engine; the engine
never touches rendering internals.
"""

from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, Union

from ranksync.codes import EventKind
from ranksync.kernel.columns import ColumnDescriptor
from ranksync.kernel.criteria import NumberFilter
from ranksync.kernel.dump import PersistedDump

DumpLike = Union[PersistedDump, Dict[str, Any]]


class ColumnLike(Protocol):
    desc: ColumnDescriptor
    label: str
    filter: Optional[NumberFilter]

    def is_filtered(self) -> bool: ...

    def set_filter(self, value: Optional[NumberFilter]) -> None: ...


class RankingLike(Protocol):
    children: List[ColumnLike]

    def on(self, kind: EventKind, handler: Optional[Callable[..., None]]) -> None: ...

    def find_by_label(self, label: str) -> Optional[ColumnLike]: ...

    def find_by_desc(self, desc_label: str) -> Optional[ColumnLike]: ...

    def get_sort_criteria(self) -> List[Tuple[ColumnLike, bool]]: ...

    def set_sort_criteria(self, criteria: Sequence[Tuple[ColumnLike, bool]]) -> None: ...

    def get_group_criteria(self) -> List[ColumnLike]: ...

    def set_group_criteria(self, columns: Sequence[ColumnLike]) -> None: ...

    def get_group_sort_criteria(self) -> List[Tuple[ColumnLike, bool]]: ...

    def set_group_sort_criteria(self, criteria: Sequence[Tuple[ColumnLike, bool]]) -> None: ...


class DataProviderLike(Protocol):
    data: Any

    def get_columns(self) -> List[ColumnDescriptor]: ...

    def clear_columns(self) -> None: ...

    def push_desc(self, desc: ColumnDescriptor) -> None: ...

    def set_data(self, rows: Any) -> None: ...

    def derive_default(self) -> RankingLike: ...

    def get_last_ranking(self) -> RankingLike: ...


class ViewModelLike(Protocol):
    data: DataProviderLike

    def on(self, kind: EventKind, handler: Optional[Callable[..., None]]) -> None: ...

    def update(self) -> None: ...

    def set_data_provider(self, provider: DataProviderLike, dump: Optional[DumpLike] = None) -> None: ...

    def restore(self, dump: DumpLike) -> None: ...

    def dump(self) -> Dict[str, Any]: ...


ProviderFactory = Callable[[Any, List[ColumnDescriptor], Any], DataProviderLike]
ViewFactory = Callable[[DataProviderLike, Any], ViewModelLike]
