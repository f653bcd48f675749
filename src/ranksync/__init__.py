"""ranksync: keeps an interactive ranking view in sync with refreshed data and persisted state."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("ranksync")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from ranksync.api import RankingSync, UpdateOptions
from ranksync.contracts import CycleReport, EngineStatus
from ranksync.codes import ColumnKind, EventKind, RestoreOutcome, UpdateKind
from ranksync.kernel.table import DataTable, TableColumn, ValueType

__all__ = [
    "__version__",
    "RankingSync",
    "UpdateOptions",
    "CycleReport",
    "EngineStatus",
    "ColumnKind",
    "EventKind",
    "RestoreOutcome",
    "UpdateKind",
    "DataTable",
    "TableColumn",
    "ValueType",
]
