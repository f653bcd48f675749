"""Pytest configuration for tests.

No sys.path hacks - tests should import from installed ranksync package.
"""

import asyncio

import pytest

from ranksync._internal.io.storage import InMemoryStorage
from ranksync.api import RankingSync
from ranksync.kernel.table import DataTable, EnumMember, TableColumn, ValueType

_TYPES = {
    "text": lambda: ValueType(text=True),
    "number": lambda: ValueType(numeric=True),
    "integer": lambda: ValueType(integer=True),
    "bool": lambda: ValueType(boolean=True),
    "date": lambda: ValueType(date_time=True),
}


def pytest_addoption(parser):
    """Add gated perf test option."""
    parser.addoption(
        "--run-perf",
        action="store_true",
        default=False,
        help="Run performance sentinel benchmarks (gated)."
    )


def pytest_collection_modifyitems(config, items):
    """Skip perf-marked tests unless --run-perf is set."""
    if config.getoption("--run-perf"):
        return
    skip_perf = pytest.mark.skip(reason="perf tests gated; pass --run-perf")
    for item in items:
        if "perf" in item.keywords:
            item.add_marker(skip_perf)


def build_table(columns, rows=None):
    """Build a DataTable from (label, type) pairs.

    type is one of text/number/integer/bool/date, a list of enum values,
    "id" for a row identifier, or None for an untyped column.
    """
    table_columns = []
    for index, (label, type_name) in enumerate(columns):
        roles = {}
        if type_name == "id":
            roles = {"row": True}
            value_type = ValueType(text=True)
        elif type_name is None:
            value_type = None
        elif isinstance(type_name, list):
            value_type = ValueType(enumeration=[EnumMember(display_name=v.title(), value=v) for v in type_name])
        else:
            value_type = _TYPES[type_name]()
        table_columns.append(TableColumn(display_name=label, index=index, type=value_type, roles=roles))
    return DataTable(rows=rows if rows is not None else [], columns=table_columns)


@pytest.fixture
def make_table():
    return build_table


@pytest.fixture
def base_rows():
    return [["a", 3.0], ["b", 1.0], ["c", 2.0]]


@pytest.fixture
def base_table(base_rows):
    return build_table([("id", "id"), ("val", "number")], base_rows)


@pytest.fixture
def grown_table():
    rows = [["a", 3.0, "x"], ["b", 1.0, "y"], ["c", 2.0, "x"]]
    return build_table([("id", "id"), ("val", "number"), ("category", ["x", "y"])], rows)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def started_engine(storage):
    """An engine whose restore found nothing, so saves are enabled."""
    engine = RankingSync(storage)
    asyncio.run(engine.start())
    return engine
