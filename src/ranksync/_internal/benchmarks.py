"""Performance sentinel benchmarks over synthetic wide tables."""

from __future__ import annotations

import asyncio
import os
from time import perf_counter
from typing import Tuple

from ranksync._internal.io.storage import InMemoryStorage
from ranksync.api import RankingSync, UpdateOptions
from ranksync.kernel.table import DataTable, TableColumn, ValueType


def _budget_from_env(var_name: str, default_ms: float) -> float:
    raw = os.getenv(var_name)
    if not raw:
        return default_ms
    try:
        return float(raw)
    except ValueError:
        return default_ms


MAX_WIDE_REFRESH_MS = _budget_from_env("RANKSYNC_MAX_WIDE_REFRESH_MS", 500.0)
MAX_SHRINK_CASCADE_MS = _budget_from_env("RANKSYNC_MAX_SHRINK_CASCADE_MS", 1000.0)
MAX_DUMP_SAVE_MS = _budget_from_env("RANKSYNC_MAX_DUMP_SAVE_MS", 300.0)


def wide_table(column_count: int, row_count: int, *, skip_every: int = 0) -> DataTable:
    """Numeric table with an id column; skip_every>0 drops every n-th value column."""
    labels = ["id"] + [f"m{i}" for i in range(column_count) if not (skip_every and i % skip_every == 0)]
    columns = [TableColumn(display_name="id", index=0, type=ValueType(text=True), roles={"row": True})]
    columns += [
        TableColumn(display_name=label, index=i, type=ValueType(numeric=True))
        for i, label in enumerate(labels[1:], start=1)
    ]
    rows = [[f"r{r}"] + [float((r * 31 + c) % 97) for c in range(1, len(labels))] for r in range(row_count)]
    return DataTable(rows=rows, columns=columns)


def _started_engine() -> RankingSync:
    engine = RankingSync(InMemoryStorage())
    asyncio.run(engine.start())
    return engine


def run_wide_refresh(column_count: int = 200, row_count: int = 1000) -> Tuple[float, RankingSync]:
    """Time one growing data refresh after a first load."""
    engine = _started_engine()
    engine.update(UpdateOptions(table=wide_table(column_count, row_count)))
    grown = wide_table(column_count + 1, row_count)

    start = perf_counter()
    engine.update(UpdateOptions(table=grown))
    elapsed_ms = (perf_counter() - start) * 1000.0
    return elapsed_ms, engine


def run_shrink_cascade(column_count: int = 100, row_count: int = 200) -> Tuple[float, int]:
    """Time the refreshes needed until every dropped column is forgotten.

    Returns elapsed ms and the number of update calls it took.
    """
    engine = _started_engine()
    engine.update(UpdateOptions(table=wide_table(column_count, row_count)))
    shrunk = wide_table(column_count, row_count, skip_every=2)
    target = len(shrunk.columns)

    calls = 0
    start = perf_counter()
    while len(engine.store.active_labels()) > target:
        engine.update(UpdateOptions(table=shrunk))
        calls += 1
    elapsed_ms = (perf_counter() - start) * 1000.0
    return elapsed_ms, calls


def run_dump_save(column_count: int = 200) -> Tuple[float, str]:
    """Time one interaction-triggered save of a wide ranking."""
    engine = _started_engine()
    engine.update(UpdateOptions(table=wide_table(column_count, 10)))
    column = engine.controller.ranking.find_by_label("m1")

    start = perf_counter()
    column.set_width(140)
    elapsed_ms = (perf_counter() - start) * 1000.0
    return elapsed_ms, engine.persistence.last_payload
