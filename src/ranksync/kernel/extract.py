"""Column descriptor extraction: raw table metadata + rows -> semantic columns.

Extraction never raises past this module. A missing or broken row payload
degrades to an empty row set.
"""

import logging
import numbers
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from ranksync.codes import ColumnKind
from ranksync.kernel.columns import Category, ColumnDescriptor
from ranksync.kernel.palette import Palette
from ranksync.kernel.table import DataTable, SortDirection, TableColumn, cell_value

logger = logging.getLogger(__name__)


@dataclass
class SortHint:
    """A sort requested by the source table, referenced by label."""
    label: str
    ascending: bool


@dataclass
class ExtractResult:
    """Output of one extraction pass."""
    rows: Any
    cols: List[ColumnDescriptor]
    sort: List[SortHint] = field(default_factory=list)
    next_cursor: int = 0


def _numeric_domain(rows: Any, column: TableColumn) -> Optional[Tuple[float, float]]:
    values = []
    for row in rows:
        value = cell_value(row, column)
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            continue
        values.append(value)
    if not values:
        return None
    return (min(values), max(values))


def infer_kind(column: TableColumn) -> ColumnKind:
    """Kind inference in priority order: identifier/untyped, bool, numeric, date, enum."""
    value_type = column.type
    if value_type is None or column.is_row_identifier:
        # row identifiers are always strings
        return ColumnKind.STRING
    if value_type.boolean:
        return ColumnKind.BOOLEAN
    if value_type.integer or value_type.numeric:
        return ColumnKind.NUMBER
    if value_type.date_time:
        return ColumnKind.DATE
    if value_type.enumeration is not None:
        return ColumnKind.CATEGORICAL
    return ColumnKind.STRING


def extract_sort_hint(columns: List[TableColumn]) -> List[SortHint]:
    """Columns with a declared sort, ordered by sort_order ascending."""
    sorted_columns = sorted(
        (c for c in columns if c.sort is not None),
        key=lambda c: (c.sort_order is None, c.sort_order or 0),
    )
    return [
        SortHint(label=c.display_name, ascending=c.sort == SortDirection.ASCENDING)
        for c in sorted_columns
    ]


def _build_descriptors(
    rows: Any,
    columns: List[TableColumn],
    palette: Palette,
    cursor: int,
) -> Tuple[List[ColumnDescriptor], int]:
    cols: List[ColumnDescriptor] = []
    for column in columns:
        kind = infer_kind(column)
        desc = ColumnDescriptor(label=column.display_name, kind=kind, source_index=column.index)

        if kind == ColumnKind.NUMBER:
            desc.color_mapping, cursor = palette.allocate(cursor)
            desc.domain = _numeric_domain(rows, column)
        elif kind == ColumnKind.CATEGORICAL:
            desc.categories = [
                Category(label=member.display_name, name=member.value)
                for member in column.type.enumeration
            ]

        cols.append(desc)
    return cols, cursor


def extract(table: DataTable, cursor: int = 0, palette: Optional[Palette] = None) -> ExtractResult:
    """Map a raw table into semantic column descriptors and a sort hint.

    Args:
        table: Table supplied by the host on this refresh
        cursor: Palette cursor carried over from the previous extraction
        palette: Color palette (defaults to the host theme palette)

    Returns:
        ExtractResult with rows, descriptors, sort hint and the advanced cursor
    """
    palette = palette or Palette()

    rows = table.rows if table.rows is not None else []
    try:
        iter(rows)
        cols, next_cursor = _build_descriptors(rows, table.columns, palette, cursor)
    except Exception as e:
        logger.warning(f"Error extracting rows from table, continuing with no rows: {e}")
        rows = []
        cols, next_cursor = _build_descriptors(rows, table.columns, palette, cursor)

    return ExtractResult(
        rows=rows,
        cols=cols,
        sort=extract_sort_hint(table.columns),
        next_cursor=next_cursor,
    )
