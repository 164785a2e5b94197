from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import polars as pl
from tqdm import tqdm

from es_cursor.core.enums import ColumnType
from es_cursor.core.models import ColumnHandle
from .cursor import RecordCursor


_POLARS_DTYPES = {
    ColumnType.BOOLEAN: pl.Boolean,
    ColumnType.BIGINT: pl.Int64,
    ColumnType.DOUBLE: pl.Float64,
    ColumnType.VARCHAR: pl.Utf8,
}


def frame_schema(columns: Sequence[ColumnHandle]) -> Dict[str, Any]:
    """Return the polars schema (name -> dtype) for a column list."""
    return {c.name: _POLARS_DTYPES[c.column_type] for c in columns}


def read_value(cursor: RecordCursor, field: int) -> Any:
    """Read one field of the current row with the accessor matching its type."""
    if cursor.is_null(field):
        return None
    column_type = cursor.get_type(field)
    if column_type == ColumnType.BOOLEAN:
        return cursor.get_boolean(field)
    if column_type == ColumnType.BIGINT:
        return cursor.get_long(field)
    if column_type == ColumnType.DOUBLE:
        return cursor.get_double(field)
    return cursor.get_text(field)


def collect_frame(
    cursor: RecordCursor,
    *,
    limit: Optional[int] = None,
    progress: bool = False,
) -> pl.DataFrame:
    """Drain ``cursor`` into a typed DataFrame.

    Absent and empty values become nulls. Reading stops after ``limit`` rows
    when given; the cursor is left open for the caller to close.
    """
    names = [c.name for c in cursor.columns]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate column names: {names}")
    data: Dict[str, List[Any]] = {name: [] for name in names}

    pbar = tqdm(desc=f"{'Reading ' + cursor.table.type_name:<31}", unit="rows", disable=not progress)
    try:
        rows = 0
        while limit is None or rows < limit:
            if not cursor.advance_next_position():
                break
            for field, name in enumerate(names):
                data[name].append(read_value(cursor, field))
            rows += 1
            pbar.update(1)
    finally:
        pbar.close()

    return pl.DataFrame(data, schema=frame_schema(cursor.columns))
