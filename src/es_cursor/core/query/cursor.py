"""Record cursor over a logical search-backend table.

Construction resolves the table's physical indices, builds the field
projection and opens the scroll context. Each ``advance_next_position`` call
folds one document into a fixed-width row of text values; typed accessors
check bounds and declared type, then parse the text on demand.

The cursor is single-threaded: advance, read the fields you need, advance
again. It is not safe to share between threads.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator, List, Optional, Sequence

from es_cursor.core.config import ScrollSettings
from es_cursor.core.enums import ColumnType, CursorState
from es_cursor.core.errors import (
    InvalidFieldIndex,
    ParseError,
    StateError,
    TypeMismatch,
)
from es_cursor.core.models import MISSING, ColumnHandle, RawHit, RowValue, TableSource
from es_cursor.sources.client import SearchClient
from .indices import fetch_indices
from .projection import FieldProjection, build_projection
from .scroll import ScrollFetcher


logger = logging.getLogger(__name__)

_LONG_PATTERN = re.compile(r"^[+-]?\d+$")
_DOUBLE_PATTERN = re.compile(
    r"^[+-]?((\d+\.?\d*|\.\d+)([eE][+-]?\d+)?|nan|inf|infinity)$", re.IGNORECASE
)
_LONG_MIN = -(2**63)
_LONG_MAX = 2**63 - 1


def render_value(value: Any) -> str:
    """Render a raw backend value as text the typed accessors can parse."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def unwrap_first(values: Any) -> RowValue:
    """Return the rendered first element of a backend-wrapped field value.

    Multi-valued fields are truncated to their first element. An empty list
    reads as absent.
    """
    if isinstance(values, (list, tuple)):
        if not values:
            return MISSING
        values = values[0]
    return render_value(values)


class RecordCursor:
    """Typed, forward-only cursor over every document of a logical table.

    Args:
        columns: Ordered output columns; fixes row width and field indices.
        table: Table location; ``table.type_name`` selects the indices.
        client: Already-connected cluster client handle (shared, not owned).
        settings: Page size and scroll TTLs.
        on_collision: Projection policy for columns sharing a source path
            ("last" or "error").

    Raises:
        BackendError: If index resolution or the initial search fails.
    """

    def __init__(
        self,
        columns: Sequence[ColumnHandle],
        table: TableSource,
        client: SearchClient,
        *,
        settings: Optional[ScrollSettings] = None,
        on_collision: str = "last",
    ) -> None:
        self.columns: List[ColumnHandle] = list(columns)
        self.table = table
        self.projection: FieldProjection = build_projection(
            self.columns, on_collision=on_collision
        )
        self._state = CursorState.NOT_STARTED
        self._row: Optional[List[RowValue]] = None
        self._total_bytes = 0
        self.rows_read = 0

        logger.debug(
            "Connecting to cluster %s from %s:%d, index %s, type %s",
            table.cluster_name,
            table.host,
            table.port,
            table.index,
            table.type_name,
        )
        self.indices = fetch_indices(client, table.type_name)
        self._fetcher = ScrollFetcher(
            client,
            self.indices,
            table.type_name,
            self.projection.paths,
            settings,
        )
        try:
            self._fetcher.open()
            self._hits: Iterator[RawHit] = self._fetcher.hits()
        except Exception:
            self._fetcher.close()
            raise

    # ------------------------------------------------------------------
    # Accounting
    # ------------------------------------------------------------------

    @property
    def state(self) -> CursorState:
        return self._state

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def get_total_bytes(self) -> int:
        """Approximate size read so far (column count per row, not real bytes)."""
        return self._total_bytes

    def get_completed_bytes(self) -> int:
        return self._total_bytes

    def get_read_time_nanos(self) -> int:
        return 0

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def get_type(self, field: int) -> ColumnType:
        self._check_field(field)
        return self.columns[field].column_type

    def advance_next_position(self) -> bool:
        """Move to the next document. Returns False once no documents remain."""
        if self._state in (CursorState.EXHAUSTED, CursorState.CLOSED):
            return False

        try:
            hit = next(self._hits)
        except StopIteration:
            self._state = CursorState.EXHAUSTED
            self._row = None
            return False
        except Exception:
            self._state = CursorState.EXHAUSTED
            self._row = None
            raise

        row: List[RowValue] = [MISSING] * self.projection.width
        for path, values in hit.items():
            index = self.projection.position(path)
            if index is None:
                continue
            row[index] = unwrap_first(values)

        self._row = row
        self._state = CursorState.ACTIVE
        self._total_bytes += len(row)
        self.rows_read += 1
        return True

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_boolean(self, field: int) -> bool:
        text = self._typed_text(field, ColumnType.BOOLEAN)
        lowered = text.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise ParseError(f"Field {field}: cannot parse {text!r} as boolean")

    def get_long(self, field: int) -> int:
        text = self._typed_text(field, ColumnType.BIGINT)
        stripped = text.strip()
        if not _LONG_PATTERN.match(stripped):
            raise ParseError(f"Field {field}: cannot parse {text!r} as bigint")
        value = int(stripped)
        if not _LONG_MIN <= value <= _LONG_MAX:
            raise ParseError(f"Field {field}: {text!r} is out of 64-bit range")
        return value

    def get_double(self, field: int) -> float:
        text = self._typed_text(field, ColumnType.DOUBLE)
        stripped = text.strip()
        if not _DOUBLE_PATTERN.match(stripped):
            raise ParseError(f"Field {field}: cannot parse {text!r} as double")
        return float(stripped)

    def get_text(self, field: int) -> str:
        return self._typed_text(field, ColumnType.VARCHAR)

    def get_object(self, field: int) -> None:
        self._check_field(field)
        self._current_row()
        return None

    def is_null(self, field: int) -> bool:
        self._check_field(field)
        value = self._current_row()[field]
        return value is MISSING or value == ""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the scroll context. Calling it again does nothing."""
        if self._state == CursorState.CLOSED:
            return
        self._state = CursorState.CLOSED
        self._row = None
        close_hits = getattr(self._hits, "close", None)
        if callable(close_hits):
            close_hits()
        self._fetcher.close()

    def __enter__(self) -> "RecordCursor":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_field(self, field: int) -> None:
        if not 0 <= field < len(self.columns):
            raise InvalidFieldIndex(field, len(self.columns))

    def _check_field_type(self, field: int, expected: ColumnType) -> None:
        actual = self.get_type(field)
        if actual != expected:
            raise TypeMismatch(field, expected.value, actual.value)

    def _current_row(self) -> List[RowValue]:
        if self._state == CursorState.NOT_STARTED:
            raise StateError("Cursor has not been advanced yet")
        if self._state == CursorState.EXHAUSTED:
            raise StateError("Cursor is exhausted")
        if self._state == CursorState.CLOSED or self._row is None:
            raise StateError("Cursor is closed")
        return self._row

    def _typed_text(self, field: int, expected: ColumnType) -> str:
        self._check_field_type(field, expected)
        value = self._current_row()[field]
        if value is MISSING:
            raise ParseError(
                f"Field {field} ('{self.columns[field].name}') is absent from the current document"
            )
        return value  # type: ignore[return-value]
