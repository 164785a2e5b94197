"""Core enumerations used across the package."""

from __future__ import annotations

from enum import Enum


class ColumnType(str, Enum):
    """Declared semantic type of a cursor column.

    Values are strings to ease serialization and CLI interchange.
    """

    BOOLEAN = "boolean"
    BIGINT = "bigint"
    DOUBLE = "double"
    VARCHAR = "varchar"


class CursorState(str, Enum):
    """Lifecycle of a record cursor."""

    NOT_STARTED = "not_started"
    ACTIVE = "active"
    EXHAUSTED = "exhausted"
    CLOSED = "closed"


__all__ = ["ColumnType", "CursorState"]
