"""Exception hierarchy for cursor and backend failures.

Usage errors (bad field index, wrong accessor type, unparsable text, reading
before the first advance) are raised synchronously at the call site and are
never retried. ``BackendError`` covers any network or protocol failure while
talking to the search cluster.

Each usage error also derives from the matching builtin so callers that only
know about ``IndexError``/``TypeError``/``ValueError`` still catch them.
"""

from __future__ import annotations


class CursorError(Exception):
    """Base class for all errors raised by this package."""


class InvalidFieldIndex(CursorError, IndexError):
    """Field index outside ``[0, column_count)``."""

    def __init__(self, field: int, column_count: int) -> None:
        super().__init__(f"Invalid field index {field}: cursor has {column_count} columns")
        self.field = field
        self.column_count = column_count


class TypeMismatch(CursorError, TypeError):
    """Accessor type differs from the column's declared type."""

    def __init__(self, field: int, expected: object, actual: object) -> None:
        super().__init__(f"Expected field {field} to be type {expected} but is {actual}")
        self.field = field
        self.expected = expected
        self.actual = actual


class ParseError(CursorError, ValueError):
    """Stored text cannot be parsed into the requested type."""


class StateError(CursorError, RuntimeError):
    """Accessor invoked while the cursor is not positioned on a row."""


class ProjectionCollision(CursorError, ValueError):
    """Two distinct columns map to the same source field path."""


class BackendError(CursorError):
    """Network or protocol failure while talking to the search backend."""


__all__ = [
    "CursorError",
    "InvalidFieldIndex",
    "TypeMismatch",
    "ParseError",
    "StateError",
    "ProjectionCollision",
    "BackendError",
]
