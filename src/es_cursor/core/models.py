"""Cursor data models.

This module defines the immutable inputs a cursor is built from:
- ColumnHandle: one output column (name, source field path, declared type)
- TableSource: where a logical table lives (cluster, index, type name)
- MISSING: marker for a field absent from the current document
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Union

from es_cursor.core.enums import ColumnType


class _Missing:
    """Marker type for a field the current document does not carry."""

    _instance = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

# A row slot holds the rendered text, or MISSING when the hit lacked the field.
RowValue = Union[str, _Missing]

# Backend-returned ``fields`` mapping of one document: path -> [value, ...]
RawHit = Dict[str, List[Any]]


@dataclass(frozen=True)
class ColumnHandle:
    """Engine-supplied description of one output column.

    Attributes:
        name: Column name as seen by the caller.
        json_path: Source field path inside the backend documents (e.g. "user.id").
        column_type: Declared semantic type; accessors are checked against it.

    Examples:
        >>> ColumnHandle("age", "person.age", ColumnType.BIGINT)
    """

    name: str
    json_path: str
    column_type: ColumnType

    def __post_init__(self) -> None:
        """Validate field constraints."""
        if not self.json_path:
            raise ValueError(f"Column '{self.name}' has an empty source field path")
        if not isinstance(self.column_type, ColumnType):
            raise ValueError(
                f"Invalid column type for '{self.name}': {self.column_type!r}. "
                f"Must be one of {[t.value for t in ColumnType]}."
            )


@dataclass(frozen=True)
class TableSource:
    """Location of a logical table in a search cluster.

    ``host`` and ``port`` are informational; the client handle is resolved from
    ``cluster_name``. Physical indices are discovered from ``type_name``.
    """

    cluster_name: str
    host: str
    port: int
    index: str
    type_name: str
