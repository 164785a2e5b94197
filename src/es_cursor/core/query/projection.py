from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from es_cursor.core.errors import ProjectionCollision
from es_cursor.core.models import ColumnHandle


logger = logging.getLogger(__name__)

COLLISION_POLICIES = ("last", "error")


@dataclass(frozen=True)
class FieldProjection:
    """Mapping from source field paths to row positions.

    Attributes:
        index_of: Field path -> column index the hit value is written to.
        paths: Distinct field paths to request, in first-seen column order.
        width: Row width (always the column count, even after collisions).
    """

    index_of: Dict[str, int]
    paths: List[str]
    width: int

    def position(self, path: str) -> Optional[int]:
        return self.index_of.get(path)


def build_projection(
    columns: Sequence[ColumnHandle], *, on_collision: str = "last"
) -> FieldProjection:
    """Build the path -> row index mapping for an ordered column list.

    When two columns share a source path, ``on_collision="last"`` keeps the
    later column's index (the earlier column then always reads as absent) and
    logs a warning; ``on_collision="error"`` raises ``ProjectionCollision``.
    """
    if on_collision not in COLLISION_POLICIES:
        raise ValueError(
            f"Invalid on_collision: {on_collision!r}. Must be one of {COLLISION_POLICIES}."
        )

    index_of: Dict[str, int] = {}
    paths: List[str] = []
    for i, column in enumerate(columns):
        path = column.json_path
        if path in index_of:
            previous = columns[index_of[path]]
            msg = (
                f"Columns '{previous.name}' (#{index_of[path]}) and '{column.name}' (#{i}) "
                f"share source path '{path}'"
            )
            if on_collision == "error":
                raise ProjectionCollision(msg)
            logger.warning("%s; keeping column #%d", msg, i)
        else:
            paths.append(path)
        index_of[path] = i

    return FieldProjection(index_of=index_of, paths=paths, width=len(columns))
