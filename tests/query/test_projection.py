"""Tests for the field projection map."""

from __future__ import annotations

import pytest

from es_cursor.core.enums import ColumnType
from es_cursor.core.errors import ProjectionCollision
from es_cursor.core.models import ColumnHandle
from es_cursor.core.query.projection import build_projection


def test_build_projection_maps_paths_to_column_order(columns):
    projection = build_projection(columns)

    assert projection.index_of == {
        "flags.active": 0,
        "stats.count": 1,
        "stats.score": 2,
        "name": 3,
    }
    assert projection.paths == ["flags.active", "stats.count", "stats.score", "name"]
    assert projection.width == 4
    assert projection.position("missing.path") is None


def test_build_projection_empty_columns():
    projection = build_projection([])
    assert projection.index_of == {}
    assert projection.paths == []
    assert projection.width == 0


class TestPathCollisions:
    """Two columns reading the same source path."""

    @pytest.fixture
    def colliding(self):
        return [
            ColumnHandle("a", "shared", ColumnType.VARCHAR),
            ColumnHandle("b", "other", ColumnType.BIGINT),
            ColumnHandle("c", "shared", ColumnType.VARCHAR),
        ]

    def test_later_column_wins_by_default(self, colliding, caplog):
        projection = build_projection(colliding)

        assert projection.index_of == {"shared": 2, "other": 1}
        assert projection.paths == ["shared", "other"]
        assert projection.width == 3
        assert "share source path 'shared'" in caplog.text

    def test_error_policy_fails_fast(self, colliding):
        with pytest.raises(ProjectionCollision, match="'a' \\(#0\\) and 'c' \\(#2\\)"):
            build_projection(colliding, on_collision="error")

    def test_unknown_policy_rejected(self, colliding):
        with pytest.raises(ValueError, match="Invalid on_collision"):
            build_projection(colliding, on_collision="first")
