"""Shared pytest configuration, fixtures, and utilities for cursor testing."""

from typing import Any, Dict, List, Optional, Sequence

import pytest

from es_cursor.core.enums import ColumnType
from es_cursor.core.models import ColumnHandle, TableSource


def make_docs(count: int, start: int = 0) -> List[Dict[str, List[Any]]]:
    """Build ``count`` hit field mappings with a sequential ``id`` field."""
    return [{"id": [i]} for i in range(start, start + count)]


class FakeSearchClient:
    """In-memory SearchClient serving pre-built pages.

    ``pages[0]`` answers the initial search, each further entry answers one
    scroll call; once pages run out, scroll returns an empty page. Every call
    is recorded in ``calls`` as ``(method, kwargs)``.
    """

    def __init__(
        self,
        indices: Optional[Sequence[str]] = None,
        pages: Optional[Sequence[Sequence[Dict[str, Any]]]] = None,
        errors: Optional[Dict[str, Exception]] = None,
        fail_scroll_at: Optional[int] = None,
    ) -> None:
        self.indices = list(indices if indices is not None else ["t_1", "t_2", "u_1"])
        self.pages = [list(p) for p in (pages if pages is not None else [[]])]
        self.errors = dict(errors or {})
        self.fail_scroll_at = fail_scroll_at
        self.calls: List[tuple] = []
        self.cleared: List[str] = []
        self._served = 0

    def _maybe_fail(self, method: str) -> None:
        if method in self.errors:
            raise self.errors[method]

    def _page(self, n: int) -> Dict[str, Any]:
        docs = self.pages[n] if n < len(self.pages) else []
        return {
            "_scroll_id": f"scroll-{n}",
            "hits": {"hits": [{"_id": str(i), "fields": doc} for i, doc in enumerate(docs)]},
        }

    def list_indices(self) -> List[str]:
        self.calls.append(("list_indices", {}))
        self._maybe_fail("list_indices")
        return list(self.indices)

    def search(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(("search", kwargs))
        self._maybe_fail("search")
        self._served = 1
        return self._page(0)

    def scroll(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(("scroll", kwargs))
        self._maybe_fail("scroll")
        if self.fail_scroll_at is not None and self._served == self.fail_scroll_at:
            raise ConnectionError("scroll context expired")
        page = self._page(self._served)
        self._served += 1
        return page

    def clear_scroll(self, *, scroll_id: str) -> None:
        self.calls.append(("clear_scroll", {"scroll_id": scroll_id}))
        self.cleared.append(scroll_id)

    def methods(self) -> List[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def table() -> TableSource:
    return TableSource(cluster_name="main", host="localhost", port=9200, index="t", type_name="t")


@pytest.fixture
def columns() -> List[ColumnHandle]:
    """One column of every declared type."""
    return [
        ColumnHandle("active", "flags.active", ColumnType.BOOLEAN),
        ColumnHandle("count", "stats.count", ColumnType.BIGINT),
        ColumnHandle("score", "stats.score", ColumnType.DOUBLE),
        ColumnHandle("name", "name", ColumnType.VARCHAR),
    ]


@pytest.fixture
def sample_docs() -> List[Dict[str, List[Any]]]:
    return [
        {"flags.active": [True], "stats.count": [42], "stats.score": [1.5], "name": ["alpha"]},
        {"stats.count": [-7], "name": [""]},
        {"flags.active": [False], "stats.score": [2], "name": ["gamma", "delta"]},
    ]
