"""Tests for the scroll-page protocol driver."""

from __future__ import annotations

import pytest

from conftest import FakeSearchClient, make_docs
from es_cursor.core.config import ScrollSettings
from es_cursor.core.errors import BackendError, StateError
from es_cursor.core.query.scroll import ScrollFetcher, fetch_all


def test_fetch_all_collects_pages_in_arrival_order():
    client = FakeSearchClient(pages=[make_docs(3), make_docs(2, start=3), make_docs(1, start=5)])

    hits = fetch_all(client, ["t_1", "t_2"], "t", ["id"])

    assert [h["id"][0] for h in hits] == [0, 1, 2, 3, 4, 5]
    assert client.methods() == ["search", "scroll", "scroll", "scroll", "clear_scroll"]


def test_initial_search_request_shape():
    client = FakeSearchClient(pages=[make_docs(1)])
    settings = ScrollSettings(page_size=500, initial_scroll_ttl="30s", continuation_scroll_ttl="5m")

    fetch_all(client, ["t_1", "t_2"], "t", ["id", "name"], settings)

    name, search_kwargs = client.calls[0]
    assert name == "search"
    assert search_kwargs == {
        "indices": ["t_1", "t_2"],
        "doc_type": "t",
        "fields": ["id", "name"],
        "size": 500,
        "scroll": "30s",
    }
    name, scroll_kwargs = client.calls[1]
    assert name == "scroll"
    assert scroll_kwargs == {"scroll_id": "scroll-0", "scroll": "5m"}


def test_default_settings_match_configured_constants():
    client = FakeSearchClient(pages=[[]])
    fetch_all(client, ["t_1"], "t", ["id"])

    search_kwargs = client.calls[0][1]
    assert search_kwargs["size"] == 20000
    assert search_kwargs["scroll"] == "1m"
    assert client.calls[1][1]["scroll"] == "10m"


def test_each_continuation_uses_latest_scroll_id():
    client = FakeSearchClient(pages=[make_docs(1), make_docs(1, start=1)])
    fetch_all(client, ["t_1"], "t", ["id"])

    scroll_ids = [kw["scroll_id"] for name, kw in client.calls if name == "scroll"]
    assert scroll_ids == ["scroll-0", "scroll-1"]
    assert client.cleared == ["scroll-2"]


def test_empty_initial_page_still_scrolls():
    """Scan-style searches return no hits on the first page."""
    client = FakeSearchClient(pages=[[], make_docs(2)])

    hits = fetch_all(client, ["t_1"], "t", ["id"])

    assert len(hits) == 2


def test_no_indices_issues_no_requests():
    client = FakeSearchClient(pages=[make_docs(5)])

    assert fetch_all(client, [], "t", ["id"]) == []
    assert client.calls == []


def test_hits_without_fields_yield_empty_mapping():
    client = FakeSearchClient(pages=[[{}]])
    assert fetch_all(client, ["t_1"], "t", ["id"]) == [{}]


def test_hits_are_fetched_lazily():
    client = FakeSearchClient(pages=[make_docs(2), make_docs(2, start=2)])
    fetcher = ScrollFetcher(client, ["t_1"], "t", ["id"])
    fetcher.open()
    hits = fetcher.hits()

    next(hits)
    next(hits)
    assert client.methods() == ["search"]

    next(hits)
    assert client.methods() == ["search", "scroll"]
    assert fetcher.pages_fetched == 2
    fetcher.close()


def test_hits_can_only_be_iterated_once():
    client = FakeSearchClient(pages=[make_docs(1)])
    fetcher = ScrollFetcher(client, ["t_1"], "t", ["id"])
    list(fetcher.hits())

    with pytest.raises(StateError):
        fetcher.hits()


def test_open_twice_is_rejected():
    fetcher = ScrollFetcher(FakeSearchClient(), ["t_1"], "t", ["id"])
    fetcher.open()
    with pytest.raises(StateError):
        fetcher.open()
    fetcher.close()


class TestScrollContextRelease:
    """The server-side scroll context is always released exactly once."""

    def test_released_after_exhaustion(self):
        client = FakeSearchClient(pages=[make_docs(1)])
        fetcher = ScrollFetcher(client, ["t_1"], "t", ["id"])
        list(fetcher.hits())

        assert fetcher.closed
        assert client.cleared == ["scroll-1"]

    def test_released_on_early_close(self):
        client = FakeSearchClient(pages=[make_docs(3), make_docs(3)])
        fetcher = ScrollFetcher(client, ["t_1"], "t", ["id"])
        hits = fetcher.hits()
        next(hits)

        fetcher.close()
        fetcher.close()

        assert client.cleared == ["scroll-0"]
        assert "scroll" not in client.methods()

    def test_released_when_continuation_fails(self):
        client = FakeSearchClient(pages=[make_docs(2), make_docs(2)], fail_scroll_at=2)
        fetcher = ScrollFetcher(client, ["t_1"], "t", ["id"])

        with pytest.raises(BackendError, match="scroll context expired"):
            list(fetcher.hits())

        assert fetcher.closed
        assert client.cleared == ["scroll-1"]

    def test_search_failure_raises_backend_error(self):
        client = FakeSearchClient(errors={"search": TimeoutError("timed out")})
        fetcher = ScrollFetcher(client, ["t_1"], "t", ["id"])

        with pytest.raises(BackendError, match="timed out"):
            fetcher.open()
        assert client.cleared == []

    def test_malformed_response_releases_context(self):
        client = FakeSearchClient()
        client.search = lambda **kw: {"_scroll_id": "abc"}
        fetcher = ScrollFetcher(client, ["t_1"], "t", ["id"])

        with pytest.raises(BackendError, match="missing 'hits'"):
            fetcher.open()
        assert client.cleared == ["abc"]

    def test_missing_scroll_id_is_a_backend_error(self):
        client = FakeSearchClient()
        client.search = lambda **kw: {"hits": {"hits": []}}
        fetcher = ScrollFetcher(client, ["t_1"], "t", ["id"])

        with pytest.raises(BackendError, match="no scroll id"):
            fetcher.open()

    def test_release_failure_is_logged_not_raised(self, caplog):
        client = FakeSearchClient(pages=[make_docs(1)])

        def broken_clear(*, scroll_id):
            raise ConnectionError("gone")

        client.clear_scroll = broken_clear
        fetcher = ScrollFetcher(client, ["t_1"], "t", ["id"])

        assert len(list(fetcher.hits())) == 1
        assert "Failed to release scroll context" in caplog.text


def test_three_full_pages_scenario():
    """20000 + 20000 + 5000 hits, then an empty page."""
    client = FakeSearchClient(
        pages=[make_docs(20000), make_docs(20000, start=20000), make_docs(5000, start=40000)]
    )

    hits = fetch_all(client, ["t_1"], "t", ["id"])

    assert len(hits) == 45000
    assert [h["id"][0] for h in hits] == list(range(45000))
