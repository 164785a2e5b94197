"""Scroll-page protocol driver.

``ScrollFetcher`` walks a server-side scroll context from the initial search
to the first empty page and yields each document's ``fields`` mapping in
arrival order. Only the current page is held in memory. The scroll context is
released when iteration ends, fails, or the fetcher is closed.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from es_cursor.core.config import ScrollSettings
from es_cursor.core.errors import BackendError, StateError
from es_cursor.core.models import RawHit
from es_cursor.sources.client import SearchClient


logger = logging.getLogger(__name__)


def _hits_of(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    hits = response.get("hits") if isinstance(response, dict) else None
    if not isinstance(hits, dict):
        raise BackendError("Malformed search response: missing 'hits' section")
    return list(hits.get("hits") or [])


def _fields_of(hit: Dict[str, Any]) -> RawHit:
    return hit.get("fields") or {}


class ScrollFetcher:
    """Lazy, single-use sequence of hits for one scroll session.

    Args:
        client: Cluster client handle; shared, never closed here.
        indices: Physical indices to search. Empty means no request and no hits.
        type_name: Document type the search is restricted to.
        fields: Field paths to project out of each document.
        settings: Page size and scroll TTLs.
    """

    def __init__(
        self,
        client: SearchClient,
        indices: Sequence[str],
        type_name: str,
        fields: Sequence[str],
        settings: Optional[ScrollSettings] = None,
    ) -> None:
        self.client = client
        self.indices = list(indices)
        self.type_name = type_name
        self.fields = list(fields)
        self.settings = settings or ScrollSettings()
        self.pages_fetched = 0
        self.hits_fetched = 0
        self._scroll_id: Optional[str] = None
        self._first_page: List[Dict[str, Any]] = []
        self._opened = False
        self._consumed = False
        self._closed = False

    @property
    def scroll_id(self) -> Optional[str]:
        return self._scroll_id

    @property
    def closed(self) -> bool:
        return self._closed

    def _call(self, fn: Callable[..., Dict[str, Any]], **kwargs: Any) -> Dict[str, Any]:
        try:
            return fn(**kwargs)
        except BackendError:
            raise
        except Exception as e:
            raise BackendError(f"{getattr(fn, '__name__', 'request')} failed: {e}") from e

    def open(self) -> None:
        """Issue the initial search and keep its page for iteration.

        Raises:
            StateError: If the fetcher was already opened.
            BackendError: If the search fails; no scroll context is left open.
        """
        if self._opened:
            raise StateError("Scroll fetcher can only be opened once")
        self._opened = True

        if not self.indices:
            logger.debug("No indices for type '%s'; skipping search", self.type_name)
            return

        response = self._call(
            self.client.search,
            indices=self.indices,
            doc_type=self.type_name,
            fields=self.fields,
            size=self.settings.page_size,
            scroll=self.settings.initial_scroll_ttl,
        )
        self._scroll_id = response.get("_scroll_id")
        try:
            if not self._scroll_id:
                raise BackendError("Search response carries no scroll id")
            self._first_page = _hits_of(response)
        except BackendError:
            self.close()
            raise
        self.pages_fetched = 1
        logger.debug(
            "Opened scroll on %s (type=%s): first page has %d hits",
            self.indices,
            self.type_name,
            len(self._first_page),
        )

    def hits(self) -> Iterator[RawHit]:
        """Yield every hit's ``fields`` mapping, fetching pages on demand.

        Iteration stops after the first page with zero hits. Can be consumed
        only once.
        """
        if self._consumed:
            raise StateError("Scroll results can only be iterated once")
        self._consumed = True
        if not self._opened:
            self.open()
        return self._iterate()

    def _iterate(self) -> Iterator[RawHit]:
        page, self._first_page = self._first_page, []
        try:
            while True:
                for hit in page:
                    self.hits_fetched += 1
                    yield _fields_of(hit)
                if self._scroll_id is None:
                    break
                response = self._call(
                    self.client.scroll,
                    scroll_id=self._scroll_id,
                    scroll=self.settings.continuation_scroll_ttl,
                )
                self._scroll_id = response.get("_scroll_id") or self._scroll_id
                page = _hits_of(response)
                self.pages_fetched += 1
                logger.debug("Scroll page %d: %d hits", self.pages_fetched, len(page))
                if not page:
                    break
        finally:
            self.close()

    def close(self) -> None:
        """Release the server-side scroll context. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        scroll_id, self._scroll_id = self._scroll_id, None
        self._first_page = []
        if scroll_id is None:
            return
        try:
            self.client.clear_scroll(scroll_id=scroll_id)
            logger.debug(
                "Released scroll context after %d pages, %d hits",
                self.pages_fetched,
                self.hits_fetched,
            )
        except Exception as e:
            # The context still expires server-side once its TTL lapses
            logger.warning("Failed to release scroll context: %s", e)

    def __enter__(self) -> "ScrollFetcher":
        self.open()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


def fetch_all(
    client: SearchClient,
    indices: Sequence[str],
    type_name: str,
    fields: Sequence[str],
    settings: Optional[ScrollSettings] = None,
) -> List[RawHit]:
    """Eagerly fetch every matching hit, in page arrival order."""
    with ScrollFetcher(client, indices, type_name, fields, settings) as fetcher:
        return list(fetcher.hits())
