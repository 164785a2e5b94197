from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from es_cursor.core.config import DEFAULT_TIMEOUT_SEC
from es_cursor.core.errors import BackendError


logger = logging.getLogger(__name__)


class SearchClient(Protocol):
    """Read-only interface the cursor needs from a cluster client handle.

    Responses are the backend's JSON bodies decoded to dicts, e.g. a search or
    scroll response carries ``_scroll_id`` and ``hits.hits[*].fields``.
    Implementations raise ``BackendError`` on network or protocol failures.
    """

    def list_indices(self) -> List[str]:
        """Return every concrete index name known to the cluster."""
        ...

    def search(
        self,
        *,
        indices: Sequence[str],
        doc_type: Optional[str],
        fields: Sequence[str],
        size: int,
        scroll: str,
    ) -> Dict[str, Any]:
        """Open a scroll context and return its first page."""
        ...

    def scroll(self, *, scroll_id: str, scroll: str) -> Dict[str, Any]:
        """Return the next page of an open scroll context."""
        ...

    def clear_scroll(self, *, scroll_id: str) -> None:
        """Release a scroll context on the server."""
        ...


class HttpSearchClient:
    """SearchClient over the Elasticsearch REST API using httpx.

    The handle may wrap an externally owned ``httpx.Client`` (shared between
    cursors); it is only closed here when this object created it.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        auth: Optional[tuple[str, str]] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url
        self._owns_client = client is None
        if client is None:
            client = httpx.Client(
                base_url=base_url,
                timeout=timeout_sec,
                auth=auth,
                headers={"Accept": "application/json"},
            )
        self._client = client

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        allow_not_found: bool = False,
    ) -> Dict[str, Any]:
        try:
            resp = self._client.request(method, path, params=params, json=body)
            if allow_not_found and resp.status_code == 404:
                return {}
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BackendError(
                f"{method} {path} failed with HTTP {e.response.status_code}: "
                f"{e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {path} failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise BackendError(f"{method} {path} returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise BackendError(f"{method} {path} returned unexpected payload: {type(data).__name__}")
        return data

    def list_indices(self) -> List[str]:
        data = self._request("GET", "/_cluster/state/metadata")
        indices = (data.get("metadata") or {}).get("indices") or {}
        return list(indices.keys())

    def search(
        self,
        *,
        indices: Sequence[str],
        doc_type: Optional[str],
        fields: Sequence[str],
        size: int,
        scroll: str,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "size": int(size),
            "_source": False,
            "fields": list(fields),
            # _doc order is the cheapest way to walk every shard
            "sort": ["_doc"],
        }
        if doc_type:
            body["query"] = {"bool": {"filter": [{"term": {"_type": doc_type}}]}}
        path = f"/{','.join(indices)}/_search"
        logger.debug("Search %s (size=%d, scroll=%s, fields=%s)", path, size, scroll, list(fields))
        return self._request("POST", path, params={"scroll": scroll}, body=body)

    def scroll(self, *, scroll_id: str, scroll: str) -> Dict[str, Any]:
        return self._request(
            "POST", "/_search/scroll", body={"scroll": scroll, "scroll_id": scroll_id}
        )

    def clear_scroll(self, *, scroll_id: str) -> None:
        # 404 means the context already expired on the server
        self._request(
            "DELETE",
            "/_search/scroll",
            body={"scroll_id": [scroll_id]},
            allow_not_found=True,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpSearchClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
