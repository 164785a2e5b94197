from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

import yaml

from es_cursor.core.config import DEFAULT_PORT, DEFAULT_SCHEME, DEFAULT_TIMEOUT_SEC
from es_cursor.core.errors import BackendError
from es_cursor.core.models import TableSource
from .client import HttpSearchClient, SearchClient


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterDefinition:
    """Definition of a search cluster entry."""

    name: str
    host: str
    port: int = DEFAULT_PORT
    scheme: str = DEFAULT_SCHEME  # "http" | "https"
    timeout_sec: float = DEFAULT_TIMEOUT_SEC

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


class SourceRegistry:
    """Load and query cluster and table definitions from YAML.

    Expected layout::

        clusters:
          - name: main
            host: localhost
            port: 9200
        tables:
          - name: events
            cluster: main
            index: events
            type: events
    """

    def __init__(self, catalog_file: Path) -> None:
        """Initialize the registry with a path to the catalog YAML file."""
        self.catalog_file = catalog_file
        self._clusters: Dict[str, ClusterDefinition] = {}
        self._tables: Dict[str, TableSource] = {}
        self._load(catalog_file)

    def _load(self, catalog_file: Path) -> None:
        """Parse YAML into cluster definitions and table sources."""
        if not catalog_file.exists():
            raise FileNotFoundError(f"Catalog file not found: {catalog_file}")
        with catalog_file.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        for item in data.get("clusters", []) or []:
            cluster = ClusterDefinition(
                name=str(item.get("name", "")),
                host=str(item.get("host", "localhost")),
                port=int(item.get("port", DEFAULT_PORT)),
                scheme=str(item.get("scheme", DEFAULT_SCHEME)),
                timeout_sec=float(item.get("timeout_sec", DEFAULT_TIMEOUT_SEC)),
            )
            if not cluster.name:
                raise ValueError(f"Cluster entry without a name in {catalog_file}")
            self._clusters[cluster.name] = cluster

        for item in data.get("tables", []) or []:
            name = str(item.get("name", ""))
            cluster_name = str(item.get("cluster", ""))
            if cluster_name not in self._clusters:
                raise ValueError(
                    f"Table '{name}' references unknown cluster '{cluster_name}'. "
                    f"Known clusters: {sorted(self._clusters)}"
                )
            cluster = self._clusters[cluster_name]
            index = str(item.get("index", name))
            self._tables[name] = TableSource(
                cluster_name=cluster_name,
                host=cluster.host,
                port=cluster.port,
                index=index,
                type_name=str(item.get("type", index)),
            )

    def clusters(self) -> List[ClusterDefinition]:
        """Return all cluster definitions."""
        return list(self._clusters.values())

    def cluster(self, name: str) -> ClusterDefinition:
        """Return a cluster definition by name."""
        try:
            return self._clusters[name]
        except KeyError:
            raise KeyError(f"Unknown cluster: {name}") from None

    def table_names(self) -> List[str]:
        """Return configured table names in file order."""
        return list(self._tables)

    def table(self, name: str) -> TableSource:
        """Return the table source for a configured table."""
        try:
            return self._tables[name]
        except KeyError:
            raise KeyError(f"Unknown table: {name}") from None


def http_client_for(cluster: ClusterDefinition) -> SearchClient:
    return HttpSearchClient(cluster.base_url, timeout_sec=cluster.timeout_sec)


class ClientRegistry:
    """Client handles keyed by cluster name.

    Handles are either registered explicitly or built on first use from a
    ``SourceRegistry`` cluster definition. The registry is passed around
    explicitly; cursors receive the resolved handle, never the registry.
    """

    def __init__(
        self,
        sources: Optional[SourceRegistry] = None,
        *,
        factory: Optional[Callable[[ClusterDefinition], SearchClient]] = None,
    ) -> None:
        self._sources = sources
        self._factory = factory or http_client_for
        self._clients: Dict[str, SearchClient] = {}

    def register(self, cluster_name: str, client: SearchClient) -> None:
        self._clients[cluster_name] = client

    def get(self, cluster_name: str) -> SearchClient:
        """Return the handle for ``cluster_name``, building it if needed.

        Raises:
            BackendError: If the cluster is neither registered nor configured.
        """
        client = self._clients.get(cluster_name)
        if client is not None:
            return client
        if self._sources is None:
            raise BackendError(f"No client registered for cluster '{cluster_name}'")
        try:
            definition = self._sources.cluster(cluster_name)
        except KeyError as e:
            raise BackendError(f"No client registered for cluster '{cluster_name}'") from e
        logger.debug("Creating client for cluster %s at %s", cluster_name, definition.base_url)
        client = self._factory(definition)
        self._clients[cluster_name] = client
        return client

    def close(self) -> None:
        """Close every handle that supports it."""
        for client in self._clients.values():
            close = getattr(client, "close", None)
            if callable(close):
                close()
        self._clients.clear()
