"""Cluster catalog and backend client handles."""

from .client import HttpSearchClient, SearchClient
from .registry import ClientRegistry, ClusterDefinition, SourceRegistry

__all__ = [
    "HttpSearchClient",
    "SearchClient",
    "ClientRegistry",
    "ClusterDefinition",
    "SourceRegistry",
]
