"""es-record-cursor: typed record cursor over Elasticsearch scroll results.

The package reads a logical table (a family of indices sharing a type-name
prefix) out of an Elasticsearch cluster through the scroll API and exposes
the documents as fixed-width rows with typed, type-checked accessors.
"""

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
