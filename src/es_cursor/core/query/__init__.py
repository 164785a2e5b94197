"""Core query engine public API.

Index resolution, field projection, the scroll-page driver and the typed
record cursor built on top of them, plus a polars materializer.
"""

from .indices import fetch_indices, resolve_indices
from .projection import FieldProjection, build_projection
from .scroll import ScrollFetcher, fetch_all
from .cursor import RecordCursor
from .materialize import collect_frame, frame_schema

__all__ = [
    "resolve_indices",
    "fetch_indices",
    "FieldProjection",
    "build_projection",
    "ScrollFetcher",
    "fetch_all",
    "RecordCursor",
    "collect_frame",
    "frame_schema",
]
