"""Scroll configuration constants.

This module centralizes paging and timeout defaults for reading tables out of
the search cluster. Adjust these constants to tune memory use per page and how
long the server keeps a scroll context alive between requests.

TTL values use the backend's time-unit syntax: "<integer><unit>" where unit is
one of ms, s, m, h, d (e.g. "1m", "600s").
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# ============================================================================
# PAGING CONSTANTS
# ============================================================================

# Hits returned per shard for every scroll page
DEFAULT_PAGE_SIZE = 20000

# Scroll context lifetime for the initial search request
DEFAULT_INITIAL_SCROLL_TTL = "1m"

# Scroll context lifetime renewed by each continuation request
DEFAULT_CONTINUATION_SCROLL_TTL = "10m"


# ============================================================================
# TRANSPORT CONSTANTS
# ============================================================================

DEFAULT_TIMEOUT_SEC = 60.0
DEFAULT_SCHEME = "http"
DEFAULT_PORT = 9200


_TTL_PATTERN = re.compile(r"^\d+(ms|s|m|h|d)$")

_TTL_UNITS_SEC = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def is_valid_ttl(ttl: str) -> bool:
    """Return True if ``ttl`` uses the backend's time-unit syntax."""
    return bool(_TTL_PATTERN.match(str(ttl)))


def ttl_to_seconds(ttl: str) -> float:
    """Convert a TTL string to seconds.

    Raises:
        ValueError: If ``ttl`` is not in "<integer><unit>" form.

    Examples:
        >>> ttl_to_seconds("1m")
        60.0
        >>> ttl_to_seconds("500ms")
        0.5
    """
    match = _TTL_PATTERN.match(str(ttl))
    if not match:
        raise ValueError(f"Invalid scroll TTL: {ttl!r}. Expected e.g. '1m', '30s', '500ms'.")
    unit = match.group(1)
    return int(ttl[: -len(unit)]) * _TTL_UNITS_SEC[unit]


@dataclass(frozen=True)
class ScrollSettings:
    """Paging parameters for one scroll session.

    Attributes:
        page_size: Maximum hits per shard per page.
        initial_scroll_ttl: Scroll context lifetime set by the initial search.
        continuation_scroll_ttl: Lifetime renewed by each continuation request.
    """

    page_size: int = DEFAULT_PAGE_SIZE
    initial_scroll_ttl: str = DEFAULT_INITIAL_SCROLL_TTL
    continuation_scroll_ttl: str = DEFAULT_CONTINUATION_SCROLL_TTL

    def __post_init__(self) -> None:
        """Validate field constraints."""
        if int(self.page_size) <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        for name in ("initial_scroll_ttl", "continuation_scroll_ttl"):
            value = getattr(self, name)
            if not is_valid_ttl(value):
                raise ValueError(
                    f"Invalid {name}: {value!r}. Expected e.g. '1m', '30s', '500ms'."
                )
