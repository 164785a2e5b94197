from __future__ import annotations

import logging
from typing import Iterable, List

from es_cursor.core.errors import BackendError
from es_cursor.sources.client import SearchClient


logger = logging.getLogger(__name__)


def resolve_indices(index_names: Iterable[str], type_name: str) -> List[str]:
    """Return the physical indices backing a logical table.

    An index belongs to the table when its name starts with ``type_name + "_"``
    (e.g. type "t" owns "t_1" and "t_2" but not "t1" or "u_1"). Snapshot order
    is kept and duplicates are dropped. An empty result is valid.
    """
    prefix = f"{type_name}_"
    out: List[str] = []
    seen = set()
    for name in index_names:
        if name.startswith(prefix) and name not in seen:
            seen.add(name)
            out.append(name)
    return out


def fetch_indices(client: SearchClient, type_name: str) -> List[str]:
    """Take a fresh index snapshot from the cluster and resolve ``type_name``."""
    try:
        snapshot = client.list_indices()
    except BackendError:
        raise
    except Exception as e:
        raise BackendError(f"Failed to read cluster index metadata: {e}") from e

    indices = resolve_indices(snapshot, type_name)
    if not indices:
        logger.warning("No indices match type '%s' (prefix '%s_')", type_name, type_name)
    else:
        logger.debug("Type '%s' resolved to indices %s", type_name, indices)
    return indices
