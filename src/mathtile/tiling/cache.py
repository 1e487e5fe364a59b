"""Bounded, time-limited cache of per-tile results keyed by content hash."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Optional, Tuple

log = logging.getLogger("mathtile.tiling")


class TileCache:
    """LRU map with a time-to-live, owned by a single engine instance.

    Parameters
    ----------
    max_entries : int
        Oldest-used entries are evicted past this size.
    ttl_seconds : float
        Entries older than this are treated as missing and dropped on access.
    clock : callable, optional
        Monotonic time source in seconds; injectable for tests.
    """

    def __init__(
        self,
        max_entries: int = 256,
        ttl_seconds: float = 3600.0,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries={max_entries} must be >= 1")
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds={ttl_seconds} must be > 0")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()

    def get(self, key: str) -> Optional[Any]:
        """Cached value for *key*, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            log.debug("Cache entry %s expired", key[:16])
            return None
        self._entries.move_to_end(key)
        return value

    def put(self, key: str, value: Any) -> None:
        self._entries[key] = (self._clock(), value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            log.debug("Cache evicted %s", evicted[:16])

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None if isinstance(key, str) else False
