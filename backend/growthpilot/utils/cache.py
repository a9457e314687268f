"""In-process TTL cache for dashboard results.

Keys are tuples whose first element is the owning user id, so every entry of
one user can be dropped at once after that user's metrics change.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)

# Dashboard overview and trends
DASHBOARD_METRICS_TTL_SECONDS = 5 * 60


class TTLCache:
    """Time-based cache with per-user invalidation."""

    def __init__(
        self,
        ttl_seconds: float = DASHBOARD_METRICS_TTL_SECONDS,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._entries: Dict[Tuple[Hashable, ...], Tuple[Any, float]] = {}
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Tuple[Hashable, ...]) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: Tuple[Hashable, ...], value: Any) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_entries:
                self._evict()
            self._entries[key] = (value, self._clock() + self._ttl)

    def invalidate_user(self, user_id: Any) -> int:
        """Drop every entry owned by `user_id`; returns how many were dropped."""
        owner = str(user_id)
        with self._lock:
            stale = [key for key in self._entries if key and key[0] == owner]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("[CACHE] Invalidated %s entries for user=%s", len(stale), owner)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _evict(self) -> None:
        # Caller holds the lock
        now = self._clock()
        for key in [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]:
            del self._entries[key]
        while len(self._entries) >= self._max_entries:
            del self._entries[next(iter(self._entries))]
