"""
In-process cache backend with lazy expiry and a background sweeper.
"""

import threading
import time
from typing import Callable, Dict, Optional

from loguru import logger

from .base import CacheBackend, CacheEntry


class MemoryCacheBackend(CacheBackend):
    """
    Dict-backed cache guarded by a lock.

    Expired entries are dropped when read, and the inherited sweeper thread
    scans the whole map every ``sweep_interval_seconds``. A sweep only takes
    the lock to snapshot and to delete.
    """

    def __init__(
        self,
        sweep_interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self.sweep_interval_seconds = sweep_interval_seconds

    def get(self, key: str) -> Optional[str]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                logger.debug("Evicted expired cache entry on read", key=key)
                return None
            return entry.value

    def set(self, key: str, value: str, ttl_seconds: float) -> None:
        now = self._clock()
        entry = CacheEntry(key=key, value=value, created_at=now, expires_at=now + ttl_seconds)
        with self._lock:
            self._entries[key] = entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self, prefix: Optional[str] = None) -> int:
        with self._lock:
            if prefix is None:
                removed = len(self._entries)
                self._entries.clear()
                return removed
            doomed = [k for k in self._entries if k.startswith(f"{prefix}:")]
            for k in doomed:
                del self._entries[k]
            return len(doomed)

    def sweep(self) -> int:
        now = self._clock()
        # Scan a snapshot so request threads only wait for the deletes
        with self._lock:
            snapshot = list(self._entries.items())
        expired = [k for k, entry in snapshot if entry.is_expired(now)]
        removed = 0
        for k in expired:
            with self._lock:
                entry = self._entries.get(k)
                # Re-check: the key may have been refreshed since the snapshot
                if entry is not None and entry.is_expired(now):
                    del self._entries[k]
                    removed += 1
        return removed

    def size(self) -> int:
        return len(self._entries)

