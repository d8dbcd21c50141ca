"""
Abstract base class for extraction cache backends.

Defines the key/value-with-TTL interface the extraction cache is written
against, so the in-process store can be swapped for a persistent or
networked one without changing cache semantics.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from loguru import logger


@dataclass
class CacheEntry:
    """
    A stored value with its lifetime.

    Owned by the backend; callers of the extraction cache only ever see the
    deserialized value.
    """

    key: str
    value: str
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheBackend(ABC):
    """
    Abstract base class for cache storage.

    Implementations can use:
    - In-process memory (single worker, default)
    - SQLite (survives restarts, shared between workers on one host)
    - Redis / Memcached (shared between hosts)

    Every backend can run a daemon thread that calls sweep() every
    ``sweep_interval_seconds`` so entries that are never read again are
    still evicted.
    """

    sweep_interval_seconds: float = 60.0
    _sweeper: Optional[threading.Thread] = None
    _stop_event: Optional[threading.Event] = None

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Get a value by key.

        Expired entries are evicted on read and reported as missing.

        Args:
            key: Fully-qualified cache key (prefix included)

        Returns:
            Stored value or None if absent or expired
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: float) -> None:
        """
        Store a value for ttl_seconds, replacing any existing entry.

        Args:
            key: Fully-qualified cache key
            value: Serialized value
            ttl_seconds: Lifetime in seconds
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a single key.

        Returns:
            True if an entry was removed
        """
        pass

    @abstractmethod
    def clear(self, prefix: Optional[str] = None) -> int:
        """
        Remove all entries, or only those whose key starts with "<prefix>:".

        Returns:
            Number of entries removed
        """
        pass

    @abstractmethod
    def sweep(self) -> int:
        """
        Remove every expired entry.

        Returns:
            Number of entries removed
        """
        pass

    @abstractmethod
    def size(self) -> int:
        """Number of entries currently stored (expired ones included until swept)"""
        pass

    # ── Background sweeper ──────────────────────────────────────────

    def start_sweeper(self) -> None:
        """Start the periodic sweep thread (idempotent)"""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_event = threading.Event()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            args=(self._stop_event,),
            name=f"cache-sweeper-{type(self).__name__}",
            daemon=True,
        )
        self._sweeper.start()

    def _sweep_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.sweep_interval_seconds):
            try:
                removed = self.sweep()
            except Exception as e:
                logger.warning(f"Cache sweep failed: {e}", backend=type(self).__name__)
                continue
            if removed:
                logger.info("Cache sweep removed expired entries", backend=type(self).__name__, removed=removed)

    def stop(self) -> None:
        """Stop the sweep thread if it is running"""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1.0)
            self._sweeper = None

    def close(self) -> None:
        """Release background resources"""
        self.stop()
