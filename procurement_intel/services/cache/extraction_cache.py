"""
Content-addressed cache in front of the AI extraction provider.

Identical documents (retries, reprocessing, canned templates) must not pay
for the slow, metered provider call twice within the TTL window. The cache
is a side path: every internal fault degrades to a miss or a failed set and
is only visible through stats() and the logs.
"""

import asyncio
import time
from typing import Awaitable, Callable, Dict, Optional, Tuple

from loguru import logger
from pydantic import BaseModel

from ...core.errors import CacheFault
from ..extraction_types import ExtractionRequest, ExtractionResult
from .base import CacheBackend

DEFAULT_PREFIX = "ai_response"
DEFAULT_TTL_SECONDS = 3600
# Display heuristic: a hit is assumed to save 70% of an upstream call
TIME_SAVED_FACTOR = 0.7


class CacheStats(BaseModel):
    hits: int = 0
    misses: int = 0
    errors: int = 0
    hit_rate: float = 0.0
    avg_miss_time_ms: float = 0.0
    avg_hit_time_ms: float = 0.0
    estimated_time_saved_ms: float = 0.0
    size: int = 0


class ExtractionCache:
    """
    TTL cache of ExtractionResults keyed by a digest of the request triple.

    Usage:
        cache = ExtractionCache(MemoryCacheBackend())
        result = cache.get(request)
        if result is None:
            result = await call_provider(...)
            cache.set(request, result)

        # or, with at most one upstream call per key in this process:
        result, cached = await cache.get_or_compute(request, call_provider)
    """

    def __init__(
        self,
        backend: CacheBackend,
        prefix: str = DEFAULT_PREFIX,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
    ):
        self.backend = backend
        self.prefix = prefix
        self.default_ttl_seconds = default_ttl_seconds

        self._hits = 0
        self._misses = 0
        self._errors = 0
        self._hit_time_total_ms = 0.0
        self._miss_time_total_ms = 0.0
        self._miss_time_samples = 0

        # key -> (lock, number of callers holding or waiting on it)
        self._inflight: Dict[str, list] = {}

    def key_for(self, request: ExtractionRequest) -> str:
        return request.cache_key(self.prefix)

    def get(self, request: ExtractionRequest) -> Optional[ExtractionResult]:
        """
        Look up a previously computed result.

        Returns:
            The cached ExtractionResult, or None on miss, expiry or fault
        """
        started = time.perf_counter()
        try:
            key = self.key_for(request)
            raw = self.backend.get(key)
            if raw is None:
                self._misses += 1
                logger.debug("Extraction cache miss", key=key)
                return None
            try:
                result = ExtractionResult.model_validate_json(raw)
            except ValueError as e:
                raise CacheFault(f"Corrupt cache entry {key}: {e}") from e
        except Exception as e:
            self._errors += 1
            self._misses += 1
            logger.warning(f"Extraction cache GET failed, treating as miss: {e}")
            return None

        self._hits += 1
        self._hit_time_total_ms += (time.perf_counter() - started) * 1000
        logger.debug("Extraction cache hit", key=key)
        return result

    def set(
        self,
        request: ExtractionRequest,
        result: ExtractionResult,
        ttl_seconds: Optional[float] = None,
    ) -> bool:
        """
        Store a result for ttl_seconds (default: the cache's TTL).

        Returns:
            True if stored, False on any internal fault
        """
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        try:
            key = self.key_for(request)
            self.backend.set(key, result.model_dump_json(), ttl)
        except Exception as e:
            self._errors += 1
            logger.warning(f"Extraction cache SET failed: {e}")
            return False

        self._miss_time_total_ms += result.processing_time_ms
        self._miss_time_samples += 1
        logger.debug("Extraction cached", key=key, ttl_seconds=ttl)
        return True

    def clear(self, namespace: Optional[str] = None) -> bool:
        """
        Remove cached entries.

        Args:
            namespace: Key prefix to clear; None clears every entry

        Returns:
            True on success, False on any internal fault
        """
        try:
            removed = self.backend.clear(namespace)
        except Exception as e:
            self._errors += 1
            logger.warning(f"Extraction cache CLEAR failed: {e}")
            return False
        logger.info("Extraction cache cleared", namespace=namespace, removed=removed)
        return True

    def sweep(self) -> int:
        try:
            return self.backend.sweep()
        except Exception as e:
            self._errors += 1
            logger.warning(f"Extraction cache sweep failed: {e}")
            return 0

    def stats(self) -> CacheStats:
        lookups = self._hits + self._misses
        avg_miss = (
            self._miss_time_total_ms / self._miss_time_samples if self._miss_time_samples else 0.0
        )
        avg_hit = self._hit_time_total_ms / self._hits if self._hits else 0.0
        try:
            size = self.backend.size()
        except Exception as e:
            logger.warning(f"Extraction cache size lookup failed: {e}")
            size = 0
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            errors=self._errors,
            hit_rate=self._hits / lookups if lookups else 0.0,
            avg_miss_time_ms=avg_miss,
            avg_hit_time_ms=avg_hit,
            estimated_time_saved_ms=self._hits * avg_miss * TIME_SAVED_FACTOR,
            size=size,
        )

    def health(self) -> dict:
        """Round-trip a probe entry through the backend"""
        started = time.perf_counter()
        probe_key = f"{self.prefix}-health:probe"
        try:
            self.backend.set(probe_key, "ok", 10)
            ok = self.backend.get(probe_key) == "ok"
            self.backend.delete(probe_key)
        except Exception as e:
            return {"status": "unhealthy", "latency_ms": 0.0, "error": str(e)}
        latency_ms = (time.perf_counter() - started) * 1000
        return {"status": "healthy" if ok else "degraded", "latency_ms": latency_ms}

    async def get_or_compute(
        self,
        request: ExtractionRequest,
        compute: Callable[[], Awaitable[ExtractionResult]],
        ttl_seconds: Optional[float] = None,
    ) -> Tuple[ExtractionResult, bool]:
        """
        Return the cached result or compute, store and return it.

        Concurrent callers for the same key inside this process wait for the
        first caller's computation instead of issuing their own upstream call.
        Exceptions from compute() propagate and nothing is cached.

        Returns:
            (result, cached) where cached is True if no computation ran
        """
        key = self.key_for(request)
        slot = self._inflight.setdefault(key, [asyncio.Lock(), 0])
        slot[1] += 1
        try:
            async with slot[0]:
                cached = self.get(request)
                if cached is not None:
                    return cached, True
                result = await compute()
                self.set(request, result, ttl_seconds)
                return result, False
        finally:
            slot[1] -= 1
            if slot[1] == 0:
                self._inflight.pop(key, None)
