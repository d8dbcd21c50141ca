from ...core.config import settings
from ...core.errors import ConfigurationError
from .base import CacheBackend, CacheEntry
from .extraction_cache import CacheStats, ExtractionCache
from .memory import MemoryCacheBackend
from .sqlite import SQLiteCacheBackend


def create_cache_backend(kind: str | None = None) -> CacheBackend:
    """Build the backend named by CACHE_BACKEND (memory | sqlite)"""
    kind = (kind or settings.cache_backend).lower()
    if kind == "memory":
        return MemoryCacheBackend(sweep_interval_seconds=settings.cache_sweep_interval_seconds)
    if kind == "sqlite":
        return SQLiteCacheBackend(
            settings.cache_db_path,
            sweep_interval_seconds=settings.cache_sweep_interval_seconds,
        )
    raise ConfigurationError(f"Unknown CACHE_BACKEND '{kind}' (expected memory or sqlite)")


__all__ = [
    "CacheBackend",
    "CacheEntry",
    "CacheStats",
    "ExtractionCache",
    "MemoryCacheBackend",
    "SQLiteCacheBackend",
    "create_cache_backend",
]
