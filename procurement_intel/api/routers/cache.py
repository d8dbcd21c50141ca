from fastapi import APIRouter, Depends, Query

from ...services.cache import CacheStats, ExtractionCache
from ..deps import get_extraction_cache

router = APIRouter(prefix="/cache", tags=["cache"])


@router.get("/stats", response_model=CacheStats)
async def cache_stats(cache: ExtractionCache = Depends(get_extraction_cache)):
    return cache.stats()


@router.delete("")
async def clear_cache(
    namespace: str | None = Query(default=None),
    cache: ExtractionCache = Depends(get_extraction_cache),
):
    """Drop cached extractions, all of them or those under one key prefix"""
    cleared = cache.clear(namespace)
    return {"cleared": cleared, "namespace": namespace}
