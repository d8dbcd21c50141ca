from fastapi import APIRouter, Depends

from ...core.config import settings
from ...services.cache import ExtractionCache
from ..deps import get_extraction_cache

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(cache: ExtractionCache = Depends(get_extraction_cache)):
    """Liveness plus a cache round-trip probe"""
    return {
        "status": "ok",
        "app": settings.app_name,
        "env": settings.app_env,
        "cache": cache.health(),
    }
