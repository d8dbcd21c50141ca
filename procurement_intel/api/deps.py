"""
Process-wide engine components for the API.

Each provider builds its component once from settings. Tests replace them
through ``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Optional

from ..core.config import settings
from ..services.ai_provider import LLMExtractionClient
from ..services.cache import ExtractionCache, create_cache_backend
from ..services.document_processor import DocumentProcessor
from ..services.pattern_extractor import PatternExtractor
from ..services.storage import SupplierStoreBase, create_supplier_store
from ..services.supplier_resolver import SupplierResolver


@lru_cache
def get_extraction_cache() -> ExtractionCache:
    backend = create_cache_backend()
    backend.start_sweeper()
    return ExtractionCache(backend, default_ttl_seconds=settings.cache_ttl_seconds)


@lru_cache
def get_supplier_store() -> SupplierStoreBase:
    return create_supplier_store()


@lru_cache
def get_supplier_resolver() -> SupplierResolver:
    return SupplierResolver(get_supplier_store())


@lru_cache
def get_ai_client() -> Optional[LLMExtractionClient]:
    return LLMExtractionClient.from_settings()


@lru_cache
def get_document_processor() -> DocumentProcessor:
    return DocumentProcessor(
        extractor=PatternExtractor(default_currency=settings.default_currency),
        cache=get_extraction_cache(),
        ai_client=get_ai_client(),
        resolver=get_supplier_resolver(),
        prompt_template_id=settings.prompt_template_id,
        timeout_seconds=settings.llm_timeout_seconds,
    )
