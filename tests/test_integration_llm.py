"""
Integration tests against a real AI extraction provider.

These tests require the provider to be configured:
- Set LLM_BASE_URL, LLM_API_KEY and LLM_DEPLOYMENT in .env

Run with: pytest --run-integration
"""

import asyncio

import pytest

from procurement_intel.core.config import settings
from procurement_intel.services.ai_provider import LLMExtractionClient
from procurement_intel.services.cache import ExtractionCache, MemoryCacheBackend
from procurement_intel.services.document_processor import DocumentProcessor
from procurement_intel.services.pattern_extractor import PatternExtractor

LLM_CONFIGURED = bool(settings.llm_base_url and settings.llm_api_key and settings.llm_deployment)
skip_if_no_llm = pytest.mark.skipif(
    not LLM_CONFIGURED,
    reason="AI provider not configured (set LLM_BASE_URL, LLM_API_KEY and LLM_DEPLOYMENT)",
)


@skip_if_no_llm
@pytest.mark.integration
def test_real_provider_extracts_core_fields(english_invoice):
    client = LLMExtractionClient.from_settings()

    result = asyncio.run(client.extract(english_invoice, "Invoice", PatternExtractor().extract(english_invoice)))

    assert result.fields.supplier_name
    assert result.fields.total_amount == pytest.approx(600.0)
    assert result.processing_time_ms > 0


@skip_if_no_llm
@pytest.mark.integration
def test_real_provider_second_call_is_cached(polish_invoice):
    processor = DocumentProcessor(
        cache=ExtractionCache(MemoryCacheBackend()),
        ai_client=LLMExtractionClient.from_settings(),
    )

    first = asyncio.run(processor.process_document("doc-1", "tenant-a", polish_invoice))
    second = asyncio.run(processor.process_document("doc-1", "tenant-a", polish_invoice))

    assert first.fallback_used is False
    assert second.cached is True
    assert second.fields.currency == "PLN"
