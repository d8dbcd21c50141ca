"""
Document processing pipeline.

One call takes a document's text through pattern extraction, the cached AI
extraction, reconciliation and supplier resolution, and returns a
ProcessingResult. An AI failure or timeout never fails the call: the
pattern fields are returned instead, flagged as a fallback.
"""

import asyncio
import time
from typing import Optional

from loguru import logger

from ..core.config import settings
from ..core.errors import PersistenceError, UpstreamProviderError, ValidationError
from .ai_provider import LLMExtractionClient
from .cache import ExtractionCache
from .extraction_types import CanonicalFields, ExtractionRequest, ExtractionResult, ProcessingResult
from .pattern_extractor import PatternExtractor
from .reconciler import Reconciler, estimate_confidence
from .supplier_resolver import SupplierResolver
from .supplier_types import SupplierAttribution

FALLBACK_MODEL = "pattern-matching-fallback"
# Pattern-only results are scored as if the extractor reported low confidence
FALLBACK_BASE_CONFIDENCE = 0.3
SUPPLIER_LINK_NOT_SAVED = "fields extracted but supplier link not saved"


def supplier_attribution(fields: CanonicalFields) -> SupplierAttribution:
    """Spend and contact details a document contributes to its supplier"""
    amount = fields.amount if fields.amount is not None else fields.total_amount
    return SupplierAttribution(
        amount=amount if amount and amount > 0 else None,
        contact_email=fields.supplier_email,
        contact_phone=fields.supplier_phone,
        contact_address=fields.supplier_address,
        tax_id=fields.supplier_tax_id,
    )


class DocumentProcessor:
    """
    Orchestrates extraction, reconciliation and supplier linking.

    Collaborators are injected so tests can swap the AI client, cache and
    supplier store. ai_client=None runs in pattern-only mode; cache=None
    calls the provider directly; resolver=None skips supplier linking.
    """

    def __init__(
        self,
        extractor: Optional[PatternExtractor] = None,
        reconciler: Optional[Reconciler] = None,
        cache: Optional[ExtractionCache] = None,
        ai_client: Optional[LLMExtractionClient] = None,
        resolver: Optional[SupplierResolver] = None,
        prompt_template_id: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.extractor = extractor or PatternExtractor(default_currency=settings.default_currency)
        self.reconciler = reconciler or Reconciler()
        self.cache = cache
        self.ai_client = ai_client
        self.resolver = resolver
        self.prompt_template_id = prompt_template_id or settings.prompt_template_id
        self.timeout_seconds = timeout_seconds

    async def process_document(
        self,
        document_id: str,
        tenant_id: str,
        raw_text: str,
        document_type: str = "Invoice",
        timeout_seconds: Optional[float] = None,
    ) -> ProcessingResult:
        """
        Extract, reconcile and link one document.

        Args:
            document_id: Caller's identifier for the document
            tenant_id: Owning tenant (scopes supplier resolution)
            raw_text: Text content of the document
            document_type: Invoice, Contract, Purchase Order, Receipt, Other...
            timeout_seconds: Upper bound for the AI call; on expiry the
                pattern fields are used

        Returns:
            ProcessingResult

        Raises:
            ValidationError: Missing document_id, tenant_id or text
            PersistenceError: Supplier linking failed; partial_result holds
                the extracted fields without the supplier link
        """
        if not document_id or not document_id.strip():
            raise ValidationError("document_id is required")
        if not tenant_id or not tenant_id.strip():
            raise ValidationError("tenant_id is required")
        if not raw_text or not raw_text.strip():
            raise ValidationError("Document text is empty")

        started = time.perf_counter()
        logger.info(
            "Processing document",
            document_id=document_id,
            tenant_id=tenant_id,
            document_type=document_type,
            text_length=len(raw_text),
        )

        pattern_fields = self.extractor.extract(raw_text)
        ai_result, cached = await self._ai_extract(
            raw_text, document_type, pattern_fields, timeout_seconds or self.timeout_seconds
        )

        if ai_result is None:
            fields = pattern_fields
            corrections: list[str] = []
            confidence = estimate_confidence(pattern_fields, FALLBACK_BASE_CONFIDENCE)
            model_used = FALLBACK_MODEL
        else:
            reconciliation = self.reconciler.reconcile(ai_result.fields, pattern_fields, raw_text)
            fields = reconciliation.merged
            corrections = reconciliation.corrections
            confidence = reconciliation.confidence_score
            model_used = ai_result.model_used

        result = ProcessingResult(
            document_id=document_id,
            tenant_id=tenant_id,
            document_type=document_type,
            fields=fields,
            corrections=corrections,
            model_used=model_used,
            confidence_score=confidence,
            cached=cached,
            fallback_used=ai_result is None,
        )

        if self.resolver is not None and fields.supplier_name:
            try:
                supplier, created = self.resolver.resolve(
                    tenant_id, fields.supplier_name, supplier_attribution(fields)
                )
            except PersistenceError as e:
                result.processing_time_ms = self._elapsed_ms(started)
                logger.error(
                    "Supplier linking failed",
                    document_id=document_id,
                    tenant_id=tenant_id,
                    error=str(e),
                )
                raise PersistenceError(
                    f"Supplier linking failed for document {document_id}: {e}",
                    partial_state=SUPPLIER_LINK_NOT_SAVED,
                    partial_result=result,
                ) from e
            result.supplier_id = supplier.id
            result.supplier_created = created

        result.processing_time_ms = self._elapsed_ms(started)
        logger.info(
            "Document processed",
            document_id=document_id,
            model_used=result.model_used,
            cached=result.cached,
            fallback_used=result.fallback_used,
            corrections=result.corrections,
            confidence=result.confidence_score,
            supplier_id=result.supplier_id,
            processing_time_ms=result.processing_time_ms,
        )
        return result

    async def _ai_extract(
        self,
        raw_text: str,
        document_type: str,
        hints: CanonicalFields,
        timeout_seconds: Optional[float],
    ) -> tuple[Optional[ExtractionResult], bool]:
        """Run the AI extraction through the cache; (None, False) means fall back"""
        if self.ai_client is None:
            return None, False

        request = ExtractionRequest.build(raw_text, document_type, self.prompt_template_id)

        async def compute() -> ExtractionResult:
            call = self.ai_client.extract(request.normalized_text, document_type, hints)
            if timeout_seconds:
                return await asyncio.wait_for(call, timeout=timeout_seconds)
            return await call

        try:
            if self.cache is None:
                return await compute(), False
            return await self.cache.get_or_compute(request, compute)
        except UpstreamProviderError as e:
            logger.warning(f"AI extraction failed, using pattern extraction: {e}")
        except asyncio.TimeoutError:
            logger.warning(f"AI extraction timed out after {timeout_seconds}s, using pattern extraction")
        return None, False

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)
