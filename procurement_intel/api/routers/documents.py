from fastapi import APIRouter, Depends
from loguru import logger

from ...models.documents import ProcessDocumentRequest
from ...services.document_processor import DocumentProcessor
from ...services.extraction_types import ProcessingResult
from ..deps import get_document_processor

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("/process", response_model=ProcessingResult)
async def process_document(
    req: ProcessDocumentRequest,
    processor: DocumentProcessor = Depends(get_document_processor),
):
    """
    Extract canonical fields from a document's text and link its supplier.

    Example request:
    {
        "document_id": "doc-001",
        "tenant_id": "tenant-a",
        "document_type": "Invoice",
        "raw_text": "Invoice INV-2024-001\\nSupplier: Acme Corp\\nTotal: 1,250.00 USD"
    }

    Validation problems return 400, a failed supplier write returns 500 with
    the extracted fields under ``partial_result``.
    """
    logger.info(
        "Process request received",
        document_id=req.document_id,
        tenant_id=req.tenant_id,
        document_type=req.document_type,
    )
    return await processor.process_document(
        document_id=req.document_id,
        tenant_id=req.tenant_id,
        raw_text=req.raw_text,
        document_type=req.document_type,
        timeout_seconds=req.timeout_seconds,
    )
