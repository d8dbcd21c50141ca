from pydantic import BaseModel, Field


class ProcessDocumentRequest(BaseModel):
    document_id: str
    tenant_id: str
    raw_text: str
    document_type: str = Field(default="Invoice")
    timeout_seconds: float | None = Field(default=None, gt=0)
