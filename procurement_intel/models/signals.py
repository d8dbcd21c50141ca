from pydantic import BaseModel, Field

from ..services.signals import DocumentRecord


class ComplianceRequest(BaseModel):
    documents: list[DocumentRecord] = Field(default_factory=list)


class RiskRequest(BaseModel):
    """Documents are supplied by the caller; suppliers are read from the store"""
    tenant_id: str
    documents: list[DocumentRecord] = Field(default_factory=list)


class WorkflowRequest(BaseModel):
    tenant_id: str
    documents: list[DocumentRecord] = Field(default_factory=list)
