from fastapi import APIRouter, Depends

from ...models.signals import ComplianceRequest, RiskRequest, WorkflowRequest
from ...services import signals
from ...services.storage import SupplierStoreBase
from ...services.supplier_resolver import SupplierResolver
from ..deps import get_supplier_resolver, get_supplier_store

router = APIRouter(prefix="/signals", tags=["signals"])


@router.post("/compliance", response_model=signals.ComplianceReport)
async def compliance(req: ComplianceRequest):
    return signals.compliance_report(req.documents)


@router.post("/risk", response_model=signals.RiskAssessment)
async def risk(
    req: RiskRequest,
    store: SupplierStoreBase = Depends(get_supplier_store),
):
    return signals.risk_assessment(req.documents, store.list_for_tenant(req.tenant_id))


@router.post("/workflow", response_model=signals.WorkflowSummary)
async def workflow(
    req: WorkflowRequest,
    store: SupplierStoreBase = Depends(get_supplier_store),
    resolver: SupplierResolver = Depends(get_supplier_resolver),
):
    """Pending approvals, upcoming contract renewals and unlinked documents"""
    return signals.workflow_summary(
        req.tenant_id,
        req.documents,
        store.list_for_tenant(req.tenant_id),
        resolver,
    )
