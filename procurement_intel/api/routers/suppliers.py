from fastapi import APIRouter, Depends, Query

from ...core.errors import ValidationError
from ...models.suppliers import (
    ResolveSupplierRequest,
    ResolveSupplierResponse,
    SuggestSuppliersRequest,
    SuggestSuppliersResponse,
    SupplierListResponse,
)
from ...services.storage import SupplierStoreBase
from ...services.supplier_resolver import SupplierResolver
from ...services.supplier_types import SupplierAttribution
from ..deps import get_supplier_resolver, get_supplier_store

router = APIRouter(prefix="/suppliers", tags=["suppliers"])


@router.post("/resolve", response_model=ResolveSupplierResponse)
async def resolve_supplier(
    req: ResolveSupplierRequest,
    resolver: SupplierResolver = Depends(get_supplier_resolver),
):
    """Find or create the tenant's supplier with this name and credit the amount"""
    attribution = SupplierAttribution(
        amount=req.amount,
        contact_email=req.contact_email,
        contact_phone=req.contact_phone,
        contact_address=req.contact_address,
        tax_id=req.tax_id,
    )
    supplier, created = resolver.resolve(req.tenant_id, req.name, attribution)
    return ResolveSupplierResponse(supplier=supplier, created=created)


@router.post("/suggest", response_model=SuggestSuppliersResponse)
async def suggest_suppliers(
    req: SuggestSuppliersRequest,
    resolver: SupplierResolver = Depends(get_supplier_resolver),
    store: SupplierStoreBase = Depends(get_supplier_store),
):
    """Rank the tenant's existing suppliers by name similarity"""
    matches = resolver.suggest_matches(
        req.tenant_id,
        req.supplier_name,
        store.list_for_tenant(req.tenant_id),
        document_amount=req.document_amount,
        document_type=req.document_type,
        limit=req.limit,
    )
    return SuggestSuppliersResponse(matches=matches)


@router.get("", response_model=SupplierListResponse)
async def list_suppliers(
    tenant_id: str = Query(...),
    search: str | None = Query(default=None),
    limit: int = Query(default=10, ge=1, le=100),
    resolver: SupplierResolver = Depends(get_supplier_resolver),
    store: SupplierStoreBase = Depends(get_supplier_store),
):
    """List a tenant's suppliers, optionally filtered by a name fragment"""
    if not tenant_id.strip():
        raise ValidationError("tenant_id is required")
    if search:
        suppliers = resolver.search(tenant_id, search, limit)
    else:
        suppliers = store.list_for_tenant(tenant_id)
    return SupplierListResponse(suppliers=suppliers, total=len(suppliers))
