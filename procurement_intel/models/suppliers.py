from pydantic import BaseModel, Field

from ..services.supplier_types import Supplier, SupplierMatch


class ResolveSupplierRequest(BaseModel):
    tenant_id: str
    name: str
    amount: float | None = Field(default=None)
    contact_email: str | None = Field(default=None)
    contact_phone: str | None = Field(default=None)
    contact_address: str | None = Field(default=None)
    tax_id: str | None = Field(default=None)


class ResolveSupplierResponse(BaseModel):
    supplier: Supplier
    created: bool


class SuggestSuppliersRequest(BaseModel):
    tenant_id: str
    supplier_name: str
    document_amount: float | None = Field(default=None)
    document_type: str | None = Field(default=None)
    limit: int = Field(default=5, ge=1, le=50)


class SuggestSuppliersResponse(BaseModel):
    matches: list[SupplierMatch]


class SupplierListResponse(BaseModel):
    suppliers: list[Supplier]
    total: int
