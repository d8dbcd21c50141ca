from typing import Literal

from pydantic import BaseModel, Field

SupplierStatus = Literal["active", "inactive", "suspended"]
MatchTier = Literal["exact", "high", "medium", "low"]

CONTACT_FIELDS = ("contact_email", "contact_phone", "contact_address", "tax_id")

DEFAULT_PERFORMANCE_RATING = 3.0  # midpoint of the 0-5 scale


def normalize_supplier_name(name: str) -> str:
    return name.strip().lower()


class Supplier(BaseModel):
    id: str
    tenant_id: str
    name: str
    normalized_name: str
    contact_email: str | None = None
    contact_phone: str | None = None
    contact_address: str | None = None
    tax_id: str | None = None
    total_spend: float = Field(0.0, ge=0.0)
    performance_rating: float = Field(DEFAULT_PERFORMANCE_RATING, ge=0.0, le=5.0)
    status: SupplierStatus = "active"
    notes: str | None = None
    created_at: str
    updated_at: str


class SupplierAttribution(BaseModel):
    """What a processed document contributes to its supplier record"""

    amount: float | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    contact_address: str | None = None
    tax_id: str | None = None

    def contact_fields(self) -> dict:
        return {k: getattr(self, k) for k in CONTACT_FIELDS if getattr(self, k)}


class SupplierMatch(BaseModel):
    supplier: Supplier
    similarity: float
    tier: MatchTier
    confidence: float
