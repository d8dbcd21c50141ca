"""
Resolve free-text supplier names to canonical supplier records.

Exact (case-insensitive) matches are found or created per tenant and credited
with the document's spend. For documents that could not be linked, ranked
fuzzy suggestions are produced from Levenshtein similarity.
"""

import uuid
from datetime import datetime, UTC
from typing import Iterable, Optional

from loguru import logger

from ..core.errors import ValidationError
from .storage.supplier_store_base import SupplierStoreBase
from .supplier_types import (
    DEFAULT_PERFORMANCE_RATING,
    Supplier,
    SupplierAttribution,
    SupplierMatch,
    normalize_supplier_name,
)

SIMILARITY_FLOOR = 0.3
MAX_SUGGESTIONS = 5
AMOUNT_BONUS = 0.1
DOCUMENT_TYPE_BONUS = 0.1
BONUS_DOCUMENT_TYPES = ("Contract", "Invoice")


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character insertions, deletions and substitutions"""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def name_similarity(a: str, b: str) -> float:
    """1 - distance / longer length, compared case-insensitively (0.0-1.0)"""
    a, b = a.lower(), b.lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


def similarity_tier(similarity: float) -> str:
    if similarity > 0.8:
        return "exact"
    if similarity > 0.6:
        return "high"
    if similarity > 0.4:
        return "medium"
    return "low"


class SupplierResolver:
    """
    Find-or-create and fuzzy matching over a SupplierStoreBase.

    Uniqueness of (tenant_id, normalized_name) and atomic spend increments
    are delegated to the store, so concurrent resolutions of the same new
    name produce one row.
    """

    def __init__(self, store: SupplierStoreBase):
        self.store = store

    def resolve(
        self,
        tenant_id: str,
        raw_name: str,
        attribution: Optional[SupplierAttribution] = None,
    ) -> tuple[Supplier, bool]:
        """
        Map a supplier name to a supplier record, creating it if unseen.

        Args:
            tenant_id: Owning tenant
            raw_name: Supplier name as extracted from the document
            attribution: Spend and contact details contributed by the document

        Returns:
            (supplier, created)

        Raises:
            ValidationError: tenant_id or raw_name is empty
            PersistenceError: the supplier store failed
        """
        if not tenant_id or not tenant_id.strip():
            raise ValidationError("tenant_id is required to resolve a supplier")
        if not raw_name or not raw_name.strip():
            raise ValidationError("Supplier name is empty")

        attribution = attribution or SupplierAttribution()
        amount = attribution.amount if attribution.amount and attribution.amount > 0 else 0.0
        name = raw_name.strip()
        normalized = normalize_supplier_name(name)

        existing = self.store.find_by_name(tenant_id, normalized)
        if existing is None:
            now = datetime.now(UTC).isoformat()
            candidate = Supplier(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                name=name,
                normalized_name=normalized,
                total_spend=amount,
                performance_rating=DEFAULT_PERFORMANCE_RATING,
                status="active",
                notes=f"Auto-created from document processing on {now}",
                created_at=now,
                updated_at=now,
                **attribution.contact_fields(),
            )
            stored, created = self.store.insert_if_absent(candidate)
            if created:
                logger.info(
                    "Created supplier",
                    tenant_id=tenant_id,
                    supplier_id=stored.id,
                    total_spend=stored.total_spend,
                )
                return stored, True
            # Lost a creation race: fall through and attribute to the winner
            existing = stored

        supplier = existing
        if amount > 0:
            supplier = self.store.add_spend(supplier.id, amount) or supplier
        contact = attribution.contact_fields()
        if contact:
            supplier = self.store.backfill_contact(supplier.id, contact) or supplier

        logger.info(
            "Resolved existing supplier",
            tenant_id=tenant_id,
            supplier_id=supplier.id,
            attributed=amount,
            total_spend=supplier.total_spend,
        )
        return supplier, False

    def suggest_matches(
        self,
        tenant_id: str,
        raw_name: str,
        candidates: Iterable[Supplier],
        document_amount: Optional[float] = None,
        document_type: Optional[str] = None,
        limit: int = MAX_SUGGESTIONS,
    ) -> list[SupplierMatch]:
        """
        Rank a tenant's suppliers by similarity to an extracted name.

        Args:
            tenant_id: Owning tenant; candidates from other tenants are ignored
            raw_name: Supplier name extracted from the document
            candidates: Suppliers to rank
            document_amount: Extracted amount; a non-empty amount adds 0.1 confidence
            document_type: Contract and Invoice documents add 0.1 confidence
            limit: Maximum number of suggestions

        Returns:
            Matches with similarity >= 0.3, most similar first
        """
        if not raw_name or not raw_name.strip():
            return []

        bonus = 0.0
        if document_amount:
            bonus += AMOUNT_BONUS
        if document_type in BONUS_DOCUMENT_TYPES:
            bonus += DOCUMENT_TYPE_BONUS

        target = raw_name.strip()
        matches = []
        for supplier in candidates:
            if supplier.tenant_id != tenant_id:
                continue
            similarity = name_similarity(target, supplier.name)
            if similarity < SIMILARITY_FLOOR:
                continue
            matches.append(SupplierMatch(
                supplier=supplier,
                similarity=round(similarity, 4),
                tier=similarity_tier(similarity),
                confidence=round(min(1.0, similarity + bonus), 4),
            ))

        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches[:limit]

    def search(self, tenant_id: str, term: str, limit: int = 10) -> list[Supplier]:
        if not term or not term.strip():
            return []
        return self.store.search(tenant_id, term, limit)

    def get(self, supplier_id: str) -> Optional[Supplier]:
        return self.store.get(supplier_id)
