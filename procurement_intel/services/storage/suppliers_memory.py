"""
In-memory supplier store (for tests and single-process demos).
In production, use the SQLite store or a database-backed implementation.
"""
import threading
from datetime import datetime, UTC
from typing import Dict, Optional

from ..supplier_types import CONTACT_FIELDS, Supplier
from .supplier_store_base import SupplierStoreBase


class InMemorySupplierStore(SupplierStoreBase):
    def __init__(self):
        self._suppliers: Dict[str, Supplier] = {}
        self._by_name: Dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def find_by_name(self, tenant_id: str, normalized_name: str) -> Optional[Supplier]:
        supplier_id = self._by_name.get((tenant_id, normalized_name))
        if supplier_id is None:
            return None
        return self._copy(supplier_id)

    def get(self, supplier_id: str) -> Optional[Supplier]:
        return self._copy(supplier_id)

    def insert_if_absent(self, supplier: Supplier) -> tuple[Supplier, bool]:
        """Insert unless (tenant_id, normalized_name) is taken"""
        key = (supplier.tenant_id, supplier.normalized_name)
        with self._lock:
            existing_id = self._by_name.get(key)
            if existing_id is not None:
                return self._suppliers[existing_id].model_copy(), False
            self._suppliers[supplier.id] = supplier.model_copy()
            self._by_name[key] = supplier.id
            return supplier.model_copy(), True

    def add_spend(self, supplier_id: str, amount: float) -> Optional[Supplier]:
        with self._lock:
            supplier = self._suppliers.get(supplier_id)
            if supplier is None:
                return None
            supplier.total_spend += amount
            supplier.updated_at = datetime.now(UTC).isoformat()
            return supplier.model_copy()

    def backfill_contact(self, supplier_id: str, contact: dict) -> Optional[Supplier]:
        with self._lock:
            supplier = self._suppliers.get(supplier_id)
            if supplier is None:
                return None
            changed = False
            for field in CONTACT_FIELDS:
                if contact.get(field) and not getattr(supplier, field):
                    setattr(supplier, field, contact[field])
                    changed = True
            if changed:
                supplier.updated_at = datetime.now(UTC).isoformat()
            return supplier.model_copy()

    def list_for_tenant(self, tenant_id: str) -> list[Supplier]:
        """List a tenant's suppliers ordered by name"""
        with self._lock:
            rows = [s.model_copy() for s in self._suppliers.values() if s.tenant_id == tenant_id]
        return sorted(rows, key=lambda s: s.normalized_name)

    def search(self, tenant_id: str, term: str, limit: int = 10) -> list[Supplier]:
        needle = term.strip().lower()
        return [s for s in self.list_for_tenant(tenant_id) if needle in s.normalized_name][:limit]

    def _copy(self, supplier_id: str) -> Optional[Supplier]:
        with self._lock:
            supplier = self._suppliers.get(supplier_id)
            return supplier.model_copy() if supplier else None
