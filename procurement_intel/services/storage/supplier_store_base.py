"""
Abstract base class for supplier store implementations.

Defines the interface that all supplier stores must implement, enabling
dependency injection and easy swapping of storage backends.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..supplier_types import Supplier


class SupplierStoreBase(ABC):
    """
    Abstract base class for supplier persistence.

    Implementations can use:
    - In-memory storage (for testing/demo)
    - SQLite (for single-instance deployments)
    - PostgreSQL (for production)

    Implementations raise PersistenceError when the underlying store fails.
    """

    @abstractmethod
    def find_by_name(self, tenant_id: str, normalized_name: str) -> Optional[Supplier]:
        """
        Case-insensitive exact lookup within a tenant.

        Args:
            tenant_id: Owning tenant
            normalized_name: Name as produced by normalize_supplier_name()

        Returns:
            Supplier or None if not found
        """
        pass

    @abstractmethod
    def get(self, supplier_id: str) -> Optional[Supplier]:
        """Get a supplier by ID, or None if not found"""
        pass

    @abstractmethod
    def insert_if_absent(self, supplier: Supplier) -> tuple[Supplier, bool]:
        """
        Atomically insert a supplier unless one with the same
        (tenant_id, normalized_name) already exists.

        Args:
            supplier: Fully populated new supplier

        Returns:
            (stored supplier, created) - the existing row and False when the
            name was already taken, e.g. by a concurrent resolution
        """
        pass

    @abstractmethod
    def add_spend(self, supplier_id: str, amount: float) -> Optional[Supplier]:
        """
        Atomically increment total_spend.

        Returns:
            Updated supplier, or None if not found
        """
        pass

    @abstractmethod
    def backfill_contact(self, supplier_id: str, contact: dict) -> Optional[Supplier]:
        """
        Fill contact fields that are currently empty; existing values are kept.

        Args:
            supplier_id: Supplier to update
            contact: Subset of contact_email, contact_phone, contact_address, tax_id

        Returns:
            Updated supplier, or None if not found
        """
        pass

    @abstractmethod
    def list_for_tenant(self, tenant_id: str) -> list[Supplier]:
        """All suppliers of a tenant, ordered by name"""
        pass

    @abstractmethod
    def search(self, tenant_id: str, term: str, limit: int = 10) -> list[Supplier]:
        """Case-insensitive substring search on name, ordered by name"""
        pass
