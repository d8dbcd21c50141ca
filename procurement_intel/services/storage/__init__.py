from ...core.config import settings
from ...core.errors import ConfigurationError
from .supplier_store_base import SupplierStoreBase
from .suppliers_memory import InMemorySupplierStore
from .suppliers_sqlite import SQLiteSupplierStore


def create_supplier_store(kind: str | None = None) -> SupplierStoreBase:
    """Build the store named by SUPPLIER_STORE (memory | sqlite)"""
    kind = (kind or settings.supplier_store).lower()
    if kind == "memory":
        return InMemorySupplierStore()
    if kind == "sqlite":
        return SQLiteSupplierStore(settings.supplier_db_path)
    raise ConfigurationError(f"Unknown SUPPLIER_STORE '{kind}' (expected memory or sqlite)")


__all__ = [
    "InMemorySupplierStore",
    "SQLiteSupplierStore",
    "SupplierStoreBase",
    "create_supplier_store",
]
