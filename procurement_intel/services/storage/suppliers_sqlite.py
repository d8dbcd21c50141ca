"""
SQLite-based supplier store for production use.

Provides persistent supplier records with the uniqueness and atomic-update
guarantees the resolver relies on under concurrent document processing.
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, UTC
from typing import Iterator, Optional

from loguru import logger

from ...core.errors import PersistenceError
from ..supplier_types import CONTACT_FIELDS, Supplier
from .supplier_store_base import SupplierStoreBase

_COLUMNS = (
    "id, tenant_id, name, normalized_name, contact_email, contact_phone, "
    "contact_address, tax_id, total_spend, performance_rating, status, notes, "
    "created_at, updated_at"
)


class SQLiteSupplierStore(SupplierStoreBase):
    """
    SQLite-backed supplier store.

    Features:
    - UNIQUE (tenant_id, normalized_name): two concurrent resolutions of a new
      name cannot both insert
    - total_spend incremented in SQL, so concurrent attributions do not lose
      updates
    - Contact backfill via COALESCE, never overwriting existing values
    """

    def __init__(self, db_path: str = "suppliers.db"):
        """
        Initialize store with database path.

        Args:
            db_path: Path to SQLite database file (default: suppliers.db)
        """
        self.db_path = db_path
        self._init_database()

    def _init_database(self):
        """Create suppliers table if it doesn't exist"""
        with self._connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS suppliers (
                    id TEXT PRIMARY KEY,
                    tenant_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    normalized_name TEXT NOT NULL,
                    contact_email TEXT,
                    contact_phone TEXT,
                    contact_address TEXT,
                    tax_id TEXT,
                    total_spend REAL NOT NULL DEFAULT 0 CHECK (total_spend >= 0),
                    performance_rating REAL NOT NULL DEFAULT 3.0,
                    status TEXT NOT NULL DEFAULT 'active',
                    notes TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (tenant_id, normalized_name),
                    CHECK (status IN ('active', 'inactive', 'suspended')),
                    CHECK (performance_rating >= 0 AND performance_rating <= 5)
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_suppliers_tenant
                ON suppliers(tenant_id)
            """)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Connection with row factory; commits on success, wraps failures"""
        try:
            conn = sqlite3.connect(self.db_path, timeout=10)
        except sqlite3.Error as e:
            raise PersistenceError(f"Supplier store unavailable: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Supplier store operation failed: {e}")
            raise PersistenceError(f"Supplier store operation failed: {e}") from e
        finally:
            conn.close()

    @staticmethod
    def _row_to_supplier(row: sqlite3.Row) -> Supplier:
        return Supplier(**{key: row[key] for key in row.keys()})

    def _select_one(self, conn: sqlite3.Connection, where: str, params: tuple) -> Optional[Supplier]:
        row = conn.execute(f"SELECT {_COLUMNS} FROM suppliers WHERE {where}", params).fetchone()
        return self._row_to_supplier(row) if row else None

    def find_by_name(self, tenant_id: str, normalized_name: str) -> Optional[Supplier]:
        with self._connection() as conn:
            return self._select_one(
                conn, "tenant_id = ? AND normalized_name = ?", (tenant_id, normalized_name)
            )

    def get(self, supplier_id: str) -> Optional[Supplier]:
        with self._connection() as conn:
            return self._select_one(conn, "id = ?", (supplier_id,))

    def insert_if_absent(self, supplier: Supplier) -> tuple[Supplier, bool]:
        """
        Insert a supplier, deferring to an existing row with the same name.

        Returns:
            (stored supplier, created)
        """
        with self._connection() as conn:
            cursor = conn.execute(f"""
                INSERT INTO suppliers ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (tenant_id, normalized_name) DO NOTHING
            """, (
                supplier.id,
                supplier.tenant_id,
                supplier.name,
                supplier.normalized_name,
                supplier.contact_email,
                supplier.contact_phone,
                supplier.contact_address,
                supplier.tax_id,
                supplier.total_spend,
                supplier.performance_rating,
                supplier.status,
                supplier.notes,
                supplier.created_at,
                supplier.updated_at,
            ))
            created = cursor.rowcount > 0
            stored = self._select_one(
                conn,
                "tenant_id = ? AND normalized_name = ?",
                (supplier.tenant_id, supplier.normalized_name),
            )
        return stored, created

    def add_spend(self, supplier_id: str, amount: float) -> Optional[Supplier]:
        """
        Increment total_spend in a single UPDATE.

        Args:
            supplier_id: Supplier to credit
            amount: Spend to add

        Returns:
            Updated supplier or None if not found
        """
        with self._connection() as conn:
            cursor = conn.execute("""
                UPDATE suppliers
                SET total_spend = total_spend + ?,
                    updated_at = ?
                WHERE id = ?
            """, (amount, datetime.now(UTC).isoformat(), supplier_id))

            if cursor.rowcount == 0:
                return None
            return self._select_one(conn, "id = ?", (supplier_id,))

    def backfill_contact(self, supplier_id: str, contact: dict) -> Optional[Supplier]:
        updates = {k: v for k, v in contact.items() if k in CONTACT_FIELDS and v}
        with self._connection() as conn:
            if updates:
                # Empty strings count as missing, same as NULL
                assignments = ", ".join(
                    f"{column} = COALESCE(NULLIF({column}, ''), ?)" for column in updates
                )
                conn.execute(
                    f"UPDATE suppliers SET {assignments}, updated_at = ? WHERE id = ?",
                    (*updates.values(), datetime.now(UTC).isoformat(), supplier_id),
                )
            return self._select_one(conn, "id = ?", (supplier_id,))

    def list_for_tenant(self, tenant_id: str) -> list[Supplier]:
        """
        List a tenant's suppliers ordered by name.

        Returns:
            List of suppliers (empty for unknown tenants)
        """
        with self._connection() as conn:
            rows = conn.execute(f"""
                SELECT {_COLUMNS}
                FROM suppliers
                WHERE tenant_id = ?
                ORDER BY normalized_name ASC
            """, (tenant_id,)).fetchall()
        return [self._row_to_supplier(row) for row in rows]

    def search(self, tenant_id: str, term: str, limit: int = 10) -> list[Supplier]:
        needle = term.strip().lower()
        with self._connection() as conn:
            rows = conn.execute(f"""
                SELECT {_COLUMNS}
                FROM suppliers
                WHERE tenant_id = ? AND instr(normalized_name, ?) > 0
                ORDER BY normalized_name ASC
                LIMIT ?
            """, (tenant_id, needle, limit)).fetchall()
        return [self._row_to_supplier(row) for row in rows]
