"""
Tests for SQLite-based supplier persistence.

This test suite verifies that the SQLite supplier store:
- Persists suppliers across instances
- Enforces one supplier per (tenant, normalized name)
- Increments spend atomically in SQL
- Never overwrites existing contact details
"""

import os
import sqlite3
import tempfile
import threading
from datetime import datetime, UTC

import pytest

from procurement_intel.core.errors import PersistenceError
from procurement_intel.services.storage import SQLiteSupplierStore
from procurement_intel.services.supplier_resolver import SupplierResolver
from procurement_intel.services.supplier_types import Supplier, SupplierAttribution


@pytest.fixture
def db_path():
    """Create a temporary database file for testing"""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield path
    # Cleanup
    if os.path.exists(path):
        os.remove(path)


@pytest.fixture
def store(db_path):
    """Create a fresh SQLiteSupplierStore for each test"""
    return SQLiteSupplierStore(db_path)


def make_supplier(supplier_id="sup-1", tenant_id="tenant-a", name="Acme Corp", **overrides):
    now = datetime.now(UTC).isoformat()
    values = dict(
        id=supplier_id,
        tenant_id=tenant_id,
        name=name,
        normalized_name=name.strip().lower(),
        created_at=now,
        updated_at=now,
    )
    values.update(overrides)
    return Supplier(**values)


def test_insert_persists_to_db(store, db_path):
    """Test that inserting a supplier writes to SQLite database"""
    stored, created = store.insert_if_absent(make_supplier(total_spend=120.0))

    assert created is True
    assert stored.total_spend == 120.0

    conn = sqlite3.connect(db_path)
    row = conn.execute(
        "SELECT id, normalized_name, total_spend FROM suppliers WHERE id = ?", ("sup-1",)
    ).fetchone()
    conn.close()

    assert row == ("sup-1", "acme corp", 120.0)


def test_insert_if_absent_returns_existing_row(store):
    store.insert_if_absent(make_supplier("sup-1"))

    stored, created = store.insert_if_absent(make_supplier("sup-2", name="ACME CORP"))

    assert created is False
    assert stored.id == "sup-1"
    assert len(store.list_for_tenant("tenant-a")) == 1


def test_same_name_allowed_in_other_tenant(store):
    store.insert_if_absent(make_supplier("sup-1", tenant_id="tenant-a"))
    _, created = store.insert_if_absent(make_supplier("sup-2", tenant_id="tenant-b"))

    assert created is True


def test_add_spend_increments(store):
    store.insert_if_absent(make_supplier(total_spend=100.0))

    updated = store.add_spend("sup-1", 200.0)

    assert updated.total_spend == 300.0
    assert store.add_spend("missing", 10.0) is None


def test_backfill_fills_only_empty_columns(store):
    store.insert_if_absent(make_supplier(contact_email="ap@acme.com", contact_phone=""))

    updated = store.backfill_contact(
        "sup-1", {"contact_email": "new@acme.com", "contact_phone": "+1 555 0100", "tax_id": "US123"}
    )

    assert updated.contact_email == "ap@acme.com"
    assert updated.contact_phone == "+1 555 0100"
    assert updated.tax_id == "US123"


def test_find_by_name_and_search(store):
    store.insert_if_absent(make_supplier("sup-1", name="Acme Corp"))
    store.insert_if_absent(make_supplier("sup-2", name="Globex"))

    assert store.find_by_name("tenant-a", "acme corp").id == "sup-1"
    assert store.find_by_name("tenant-b", "acme corp") is None
    assert [s.id for s in store.search("tenant-a", "GLOB")] == ["sup-2"]
    assert [s.name for s in store.list_for_tenant("tenant-a")] == ["Acme Corp", "Globex"]


def test_persists_across_instances(db_path):
    SQLiteSupplierStore(db_path).insert_if_absent(make_supplier())

    assert SQLiteSupplierStore(db_path).get("sup-1").name == "Acme Corp"


def test_resolver_aggregates_spend_in_sqlite(store):
    resolver = SupplierResolver(store)

    resolver.resolve("tenant-a", "Acme Corp", SupplierAttribution(amount=100.0))
    supplier, created = resolver.resolve("tenant-a", "acme corp", SupplierAttribution(amount=200.0))

    assert created is False
    assert supplier.total_spend == 300.0
    assert len(store.list_for_tenant("tenant-a")) == 1


def test_concurrent_resolution_creates_one_row(store):
    resolver = SupplierResolver(store)
    barrier = threading.Barrier(6)
    errors = []

    def worker():
        barrier.wait()
        try:
            resolver.resolve("tenant-a", "Initech", SupplierAttribution(amount=5.0))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    suppliers = store.list_for_tenant("tenant-a")
    assert len(suppliers) == 1
    assert suppliers[0].total_spend == pytest.approx(30.0)


def test_database_failure_raises_persistence_error(tmp_path):
    store = SQLiteSupplierStore(str(tmp_path / "suppliers.db"))
    os.remove(tmp_path / "suppliers.db")
    os.mkdir(tmp_path / "suppliers.db")

    with pytest.raises(PersistenceError):
        store.get("sup-1")
