"""
Tests for supplier find-or-create, spend aggregation and fuzzy matching.
"""

import threading

import pytest

from procurement_intel.core.errors import ValidationError
from procurement_intel.services.storage import InMemorySupplierStore
from procurement_intel.services.supplier_resolver import (
    SupplierResolver,
    levenshtein_distance,
    name_similarity,
    similarity_tier,
)
from procurement_intel.services.supplier_types import SupplierAttribution


@pytest.fixture
def store():
    return InMemorySupplierStore()


@pytest.fixture
def resolver(store):
    return SupplierResolver(store)


def test_first_resolution_creates_supplier(resolver):
    supplier, created = resolver.resolve("tenant-a", "  Acme Corp ", SupplierAttribution(amount=100.0))

    assert created is True
    assert supplier.name == "Acme Corp"
    assert supplier.normalized_name == "acme corp"
    assert supplier.total_spend == 100.0
    assert supplier.performance_rating == 3.0
    assert supplier.status == "active"
    assert supplier.notes.startswith("Auto-created from document processing on ")


def test_spend_aggregates_across_documents(resolver, store):
    first, created_first = resolver.resolve("tenant-a", "Acme Corp", SupplierAttribution(amount=100.0))
    second, created_second = resolver.resolve("tenant-a", "ACME CORP", SupplierAttribution(amount=200.0))

    assert created_first is True
    assert created_second is False
    assert second.id == first.id
    assert second.total_spend == 300.0
    assert len(store.list_for_tenant("tenant-a")) == 1


def test_non_positive_amount_is_not_attributed(resolver):
    resolver.resolve("tenant-a", "Acme Corp", SupplierAttribution(amount=50.0))
    supplier, _ = resolver.resolve("tenant-a", "Acme Corp", SupplierAttribution(amount=-20.0))

    assert supplier.total_spend == 50.0


def test_missing_amount_creates_with_zero_spend(resolver):
    supplier, created = resolver.resolve("tenant-a", "Globex")

    assert created is True
    assert supplier.total_spend == 0.0


def test_suppliers_are_scoped_per_tenant(resolver, store):
    a, _ = resolver.resolve("tenant-a", "Acme Corp", SupplierAttribution(amount=10.0))
    b, created = resolver.resolve("tenant-b", "Acme Corp", SupplierAttribution(amount=10.0))

    assert created is True
    assert a.id != b.id


def test_contact_details_backfill_only_empty_fields(resolver):
    resolver.resolve("tenant-a", "Acme Corp", SupplierAttribution(contact_email="ap@acme.com"))

    supplier, _ = resolver.resolve(
        "tenant-a",
        "Acme Corp",
        SupplierAttribution(contact_email="other@acme.com", contact_phone="+1 555 0100"),
    )

    assert supplier.contact_email == "ap@acme.com"
    assert supplier.contact_phone == "+1 555 0100"


@pytest.mark.parametrize("tenant, name", [("", "Acme"), ("tenant-a", ""), ("tenant-a", "   ")])
def test_empty_inputs_rejected(resolver, tenant, name):
    with pytest.raises(ValidationError):
        resolver.resolve(tenant, name)


def test_concurrent_resolution_creates_one_supplier(resolver, store):
    barrier = threading.Barrier(8)
    outcomes = []

    def worker():
        barrier.wait()
        outcomes.append(resolver.resolve("tenant-a", "Initech", SupplierAttribution(amount=10.0)))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    suppliers = store.list_for_tenant("tenant-a")
    assert len(suppliers) == 1
    assert suppliers[0].total_spend == pytest.approx(80.0)
    assert sum(1 for _, created in outcomes if created) == 1


def test_search_and_get(resolver):
    acme, _ = resolver.resolve("tenant-a", "Acme Corp")
    resolver.resolve("tenant-a", "Globex")

    assert [s.name for s in resolver.search("tenant-a", "acm")] == ["Acme Corp"]
    assert resolver.search("tenant-a", "  ") == []
    assert resolver.get(acme.id).name == "Acme Corp"
    assert resolver.get("missing") is None


# ========== FUZZY MATCHING ==========

def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("same", "same") == 0


def test_similarity_is_case_insensitive():
    assert name_similarity("ACME Corp", "acme corp") == 1.0
    assert name_similarity("", "") == 1.0


@pytest.mark.parametrize(
    "similarity, tier",
    [(1.0, "exact"), (0.81, "exact"), (0.8, "high"), (0.61, "high"), (0.6, "medium"), (0.41, "medium"), (0.4, "low")],
)
def test_similarity_tiers(similarity, tier):
    assert similarity_tier(similarity) == tier


def test_identical_name_is_exact_match(resolver, store):
    acme, _ = resolver.resolve("tenant-a", "Acme Corp")

    matches = resolver.suggest_matches("tenant-a", "acme corp", store.list_for_tenant("tenant-a"))

    assert len(matches) == 1
    assert matches[0].supplier.id == acme.id
    assert matches[0].similarity == 1.0
    assert matches[0].tier == "exact"


def test_dissimilar_names_are_excluded(resolver, store):
    resolver.resolve("tenant-a", "Globex")

    assert resolver.suggest_matches("tenant-a", "Acme Corp", store.list_for_tenant("tenant-a")) == []


def test_matches_sorted_and_capped(resolver, store):
    for name in ["Acme Corp", "Acme Corp.", "Acme Co", "Acme Cop", "Acme Inc", "Acme Group", "Acne Corp"]:
        resolver.resolve("tenant-a", name)

    matches = resolver.suggest_matches("tenant-a", "Acme Corp", store.list_for_tenant("tenant-a"))

    assert len(matches) == 5
    similarities = [m.similarity for m in matches]
    assert similarities == sorted(similarities, reverse=True)
    assert matches[0].supplier.name == "Acme Corp"


def test_confidence_bonuses_for_amount_and_type(resolver, store):
    resolver.resolve("tenant-a", "Acme Corporation")
    candidates = store.list_for_tenant("tenant-a")

    plain = resolver.suggest_matches("tenant-a", "Acme Corp", candidates)[0]
    boosted = resolver.suggest_matches(
        "tenant-a", "Acme Corp", candidates, document_amount=1200.0, document_type="Invoice"
    )[0]

    assert plain.confidence == plain.similarity
    assert boosted.confidence == pytest.approx(min(1.0, plain.similarity + 0.2))


def test_confidence_clamped_to_one(resolver, store):
    resolver.resolve("tenant-a", "Acme Corp")

    match = resolver.suggest_matches(
        "tenant-a", "Acme Corp", store.list_for_tenant("tenant-a"),
        document_amount=10.0, document_type="Contract",
    )[0]

    assert match.confidence == 1.0


def test_other_tenant_candidates_ignored(resolver, store):
    resolver.resolve("tenant-b", "Acme Corp")

    assert resolver.suggest_matches("tenant-a", "Acme Corp", store.list_for_tenant("tenant-b")) == []
