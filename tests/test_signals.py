"""
Tests for compliance, risk and workflow signals.
"""

from datetime import date, datetime, UTC

import pytest

from procurement_intel.services.signals import (
    DocumentRecord,
    approval_items,
    approval_priority,
    assess_document_risk,
    assess_process_risk,
    assess_supplier_risk,
    check_document_compliance,
    compliance_report,
    renewal_actions,
    renewal_alerts,
    renewal_urgency,
    required_approvers,
    risk_assessment,
    risk_level,
    supplier_matching_items,
    workflow_summary,
)
from procurement_intel.services.storage import InMemorySupplierStore
from procurement_intel.services.supplier_resolver import SupplierResolver
from procurement_intel.services.supplier_types import Supplier

NOW = "2024-06-01T00:00:00+00:00"


def make_doc(**overrides):
    values = dict(
        id="doc-1",
        filename="invoice.pdf",
        document_type="Invoice",
        supplier_name="Acme Corp",
        amount=500.0,
        processed=True,
        issue_date="2024-05-01",
    )
    values.update(overrides)
    return DocumentRecord(**values)


def make_supplier(**overrides):
    values = dict(
        id="sup-1",
        tenant_id="tenant-a",
        name="Acme Corp",
        normalized_name="acme corp",
        contact_email="ap@acme.com",
        performance_rating=4.0,
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return Supplier(**values)


# ========== COMPLIANCE ==========

def test_complete_invoice_is_compliant():
    check = check_document_compliance(make_doc())

    assert check.compliance_score == 100
    assert check.compliance_status == "compliant"
    assert check.violations == []


def test_deficient_document_scores_45_and_is_non_compliant():
    doc = make_doc(document_type="Other", supplier_name=None, amount=None, processed=False)

    check = check_document_compliance(doc)

    assert check.compliance_score == 45
    assert check.compliance_status == "non_compliant"
    assert len(check.violations) == 4
    assert len(check.recommendations) == 4


def test_contract_without_due_date_loses_10():
    check = check_document_compliance(make_doc(document_type="Contract", due_date=None))

    assert check.compliance_score == 90
    assert check.compliance_status == "compliant"
    assert "Contract missing due date" in check.violations


def test_invoice_without_issue_date_loses_5():
    check = check_document_compliance(make_doc(issue_date=None, supplier_name="  "))

    assert check.compliance_score == 80
    assert check.compliance_status == "partially_compliant"


def test_zero_amount_is_invalid():
    assert check_document_compliance(make_doc(amount=0)).compliance_score == 90


def test_compliance_report_summary():
    docs = [
        make_doc(id="a"),
        make_doc(id="b", issue_date=None, supplier_name=None),
        make_doc(id="c", document_type="Other", supplier_name=None, amount=None, processed=False),
    ]

    report = compliance_report(docs)

    assert report.total_documents == 3
    assert report.compliant_documents == 1
    assert report.non_compliant_documents == 2
    assert report.overall_score == 33
    assert report.summary == {"high_risk": 1, "medium_risk": 1, "low_risk": 1}


def test_empty_compliance_report_is_fully_compliant():
    assert compliance_report([]).overall_score == 100


# ========== RISK ==========

@pytest.mark.parametrize("score, level", [(0, "low"), (39, "low"), (40, "medium"), (69, "medium"), (70, "high")])
def test_risk_levels(score, level):
    assert risk_level(score) == level


def test_document_risk_factors_and_cap():
    doc = make_doc(document_type="Contract", amount=25000.0, supplier_name=None, processed=False)

    risk = assess_document_risk(doc)

    assert risk.risk_score == 90
    assert risk.risk_level == "high"
    assert len(risk.risk_factors) == 4


def test_supplier_risk_missing_contact_and_low_rating():
    risk = assess_supplier_risk(make_supplier(contact_email=None, performance_rating=2.0))

    assert risk.risk_score == 55
    assert risk.risk_level == "medium"


def test_supplier_risk_unrated():
    risk = assess_supplier_risk(make_supplier(performance_rating=0.0))

    assert risk.risk_score == 15
    assert risk.risk_factors == ["No performance data available"]


def test_process_risk_detects_concentration_backlog_and_gaps():
    docs = [make_doc(id=str(i)) for i in range(6)]
    docs.append(make_doc(id="x", supplier_name=None, processed=False))

    risk = assess_process_risk(docs)

    assert risk.risk_score == 60
    assert risk.risk_level == "medium"
    assert risk.metrics == {
        "single_source_suppliers": 1,
        "unprocessed_documents": 1,
        "missing_supplier_info": 1,
    }


def test_risk_assessment_averages_components():
    docs = [make_doc(id="a"), make_doc(id="b", amount=20000.0)]
    suppliers = [make_supplier(), make_supplier(id="sup-2", contact_email=None, performance_rating=2.0)]

    assessment = risk_assessment(docs, suppliers)

    # documents avg (0 + 20) / 2 = 10, suppliers avg (0 + 55) / 2 = 27.5, process 0
    assert assessment.overall_risk_score == round((10 + 27.5 + 0) / 3)
    assert assessment.risk_level == "low"
    assert assessment.summary["average_document_risk"] == 10


# ========== WORKFLOW ==========

@pytest.mark.parametrize(
    "amount, days, priority",
    [
        (15000, 0, "high"),
        (100, 6, "high"),
        (6000, 0, "medium"),
        (100, 4, "medium"),
        (100, 3, "low"),
        (None, 0, "low"),
    ],
)
def test_approval_priority(amount, days, priority):
    assert approval_priority(amount, days) == priority


def test_required_approvers():
    assert required_approvers(20000) == ["Manager", "Director", "Finance"]
    assert required_approvers(7000) == ["Manager", "Finance"]
    assert required_approvers(None) == ["Manager"]


@pytest.mark.parametrize("days, urgency", [(0, "high"), (7, "high"), (8, "medium"), (14, "medium"), (15, "low")])
def test_renewal_urgency(days, urgency):
    assert renewal_urgency(days) == urgency


def test_renewal_actions():
    assert renewal_actions(3)[0] == "Immediate supplier contact required"
    assert renewal_actions(10)[0] == "Schedule renewal meeting"
    assert renewal_actions(25)[0] == "Plan renewal strategy"


def test_approval_items_compute_queue_age():
    now = datetime(2024, 6, 10, tzinfo=UTC)
    docs = [
        make_doc(id="a", status="pending_approval", created_at="2024-06-01T00:00:00+00:00", amount=200.0),
        make_doc(id="b", status="approved", created_at="2024-06-01T00:00:00+00:00"),
    ]

    items = approval_items(docs, now)

    assert len(items) == 1
    assert items[0].days_in_queue == 9
    assert items[0].priority == "high"
    assert items[0].required_approvers == ["Manager"]


def test_renewal_alerts_only_for_contracts_due_within_30_days():
    today = date(2024, 6, 1)
    docs = [
        make_doc(id="soon", document_type="Contract", due_date="2024-06-05"),
        make_doc(id="later", document_type="Contract", due_date="2024-06-25"),
        make_doc(id="far", document_type="Contract", due_date="2024-09-01"),
        make_doc(id="past", document_type="Contract", due_date="2024-05-01"),
        make_doc(id="invoice", document_type="Invoice", due_date="2024-06-03"),
    ]

    alerts = renewal_alerts(docs, today)

    assert [a.contract_id for a in alerts] == ["soon", "later"]
    assert alerts[0].days_until_renewal == 4
    assert alerts[0].urgency == "high"
    assert alerts[1].urgency == "low"


def test_supplier_matching_items_for_unlinked_documents():
    resolver = SupplierResolver(InMemorySupplierStore())
    acme = make_supplier()
    docs = [
        make_doc(id="unlinked", supplier_name="ACME Corp."),
        make_doc(id="linked", supplier_id="sup-1"),
        make_doc(id="pending", processed=False),
    ]

    items = supplier_matching_items("tenant-a", docs, [acme], resolver)

    assert [item.document_id for item in items] == ["unlinked"]
    assert items[0].suggestions[0]["supplier_id"] == "sup-1"
    assert items[0].confidence_score == 1.0


def test_workflow_summary_counts_everything():
    resolver = SupplierResolver(InMemorySupplierStore())
    now = datetime(2024, 6, 1, tzinfo=UTC)
    docs = [
        make_doc(id="a", status="pending_approval", created_at="2024-05-31T00:00:00+00:00"),
        make_doc(id="b", document_type="Contract", due_date="2024-06-10", supplier_id="sup-1"),
        make_doc(id="c", supplier_name="Unknown Supplier"),
    ]

    summary = workflow_summary("tenant-a", docs, [], resolver, now)

    assert len(summary.approvals) == 1
    assert len(summary.renewals) == 1
    assert len(summary.supplier_matching) == 2
    assert summary.total_pending == 4
