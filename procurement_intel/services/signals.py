"""
Derived signals computed from processed documents and supplier records.

Compliance scoring, risk assessment and workflow prioritization are plain
threshold rules. They read the engine's output and never write back, so they
can be recomputed at any time.
"""

import math
from collections import Counter
from datetime import date, datetime, timedelta, UTC
from typing import Any, Dict, Iterable, Literal, Optional

from loguru import logger
from pydantic import BaseModel, Field

from .supplier_resolver import SupplierResolver
from .supplier_types import Supplier

ComplianceStatus = Literal["compliant", "partially_compliant", "non_compliant"]
Level = Literal["low", "medium", "high"]

COMPLIANT_THRESHOLD = 90
PARTIALLY_COMPLIANT_THRESHOLD = 70
HIGH_RISK_THRESHOLD = 70
MEDIUM_RISK_THRESHOLD = 40
MAX_RISK_SCORE = 100

HIGH_VALUE_AMOUNT = 10000
MEDIUM_VALUE_AMOUNT = 5000
SUPPLIER_CONCENTRATION_DOCUMENTS = 5
RENEWAL_WINDOW_DAYS = 30


class DocumentRecord(BaseModel):
    """A stored procurement document as seen by the signal generators"""
    id: str
    filename: Optional[str] = None
    document_type: Optional[str] = None
    supplier_name: Optional[str] = None
    supplier_id: Optional[str] = None
    amount: Optional[float] = None
    processed: bool = False
    status: Optional[str] = None
    issue_date: Optional[str] = None
    due_date: Optional[str] = None
    created_at: Optional[str] = None

    def has_supplier(self) -> bool:
        return bool(self.supplier_name and self.supplier_name.strip())


# ---------------------------------------------------------------------------
# Compliance
# ---------------------------------------------------------------------------

class ComplianceCheck(BaseModel):
    document_id: str
    document_name: Optional[str] = None
    document_type: Optional[str] = None
    supplier_name: Optional[str] = None
    amount: Optional[float] = None
    compliance_status: ComplianceStatus
    compliance_score: int
    violations: list[str] = []
    recommendations: list[str] = []


class ComplianceReport(BaseModel):
    overall_score: int
    total_documents: int
    compliant_documents: int
    non_compliant_documents: int
    compliance_checks: list[ComplianceCheck]
    summary: Dict[str, int]


def compliance_status(score: int) -> ComplianceStatus:
    if score >= COMPLIANT_THRESHOLD:
        return "compliant"
    if score >= PARTIALLY_COMPLIANT_THRESHOLD:
        return "partially_compliant"
    return "non_compliant"


def check_document_compliance(doc: DocumentRecord) -> ComplianceCheck:
    """
    Score one document against the required-data rules.

    Starts at 100 and deducts for each failed condition:
    uncategorized type -10, missing supplier -15, missing or non-positive
    amount -10, unprocessed -20, Contract without due date -10, Invoice
    without issue date -5.
    """
    score = 100
    violations = []
    recommendations = []

    if not doc.document_type or doc.document_type == "Other":
        score -= 10
        violations.append("Document type not properly categorized")
        recommendations.append("Ensure all documents are properly categorized")

    if not doc.has_supplier():
        score -= 15
        violations.append("Missing supplier information")
        recommendations.append("Extract and validate supplier information from documents")

    if doc.amount is None or doc.amount <= 0:
        score -= 10
        violations.append("Invalid or missing amount")
        recommendations.append("Validate document amounts and ensure proper extraction")

    if not doc.processed:
        score -= 20
        violations.append("Document not fully processed")
        recommendations.append("Complete document processing and AI analysis")

    if doc.document_type == "Contract" and not doc.due_date:
        score -= 10
        violations.append("Contract missing due date")
        recommendations.append("Extract contract due dates and renewal information")

    if doc.document_type == "Invoice" and not doc.issue_date:
        score -= 5
        violations.append("Invoice missing date")
        recommendations.append("Extract invoice dates for payment tracking")

    score = max(0, score)
    return ComplianceCheck(
        document_id=doc.id,
        document_name=doc.filename,
        document_type=doc.document_type,
        supplier_name=doc.supplier_name,
        amount=doc.amount,
        compliance_status=compliance_status(score),
        compliance_score=score,
        violations=violations,
        recommendations=recommendations,
    )


def compliance_report(docs: Iterable[DocumentRecord]) -> ComplianceReport:
    """
    Check every document and summarize.

    overall_score is the percentage of compliant documents (100 when there
    are none). The summary buckets scores <70 as high risk, 70-89 as medium
    and >=90 as low.
    """
    checks = [check_document_compliance(doc) for doc in docs]
    total = len(checks)
    compliant = sum(1 for c in checks if c.compliance_status == "compliant")
    rate = (compliant / total) * 100 if total else 100

    report = ComplianceReport(
        overall_score=round(rate),
        total_documents=total,
        compliant_documents=compliant,
        non_compliant_documents=total - compliant,
        compliance_checks=checks,
        summary={
            "high_risk": sum(1 for c in checks if c.compliance_score < PARTIALLY_COMPLIANT_THRESHOLD),
            "medium_risk": sum(
                1 for c in checks
                if PARTIALLY_COMPLIANT_THRESHOLD <= c.compliance_score < COMPLIANT_THRESHOLD
            ),
            "low_risk": sum(1 for c in checks if c.compliance_score >= COMPLIANT_THRESHOLD),
        },
    )
    logger.info(
        "Compliance report generated",
        total_documents=total,
        compliant_documents=compliant,
        overall_score=report.overall_score,
    )
    return report


# ---------------------------------------------------------------------------
# Risk
# ---------------------------------------------------------------------------

class RiskScore(BaseModel):
    subject_id: str
    subject_name: Optional[str] = None
    risk_score: int
    risk_level: Level
    risk_factors: list[str] = []


class ProcessRisk(BaseModel):
    risk_score: int
    risk_level: Level
    risk_factors: list[str] = []
    metrics: Dict[str, int] = {}


class RiskAssessment(BaseModel):
    overall_risk_score: int
    risk_level: Level
    document_risks: list[RiskScore]
    supplier_risks: list[RiskScore]
    process_risk: ProcessRisk
    summary: Dict[str, Any]
    recommendations: list[str] = []


def risk_level(score: float) -> Level:
    if score >= HIGH_RISK_THRESHOLD:
        return "high"
    if score >= MEDIUM_RISK_THRESHOLD:
        return "medium"
    return "low"


def _capped(score: int) -> int:
    return min(MAX_RISK_SCORE, score)


def assess_document_risk(doc: DocumentRecord) -> RiskScore:
    score = 0
    factors = []

    if doc.amount is not None and doc.amount > HIGH_VALUE_AMOUNT:
        score += 20
        factors.append("High value document")
    if not doc.has_supplier():
        score += 25
        factors.append("Missing supplier information")
    if not doc.processed:
        score += 30
        factors.append("Document not processed")
    if doc.document_type == "Contract":
        score += 15
        factors.append("Contract document requires special attention")

    score = _capped(score)
    return RiskScore(
        subject_id=doc.id,
        subject_name=doc.filename,
        risk_score=score,
        risk_level=risk_level(score),
        risk_factors=factors,
    )


def assess_supplier_risk(supplier: Supplier) -> RiskScore:
    score = 0
    factors = []

    if not supplier.contact_email and not supplier.contact_phone:
        score += 30
        factors.append("Missing contact information")
    # A zero rating is treated as "not rated yet"
    if not supplier.performance_rating:
        score += 15
        factors.append("No performance data available")
    elif supplier.performance_rating < 3:
        score += 25
        factors.append("Low performance rating")

    score = _capped(score)
    return RiskScore(
        subject_id=supplier.id,
        subject_name=supplier.name,
        risk_score=score,
        risk_level=risk_level(score),
        risk_factors=factors,
    )


def assess_process_risk(docs: list[DocumentRecord]) -> ProcessRisk:
    """
    Portfolio-level risk: supplier concentration, processing backlog and
    documents that could not be attributed to a supplier.
    """
    score = 0
    factors = []

    per_supplier = Counter(doc.supplier_name for doc in docs if doc.has_supplier())
    concentrated = sum(1 for count in per_supplier.values() if count > SUPPLIER_CONCENTRATION_DOCUMENTS)
    if concentrated:
        score += 20
        factors.append(f"{concentrated} suppliers with high dependency")

    unprocessed = sum(1 for doc in docs if not doc.processed)
    if unprocessed:
        score += 15
        factors.append(f"{unprocessed} unprocessed documents")

    missing_supplier = sum(1 for doc in docs if not doc.has_supplier())
    if missing_supplier:
        score += 25
        factors.append(f"{missing_supplier} documents missing supplier information")

    score = _capped(score)
    return ProcessRisk(
        risk_score=score,
        risk_level=risk_level(score),
        risk_factors=factors,
        metrics={
            "single_source_suppliers": concentrated,
            "unprocessed_documents": unprocessed,
            "missing_supplier_info": missing_supplier,
        },
    )


def _average(scores: list[int]) -> float:
    return sum(scores) / len(scores) if scores else 0.0


def risk_assessment(docs: Iterable[DocumentRecord], suppliers: Iterable[Supplier]) -> RiskAssessment:
    """Combine document, supplier and process risk into one overall score"""
    docs = list(docs)
    suppliers = list(suppliers)

    document_risks = [assess_document_risk(doc) for doc in docs]
    supplier_risks = [assess_supplier_risk(supplier) for supplier in suppliers]
    process = assess_process_risk(docs)

    document_average = _average([r.risk_score for r in document_risks])
    supplier_average = _average([r.risk_score for r in supplier_risks])
    overall = round((document_average + supplier_average + process.risk_score) / 3)

    recommendations = []
    if any(r.risk_level == "high" for r in document_risks):
        recommendations.append("Review and process high-risk documents immediately")
    if any(r.risk_level == "high" for r in supplier_risks):
        recommendations.append("Develop risk mitigation strategies for high-risk suppliers")
    if process.risk_level == "high":
        recommendations.append("Implement process improvements to reduce operational risks")
    if process.metrics["unprocessed_documents"]:
        recommendations.append("Establish document processing workflows and SLAs")
    if any(not s.performance_rating for s in suppliers):
        recommendations.append("Implement supplier performance monitoring and evaluation systems")

    return RiskAssessment(
        overall_risk_score=overall,
        risk_level=risk_level(overall),
        document_risks=document_risks,
        supplier_risks=supplier_risks,
        process_risk=process,
        summary={
            "average_document_risk": round(document_average),
            "average_supplier_risk": round(supplier_average),
            "high_risk_documents": sum(1 for r in document_risks if r.risk_level == "high"),
            "high_risk_suppliers": sum(1 for r in supplier_risks if r.risk_level == "high"),
        },
        recommendations=recommendations,
    )


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------

class ApprovalItem(BaseModel):
    document_id: str
    document_name: Optional[str] = None
    supplier_name: Optional[str] = None
    amount: Optional[float] = None
    days_in_queue: int
    priority: Level
    required_approvers: list[str]


class RenewalAlert(BaseModel):
    contract_id: str
    contract_name: Optional[str] = None
    supplier_name: Optional[str] = None
    current_value: Optional[float] = None
    renewal_date: str
    days_until_renewal: int
    urgency: Level
    recommended_actions: list[str]


class SupplierMatchingItem(BaseModel):
    document_id: str
    document_name: Optional[str] = None
    extracted_supplier: Optional[str] = None
    suggestions: list[Dict[str, Any]] = []
    confidence_score: float = 0.0


class WorkflowSummary(BaseModel):
    approvals: list[ApprovalItem] = Field(default_factory=list)
    renewals: list[RenewalAlert] = Field(default_factory=list)
    supplier_matching: list[SupplierMatchingItem] = Field(default_factory=list)
    total_pending: int = 0


def approval_priority(amount: Optional[float], days_in_queue: int) -> Level:
    amount = amount or 0
    if amount > HIGH_VALUE_AMOUNT or days_in_queue > 5:
        return "high"
    if amount > MEDIUM_VALUE_AMOUNT or days_in_queue > 3:
        return "medium"
    return "low"


def required_approvers(amount: Optional[float]) -> list[str]:
    amount = amount or 0
    if amount > HIGH_VALUE_AMOUNT:
        return ["Manager", "Director", "Finance"]
    if amount > MEDIUM_VALUE_AMOUNT:
        return ["Manager", "Finance"]
    return ["Manager"]


def renewal_urgency(days_until_renewal: int) -> Level:
    if days_until_renewal <= 7:
        return "high"
    if days_until_renewal <= 14:
        return "medium"
    return "low"


def renewal_actions(days_until_renewal: int) -> list[str]:
    if days_until_renewal <= 7:
        return [
            "Immediate supplier contact required",
            "Prepare renewal negotiation strategy",
            "Review performance metrics",
        ]
    if days_until_renewal <= 14:
        return [
            "Schedule renewal meeting",
            "Analyze market conditions",
            "Prepare negotiation terms",
        ]
    return [
        "Plan renewal strategy",
        "Review contract performance",
        "Assess market alternatives",
    ]


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def approval_items(docs: Iterable[DocumentRecord], now: Optional[datetime] = None) -> list[ApprovalItem]:
    """Documents with status pending_approval, with priority and approver chain"""
    now = now or datetime.now(UTC)
    items = []
    for doc in docs:
        if doc.status != "pending_approval":
            continue
        submitted = _parse_timestamp(doc.created_at)
        days = math.ceil((now - submitted).total_seconds() / 86400) if submitted else 0
        items.append(ApprovalItem(
            document_id=doc.id,
            document_name=doc.filename,
            supplier_name=doc.supplier_name,
            amount=doc.amount,
            days_in_queue=days,
            priority=approval_priority(doc.amount, days),
            required_approvers=required_approvers(doc.amount),
        ))
    return items


def renewal_alerts(docs: Iterable[DocumentRecord], today: Optional[date] = None) -> list[RenewalAlert]:
    """Contracts whose due date falls within the next 30 days"""
    today = today or datetime.now(UTC).date()
    horizon = today + timedelta(days=RENEWAL_WINDOW_DAYS)
    alerts = []
    for doc in docs:
        if doc.document_type != "Contract" or not doc.due_date:
            continue
        try:
            due = date.fromisoformat(doc.due_date[:10])
        except ValueError:
            continue
        if not today <= due <= horizon:
            continue
        days = (due - today).days
        alerts.append(RenewalAlert(
            contract_id=doc.id,
            contract_name=doc.filename,
            supplier_name=doc.supplier_name,
            current_value=doc.amount,
            renewal_date=due.isoformat(),
            days_until_renewal=days,
            urgency=renewal_urgency(days),
            recommended_actions=renewal_actions(days),
        ))
    return alerts


def supplier_matching_items(
    tenant_id: str,
    docs: Iterable[DocumentRecord],
    suppliers: list[Supplier],
    resolver: SupplierResolver,
) -> list[SupplierMatchingItem]:
    """
    Suggest suppliers for processed documents that were never linked.

    The item confidence is the best suggestion's confidence, 0 when there
    is no suggestion.
    """
    items = []
    for doc in docs:
        if not doc.processed or doc.supplier_id:
            continue
        matches = resolver.suggest_matches(
            tenant_id,
            doc.supplier_name or "",
            suppliers,
            document_amount=doc.amount,
            document_type=doc.document_type,
        )
        items.append(SupplierMatchingItem(
            document_id=doc.id,
            document_name=doc.filename,
            extracted_supplier=doc.supplier_name,
            suggestions=[
                {
                    "supplier_id": m.supplier.id,
                    "supplier_name": m.supplier.name,
                    "similarity": m.similarity,
                    "tier": m.tier,
                    "confidence": m.confidence,
                }
                for m in matches
            ],
            confidence_score=matches[0].confidence if matches else 0.0,
        ))
    return items


def workflow_summary(
    tenant_id: str,
    docs: Iterable[DocumentRecord],
    suppliers: list[Supplier],
    resolver: SupplierResolver,
    now: Optional[datetime] = None,
) -> WorkflowSummary:
    docs = list(docs)
    now = now or datetime.now(UTC)
    summary = WorkflowSummary(
        approvals=approval_items(docs, now),
        renewals=renewal_alerts(docs, now.date()),
        supplier_matching=supplier_matching_items(tenant_id, docs, suppliers, resolver),
    )
    summary.total_pending = len(summary.approvals) + len(summary.renewals) + len(summary.supplier_matching)
    return summary
