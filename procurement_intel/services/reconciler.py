"""
Merge an AI extraction with the deterministic pattern extraction.

A regex match is traceable to literal source text, so wherever the pattern
extractor found a value it takes precedence over the generative one. The AI
fills every field the patterns could not find.
"""

from loguru import logger
from pydantic import BaseModel, Field

from .extraction_types import CANONICAL_FIELD_NAMES, CanonicalFields, LineItem

DEFAULT_AI_CONFIDENCE = 0.5
IDENTIFYING_TRIAD = ("supplier_name", "amount", "currency")
TRIAD_BONUS = 0.1
TRIAD_PENALTY_PER_MISSING = 0.1

# Pattern values for these fields can be defaults rather than text matches;
# they only count as evidence when the literal value occurs in the document
_TEXT_VERIFIED_FIELDS = ("currency",)


def _item_signature(items: list[LineItem]) -> list[tuple]:
    """What the text states about each line; sku and unit are not compared"""
    signature = []
    for item in items:
        total = item.total_price
        if total is None and item.quantity is not None and item.unit_price is not None:
            total = round(item.quantity * item.unit_price, 2)
        description = (item.description or "").strip().lower()
        signature.append((description, item.quantity, item.unit_price, total))
    return signature


class Reconciliation(BaseModel):
    merged: CanonicalFields
    corrections: list[str] = Field(default_factory=list)
    confidence_score: float = 0.0


def estimate_confidence(fields: CanonicalFields, reported_confidence: float | None) -> float:
    """
    Blend the provider's own confidence with how complete the record is.

    The mean of the reported confidence (0.5 if unknown) and the fraction of
    populated canonical fields, plus 0.1 when supplier, amount and currency
    are all known, minus 0.1 for each of them that is missing.
    """
    base = DEFAULT_AI_CONFIDENCE if reported_confidence is None else reported_confidence
    completeness = len(fields.populated_fields()) / len(CANONICAL_FIELD_NAMES)

    missing = [name for name in IDENTIFYING_TRIAD if not fields.is_present(name)]
    adjustment = TRIAD_BONUS if not missing else -TRIAD_PENALTY_PER_MISSING * len(missing)

    score = (base + completeness) / 2 + adjustment
    return round(min(1.0, max(0.0, score)), 4)


class Reconciler:
    def reconcile(
        self,
        ai_fields: CanonicalFields,
        pattern_fields: CanonicalFields,
        raw_text: str,
    ) -> Reconciliation:
        """
        Produce one canonical record from two independent extractions.

        Args:
            ai_fields: Fields returned by the AI provider
            pattern_fields: Fields found by the PatternExtractor
            raw_text: The document text both were derived from

        Returns:
            Reconciliation with the merged fields, the names of the fields
            where the pattern value replaced the AI value, and the confidence
            estimate (also written to merged.confidence_score)
        """
        merged = ai_fields.model_dump()
        corrections: list[str] = []
        haystack = (raw_text or "").lower()

        for name in CANONICAL_FIELD_NAMES:
            if not pattern_fields.is_present(name):
                continue
            pattern_value = getattr(pattern_fields, name)
            if name in _TEXT_VERIFIED_FIELDS and str(pattern_value).lower() not in haystack:
                continue
            if name == "line_items":
                if _item_signature(pattern_value) != _item_signature(ai_fields.line_items):
                    merged[name] = [item.model_dump() for item in pattern_value]
                    corrections.append(name)
            elif pattern_value != getattr(ai_fields, name):
                merged[name] = pattern_value
                corrections.append(name)

        merged_fields = CanonicalFields(**merged)
        confidence = estimate_confidence(merged_fields, ai_fields.confidence_score)
        merged_fields.confidence_score = confidence

        if corrections:
            logger.info(
                "AI extraction corrected from document text",
                corrections=corrections,
                confidence=confidence,
            )

        return Reconciliation(merged=merged_fields, corrections=corrections, confidence_score=confidence)
