import hashlib
import json
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Order matters: it is the order used for completeness scoring and reconciliation
CANONICAL_FIELD_NAMES = (
    "supplier_name",
    "supplier_address",
    "supplier_phone",
    "supplier_email",
    "supplier_tax_id",
    "amount",
    "currency",
    "tax_amount",
    "total_amount",
    "issue_date",
    "due_date",
    "delivery_date",
    "document_number",
    "line_items",
)

_TEXT_FIELDS = (
    "supplier_name",
    "supplier_address",
    "supplier_phone",
    "supplier_email",
    "supplier_tax_id",
    "document_number",
)
_AMOUNT_FIELDS = ("amount", "tax_amount", "total_amount")
_DATE_FIELDS = ("issue_date", "due_date", "delivery_date")


def parse_number(value: Any) -> float | None:
    """Coerce a provider value to float; anything unparseable is unknown"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, str):
        cleaned = value.strip().replace(" ", "").replace("\u00a0", "")
        for symbol in ("$", "€", "£", "zł"):
            cleaned = cleaned.replace(symbol, "")
        if not cleaned:
            return None
        if "," in cleaned and "." in cleaned:
            # The right-most separator is the decimal one
            if cleaned.rfind(",") > cleaned.rfind("."):
                cleaned = cleaned.replace(".", "").replace(",", ".")
            else:
                cleaned = cleaned.replace(",", "")
        elif "," in cleaned:
            head, _, tail = cleaned.rpartition(",")
            if len(tail) == 2 and head.count(",") == 0:
                cleaned = f"{head}.{tail}"
            else:
                cleaned = cleaned.replace(",", "")
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def is_valid_iso_date(value: str) -> bool:
    """True for a real calendar date written as YYYY-MM-DD"""
    if len(value) != 10 or value[4] != "-" or value[7] != "-":
        return False
    try:
        return date.fromisoformat(value).isoformat() == value
    except ValueError:
        return False


class LineItem(BaseModel):
    description: str | None = None
    quantity: float | None = None
    unit_price: float | None = None
    total_price: float | None = None
    sku: str | None = None
    unit: str | None = None

    @field_validator("description", "sku", "unit", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("quantity", "unit_price", "total_price", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> float | None:
        return parse_number(value)


class CanonicalFields(BaseModel):
    """
    Procurement attributes populated by both the AI and pattern extractors.

    Every field is optional. ``None`` means "unknown"; empty strings are
    never stored. An empty ``line_items`` list is equally "unknown".
    """

    supplier_name: str | None = None
    supplier_address: str | None = None
    supplier_phone: str | None = None
    supplier_email: str | None = None
    supplier_tax_id: str | None = None
    amount: float | None = None
    currency: str | None = None
    tax_amount: float | None = None
    total_amount: float | None = None
    issue_date: str | None = None
    due_date: str | None = None
    delivery_date: str | None = None
    document_number: str | None = None
    line_items: list[LineItem] = Field(default_factory=list)
    confidence_score: float | None = None

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _blank_is_unknown(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        if not text or text.lower() in ("null", "none", "n/a"):
            return None
        return text

    @field_validator(*_AMOUNT_FIELDS, mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float | None:
        return parse_number(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value: Any) -> str | None:
        if value is None:
            return None
        code = str(value).strip().upper()
        return code if len(code) == 3 and code.isalpha() else None

    @field_validator(*_DATE_FIELDS, mode="before")
    @classmethod
    def _only_real_dates(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()[:10]
        return text if is_valid_iso_date(text) else None

    @field_validator("line_items", mode="before")
    @classmethod
    def _items_list(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, (dict, LineItem))]

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float | None:
        number = parse_number(value)
        if number is None:
            return None
        return min(1.0, max(0.0, number))

    @classmethod
    def from_payload(cls, payload: dict) -> "CanonicalFields":
        """Build fields from loosely-shaped provider JSON, ignoring unknown keys"""
        known = set(CANONICAL_FIELD_NAMES) | {"confidence_score"}
        return cls(**{k: v for k, v in payload.items() if k in known})

    def is_present(self, name: str) -> bool:
        value = getattr(self, name)
        if name == "line_items":
            return bool(value)
        return value is not None

    def populated_fields(self) -> list[str]:
        return [name for name in CANONICAL_FIELD_NAMES if self.is_present(name)]


class ExtractionRequest(BaseModel):
    """
    Identity of an AI extraction call.

    Two requests are cache-equivalent iff the triple is equal after trimming
    the text. Internal whitespace is kept as-is and therefore changes the key.
    """

    model_config = ConfigDict(frozen=True)

    normalized_text: str
    document_type: str
    prompt_template_id: str

    @classmethod
    def build(cls, raw_text: str, document_type: str, prompt_template_id: str) -> "ExtractionRequest":
        return cls(
            normalized_text=raw_text.strip(),
            document_type=document_type,
            prompt_template_id=prompt_template_id,
        )

    def cache_key(self, prefix: str, width: int = 16) -> str:
        canonical = json.dumps(
            {
                "text": self.normalized_text,
                "type": self.document_type,
                "template": self.prompt_template_id,
            },
            sort_keys=True,
            ensure_ascii=False,
            separators=(",", ":"),
        )
        digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
        return f"{prefix}:{digest[:width]}"


class ExtractionResult(BaseModel):
    fields: CanonicalFields = Field(default_factory=CanonicalFields)
    processing_time_ms: float = 0.0
    model_used: str = "unknown"
    confidence_score: float = Field(0.0, ge=0.0, le=1.0)


class ProcessingResult(BaseModel):
    """Outcome of processing one document through the engine"""

    document_id: str
    tenant_id: str
    document_type: str
    fields: CanonicalFields
    corrections: list[str] = Field(default_factory=list)
    model_used: str
    confidence_score: float = 0.0
    processing_time_ms: float = 0.0
    cached: bool = False
    fallback_used: bool = False
    supplier_id: str | None = None
    supplier_created: bool = False
