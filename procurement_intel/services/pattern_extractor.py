"""
Deterministic field extraction from raw document text.

Every rule is a row in a table (label pattern -> field -> parser) so new
languages or labels are added by appending rows. The extractor never
invents a value: "no match" leaves the field unknown, which is what lets
the reconciler treat its output as ground truth.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from loguru import logger

from .extraction_types import CanonicalFields, LineItem, parse_number

CURRENCY_CODES = ("EUR", "PLN", "USD", "GBP", "CHF")
_CURRENCY = "|".join(CURRENCY_CODES)

SUPPLIER_NAME_SOFT_LIMIT = 100
SUPPLIER_NAME_HARD_LIMIT = 255


@dataclass(frozen=True)
class FieldRule:
    """A labelled pattern that populates one canonical field"""

    field: str
    pattern: re.Pattern
    parse: Callable[[str], object]


# ========== SUPPLIER NAME ==========

# Tried in order; the first label found anywhere in the text wins
SUPPLIER_LABELS = (
    "SPRZEDAWCA",
    "Supplier",
    "Vendor",
    "Seller",
    "Company",
    "Firma",
)

SUPPLIER_RULES = tuple(
    re.compile(rf"^[ \t]*{label}[ \t]*:[ \t]*(?P<value>[^\n]+)", re.MULTILINE | re.IGNORECASE)
    for label in SUPPLIER_LABELS
)

# Fragments that bleed onto the supplier line from neighbouring columns
SUPPLIER_BLEED_PATTERNS = (
    re.compile(r"\s+ul\.\s+.*$", re.IGNORECASE),
    re.compile(r"\s+(?:ADRES|Address)\s*:.*$", re.IGNORECASE),
    re.compile(r"\s+(?:NIP|Tax\s+ID|VAT\s+ID|REGON)\s*:.*$", re.IGNORECASE),
    re.compile(r"\s+(?:NABYWCA|Buyer|Bill\s+To|Customer)\s*:.*$", re.IGNORECASE),
)

LEGAL_SUFFIX = re.compile(
    r"(?:\s+Sp\.\s*z\s*o\.\s*o\.|\s+S\.A\.|\s+Inc\.|\s+Ltd\.|\s+LLC\b|\s+GmbH\b|\s+SpA\b|\s+SA\b|\s+Corp\.)",
    re.IGNORECASE,
)


def clean_supplier_name(raw: str) -> Optional[str]:
    """
    Strip bleed fragments and bound the length of a captured supplier line.

    Over SUPPLIER_NAME_SOFT_LIMIT characters the name is cut after the last
    legal-entity suffix; without one it is cut at SUPPLIER_NAME_HARD_LIMIT.
    """
    name = raw.strip()
    for pattern in SUPPLIER_BLEED_PATTERNS:
        name = pattern.sub("", name)
    name = name.strip(" \t,;")

    if len(name) > SUPPLIER_NAME_SOFT_LIMIT:
        suffixes = list(LEGAL_SUFFIX.finditer(name))
        if suffixes:
            name = name[: suffixes[-1].end()].strip()
    if len(name) > SUPPLIER_NAME_HARD_LIMIT:
        name = name[:SUPPLIER_NAME_HARD_LIMIT].strip()

    return name or None


# ========== AMOUNTS ==========

_NUMBER = r"(?P<value>\d[\d \t\u00a0,.]*?)"


def _amount_rule(field: str, labels: str) -> FieldRule:
    return FieldRule(
        field=field,
        pattern=re.compile(
            rf"(?<!\w)(?:{labels})\s*:\s*{_NUMBER}\s*(?P<currency>{_CURRENCY})\b",
            re.IGNORECASE,
        ),
        parse=parse_number,
    )


AMOUNT_RULES = (
    _amount_rule("total_amount", r"Wartość\s+brutto|RAZEM\s+DO\s+ZAPŁATY|Suma|Total|Gross"),
    _amount_rule("tax_amount", r"Kwota\s+VAT|VAT|Tax"),
    _amount_rule("amount", r"Wartość\s+netto|Net|Subtotal"),
)


# ========== DATES ==========

_DATE_VALUE = r"(?P<value>\d{2}[-./]\d{2}[-./]\d{4}|\d{4}-\d{2}-\d{2})"


def normalize_date(value: str) -> Optional[str]:
    """
    Convert DD-MM-YYYY (also with '.' or '/') to YYYY-MM-DD.

    The result is only returned for day 1-31, month 1-12, year 1900-2100 and
    a date that exists on the calendar; anything else is unknown.
    """
    value = value.strip()
    match = re.fullmatch(r"(\d{2})[-./](\d{2})[-./](\d{4})", value)
    if match:
        day, month, year = (int(part) for part in match.groups())
    else:
        match = re.fullmatch(r"(\d{4})-(\d{2})-(\d{2})", value)
        if not match:
            return None
        year, month, day = (int(part) for part in match.groups())

    if not (1 <= day <= 31 and 1 <= month <= 12 and 1900 <= year <= 2100):
        return None
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _date_rule(field: str, labels: str) -> FieldRule:
    return FieldRule(
        field=field,
        pattern=re.compile(rf"(?<!\w)(?:{labels})\s*:\s*{_DATE_VALUE}", re.IGNORECASE),
        parse=normalize_date,
    )


# The bare "Date" label must not swallow "Due Date", "Delivery Date", ...
_BARE_DATE = (
    r"(?<!Due )(?<!Payment )(?<!Delivery )(?<!Service )(?<!Issue )(?<!Invoice )"
    r"(?<!Order )(?<!Expiry )Date"
)

DATE_RULES = (
    _date_rule("issue_date", rf"DATA\s+WYSTAWIENIA|Issue\s+Date|Invoice\s+Date|{_BARE_DATE}"),
    _date_rule("due_date", r"TERMIN\s+PŁATNOŚCI|Due\s+Date|Payment\s+Date"),
    _date_rule("delivery_date", r"DATA\s+DOSTAWY|Delivery\s+Date|Service\s+Date"),
)


# ========== DOCUMENT NUMBER ==========

DOCUMENT_NUMBER_PATTERN = re.compile(
    r"\b(?:FAKTURA(?:\s+VAT)?|Invoice|Document|Contract|Umowa|Purchase\s+Order|PO|Order)"
    r"[ \t]*(?:nr\.?|no\.?|number|num\.?|#)?[ \t]*[:#]?[ \t]*(?P<value>[A-Za-z0-9][\w/.-]*)",
    re.IGNORECASE,
)


def _identifier(token: str) -> Optional[str]:
    token = token.rstrip(".-/")
    return token if any(ch.isdigit() for ch in token) else None


# ========== CONTACT DETAILS ==========

CONTACT_RULES = (
    FieldRule(
        field="supplier_tax_id",
        pattern=re.compile(
            r"(?<!\w)(?:NIP|Tax\s+ID|VAT\s+ID|VAT\s+No\.?)\s*:\s*(?P<value>[A-Z]{0,2}[\d][\d -]{4,}\d)",
            re.IGNORECASE,
        ),
        parse=lambda v: re.sub(r"[\s-]", "", v),
    ),
    FieldRule(
        field="supplier_email",
        pattern=re.compile(
            r"(?<!\w)(?:E-?mail|Email)\s*:\s*(?P<value>[\w.+-]+@[\w-]+(?:\.[\w-]+)+)",
            re.IGNORECASE,
        ),
        parse=lambda v: v.lower(),
    ),
    FieldRule(
        field="supplier_phone",
        pattern=re.compile(
            r"(?<!\w)(?:Tel\.?|Phone|Telefon)\s*:\s*(?P<value>\+?[\d][\d ()-]{5,}\d)",
            re.IGNORECASE,
        ),
        parse=lambda v: " ".join(v.split()),
    ),
)


# ========== CURRENCY & LINE ITEMS ==========

CURRENCY_PATTERN = re.compile(rf"\b({_CURRENCY})\b", re.IGNORECASE)

LINE_ITEM_PATTERN = re.compile(
    rf"^[ \t]*(?P<qty>\d+)[ \t]+(?P<description>\S.*?)[ \t]+(?P<price>\d[\d \t\u00a0,.]*?)[ \t]*({_CURRENCY})[ \t]*$",
    re.MULTILINE | re.IGNORECASE,
)


class PatternExtractor:
    """
    Regex/keyword extractor for English and Polish procurement documents.

    extract() never raises; any field without a match stays None, except
    currency which falls back to ``default_currency``.
    """

    def __init__(self, default_currency: str = "USD"):
        self.default_currency = default_currency.upper()

    def extract(self, raw_text: str) -> CanonicalFields:
        text = raw_text or ""
        values: dict = {}
        try:
            values["supplier_name"] = self.extract_supplier_name(text)
            values.update(self._first_matches(AMOUNT_RULES, text))
            values.update(self._first_matches(DATE_RULES, text))
            values.update(self._first_matches(CONTACT_RULES, text))
            values["document_number"] = self.extract_document_number(text)
            values["currency"] = self.extract_currency(text)
            values["line_items"] = self.extract_line_items(text)
        except Exception as e:
            # A pathological input must not take the fallback path down with it
            logger.warning(f"Pattern extraction aborted: {e}")

        fields = CanonicalFields(**values)
        logger.debug(
            "Pattern extraction completed",
            populated=fields.populated_fields(),
            text_length=len(text),
        )
        return fields

    def extract_supplier_name(self, text: str) -> Optional[str]:
        for pattern in SUPPLIER_RULES:
            match = pattern.search(text)
            if match:
                name = clean_supplier_name(match.group("value"))
                if name:
                    return name
        return None

    def extract_document_number(self, text: str) -> Optional[str]:
        for match in DOCUMENT_NUMBER_PATTERN.finditer(text):
            identifier = _identifier(match.group("value"))
            if identifier:
                return identifier
        return None

    def extract_currency(self, text: str) -> str:
        match = CURRENCY_PATTERN.search(text)
        if match:
            return match.group(1).upper()
        return self.default_currency

    def extract_line_items(self, text: str) -> list[LineItem]:
        items: list[LineItem] = []
        for match in LINE_ITEM_PATTERN.finditer(text):
            quantity = int(match.group("qty"))
            unit_price = parse_number(match.group("price"))
            if unit_price is None:
                continue
            items.append(
                LineItem(
                    sku=f"ITEM-{len(items) + 1}",
                    description=match.group("description").strip(),
                    quantity=quantity,
                    unit="ea",
                    unit_price=unit_price,
                    total_price=round(quantity * unit_price, 2),
                )
            )
        return items

    @staticmethod
    def _first_matches(rules, text: str) -> dict:
        found: dict = {}
        for rule in rules:
            if rule.field in found:
                continue
            for match in rule.pattern.finditer(text):
                value = rule.parse(match.group("value"))
                if value is not None:
                    found[rule.field] = value
                    break
        return found
