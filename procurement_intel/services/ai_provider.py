"""
AI extraction provider client.

Talks to an OpenAI-compatible chat completions endpoint (Azure OpenAI or any
gateway exposing the same shape). The provider is treated as a black box:
document text plus instructions in, JSON-ish text out. Every failure mode
surfaces as UpstreamProviderError so the caller can fall back to pattern
extraction.
"""

import json
import time
from typing import Optional

import httpx
import pydantic
from loguru import logger

from ..core.config import settings
from ..core.errors import ConfigurationError, UpstreamProviderError
from .extraction_types import CanonicalFields, ExtractionResult

SYSTEM_PROMPT = (
    "You are a procurement document analyst. You read invoices, contracts, "
    "purchase orders and receipts and return their key attributes as a single "
    "JSON object. Respond with JSON only."
)

RESPONSE_CONTRACT = {
    "supplier_name": "string or null",
    "supplier_address": "string or null",
    "supplier_phone": "string or null",
    "supplier_email": "string or null",
    "supplier_tax_id": "string or null",
    "amount": "number or null (net amount)",
    "currency": "3-letter ISO code or null",
    "tax_amount": "number or null",
    "total_amount": "number or null (gross amount)",
    "issue_date": "YYYY-MM-DD or null",
    "due_date": "YYYY-MM-DD or null",
    "delivery_date": "YYYY-MM-DD or null",
    "document_number": "string or null",
    "line_items": [
        {"description": "string", "quantity": "number", "unit_price": "number", "total_price": "number"}
    ],
    "confidence_score": "number between 0 and 1",
}

# Keys some models wrap the payload in
_WRAPPER_KEYS = ("extractedData", "extracted_data")


def build_extraction_prompt(document_type: str, text: str, hints: Optional[CanonicalFields] = None) -> str:
    """
    Build the user prompt for one document.

    Pattern-extracted values are passed as hints; the model is told to
    prefer what the text literally says over the hints.
    """
    lines = [
        f"Extract the procurement fields from this {document_type or 'document'}.",
        "",
        "Rules:",
        "- Use null for anything not present in the text. Never guess.",
        "- Amounts are plain numbers without currency symbols or thousands separators.",
        "- Dates use YYYY-MM-DD.",
        "- The document may be in English or Polish.",
        "",
        "Return exactly this JSON shape:",
        json.dumps(RESPONSE_CONTRACT, indent=2),
    ]

    if hints is not None:
        known = {
            name: value
            for name, value in hints.model_dump(exclude={"line_items", "confidence_score"}).items()
            if value is not None
        }
        if known:
            lines += [
                "",
                "Values found by keyword matching (verify against the text):",
                json.dumps(known, ensure_ascii=False, indent=2),
            ]

    lines += ["", "Document text:", "<<<", text, ">>>"]
    return "\n".join(lines)


def parse_ai_response(content: str) -> dict:
    """
    Return the first well-formed JSON object found in a model reply.

    Handles replies wrapped in prose or markdown fences and payloads nested
    under ``extractedData``.

    Raises:
        UpstreamProviderError: No JSON object could be decoded
    """
    if not content:
        raise UpstreamProviderError("AI provider returned an empty response")

    decoder = json.JSONDecoder()
    start = content.find("{")
    while start != -1:
        try:
            payload, _ = decoder.raw_decode(content, start)
        except json.JSONDecodeError:
            start = content.find("{", start + 1)
            continue
        if isinstance(payload, dict):
            for wrapper in _WRAPPER_KEYS:
                if isinstance(payload.get(wrapper), dict):
                    return payload[wrapper]
            return payload
        start = content.find("{", start + 1)

    raise UpstreamProviderError("AI provider response contained no JSON object")


class LLMExtractionClient:
    """Async client for structured field extraction via chat completions"""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        deployment: str,
        timeout_seconds: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.deployment = deployment
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls) -> Optional["LLMExtractionClient"]:
        """
        Build a client from LLM_* settings.

        Returns:
            Client, or None when no provider is configured at all

        Raises:
            ConfigurationError: Provider is only partially configured
        """
        values = {
            "LLM_BASE_URL": settings.llm_base_url,
            "LLM_API_KEY": settings.llm_api_key,
            "LLM_DEPLOYMENT": settings.llm_deployment,
        }
        missing = [name for name, value in values.items() if not value]
        if len(missing) == len(values):
            logger.warning("No AI provider configured - documents will use pattern extraction only")
            return None
        if missing:
            raise ConfigurationError(f"AI provider partially configured, missing: {', '.join(missing)}")

        return cls(
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key,
            deployment=settings.llm_deployment,
            timeout_seconds=settings.llm_timeout_seconds,
        )

    async def extract(
        self,
        text: str,
        document_type: str,
        hints: Optional[CanonicalFields] = None,
    ) -> ExtractionResult:
        """
        Ask the provider for the canonical fields of one document.

        Raises:
            UpstreamProviderError: Transport failure, non-2xx status, an
                unparseable reply or fields of the wrong type
        """
        body = {
            "model": self.deployment,
            "temperature": 0,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_extraction_prompt(document_type, text, hints)},
            ],
        }
        headers = {"api-key": self.api_key, "Authorization": f"Bearer {self.api_key}"}

        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}/chat/completions", json=body, headers=headers)
                response.raise_for_status()
                reply = response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamProviderError(
                f"AI provider returned HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamProviderError(f"AI provider request failed: {e}") from e

        try:
            content = reply["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamProviderError("AI provider reply missing choices[0].message.content") from e

        payload = parse_ai_response(content)
        try:
            fields = CanonicalFields.from_payload(payload)
        except pydantic.ValidationError as e:
            raise UpstreamProviderError(
                f"AI provider reply has malformed fields: {e.error_count()} invalid value(s)"
            ) from e
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        logger.info(
            "AI extraction completed",
            model=self.deployment,
            populated=len(fields.populated_fields()),
            processing_time_ms=elapsed_ms,
        )

        return ExtractionResult(
            fields=fields,
            processing_time_ms=elapsed_ms,
            model_used=reply.get("model") or self.deployment,
            confidence_score=fields.confidence_score if fields.confidence_score is not None else 0.0,
        )
