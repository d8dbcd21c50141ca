"""
Error taxonomy for document processing.

Only ConfigurationError, ValidationError and PersistenceError reach callers.
UpstreamProviderError is recovered by the pattern-extraction fallback and
CacheFault is recovered by treating the lookup as a miss.
"""

from typing import Any


class ProcurementError(Exception):
    """Base class for all engine errors"""


class ConfigurationError(ProcurementError):
    """Required credentials or endpoints are missing or inconsistent"""


class ValidationError(ProcurementError):
    """A required input field is missing or malformed"""


class UpstreamProviderError(ProcurementError):
    """The AI extraction provider failed or returned unparseable content"""


class CacheFault(ProcurementError):
    """An internal cache backend failure"""


class PersistenceError(ProcurementError):
    """
    A document or supplier store write failed.

    Args:
        message: What failed
        partial_state: Human-readable description of what did succeed,
            e.g. "fields extracted but supplier link not saved"
        partial_result: Whatever was produced before the failure
    """

    def __init__(self, message: str, partial_state: str | None = None, partial_result: Any = None):
        super().__init__(message)
        self.partial_state = partial_state
        self.partial_result = partial_result
