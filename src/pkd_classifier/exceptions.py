"""Exception hierarchy.

All exceptions are rooted at PKDClassifierError so callers can catch broadly
(except PKDClassifierError) or narrowly (except ProviderError).

HTTP mapping (see api/app.py):
    ValidationError     -> 400
    everything else     -> 500 with a generic message
"""


class PKDClassifierError(Exception):
    """Base exception for all application errors."""


class ConfigurationError(PKDClassifierError):
    """Raised when required configuration is missing or invalid."""


class ValidationError(PKDClassifierError):
    """Raised when request input is missing or malformed."""


class ProviderError(PKDClassifierError):
    """Raised when an embedding, vector search or chat call fails."""


class DecodeError(PKDClassifierError):
    """Raised when stored or returned data does not parse as the expected JSON."""


class StoreError(PKDClassifierError):
    """Raised when the cache store is unreachable or a query fails."""


class ProcessingError(PKDClassifierError):
    """Opaque pipeline failure surfaced to the transport layer."""

    def __init__(self, message: str = "Backend processing error") -> None:
        super().__init__(message)
