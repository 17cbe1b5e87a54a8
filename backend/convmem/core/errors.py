"""Shared error types for convmem services."""

from __future__ import annotations

from typing import Optional


class ConvMemError(Exception):
    """Base class for every error raised by convmem."""


class ValidationError(ConvMemError, ValueError):
    def __init__(
        self,
        message: str,
        field: str = "unknown",
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.field = field
        self.error_code = error_code


class InvalidPayloadError(ValidationError):
    """Raised when a capture batch is missing, malformed or oversized."""

    def __init__(self, message: str, field: str = "exchanges"):
        super().__init__(message, field=field, error_code="invalid_payload")


class MissingQueryError(ValidationError):
    def __init__(self, message: str = "query is required"):
        super().__init__(message, field="query", error_code="missing_query")


class RateLimitError(ConvMemError):
    """Raised when a project exceeds its ingestion rate."""

    def __init__(self, message: str, retry_after: float = 0.0):
        super().__init__(message)
        self.retry_after = retry_after


class NotFoundError(ConvMemError, LookupError):
    """Raised for an unknown project or file."""


class ProviderUnavailable(ConvMemError, RuntimeError):
    """Raised when the embedding or recall provider is down or returned nothing."""
