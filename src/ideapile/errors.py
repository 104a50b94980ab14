"""Custom exceptions for IdeaPile."""

from typing import Any


class IdeaPileError(Exception):
    """Base exception for IdeaPile errors with structured info."""

    error_code = "ideapile_error"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        if error_code:
            self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": str(self),
            "error_code": self.error_code,
            "details": self.details,
        }


class ValidationError(IdeaPileError):
    """Empty or invalid input, e.g. blank idea content."""

    error_code = "validation_error"


class NotFoundError(IdeaPileError):
    """An operation referenced an id that does not exist."""

    error_code = "not_found"


class EnrichmentError(IdeaPileError):
    """Base for failures raised by the enrichment pipeline."""

    error_code = "enrichment_error"


class InsufficientInputError(EnrichmentError):
    """Combine was called with fewer than two ideas."""

    error_code = "insufficient_input"


class RemoteServiceError(EnrichmentError):
    """Network or service failure, or an empty completion."""

    error_code = "remote_service_error"


class ConfigurationError(RemoteServiceError):
    """No credential is configured for the remote service."""

    error_code = "missing_api_key"


class ParseError(EnrichmentError):
    """A free-text reply could not be parsed."""

    error_code = "parse_error"


class DuplicateRequestError(EnrichmentError):
    """The same enrichment is already running for this idea."""

    error_code = "duplicate_request"
