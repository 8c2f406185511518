"""Custom exceptions for the application.

This module defines application-specific exceptions with structured
error codes and metadata for consistent error handling across the API
and the generation pipeline.

Exception Hierarchy:
- AppError (base)
  ├── NotFoundError
  │   └── ConversationNotFoundError
  ├── ValidationError
  │   ├── RequestValidationFailed
  │   ├── InvalidContentTypeError
  │   └── InvalidJSONError
  ├── ConfigurationError
  ├── ProviderError
  ├── ResponseFormatError
  ├── ResponseValidationError
  └── ProvidersExhaustedError

Usage:
    try:
        result = await orchestrator.generate(...)
    except ProvidersExhaustedError as e:
        log.error(f"No model answered: {e.models_tried}")
        raise

Attributes:
    code: Machine-readable error code (e.g., "PROVIDERS_EXHAUSTED")
    message: Human-readable error message
    details: Additional context for debugging
    retryable: Whether the operation can be retried
    http_status: Status code used when the error reaches the HTTP layer
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

# Backend statuses worth retrying against the same model.
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# Characters of raw model output kept on a format error.
RAW_EXCERPT_LIMIT = 1000


class AppError(Exception):
    """Base exception for application errors.

    Attributes:
        code: Machine-readable error code
        message: Human-readable error message
        details: Additional context for debugging
        retryable: Whether the operation can be retried
        timestamp: When the error occurred
    """

    code: str = "APP_ERROR"
    message: str = "An unexpected error occurred"
    http_status: int = 500

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        """Initialize error with optional message and details."""
        self.message = message or self.message
        self.details = details or {}
        self.retryable = retryable
        self.timestamp = datetime.now(UTC)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "retryable": self.retryable,
                "timestamp": self.timestamp.isoformat(),
            }
        }

    def __str__(self) -> str:
        """String representation with code."""
        return f"[{self.code}] {self.message}"


class NotFoundError(AppError):
    """Base exception for resource not found errors."""

    code = "NOT_FOUND"
    message = "Resource not found"
    http_status = 404

    def __init__(
        self,
        resource: str,
        identifier: str | UUID,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize not found error."""
        self.resource = resource
        self.identifier = identifier
        full_details = {"resource": resource, "identifier": str(identifier)}
        if details:
            full_details.update(details)
        super().__init__(
            message=f"{resource} not found: {identifier}",
            details=full_details,
        )


class ConversationNotFoundError(NotFoundError):
    """Raised when a conversation id does not exist."""

    code = "CONVERSATION_NOT_FOUND"
    message = "Conversation not found"

    def __init__(self, conversation_id: UUID | str) -> None:
        super().__init__(resource="Conversation", identifier=conversation_id)


class ValidationError(AppError):
    """Base exception for validation errors."""

    code = "VALIDATION_ERROR"
    message = "Validation failed"
    http_status = 400


class RequestValidationFailed(ValidationError):
    """Raised when an incoming request body is rejected.

    ``errors`` is a list of ``{"path": ..., "message": ...}`` entries,
    one per failing field.
    """

    code = "REQUEST_VALIDATION_FAILED"

    def __init__(
        self,
        message: str = "Validation failed",
        errors: list[dict[str, str]] | None = None,
    ) -> None:
        self.errors = errors or []
        super().__init__(message=message, details={"errors": self.errors})


class InvalidContentTypeError(ValidationError):
    """POST body was not sent as application/json."""

    code = "INVALID_CONTENT_TYPE"
    message = "Invalid content type"


class InvalidJSONError(ValidationError):
    """POST body could not be parsed as JSON."""

    code = "INVALID_JSON"
    message = "Invalid JSON"


class ConfigurationError(AppError):
    """Raised for missing or invalid configuration (credentials, documents).

    Raised at startup; the service does not boot with a configuration error.
    """

    code = "CONFIGURATION_ERROR"
    message = "Invalid configuration"

    def __init__(self, message: str, setting: str | None = None) -> None:
        self.setting = setting
        super().__init__(
            message=message,
            details={"setting": setting} if setting else None,
        )


class ProviderError(AppError):
    """A single backend call failed.

    ``retryable`` is derived from the status code at the raise site so the
    orchestrator can branch on typed data. ``cache_miss`` marks a call made
    with a cache handle that the backend no longer recognises.
    """

    code = "PROVIDER_ERROR"
    message = "Model provider call failed"

    def __init__(
        self,
        provider: str,
        model_id: str,
        message: str,
        status_code: int | None = None,
        retryable: bool | None = None,
        cache_miss: bool = False,
    ) -> None:
        self.provider = provider
        self.model_id = model_id
        self.status_code = status_code
        self.cache_miss = cache_miss
        if retryable is None:
            retryable = cache_miss or status_code in RETRYABLE_STATUS_CODES
        super().__init__(
            message=message,
            details={
                "provider": provider,
                "model_id": model_id,
                "status_code": status_code,
                "cache_miss": cache_miss,
            },
            retryable=retryable,
        )


class ResponseFormatError(AppError):
    """Model output could not be coerced into JSON by any repair stage."""

    code = "RESPONSE_FORMAT_INVALID"
    message = "Model response is not valid JSON"

    def __init__(self, raw_text: str, offset: int | None = None, reason: str = "") -> None:
        self.raw_excerpt = raw_text[:RAW_EXCERPT_LIMIT]
        self.offset = offset
        msg = self.message if not reason else f"{self.message}: {reason}"
        super().__init__(
            message=msg,
            details={"raw_excerpt": self.raw_excerpt, "offset": offset},
        )


class ResponseValidationError(AppError):
    """Parsed model output does not match the declared response schema."""

    code = "RESPONSE_SCHEMA_INVALID"
    message = "Model response failed schema validation"

    def __init__(self, errors: list[dict[str, str]]) -> None:
        self.errors = errors
        paths = ", ".join(e["path"] for e in errors) or "(root)"
        super().__init__(
            message=f"{self.message}: {paths}",
            details={"errors": errors},
        )


class ProvidersExhaustedError(AppError):
    """Every model in the fallback chain failed."""

    code = "PROVIDERS_EXHAUSTED"
    message = "All providers exhausted"

    def __init__(self, models_tried: list[str], last_error: Exception | None = None) -> None:
        self.models_tried = list(models_tried)
        self.last_error = last_error
        super().__init__(
            message=f"{self.message}. Models tried: {', '.join(self.models_tried)}",
            details={
                "models_tried": self.models_tried,
                "last_error": str(last_error) if last_error else None,
            },
        )


__all__ = [
    "RETRYABLE_STATUS_CODES",
    "AppError",
    "NotFoundError",
    "ConversationNotFoundError",
    "ValidationError",
    "RequestValidationFailed",
    "InvalidContentTypeError",
    "InvalidJSONError",
    "ConfigurationError",
    "ProviderError",
    "ResponseFormatError",
    "ResponseValidationError",
    "ProvidersExhaustedError",
]
