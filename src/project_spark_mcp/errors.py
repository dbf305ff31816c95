"""Structured error handling — exception taxonomy, classification, and tool error model.

Backend failures are translated into tagged :class:`ServiceError` instances at
the boundary where the external call is made (document store, Gemini client),
so callers never have to guess retryability from ad hoc ``code``/``message``
inspection.
"""

from __future__ import annotations

from enum import Enum

import httpx
from pydantic import BaseModel

RETRYABLE_CODES: frozenset[str] = frozenset({
    "unavailable",
    "deadline-exceeded",
    "resource-exhausted",
    "internal",
    "cancelled",
})

NON_RETRYABLE_CODES: frozenset[str] = frozenset({
    "permission-denied",
    "unauthenticated",
    "invalid-argument",
    "not-found",
})

NETWORK_ERROR_PATTERNS: tuple[str, ...] = (
    "network error",
    "connection error",
    "timeout",
    "temporarily unavailable",
    "service unavailable",
    "no internet connection",
)

HTTP_STATUS_CODES: dict[int, str] = {
    400: "invalid-argument",
    401: "unauthenticated",
    403: "permission-denied",
    404: "not-found",
    408: "deadline-exceeded",
    429: "resource-exhausted",
    499: "cancelled",
    500: "internal",
    502: "unavailable",
    503: "unavailable",
    504: "deadline-exceeded",
}


def classify_code(code: str | None, message: str | None = None) -> bool:
    """Return True when a (code, message) pair describes a transient failure.

    Known codes decide first; otherwise the lower-cased message is matched
    against network-failure patterns. Anything else is not retryable.
    """
    normalized = (code or "").strip().lower()
    if normalized in NON_RETRYABLE_CODES:
        return False
    if normalized in RETRYABLE_CODES:
        return True
    text = (message or "").lower()
    return any(pattern in text for pattern in NETWORK_ERROR_PATTERNS)


class SparkError(Exception):
    """Base class for all project-spark errors."""


class ValidationError(SparkError):
    """Bad input — never retried, surfaced to the user as-is."""


class NotFoundError(SparkError):
    """A referenced entity does not exist."""


class ConfigurationError(SparkError):
    """Required configuration (e.g. the Gemini API key) is missing."""


class MalformedResponseError(SparkError):
    """The AI service returned output that could not be parsed or validated."""


class RateLimitError(SparkError):
    """The client-side AI request window is exhausted."""

    def __init__(self, message: str, *, retry_after: float = 0.0) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ServiceError(SparkError):
    """Failure of an external service, tagged with a code and its retryability."""

    def __init__(self, message: str, *, code: str = "unknown", retryable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable

    @classmethod
    def from_code(cls, code: str, message: str = "") -> ServiceError:
        """Build the transient or permanent subclass for *code*."""
        text = message or code
        if classify_code(code, text):
            return TransientServiceError(text, code=code)
        return PermanentServiceError(text, code=code)

    @classmethod
    def from_http_status(cls, status: int, message: str = "") -> ServiceError:
        """Map an HTTP status onto the code taxonomy, then classify."""
        code = HTTP_STATUS_CODES.get(status, "internal" if status >= 500 else "unknown")
        return cls.from_code(code, message or f"HTTP {status}")


class TransientServiceError(ServiceError):
    """Retryable service failure."""

    def __init__(self, message: str, *, code: str = "unavailable") -> None:
        super().__init__(message, code=code, retryable=True)


class PermanentServiceError(ServiceError):
    """Non-retryable service failure."""

    def __init__(self, message: str, *, code: str = "unknown") -> None:
        super().__init__(message, code=code, retryable=False)


class ErrorCategory(str, Enum):
    """Categories of errors for diagnostics."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    SERVICE_FAILED = "SERVICE_FAILED"
    RATE_LIMITED = "RATE_LIMITED"
    NETWORK_ERROR = "NETWORK_ERROR"
    AI_RESPONSE_MALFORMED = "AI_RESPONSE_MALFORMED"
    CONFIGURATION_MISSING = "CONFIGURATION_MISSING"
    UNKNOWN = "UNKNOWN"


_CODE_CATEGORIES: dict[str, tuple[ErrorCategory, str]] = {
    "permission-denied": (
        ErrorCategory.PERMISSION_DENIED,
        "Access denied by the backend — check credentials and ownership of the project",
    ),
    "unauthenticated": (
        ErrorCategory.UNAUTHENTICATED,
        "Not authenticated — check GEMINI_API_KEY or sign in again",
    ),
    "invalid-argument": (
        ErrorCategory.INVALID_ARGUMENT,
        "Bad request — check input format",
    ),
    "not-found": (
        ErrorCategory.NOT_FOUND,
        "Resource not found — deleted or invalid ID",
    ),
    "resource-exhausted": (
        ErrorCategory.RATE_LIMITED,
        "Quota or rate limit hit — wait and retry, or switch to the 'budget' preset",
    ),
}


class ToolError(BaseModel):
    """Structured error returned from any tool."""

    error: str
    category: str
    hint: str
    retryable: bool = False
    retry_after_seconds: int | None = None


def categorize_error(error: Exception) -> tuple[ErrorCategory, str]:
    """Map an exception to an ErrorCategory + human-readable hint."""
    if isinstance(error, ValidationError):
        return ErrorCategory.VALIDATION_FAILED, str(error)
    if isinstance(error, NotFoundError):
        return ErrorCategory.NOT_FOUND, "Resource not found — deleted or invalid ID"
    if isinstance(error, ConfigurationError):
        return ErrorCategory.CONFIGURATION_MISSING, str(error)
    if isinstance(error, MalformedResponseError):
        return (
            ErrorCategory.AI_RESPONSE_MALFORMED,
            "AI response format error — try again with different input",
        )
    if isinstance(error, RateLimitError):
        return (
            ErrorCategory.RATE_LIMITED,
            "Rate limit exceeded — wait before making more AI requests",
        )
    if isinstance(error, ServiceError):
        if error.code in _CODE_CATEGORIES:
            return _CODE_CATEGORIES[error.code]
        if error.retryable:
            return (
                ErrorCategory.SERVICE_UNAVAILABLE,
                "Service temporarily unavailable — retries were exhausted, try again shortly",
            )
        return ErrorCategory.SERVICE_FAILED, str(error)
    if isinstance(error, PermissionError):
        return ErrorCategory.PERMISSION_DENIED, str(error)
    if isinstance(error, (TimeoutError, httpx.TimeoutException, httpx.NetworkError, ConnectionError)):
        return (
            ErrorCategory.NETWORK_ERROR,
            "Network error — check your internet connection and try again",
        )
    if isinstance(error, ValueError):
        return ErrorCategory.INVALID_ARGUMENT, str(error)

    s = str(error).lower()
    if any(pattern in s for pattern in NETWORK_ERROR_PATTERNS):
        return (
            ErrorCategory.NETWORK_ERROR,
            "Network error — check your internet connection and try again",
        )
    return ErrorCategory.UNKNOWN, str(error)


def make_tool_error(error: Exception) -> dict:
    """Create a serialisable ToolError dict from an exception."""
    cat, hint = categorize_error(error)
    retryable = cat in {
        ErrorCategory.SERVICE_UNAVAILABLE,
        ErrorCategory.RATE_LIMITED,
        ErrorCategory.NETWORK_ERROR,
    }
    retry_after: int | None = None
    if isinstance(error, RateLimitError):
        retry_after = max(1, round(error.retry_after))
    elif cat == ErrorCategory.RATE_LIMITED:
        retry_after = 60
    return ToolError(
        error=str(error) or type(error).__name__,
        category=cat.value,
        hint=hint,
        retryable=retryable,
        retry_after_seconds=retry_after,
    ).model_dump(mode="json")
