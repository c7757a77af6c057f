"""
Exception types and error classification for build_cache.

Provides:
- ErrorCategory enum for retry decisions
- Typed exception hierarchy for cache client errors
- Error classification utilities
"""

from enum import Enum
from typing import Optional


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that may succeed on retry
                   (e.g., network timeouts, 429/503 responses)
        AUTH: Authentication failures (e.g., 401, expired SAS token)
        PERMANENT: Failures that won't succeed on retry
                   (e.g., 404, invalid input, bad configuration)
        UNKNOWN: Unclassified errors, may retry conservatively
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class CacheError(Exception):
    """
    Base exception for all cache client errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error should trigger a retry."""
        return self.category in (ErrorCategory.TRANSIENT, ErrorCategory.UNKNOWN)

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthError(CacheError):
    """Credentials rejected or expired (401, expired SAS token)."""

    category = ErrorCategory.AUTH


# =============================================================================
# Network/Connection Errors (Transient)
# =============================================================================


class TransientError(CacheError):
    """Base class for transient/retriable errors."""

    category = ErrorCategory.TRANSIENT


class ConnectionError(TransientError):
    """Network connection failed (DNS, reset, refused)."""

    pass


class TimeoutError(TransientError):
    """Operation timed out."""

    pass


class ThrottlingError(TransientError):
    """Rate limited (429) - should back off."""

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
    ):
        super().__init__(message, cause, context)
        self.retry_after = retry_after  # Seconds to wait if provided


class ServiceUnavailableError(TransientError):
    """Service temporarily unavailable (502/503/504)."""

    pass


class SegmentTimeoutError(TransientError):
    """A download segment did not complete within the segment timeout."""

    pass


# =============================================================================
# Permanent Errors (Don't Retry)
# =============================================================================


class PermanentError(CacheError):
    """Base class for permanent/non-retriable errors."""

    category = ErrorCategory.PERMANENT


class NotFoundError(PermanentError):
    """Archive not found (404)."""

    pass


class ForbiddenError(PermanentError):
    """Access denied (403)."""

    pass


class ValidationError(PermanentError):
    """Caller input failed validation."""

    pass


class ConfigurationError(PermanentError):
    """Invalid configuration."""

    pass


# =============================================================================
# Download Errors
# =============================================================================


class DownloadError(CacheError):
    """
    Archive download failed.

    Category follows the HTTP status when one is known, otherwise the
    failure is treated as transient (truncated body, missing headers).
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
    ):
        super().__init__(message, cause, context)
        self.status_code = status_code
        if status_code is not None:
            self.category = classify_http_status(status_code)
        else:
            self.category = ErrorCategory.TRANSIENT


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """
    Classify HTTP status code into error category.

    Args:
        status_code: HTTP response status

    Returns:
        Appropriate ErrorCategory
    """
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code == 401:
        return ErrorCategory.AUTH

    if status_code in (408, 429):
        return ErrorCategory.TRANSIENT

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT  # Client errors, won't fix with retry

    if status_code >= 500:
        return ErrorCategory.TRANSIENT  # Server errors, may recover

    return ErrorCategory.UNKNOWN


def classify_exception(exc: Exception) -> ErrorCategory:
    """
    Classify an exception into error category.

    Args:
        exc: Exception to classify

    Returns:
        Appropriate ErrorCategory
    """
    # Already classified
    if isinstance(exc, CacheError):
        return exc.category

    exc_type = type(exc).__name__.lower()
    exc_str = str(exc).lower()

    connection_markers = (
        "connectionerror",
        "connection refused",
        "connection reset",
        "connection aborted",
        "serverdisconnected",
        "name resolution",
        "broken pipe",
    )
    if any(m in exc_type or m in exc_str for m in connection_markers):
        return ErrorCategory.TRANSIENT

    if "timeout" in exc_type or "timeout" in exc_str:
        return ErrorCategory.TRANSIENT

    if "401" in exc_str or "authenticationfailed" in exc_str:
        return ErrorCategory.AUTH

    if "403" in exc_str or "forbidden" in exc_str:
        return ErrorCategory.PERMANENT

    if "404" in exc_str or "blobnotfound" in exc_str:
        return ErrorCategory.PERMANENT

    return ErrorCategory.UNKNOWN


def error_for_status(
    status_code: int,
    message: str,
    context: Optional[dict] = None,
) -> CacheError:
    """
    Build the typed exception for a failed HTTP response.

    Args:
        status_code: HTTP response status
        message: Error description
        context: Additional context to include

    Returns:
        CacheError subclass instance matching the status
    """
    context = dict(context or {})
    context["http_status"] = status_code

    if status_code == 401:
        return AuthError(message, context=context)
    if status_code == 403:
        return ForbiddenError(message, context=context)
    if status_code == 404:
        return NotFoundError(message, context=context)
    if status_code == 429:
        return ThrottlingError(message, context=context)
    if status_code in (502, 503, 504):
        return ServiceUnavailableError(message, context=context)
    return DownloadError(message, status_code=status_code, context=context)
