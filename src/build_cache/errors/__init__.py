"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- CacheError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from build_cache.errors.exceptions import (
    # Enums
    ErrorCategory,
    # Base classes
    CacheError,
    AuthError,
    TransientError,
    PermanentError,
    # Transient errors
    ConnectionError,
    TimeoutError,
    ThrottlingError,
    ServiceUnavailableError,
    SegmentTimeoutError,
    # Permanent errors
    NotFoundError,
    ForbiddenError,
    ValidationError,
    ConfigurationError,
    # Download errors
    DownloadError,
    # Classification utilities
    classify_http_status,
    classify_exception,
    error_for_status,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "CacheError",
    "AuthError",
    "TransientError",
    "PermanentError",
    # Transient errors
    "ConnectionError",
    "TimeoutError",
    "ThrottlingError",
    "ServiceUnavailableError",
    "SegmentTimeoutError",
    # Permanent errors
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "ConfigurationError",
    # Download errors
    "DownloadError",
    # Classification utilities
    "classify_http_status",
    "classify_exception",
    "error_for_status",
]
