"""
Resilience primitives used inside transports.

The dispatcher itself never retries; transports opt in per request.
"""

from build_cache.resilience.retry import (
    DEFAULT_RETRY,
    RetryConfig,
    is_retryable,
    retry_async,
    with_retry,
)

__all__ = [
    "RetryConfig",
    "DEFAULT_RETRY",
    "is_retryable",
    "retry_async",
    "with_retry",
]
