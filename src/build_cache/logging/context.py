"""Log context propagated through contextvars (safe across asyncio tasks)."""

from contextvars import ContextVar
from typing import Dict, Optional

_operation: ContextVar[Optional[str]] = ContextVar("operation", default=None)
_cache_key: ContextVar[Optional[str]] = ContextVar("cache_key", default=None)


def set_log_context(
    operation: Optional[str] = None,
    cache_key: Optional[str] = None,
) -> None:
    """
    Set context fields injected into every log record.

    Only the arguments that are not None are updated.

    Args:
        operation: Current client operation (restore, download, ...)
        cache_key: Cache key being restored or saved
    """
    if operation is not None:
        _operation.set(operation)
    if cache_key is not None:
        _cache_key.set(cache_key)


def get_log_context() -> Dict[str, Optional[str]]:
    """Return the current log context."""
    return {
        "operation": _operation.get(),
        "cache_key": _cache_key.get(),
    }


def clear_log_context() -> None:
    """Reset all context fields."""
    _operation.set(None)
    _cache_key.set(None)
