"""
Structured logging helpers.

Fields passed as keyword arguments travel through `extra` so the JSON
formatter can emit them as top-level keys.
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Optional, TypeVar

from build_cache.logging.setup import get_logger
from build_cache.security import sanitize_error_message

F = TypeVar("F", bound=Callable[..., Any])

MAX_ERROR_MESSAGE_LENGTH = 500


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Log with structured context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (strategy, duration_ms, etc.)

    Example:
        log_with_context(
            logger, logging.DEBUG, "Segment downloaded",
            segment_index=3,
            bytes_downloaded=4194304,
        )
    """
    logger.log(level, msg, extra=kwargs)


def log_exception(
    logger: logging.Logger,
    exc: Exception,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **kwargs: Any,
) -> None:
    """
    Log exception with context and optional traceback.

    Automatically extracts error_category from CacheError subclasses.

    Args:
        logger: Logger instance
        exc: Exception to log
        msg: Context message
        level: Log level (default: ERROR)
        include_traceback: Include full traceback (default: True)
        **kwargs: Additional context fields
    """
    error_category = kwargs.get("error_category")
    if error_category is None and hasattr(exc, "category"):
        cat = exc.category
        kwargs["error_category"] = cat.value if hasattr(cat, "value") else str(cat)

    error_msg = sanitize_error_message(str(exc))
    if len(error_msg) > MAX_ERROR_MESSAGE_LENGTH:
        error_msg = error_msg[:MAX_ERROR_MESSAGE_LENGTH] + "..."
    kwargs["error_message"] = error_msg

    if include_traceback:
        logger.log(level, msg, exc_info=exc, extra=kwargs)
    else:
        logger.log(level, msg, extra=kwargs)


def logged_operation(
    level: int = logging.DEBUG,
    log_start: bool = False,
    operation_name: Optional[str] = None,
) -> Callable[[F], F]:
    """
    Decorator for automatic operation logging on class methods.

    Failures are logged and re-raised unchanged.

    Args:
        level: Log level for completion message
        log_start: Also log when operation starts
        operation_name: Override operation name (default: method_name)

    Example:
        class CacheDownloader(LoggedClass):
            @logged_operation(level=logging.DEBUG)
            async def download(self, ...):
                ...
    """

    def decorator(func: F) -> F:
        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(self, *args, **kwargs):
                _logger = getattr(self, "_logger", None) or get_logger(
                    self.__class__.__module__
                )
                full_op = f"{self.__class__.__name__}.{operation_name or func.__name__}"

                if log_start:
                    log_with_context(_logger, level, f"{full_op} starting")

                try:
                    result = await func(self, *args, **kwargs)
                except Exception as e:
                    log_exception(_logger, e, f"{full_op} failed")
                    raise
                log_with_context(_logger, level, f"{full_op} completed")
                return result

            return async_wrapper  # type: ignore

        @functools.wraps(func)
        def sync_wrapper(self, *args, **kwargs):
            _logger = getattr(self, "_logger", None) or get_logger(
                self.__class__.__module__
            )
            full_op = f"{self.__class__.__name__}.{operation_name or func.__name__}"

            if log_start:
                log_with_context(_logger, level, f"{full_op} starting")

            try:
                result = func(self, *args, **kwargs)
            except Exception as e:
                log_exception(_logger, e, f"{full_op} failed")
                raise
            log_with_context(_logger, level, f"{full_op} completed")
            return result

        return sync_wrapper  # type: ignore

    return decorator


class LoggedClass:
    """
    Mixin providing logging infrastructure for classes.

    Provides:
    - self._logger: Logger instance
    - self._log(): Structured log through the class logger
    """

    log_component: Optional[str] = None  # Optional logger name suffix

    def __init__(self, *args, **kwargs):
        logger_name = self.__class__.__module__
        if self.log_component:
            logger_name = f"{logger_name}.{self.log_component}"
        self._logger = get_logger(logger_name)
        super().__init__(*args, **kwargs)

    def _log(self, level: int, msg: str, **extra: Any) -> None:
        log_with_context(self._logger, level, msg, **extra)
