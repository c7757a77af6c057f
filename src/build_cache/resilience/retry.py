"""
Retry with backoff for async transport calls.

Only errors classified as retryable are retried; everything else is raised
on the first attempt. The last error is raised unchanged once attempts run
out.
"""

import asyncio
import functools
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from build_cache.errors import CacheError, ErrorCategory, ThrottlingError, classify_exception
from build_cache.logging.setup import get_logger
from build_cache.logging.utilities import log_exception

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """
    Retry policy.

    Attributes:
        max_attempts: Total attempts including the first one
        base_delay: Delay before the second attempt, in seconds
        max_delay: Upper bound for any delay, in seconds
        exponential_base: Delay multiplier per attempt (1.0 = fixed delay)
        jitter: Randomize delays by +/- 25%
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True

    def get_delay(self, attempt: int, error: Optional[Exception] = None) -> float:
        """
        Delay before the next attempt.

        Args:
            attempt: Zero-based index of the attempt that just failed
            error: The failure, used to honor Retry-After on throttling

        Returns:
            Seconds to sleep
        """
        if isinstance(error, ThrottlingError) and error.retry_after:
            return min(error.retry_after, self.max_delay)

        delay = min(self.base_delay * (self.exponential_base**attempt), self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.75, 1.25)
        return delay


def is_retryable(error: Exception) -> bool:
    """Whether an error should be retried under any policy."""
    if isinstance(error, CacheError):
        return error.is_retryable
    return classify_exception(error) in (ErrorCategory.TRANSIENT, ErrorCategory.UNKNOWN)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig,
    name: str = "operation",
) -> T:
    """
    Run an async operation under a retry policy.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        config: Retry policy
        name: Operation name for logs

    Returns:
        The operation's result

    Raises:
        The last error once attempts are exhausted, or the first
        non-retryable error
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            attempt += 1
            if attempt >= config.max_attempts or not is_retryable(e):
                raise

            delay = config.get_delay(attempt - 1, e)
            log_exception(
                logger,
                e,
                f"{name} failed, retrying",
                level=logging.WARNING,
                include_traceback=False,
                attempt=attempt,
                max_attempts=config.max_attempts,
                delay_seconds=round(delay, 2),
            )
            await asyncio.sleep(delay)


def with_retry(
    config: Optional[RetryConfig] = None,
    config_factory: Optional[Callable[[], RetryConfig]] = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator applying retry_async to a coroutine function.

    Args:
        config: Fixed retry policy
        config_factory: Called per invocation to build the policy (for
            policies read from runtime configuration)

    Example:
        @with_retry(config=RetryConfig(max_attempts=5, base_delay=1.0))
        async def fetch_segment(...):
            ...
    """
    if config is None and config_factory is None:
        config = DEFAULT_RETRY

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            policy = config_factory() if config_factory is not None else config
            return await retry_async(
                lambda: func(*args, **kwargs),
                policy,
                name=func.__name__,
            )

        return wrapper

    return decorator


DEFAULT_RETRY = RetryConfig(max_attempts=3, base_delay=1.0, max_delay=30.0)
