"""
Structured logging module.

Configure once at startup from the loaded configuration:
    from build_cache.logging import setup_logging_from_config
    setup_logging_from_config()

Import directly from sub-modules:
    from build_cache.logging.setup import get_logger, setup_logging
    from build_cache.logging.utilities import log_with_context, log_exception
    from build_cache.logging.context import set_log_context
"""

from build_cache.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)
from build_cache.logging.setup import (
    get_logger,
    setup_logging,
    setup_logging_from_config,
)
from build_cache.logging.utilities import (
    LoggedClass,
    log_exception,
    log_with_context,
    logged_operation,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "setup_logging_from_config",
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    "log_with_context",
    "log_exception",
    "logged_operation",
    "LoggedClass",
]
