"""Logging setup and configuration."""

import io
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from build_cache.config import CacheClientConfig, get_config
from build_cache.logging.formatters import ConsoleFormatter, JSONFormatter

# Default settings
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5
DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG

# Noisy loggers to suppress
NOISY_LOGGERS = [
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.storage",
    "aiohttp",
]


def get_log_file_path(log_dir: Path, name: str = "build_cache") -> Path:
    """
    Build log file path with a date subfolder.

    Structure: {log_dir}/{YYYY-MM-DD}/{name}_{YYYYMMDD}_p{pid}.log

    The process ID keeps concurrent CI jobs on the same runner from
    writing to the same file.

    Args:
        log_dir: Base log directory
        name: Log file prefix

    Returns:
        Full path to log file
    """
    now = datetime.now()
    filename = f"{name}_{now.strftime('%Y%m%d')}_p{os.getpid()}.log"
    return log_dir / now.strftime("%Y-%m-%d") / filename


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logging(
    name: str = "build_cache",
    log_dir: Optional[Union[Path, str]] = None,
    json_format: Optional[bool] = None,
    console_level: Optional[Union[int, str]] = None,
    file_level: Union[int, str] = DEFAULT_FILE_LEVEL,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    suppress_noisy: bool = True,
) -> logging.Logger:
    """
    Configure logging with a console handler and an optional rotating file.

    CI runners capture stdout, so the console handler is always installed.
    A file handler is added only when a log directory is set:
        logs/2025-01-15/build_cache_20250115_p12345.log

    Arguments left as None come from the loaded configuration
    (BUILD_CACHE_LOG_LEVEL, BUILD_CACHE_LOG_DIR, logging.json_format).

    Args:
        name: Logger name and log file prefix
        log_dir: Directory for log files (default: logging.log_dir, empty = console only)
        json_format: Use JSON format for file logs (default: logging.json_format)
        console_level: Console handler level (default: logging.level)
        file_level: File handler level (default: DEBUG)
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep
        suppress_noisy: Quiet down Azure SDK and HTTP client loggers

    Returns:
        Configured logger instance
    """
    if log_dir is None or json_format is None or console_level is None:
        logging_config = get_config().logging
        if log_dir is None:
            log_dir = logging_config.log_dir
        if json_format is None:
            json_format = logging_config.json_format
        if console_level is None:
            console_level = logging_config.level

    console_formatter = ConsoleFormatter()

    if sys.platform == "win32":
        safe_stdout = io.TextIOWrapper(
            sys.stdout.buffer, encoding="utf-8", errors="replace"
        )
        console_handler = logging.StreamHandler(safe_stdout)
    else:
        console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(_coerce_level(console_level))
    console_handler.setFormatter(console_formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter

    # Remove existing handlers to avoid duplicates on re-init
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    log_file = None
    if log_dir:
        log_file = get_log_file_path(Path(log_dir), name=name)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        if json_format:
            file_formatter: logging.Formatter = JSONFormatter()
        else:
            file_formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
            )

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(_coerce_level(file_level))
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)

    if suppress_noisy:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.debug(f"Logging initialized: file={log_file}, json={json_format}")

    return logger


def setup_logging_from_config(
    config: Optional[CacheClientConfig] = None,
) -> logging.Logger:
    """
    Configure logging from a CacheClientConfig.

    Args:
        config: Configuration to use (default: the loaded configuration)

    Returns:
        Configured logger instance
    """
    config = config or get_config()
    return setup_logging(
        log_dir=config.logging.log_dir,
        json_format=config.logging.json_format,
        console_level=config.logging.level,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Use this instead of logging.getLogger() to ensure consistent naming.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
