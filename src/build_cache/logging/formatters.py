"""Log formatters for JSON and console output."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from build_cache.logging.context import get_log_context
from build_cache.security import sanitize_url


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    Sanitizes URLs to remove signatures before logging.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        # Download tracking
        "archive_location",
        "archive_path",
        "location_kind",
        "strategy",
        "download_concurrency",
        "timeout_in_ms",
        "segment_timeout_in_ms",
        "content_length",
        "bytes_downloaded",
        "segment_index",
        "segment_count",
        "duration_ms",
        "http_status",
        # Errors and retries
        "error_category",
        "error_message",
        "attempt",
        "max_attempts",
        "delay_seconds",
        # Versioning
        "version",
        "path_count",
        "compression_method",
        "enable_cross_os_archive",
        # Operation tracking
        "operation",
        "url",
    ]

    # Fields that contain URLs and should be sanitized
    URL_FIELDS = ["archive_location", "url"]

    def _sanitize_value(self, key: str, value: Any) -> Any:
        """Sanitize value if it's a URL field."""
        if key in self.URL_FIELDS and isinstance(value, str):
            return sanitize_url(value)
        return value

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON with sanitized URLs."""
        log_entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
            + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        # Inject context variables
        ctx = get_log_context()
        if ctx["operation"]:
            log_entry["operation"] = ctx["operation"]
        if ctx["cache_key"]:
            log_entry["cache_key"] = ctx["cache_key"]

        # Add source location for DEBUG/ERROR
        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = self._sanitize_value(field, value)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter.

    Includes context when available.
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_log_context()

        parts = [
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            record.levelname,
        ]

        if ctx["operation"]:
            parts.append(f"[{ctx['operation']}]")

        prefix = " - ".join(parts)

        strategy = getattr(record, "strategy", None)
        if strategy:
            return f"{prefix} - [{strategy}] {record.getMessage()}"

        return f"{prefix} - {record.getMessage()}"
