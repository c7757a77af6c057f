"""
Cache client configuration.

Loads from an optional YAML file; environment variables override file values.

Environment variables (all optional):
    BUILD_CACHE_CONFIG:            Path of the YAML config file.
    SEGMENT_DOWNLOAD_TIMEOUT_MINS: Per-segment timeout for SDK downloads, in minutes.
    BUILD_CACHE_LOG_LEVEL:         Console log level. Default "INFO".
    BUILD_CACHE_LOG_DIR:           Directory for JSON log files. Default: console only.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from build_cache.constants import DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_DELAY_SECONDS
from build_cache.errors import ConfigurationError

DEFAULT_CONFIG_FILENAME = "build-cache.yaml"


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge overlay into base dict."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DownloadConfig:
    """Download tuning applied on top of per-call options."""

    segment_timeout_mins: Optional[int] = None

    def __post_init__(self):
        env_value = os.getenv("SEGMENT_DOWNLOAD_TIMEOUT_MINS")
        if env_value:
            self.segment_timeout_mins = env_value
        if self.segment_timeout_mins is not None:
            try:
                self.segment_timeout_mins = int(self.segment_timeout_mins)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid segment timeout: {self.segment_timeout_mins!r}", cause=e
                )
            if self.segment_timeout_mins <= 0:
                raise ConfigurationError(
                    f"Segment timeout must be positive, got {self.segment_timeout_mins}"
                )


@dataclass
class HttpRetryConfig:
    """Whole-request retries for the single-stream HTTP transport."""

    max_attempts: int = DEFAULT_RETRY_ATTEMPTS
    delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS

    def __post_init__(self):
        """Ensure proper types from YAML."""
        self.max_attempts = int(self.max_attempts)
        self.delay_seconds = float(self.delay_seconds)
        if self.max_attempts < 1:
            raise ConfigurationError(
                f"max_attempts must be at least 1, got {self.max_attempts}"
            )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    log_dir: str = ""
    json_format: bool = True

    def __post_init__(self):
        self.level = os.getenv("BUILD_CACHE_LOG_LEVEL", self.level).upper()
        self.log_dir = os.getenv("BUILD_CACHE_LOG_DIR", self.log_dir)
        self.json_format = _parse_bool(self.json_format)


@dataclass
class CacheClientConfig:
    """
    Root configuration for the cache client.

    Loads from YAML file with environment variable overrides.
    """

    download: DownloadConfig = field(default_factory=DownloadConfig)
    http_retry: HttpRetryConfig = field(default_factory=HttpRetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _dict_to_config(data: Dict[str, Any]) -> CacheClientConfig:
    """Convert dict to CacheClientConfig with nested dataclasses."""
    try:
        return CacheClientConfig(
            download=DownloadConfig(**data.get("download") or {}),
            http_retry=HttpRetryConfig(**data.get("http_retry") or {}),
            logging=LoggingConfig(**data.get("logging") or {}),
        )
    except TypeError as e:
        raise ConfigurationError(f"Unknown configuration key: {e}", cause=e)


def get_default_config_path() -> Path:
    """Config file path from BUILD_CACHE_CONFIG, else build-cache.yaml in cwd."""
    return Path(os.getenv("BUILD_CACHE_CONFIG", DEFAULT_CONFIG_FILENAME))


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> CacheClientConfig:
    """
    Load configuration from YAML file with optional overrides.

    A missing file is not an error; defaults and environment apply.

    Args:
        config_path: Path to YAML config file (default: get_default_config_path())
        overrides: Dict of overrides to apply after loading

    Returns:
        CacheClientConfig instance

    Raises:
        ConfigurationError: If the file is not valid YAML or holds invalid values
    """
    config_path = config_path or get_default_config_path()

    if config_path.exists():
        with open(config_path, "r") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Invalid YAML in {config_path}", cause=e
                )
    else:
        data = {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    if overrides:
        data = _deep_merge(data, overrides)

    return _dict_to_config(data)


def load_config_from_dict(data: Dict[str, Any]) -> CacheClientConfig:
    """
    Load configuration from a dictionary.

    Useful for testing or programmatic config.
    """
    return _dict_to_config(data)


# Module-level cached config
_config: Optional[CacheClientConfig] = None


def get_config() -> CacheClientConfig:
    """Get or load the singleton config instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset cached config (primarily for testing)."""
    global _config
    _config = None


def set_config(config: CacheClientConfig) -> None:
    """Set the cached config instance (primarily for testing)."""
    global _config
    _config = config
