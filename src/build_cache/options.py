"""
Download options and the options resolver.

Callers pass partial options (a mapping, or nothing); get_download_options()
merges them over documented defaults into a complete, immutable
DownloadOptions that is handed unchanged to the selected transport.
"""

import logging
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from build_cache.config import CacheClientConfig
from build_cache.constants import (
    DEFAULT_DOWNLOAD_CONCURRENCY,
    DEFAULT_SEGMENT_TIMEOUT_IN_MS,
    DEFAULT_TIMEOUT_IN_MS,
)
from build_cache.errors import ValidationError
from build_cache.logging.setup import get_logger
from build_cache.logging.utilities import log_with_context

logger = get_logger(__name__)


class DownloadOptions(BaseModel):
    """Complete download configuration.

    Attributes:
        use_azure_sdk: Allow the Azure Blob Storage transports for blob locations
        concurrent_blob_downloads: Prefer concurrent ranged HTTP over the SDK
        download_concurrency: Maximum parallel requests/segments in flight
        timeout_in_ms: Per-request timeout
        segment_timeout_in_ms: SDK download aborts if one segment takes longer
        lookup_only: Check for a cache hit without downloading (carried through)

    Example:
        >>> options = DownloadOptions(download_concurrency=4)
        >>> options.use_azure_sdk
        True
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    use_azure_sdk: bool = Field(
        default=True,
        description="Use Azure Blob Storage transports for blob locations",
    )
    concurrent_blob_downloads: bool = Field(
        default=True,
        description="Download blobs with concurrent ranged HTTP requests",
    )
    download_concurrency: int = Field(
        default=DEFAULT_DOWNLOAD_CONCURRENCY,
        description="Maximum number of parallel downloads",
        ge=1,
    )
    timeout_in_ms: int = Field(
        default=DEFAULT_TIMEOUT_IN_MS,
        description="Per-request timeout in milliseconds",
        gt=0,
    )
    segment_timeout_in_ms: int = Field(
        default=DEFAULT_SEGMENT_TIMEOUT_IN_MS,
        description="Per-segment timeout for SDK downloads in milliseconds",
        gt=0,
    )
    lookup_only: bool = Field(
        default=False,
        description="Only check whether a cache entry exists",
    )


PartialDownloadOptions = Union[DownloadOptions, Mapping[str, Any]]


def get_download_options(
    copy: Optional[PartialDownloadOptions] = None,
    *,
    config: Optional[CacheClientConfig] = None,
) -> DownloadOptions:
    """
    Resolve partial options into a complete DownloadOptions.

    Fields that are absent (or None) take their defaults. When config sets a
    segment timeout (SEGMENT_DOWNLOAD_TIMEOUT_MINS), it wins over the
    per-call value. Resolving an already-resolved record returns an equal
    record.

    Args:
        copy: Partial options as a mapping of field names, or DownloadOptions
        config: Client configuration providing environment-level overrides

    Returns:
        Complete, immutable DownloadOptions

    Raises:
        ValidationError: If a field is unknown or out of range
    """
    if isinstance(copy, DownloadOptions):
        overrides = copy.model_dump(exclude_unset=True)
    elif copy:
        overrides = {key: value for key, value in copy.items() if value is not None}
    else:
        overrides = {}

    if config is not None and config.download.segment_timeout_mins is not None:
        overrides["segment_timeout_in_ms"] = (
            config.download.segment_timeout_mins * 60 * 1000
        )

    try:
        options = DownloadOptions(**overrides)
    except PydanticValidationError as e:
        problems = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ValidationError(
            f"Invalid download options: {'; '.join(problems)}",
            cause=e,
            context={"fields": sorted(overrides)},
        )

    log_with_context(
        logger,
        logging.DEBUG,
        "Resolved download options",
        download_concurrency=options.download_concurrency,
        timeout_in_ms=options.timeout_in_ms,
        segment_timeout_in_ms=options.segment_timeout_in_ms,
    )
    return options
