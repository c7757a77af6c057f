"""
Download dispatcher.

Selects exactly one transport for an archive location and invokes it:

    location kind + resolved options -> DownloadStrategy -> transport call

The routing rules live in one ordered table (first match wins):

    1. not a blob storage location      -> HTTP_CLIENT
    2. use_azure_sdk disabled           -> HTTP_CLIENT
    3. concurrent_blob_downloads off    -> STORAGE_SDK
    4. otherwise                        -> HTTP_CLIENT_CONCURRENT

Transports are injected as a capability set so callers (and tests) can
substitute their own. Transport failures propagate unchanged; the
dispatcher never retries.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, Tuple

from build_cache.config import CacheClientConfig, get_config
from build_cache.download.http_client import ArchivePath
from build_cache.download.location import LocationKind, classify_location
from build_cache.logging.utilities import LoggedClass, logged_operation
from build_cache.options import DownloadOptions, PartialDownloadOptions, get_download_options


class DownloadStrategy(Enum):
    """Transport used to fetch an archive."""

    HTTP_CLIENT = "http_client"
    HTTP_CLIENT_CONCURRENT = "http_client_concurrent"
    STORAGE_SDK = "storage_sdk"


RoutingRule = Tuple[Callable[[LocationKind, DownloadOptions], bool], DownloadStrategy]

ROUTING_TABLE: Sequence[RoutingRule] = (
    (lambda kind, options: kind is not LocationKind.BLOB_STORAGE, DownloadStrategy.HTTP_CLIENT),
    (lambda kind, options: not options.use_azure_sdk, DownloadStrategy.HTTP_CLIENT),
    (lambda kind, options: not options.concurrent_blob_downloads, DownloadStrategy.STORAGE_SDK),
    (lambda kind, options: True, DownloadStrategy.HTTP_CLIENT_CONCURRENT),
)


def select_strategy(kind: LocationKind, options: DownloadOptions) -> DownloadStrategy:
    """
    Pick the transport for a classified location.

    Args:
        kind: Location classification
        options: Resolved download options

    Returns:
        The strategy of the first matching routing rule
    """
    for matches, strategy in ROUTING_TABLE:
        if matches(kind, options):
            return strategy
    # Unreachable: the last rule always matches
    raise AssertionError("routing table has no default rule")


SimpleTransport = Callable[[str, ArchivePath], Awaitable[None]]
OptionsTransport = Callable[[str, ArchivePath, DownloadOptions], Awaitable[None]]


@dataclass(frozen=True)
class DownloadTransports:
    """
    The three transports the dispatcher can invoke.

    Attributes:
        http_client: (location, path) single-stream download
        http_client_concurrent: (location, path, options) ranged download
        storage_sdk: (location, path, options) Azure SDK download
    """

    http_client: SimpleTransport
    http_client_concurrent: OptionsTransport
    storage_sdk: OptionsTransport

    @classmethod
    def default(cls) -> "DownloadTransports":
        """Transports shipped with the client."""
        # azure-storage-blob is imported only when the shipped transports are built
        from build_cache.download.concurrent import download_cache_http_client_concurrent
        from build_cache.download.http_client import download_cache_http_client
        from build_cache.download.storage_sdk import download_cache_storage_sdk

        return cls(
            http_client=download_cache_http_client,
            http_client_concurrent=download_cache_http_client_concurrent,
            storage_sdk=download_cache_storage_sdk,
        )


class CacheDownloader(LoggedClass):
    """
    Routes archive downloads to one transport.

    Usage:
        downloader = CacheDownloader()
        await downloader.download(archive_location, "/tmp/cache.tzst")

    Tests inject fakes:
        downloader = CacheDownloader(transports=DownloadTransports(
            http_client=fake_http, http_client_concurrent=fake_concurrent,
            storage_sdk=fake_sdk,
        ))
    """

    def __init__(
        self,
        transports: Optional[DownloadTransports] = None,
        config: Optional[CacheClientConfig] = None,
    ):
        super().__init__()
        self.transports = transports or DownloadTransports.default()
        self.config = config

    @logged_operation(level=logging.DEBUG)
    async def download(
        self,
        archive_location: str,
        archive_path: ArchivePath,
        options: Optional[PartialDownloadOptions] = None,
    ) -> None:
        """
        Download an archive with the transport selected for its location.

        Args:
            archive_location: Archive URL
            archive_path: Destination file, passed to the transport unchanged
            options: Partial download options, merged over defaults

        Raises:
            ValidationError: If options has an unknown or out-of-range field
            Whatever the selected transport raises, unchanged
        """
        resolved = get_download_options(options, config=self.config or get_config())
        kind = classify_location(archive_location)
        strategy = select_strategy(kind, resolved)

        self._log(
            logging.DEBUG,
            "Selected download strategy",
            archive_location=archive_location,
            location_kind=kind.value,
            strategy=strategy.value,
            download_concurrency=resolved.download_concurrency,
        )

        if strategy is DownloadStrategy.HTTP_CLIENT:
            await self.transports.http_client(archive_location, archive_path)
        elif strategy is DownloadStrategy.STORAGE_SDK:
            await self.transports.storage_sdk(archive_location, archive_path, resolved)
        else:
            await self.transports.http_client_concurrent(
                archive_location, archive_path, resolved
            )


async def download_cache(
    archive_location: str,
    archive_path: ArchivePath,
    options: Optional[PartialDownloadOptions] = None,
    *,
    transports: Optional[DownloadTransports] = None,
) -> None:
    """
    Download a cache archive to archive_path.

    Args:
        archive_location: Archive URL returned by the cache service
        archive_path: Destination file
        options: Partial download options (mapping or DownloadOptions)
        transports: Transport overrides (default: shipped transports)

    Raises:
        Whatever the selected transport raises, unchanged

    Example:
        await download_cache(
            "https://acct.blob.core.windows.net/cache/abc?sig=...",
            "/tmp/cache.tzst",
            {"download_concurrency": 4},
        )
    """
    await CacheDownloader(transports=transports).download(
        archive_location, archive_path, options
    )
