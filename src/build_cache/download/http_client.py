"""
Single-stream HTTP transport.

One GET, body streamed to disk. Works for any location, so it is the
fallback for every non-blob location and whenever the blob transports are
disabled.
"""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Optional, Union

import aiofiles
import aiohttp

from build_cache.config import get_config
from build_cache.constants import SOCKET_TIMEOUT_MS, STREAM_CHUNK_SIZE
from build_cache.errors import ConnectionError as CacheConnectionError
from build_cache.errors import DownloadError, error_for_status
from build_cache.errors import TimeoutError as CacheTimeoutError
from build_cache.logging.setup import get_logger
from build_cache.logging.utilities import log_with_context
from build_cache.resilience import RetryConfig, retry_async
from build_cache.security import sanitize_error_message, sanitize_url

logger = get_logger(__name__)

ArchivePath = Union[str, "os.PathLike[str]"]


def create_session(
    timeout: Optional[aiohttp.ClientTimeout] = None,
    max_connections: int = 100,
    max_connections_per_host: int = 10,
) -> aiohttp.ClientSession:
    """
    Create an aiohttp session with a bounded connection pool.

    Bodies are written exactly as served, so automatic decompression is
    off and byte counts match Content-Length and Range offsets.

    Args:
        timeout: Session-wide timeout (default: socket read timeout only)
        max_connections: Total connection pool size
        max_connections_per_host: Per-host connection limit

    Returns:
        New ClientSession; the caller owns and must close it
    """
    connector = aiohttp.TCPConnector(
        limit=max_connections,
        limit_per_host=max_connections_per_host,
    )
    return aiohttp.ClientSession(
        connector=connector,
        auto_decompress=False,
        timeout=timeout
        or aiohttp.ClientTimeout(total=None, sock_read=SOCKET_TIMEOUT_MS / 1000),
    )


def get_http_retry_config() -> RetryConfig:
    """Fixed-delay retry policy from the client configuration."""
    http_retry = get_config().http_retry
    return RetryConfig(
        max_attempts=http_retry.max_attempts,
        base_delay=http_retry.delay_seconds,
        max_delay=http_retry.delay_seconds,
        exponential_base=1.0,
        jitter=False,
    )


async def ensure_parent_dir(archive_path: Path) -> None:
    """Create the destination's parent directory if needed."""
    await asyncio.to_thread(archive_path.parent.mkdir, parents=True, exist_ok=True)


async def _stream_to_file(response: aiohttp.ClientResponse, archive_path: Path) -> int:
    """Write a response body to disk in chunks. Returns bytes written."""
    bytes_written = 0
    async with aiofiles.open(archive_path, "wb") as f:
        async for chunk in response.content.iter_chunked(STREAM_CHUNK_SIZE):
            await f.write(chunk)
            bytes_written += len(chunk)
    return bytes_written


async def _download_once(
    session: aiohttp.ClientSession,
    archive_location: str,
    archive_path: Path,
) -> int:
    """One download attempt. Raises typed errors; returns bytes written."""
    try:
        async with session.get(archive_location) as response:
            if not 200 <= response.status < 300:
                raise error_for_status(
                    response.status,
                    f"Cache download failed with HTTP {response.status}",
                    context={"archive_location": sanitize_url(archive_location)},
                )

            expected_length = response.content_length
            bytes_written = await _stream_to_file(response, archive_path)
    except asyncio.TimeoutError as e:
        raise CacheTimeoutError("Cache download timed out", cause=e)
    except aiohttp.ClientError as e:
        raise CacheConnectionError(
            f"Connection error: {sanitize_error_message(str(e))}", cause=e
        )

    if expected_length is not None and bytes_written != expected_length:
        raise DownloadError(
            f"Incomplete download. Expected file size: {expected_length}, "
            f"actual file size: {bytes_written}"
        )
    return bytes_written


async def download_cache_http_client(
    archive_location: str,
    archive_path: ArchivePath,
) -> None:
    """
    Download an archive with a single streamed GET.

    The whole request is retried under the configured HTTP retry policy.

    Args:
        archive_location: Archive URL
        archive_path: Destination file

    Raises:
        CacheError: Typed failure (HTTP status, timeout, connection,
            incomplete body) after retries are exhausted
    """
    destination = Path(archive_path)
    await ensure_parent_dir(destination)

    start = time.monotonic()
    async with create_session() as session:
        bytes_written = await retry_async(
            lambda: _download_once(session, archive_location, destination),
            get_http_retry_config(),
            name="download_cache_http_client",
        )

    log_with_context(
        logger,
        logging.DEBUG,
        "Archive downloaded",
        archive_location=archive_location,
        bytes_downloaded=bytes_written,
        duration_ms=round((time.monotonic() - start) * 1000, 2),
    )
