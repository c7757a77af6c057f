"""
Azure Blob Storage SDK transport.

Downloads the blob in large segments through the storage SDK, which splits
each segment into parallel range requests itself. A segment that outlives
segment_timeout_in_ms aborts the whole download.
"""

import asyncio
import logging
import time
from pathlib import Path

import aiofiles
from azure.core.exceptions import AzureError, HttpResponseError
from azure.storage.blob.aio import BlobClient

from build_cache.constants import SDK_SEGMENT_SIZE, SEGMENT_MAX_ATTEMPTS
from build_cache.download.http_client import ArchivePath, ensure_parent_dir
from build_cache.download.progress import DownloadProgress
from build_cache.errors import CacheError, DownloadError, SegmentTimeoutError, error_for_status
from build_cache.errors import ConnectionError as CacheConnectionError
from build_cache.logging.setup import get_logger
from build_cache.logging.utilities import log_with_context
from build_cache.options import DownloadOptions
from build_cache.security import sanitize_error_message

logger = get_logger(__name__)


def _translate_azure_error(exc: AzureError, action: str) -> CacheError:
    """Map an SDK error onto the client's error hierarchy."""
    message = f"{action} failed: {sanitize_error_message(str(exc.message or exc))}"
    if isinstance(exc, HttpResponseError) and exc.status_code:
        return error_for_status(exc.status_code, message)
    return CacheConnectionError(message, cause=exc)


def create_blob_client(archive_location: str, options: DownloadOptions) -> BlobClient:
    """
    Build a blob client for a pre-signed archive URL.

    Args:
        archive_location: Blob URL including its SAS token
        options: Resolved options; timeout_in_ms bounds each SDK request

    Returns:
        Async BlobClient; the caller owns and must close it
    """
    return BlobClient.from_blob_url(
        archive_location,
        read_timeout=options.timeout_in_ms / 1000,
        retry_total=SEGMENT_MAX_ATTEMPTS,
    )


async def _download_segment(
    client: BlobClient,
    offset: int,
    length: int,
    options: DownloadOptions,
) -> bytes:
    async def read() -> bytes:
        downloader = await client.download_blob(
            offset=offset,
            length=length,
            max_concurrency=options.download_concurrency,
        )
        return await downloader.readall()

    try:
        return await asyncio.wait_for(read(), timeout=options.segment_timeout_in_ms / 1000)
    except asyncio.TimeoutError as e:
        raise SegmentTimeoutError(
            "Aborting cache download as the download time exceeded the timeout.",
            cause=e,
            context={"offset": offset, "length": length},
        )
    except AzureError as e:
        raise _translate_azure_error(e, f"Segment download at offset {offset}")


async def download_cache_storage_sdk(
    archive_location: str,
    archive_path: ArchivePath,
    options: DownloadOptions,
) -> None:
    """
    Download an archive through the Azure Blob Storage SDK.

    Args:
        archive_location: Blob URL including its SAS token
        archive_path: Destination file
        options: Resolved options; download_concurrency sets SDK parallelism
            per segment, segment_timeout_in_ms bounds each segment

    Raises:
        SegmentTimeoutError: A segment exceeded segment_timeout_in_ms
        CacheError: Typed failure of a properties or download request
    """
    destination = Path(archive_path)
    await ensure_parent_dir(destination)
    start = time.monotonic()

    async with create_blob_client(archive_location, options) as client:
        try:
            properties = await client.get_blob_properties()
        except AzureError as e:
            raise _translate_azure_error(e, "Reading blob properties")

        content_length = properties.size
        if content_length is None or content_length < 0:
            raise DownloadError("Unable to determine content length of downloaded blob.")

        log_with_context(
            logger,
            logging.DEBUG,
            "Starting storage SDK download",
            archive_location=archive_location,
            content_length=content_length,
            download_concurrency=options.download_concurrency,
            segment_timeout_in_ms=options.segment_timeout_in_ms,
        )

        progress = DownloadProgress(content_length)
        progress.start_display_timer()
        try:
            async with aiofiles.open(destination, "wb") as f:
                offset = 0
                segment_index = 0
                while offset < content_length:
                    length = min(SDK_SEGMENT_SIZE, content_length - offset)
                    data = await _download_segment(client, offset, length, options)
                    await f.write(data)
                    progress.set_received_bytes(segment_index, len(data))
                    offset += length
                    segment_index += 1
        finally:
            await progress.stop_display_timer()

    log_with_context(
        logger,
        logging.DEBUG,
        "Storage SDK download complete",
        archive_location=archive_location,
        bytes_downloaded=content_length,
        duration_ms=round((time.monotonic() - start) * 1000, 2),
    )
