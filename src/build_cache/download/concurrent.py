"""
Concurrent ranged HTTP transport.

Reads the archive size from a two-byte range probe, then fetches fixed-size
blocks with ranged GETs, at most download_concurrency in flight, writing
each block at its offset.
"""

import asyncio
import logging
import re
import time
from pathlib import Path
from typing import List, Mapping, NamedTuple, Optional

import aiofiles
import aiohttp

from build_cache.constants import CONCURRENT_BLOCK_SIZE, SEGMENT_MAX_ATTEMPTS
from build_cache.download.http_client import ArchivePath, create_session, ensure_parent_dir
from build_cache.download.progress import DownloadProgress
from build_cache.errors import ConnectionError as CacheConnectionError
from build_cache.errors import DownloadError, error_for_status
from build_cache.errors import TimeoutError as CacheTimeoutError
from build_cache.logging.setup import get_logger
from build_cache.logging.utilities import log_with_context
from build_cache.options import DownloadOptions
from build_cache.resilience import RetryConfig, retry_async
from build_cache.security import sanitize_error_message

logger = get_logger(__name__)

CONTENT_RANGE_PATTERN = re.compile(r"bytes\s+(?:\d+-\d+|\*)/(\d+)")

SEGMENT_RETRY = RetryConfig(
    max_attempts=SEGMENT_MAX_ATTEMPTS,
    base_delay=1.0,
    max_delay=10.0,
)


class RangeResponse(NamedTuple):
    headers: Mapping[str, str]
    body: bytes


class Segment(NamedTuple):
    index: int
    start: int
    end: int  # inclusive

    @property
    def length(self) -> int:
        return self.end - self.start + 1


def plan_segments(content_length: int, block_size: int = CONCURRENT_BLOCK_SIZE) -> List[Segment]:
    """
    Split a content length into inclusive byte ranges.

    >>> plan_segments(10, block_size=4)
    [Segment(index=0, start=0, end=3), Segment(index=1, start=4, end=7), Segment(index=2, start=8, end=9)]
    """
    return [
        Segment(index, start, min(start + block_size, content_length) - 1)
        for index, start in enumerate(range(0, content_length, block_size))
    ]


def parse_content_range_length(content_range: Optional[str]) -> Optional[int]:
    """Total length from a Content-Range header, or None if absent/malformed."""
    if not content_range:
        return None
    match = CONTENT_RANGE_PATTERN.search(content_range)
    if not match:
        return None
    return int(match.group(1))


async def _get(
    session: aiohttp.ClientSession,
    archive_location: str,
    start: int,
    end: int,
) -> RangeResponse:
    """Ranged GET returning headers and body. Raises typed errors."""
    try:
        async with session.get(
            archive_location, headers={"Range": f"bytes={start}-{end}"}
        ) as response:
            if not 200 <= response.status < 300:
                raise error_for_status(
                    response.status,
                    f"Range request bytes={start}-{end} failed with HTTP {response.status}",
                )
            body = await response.read()
            return RangeResponse(response.headers, body)
    except asyncio.TimeoutError as e:
        raise CacheTimeoutError(f"Range request bytes={start}-{end} timed out", cause=e)
    except aiohttp.ClientError as e:
        raise CacheConnectionError(
            f"Connection error: {sanitize_error_message(str(e))}", cause=e
        )


async def get_content_length(
    session: aiohttp.ClientSession, archive_location: str
) -> int:
    """
    Probe the archive size with a two-byte range request.

    Raises:
        DownloadError: If the response carries no usable Content-Range
    """
    response = await retry_async(
        lambda: _get(session, archive_location, 0, 1),
        SEGMENT_RETRY,
        name="get_content_length",
    )
    content_length = parse_content_range_length(response.headers.get("Content-Range"))
    if content_length is None:
        raise DownloadError("Unable to determine content length of downloaded blob.")
    return content_length


async def download_segment(
    session: aiohttp.ClientSession,
    archive_location: str,
    segment: Segment,
) -> bytes:
    """Fetch one segment, retrying transient failures and short reads."""

    async def attempt() -> bytes:
        response = await _get(session, archive_location, segment.start, segment.end)
        data = response.body
        if len(data) != segment.length:
            raise DownloadError(
                f"Incomplete segment {segment.index}. Expected {segment.length} bytes, "
                f"got {len(data)}"
            )
        return data

    return await retry_async(attempt, SEGMENT_RETRY, name="download_segment")


async def download_cache_http_client_concurrent(
    archive_location: str,
    archive_path: ArchivePath,
    options: DownloadOptions,
) -> None:
    """
    Download an archive with concurrent ranged GETs.

    Args:
        archive_location: Archive URL (must honor Range requests)
        archive_path: Destination file
        options: Resolved options; download_concurrency bounds requests in
            flight, timeout_in_ms bounds each request

    Raises:
        CacheError: Typed failure of the size probe or of any segment
    """
    destination = Path(archive_path)
    await ensure_parent_dir(destination)

    concurrency = options.download_concurrency
    timeout = aiohttp.ClientTimeout(total=options.timeout_in_ms / 1000)
    start = time.monotonic()

    async with create_session(
        timeout=timeout,
        max_connections=concurrency,
        max_connections_per_host=concurrency,
    ) as session:
        content_length = await get_content_length(session, archive_location)
        segments = plan_segments(content_length, CONCURRENT_BLOCK_SIZE)

        log_with_context(
            logger,
            logging.DEBUG,
            "Starting concurrent download",
            archive_location=archive_location,
            content_length=content_length,
            segment_count=len(segments),
            download_concurrency=concurrency,
        )

        semaphore = asyncio.Semaphore(concurrency)
        write_lock = asyncio.Lock()
        progress = DownloadProgress(content_length)
        progress.start_display_timer()

        try:
            async with aiofiles.open(destination, "wb") as f:
                await f.truncate(content_length)

                async def fetch_and_write(segment: Segment) -> None:
                    async with semaphore:
                        data = await download_segment(session, archive_location, segment)
                    # seek+write must not interleave across segments
                    async with write_lock:
                        await f.seek(segment.start)
                        await f.write(data)
                    progress.set_received_bytes(segment.index, len(data))

                tasks = [asyncio.ensure_future(fetch_and_write(s)) for s in segments]
                try:
                    await asyncio.gather(*tasks)
                except BaseException:
                    for task in tasks:
                        task.cancel()
                    await asyncio.gather(*tasks, return_exceptions=True)
                    raise
        finally:
            await progress.stop_display_timer()

    log_with_context(
        logger,
        logging.DEBUG,
        "Concurrent download complete",
        archive_location=archive_location,
        bytes_downloaded=content_length,
        segment_count=len(segments),
        duration_ms=round((time.monotonic() - start) * 1000, 2),
    )
