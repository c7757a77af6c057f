"""
Download progress tracking.

Transports that fetch an archive in segments report bytes received per
segment; DownloadProgress aggregates them and logs throughput on a timer
while the download runs.
"""

import asyncio
import logging
import time
from typing import Dict, Optional

from build_cache.constants import PROGRESS_DISPLAY_INTERVAL_SECONDS
from build_cache.logging.setup import get_logger
from build_cache.logging.utilities import log_with_context

logger = get_logger(__name__)


class DownloadProgress:
    """
    Progress of a segmented download.

    Usage:
        progress = DownloadProgress(content_length)
        progress.start_display_timer()
        try:
            ...
            progress.set_received_bytes(segment_index, n)
        finally:
            await progress.stop_display_timer()
    """

    def __init__(
        self,
        content_length: int,
        display_interval: float = PROGRESS_DISPLAY_INTERVAL_SECONDS,
    ):
        self.content_length = content_length
        self.display_interval = display_interval
        self.start_time = time.monotonic()
        self._segment_bytes: Dict[int, int] = {}
        self._timer: Optional[asyncio.Task] = None

    def set_received_bytes(self, segment_index: int, received_bytes: int) -> None:
        """Record how many bytes of a segment have arrived so far."""
        self._segment_bytes[segment_index] = received_bytes

    def get_transferred_bytes(self) -> int:
        return sum(self._segment_bytes.values())

    def is_done(self) -> bool:
        return self.get_transferred_bytes() >= self.content_length

    def _throughput_mb_per_sec(self) -> float:
        elapsed = time.monotonic() - self.start_time
        if elapsed <= 0:
            return 0.0
        return self.get_transferred_bytes() / (1024 * 1024) / elapsed

    def display(self) -> None:
        """Log current progress."""
        transferred = self.get_transferred_bytes()
        percentage = (
            100.0 * transferred / self.content_length if self.content_length else 100.0
        )
        log_with_context(
            logger,
            logging.INFO,
            f"Received {transferred} of {self.content_length} "
            f"({percentage:.1f}%), {self._throughput_mb_per_sec():.1f} MBs/sec",
            bytes_downloaded=transferred,
            content_length=self.content_length,
        )

    async def _display_loop(self) -> None:
        while not self.is_done():
            await asyncio.sleep(self.display_interval)
            self.display()

    def start_display_timer(self) -> None:
        """Start periodic progress logging on the running event loop."""
        if self._timer is None:
            self._timer = asyncio.ensure_future(self._display_loop())

    async def stop_display_timer(self) -> None:
        """Stop periodic logging and log a final summary."""
        if self._timer is not None:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None

        log_with_context(
            logger,
            logging.INFO,
            "Download finished",
            bytes_downloaded=self.get_transferred_bytes(),
            content_length=self.content_length,
            duration_ms=round((time.monotonic() - self.start_time) * 1000, 2),
        )
