"""
Build cache client: cache version derivation and archive download.

    from build_cache import compute_version, download_cache

    version = compute_version(["node_modules"], CompressionMethod.ZSTD)
    await download_cache(archive_location, "/tmp/cache.tzst", {"download_concurrency": 4})
"""

from build_cache.cache_utils import VersionInputs, compute_version
from build_cache.constants import CompressionMethod
from build_cache.download import CacheDownloader, DownloadTransports, download_cache
from build_cache.options import DownloadOptions, get_download_options

__version__ = "0.1.0"

__all__ = [
    "CacheDownloader",
    "CompressionMethod",
    "DownloadOptions",
    "DownloadTransports",
    "VersionInputs",
    "compute_version",
    "download_cache",
    "get_download_options",
]
