"""
Archive download.

Components:
    - location: classify archive URLs (blob storage vs generic HTTP)
    - dispatcher: select one transport per download and invoke it
    - http_client: single-stream HTTP transport
    - concurrent: concurrent ranged HTTP transport
    - storage_sdk: Azure Blob Storage SDK transport
    - progress: progress reporting for segmented downloads
"""

from build_cache.download.dispatcher import (
    ROUTING_TABLE,
    CacheDownloader,
    DownloadStrategy,
    DownloadTransports,
    download_cache,
    select_strategy,
)
from build_cache.download.location import LocationKind, classify_location

__all__ = [
    "CacheDownloader",
    "DownloadStrategy",
    "DownloadTransports",
    "LocationKind",
    "ROUTING_TABLE",
    "classify_location",
    "download_cache",
    "select_strategy",
]
