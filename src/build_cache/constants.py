"""Constants shared across the cache client."""

from enum import Enum
from typing import Dict


class CompressionMethod(Enum):
    """
    Archive compression method.

    The value is the tag mixed into the cache version (see COMPRESSION_TAGS).
    """

    NONE = "none"
    GZIP = "gzip"
    # zstd without long-distance matching, for runners whose zstd lacks --long
    ZSTD_WITHOUT_LONG = "zstd-without-long"
    ZSTD = "zstd"


# Tag appended to the version components. An unspecified method adds no
# component, so it hashes like a legacy, untagged archive.
COMPRESSION_TAGS: Dict[CompressionMethod, str] = {
    CompressionMethod.NONE: "none",
    CompressionMethod.GZIP: "gzip",
    CompressionMethod.ZSTD_WITHOUT_LONG: "zstd-without-long",
    CompressionMethod.ZSTD: "zstd",
}

# Platform tag appended when cross-OS archives are disabled.
# Platforms without an entry contribute no tag.
PLATFORM_TAGS: Dict[str, str] = {
    "win32": "windows-only",
}

# Bumped when the cache entry layout changes incompatibly
VERSION_SALT = "1.0"
VERSION_COMPONENT_DELIMITER = "|"


class ArchiveFilename:
    GZIP = "cache.tgz"
    ZSTD = "cache.tzst"


# Hostname suffix of Azure Blob Storage accounts
BLOB_STORAGE_HOST_SUFFIX = ".blob.core.windows.net"

# Download defaults
DEFAULT_DOWNLOAD_CONCURRENCY = 8
DEFAULT_TIMEOUT_IN_MS = 30 * 1000
DEFAULT_SEGMENT_TIMEOUT_IN_MS = 10 * 60 * 1000

# Socket read timeout for the single-stream HTTP transport
SOCKET_TIMEOUT_MS = 5000

# Ranged HTTP transport
CONCURRENT_BLOCK_SIZE = 4 * 1024 * 1024  # 4MB
SEGMENT_MAX_ATTEMPTS = 5

# Storage SDK transport
SDK_SEGMENT_SIZE = 128 * 1024 * 1024  # 128MB

# Chunk size when streaming a response body to disk
STREAM_CHUNK_SIZE = 8 * 1024 * 1024  # 8MB

# HTTP retry defaults (whole-request retries in the single-stream transport)
DEFAULT_RETRY_ATTEMPTS = 2
DEFAULT_RETRY_DELAY_SECONDS = 5.0

# Progress reporting interval
PROGRESS_DISPLAY_INTERVAL_SECONDS = 1.0
