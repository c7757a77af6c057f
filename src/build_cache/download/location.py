"""Archive location classification."""

from enum import Enum
from urllib.parse import urlparse

from build_cache.constants import BLOB_STORAGE_HOST_SUFFIX


class LocationKind(Enum):
    """Where a cache archive is stored."""

    BLOB_STORAGE = "blob_storage"
    GENERIC_HTTP = "generic_http"


def classify_location(archive_location: str) -> LocationKind:
    """
    Classify an archive location by its hostname.

    Azure Blob Storage hosts (*.blob.core.windows.net) are eligible for the
    blob transports. Everything else, including locations that cannot be
    parsed or carry no hostname, is generic HTTP.

    Args:
        archive_location: Archive URL

    Returns:
        LocationKind

    Examples:
        >>> classify_location("https://acct.blob.core.windows.net/c/o")
        <LocationKind.BLOB_STORAGE: 'blob_storage'>
        >>> classify_location("https://cache.example.test/download")
        <LocationKind.GENERIC_HTTP: 'generic_http'>
    """
    try:
        hostname = urlparse(archive_location).hostname
    except ValueError:
        return LocationKind.GENERIC_HTTP

    if hostname and hostname.lower().endswith(BLOB_STORAGE_HOST_SUFFIX):
        return LocationKind.BLOB_STORAGE
    return LocationKind.GENERIC_HTTP
