"""
Cache version derivation and archive helpers.

The cache version binds a cache entry to the exact paths, compression
method and OS portability it was created with. It is a SHA-256 hex digest
over the paths (in caller order, unnormalized), an optional compression tag,
an optional platform tag and a salt, joined with "|".
"""

import hashlib
import logging
import os
import re
import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from build_cache.constants import (
    COMPRESSION_TAGS,
    PLATFORM_TAGS,
    VERSION_COMPONENT_DELIMITER,
    VERSION_SALT,
    ArchiveFilename,
    CompressionMethod,
)
from build_cache.errors import ValidationError
from build_cache.logging.setup import get_logger
from build_cache.logging.utilities import log_with_context

logger = get_logger(__name__)

ZSTD_VERSION_PATTERN = re.compile(r"v?(\d+)\.(\d+)\.(\d+)")


def get_compression_tag(
    compression_method: Optional[CompressionMethod],
) -> Optional[str]:
    """
    Map a compression method to its version tag.

    Args:
        compression_method: Method in use, or None when unspecified

    Returns:
        Tag string, or None when the method contributes no tag
    """
    if compression_method is None:
        return None
    return COMPRESSION_TAGS[compression_method]


def get_platform_tag(platform: Optional[str] = None) -> Optional[str]:
    """
    Map a platform identifier (sys.platform style) to its version tag.

    Args:
        platform: Platform identifier (default: the running platform)

    Returns:
        Tag string, or None for platforms that share archives
    """
    return PLATFORM_TAGS.get(platform if platform is not None else sys.platform)


@dataclass(frozen=True)
class VersionInputs:
    """
    Everything a cache version is derived from.

    Attributes:
        paths: Cached path patterns, in caller order
        compression_method: Archive compression (None = unspecified)
        enable_cross_os_archive: Archive may be restored on another OS
        platform: Platform identifier (default: the running platform)
    """

    paths: Tuple[str, ...]
    compression_method: Optional[CompressionMethod] = None
    enable_cross_os_archive: bool = False
    platform: Optional[str] = None

    def components(self) -> Tuple[str, ...]:
        """Ordered components fed to the digest."""
        if not self.paths:
            raise ValidationError("At least one cache path is required")

        components = list(self.paths)

        compression_tag = get_compression_tag(self.compression_method)
        if compression_tag:
            components.append(compression_tag)

        if not self.enable_cross_os_archive:
            platform_tag = get_platform_tag(self.platform)
            if platform_tag:
                components.append(platform_tag)

        components.append(VERSION_SALT)
        return tuple(components)

    def compute(self) -> str:
        """Hex-encoded SHA-256 of the joined components."""
        key_component = VERSION_COMPONENT_DELIMITER.join(self.components())
        return hashlib.sha256(key_component.encode("utf-8")).hexdigest()


def compute_version(
    paths: Sequence[str],
    compression_method: Optional[CompressionMethod] = None,
    enable_cross_os_archive: bool = False,
    platform: Optional[str] = None,
) -> str:
    """
    Compute the cache version for a set of paths.

    Args:
        paths: Non-empty sequence of path patterns; order matters, never mutated
        compression_method: Archive compression (None = unspecified)
        enable_cross_os_archive: Exclude the platform from the version
        platform: Platform identifier override (default: sys.platform)

    Returns:
        64-character lowercase hex digest

    Raises:
        ValidationError: If paths is empty or a bare string

    Example:
        >>> compute_version(["node_modules"], enable_cross_os_archive=True)
        'b3e0c6cb5ecf32614eeb2997d905b9c297046d7cbf69062698f25b14b4cb0985'
    """
    if isinstance(paths, (str, bytes)):
        raise ValidationError(
            "Cache paths must be a sequence of path patterns, not a single string",
            context={"paths": paths},
        )

    inputs = VersionInputs(
        paths=tuple(paths),
        compression_method=compression_method,
        enable_cross_os_archive=enable_cross_os_archive,
        platform=platform,
    )
    version = inputs.compute()

    log_with_context(
        logger,
        logging.DEBUG,
        "Computed cache version",
        version=version,
        path_count=len(inputs.paths),
        compression_method=compression_method.value if compression_method else None,
        enable_cross_os_archive=enable_cross_os_archive,
    )
    return version


def get_zstd_version() -> Optional[str]:
    """
    Return the installed zstd version, or None if zstd is unavailable.

    Runs `zstd --quiet --version`; failures to run it are treated as absent.
    """
    zstd_path = shutil.which("zstd")
    if zstd_path is None:
        return None

    try:
        completed = subprocess.run(
            [zstd_path, "--quiet", "--version"],
            capture_output=True,
            text=True,
            timeout=10,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        log_with_context(
            logger,
            logging.DEBUG,
            "zstd version probe failed",
            error_message=str(e),
        )
        return None

    if completed.returncode != 0:
        return None

    match = ZSTD_VERSION_PATTERN.search(completed.stdout)
    if not match:
        return None
    return ".".join(match.groups())


def resolve_compression_method() -> CompressionMethod:
    """
    Pick the compression method for this runner.

    Returns:
        ZSTD when a zstd binary is available, GZIP otherwise
    """
    version = get_zstd_version()
    method = CompressionMethod.ZSTD if version else CompressionMethod.GZIP
    log_with_context(
        logger,
        logging.DEBUG,
        f"Using compression method {method.value}",
        compression_method=method.value,
    )
    return method


def get_cache_file_name(compression_method: Optional[CompressionMethod]) -> str:
    """Archive file name for a compression method."""
    if compression_method in (
        CompressionMethod.ZSTD,
        CompressionMethod.ZSTD_WITHOUT_LONG,
    ):
        return ArchiveFilename.ZSTD
    return ArchiveFilename.GZIP


def get_archive_file_size_in_bytes(archive_path: Union[str, "os.PathLike[str]"]) -> int:
    """Size of an archive on disk, in bytes."""
    return os.stat(archive_path).st_size
