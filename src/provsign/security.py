"""Bounded file reads for untrusted package and provenance input.

Provides limits to prevent:
- Resource exhaustion from oversized archives
- Reading through directories or special files by mistake
"""

from __future__ import annotations

import logging
from pathlib import Path

from provsign.exceptions import PackageIOError

logger = logging.getLogger(__name__)

# Default security limits
DEFAULT_MAX_FILE_SIZE = 100 * 1024 * 1024  # 100 MB
DEFAULT_MAX_METADATA_SIZE = 1024 * 1024  # 1 MB


class SecurityLimits:
    """Configurable security limits."""

    def __init__(
        self,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        max_metadata_size: int = DEFAULT_MAX_METADATA_SIZE,
    ) -> None:
        self.max_file_size = max_file_size
        self.max_metadata_size = max_metadata_size


def safe_read_file(path: Path, limits: SecurityLimits | None = None) -> bytes:
    """Read a whole file with size limits.

    The file handle is released before returning.

    Args:
        path: File path
        limits: Security limits

    Returns:
        File contents as bytes

    Raises:
        PackageIOError: If the file is missing, unreadable or too large
    """
    if limits is None:
        limits = SecurityLimits()

    try:
        resolved = path.resolve()
        if not resolved.is_file():
            raise PackageIOError(f"Not a regular file: {path}")

        # Check file size before reading
        size = resolved.stat().st_size
        if size > limits.max_file_size:
            raise PackageIOError(
                f"File too large: {path} ({size} bytes > {limits.max_file_size})"
            )

        # The file may grow after stat(); never read past the limit
        with open(resolved, "rb") as f:
            data = f.read(limits.max_file_size + 1)
    except OSError as e:
        raise PackageIOError(f"Cannot read {path}: {e}") from e

    if len(data) > limits.max_file_size:
        raise PackageIOError(f"File too large: {path} (> {limits.max_file_size} bytes)")

    logger.debug("Read %d bytes from %s", len(data), path)
    return data
