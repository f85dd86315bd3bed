"""Locate the metadata document inside a package archive.

A package holds exactly one metadata member at `<dir>/<metadata-filename>`.
Subpackages vendored under `<dir>/charts/` carry their own metadata and are
never inspected.
"""

from __future__ import annotations

import io
import logging
import tarfile
import zlib
from pathlib import PurePosixPath

from provsign.exceptions import ExtractionError
from provsign.security import SecurityLimits

logger = logging.getLogger(__name__)


def normalize_member_name(name: str) -> str:
    """Normalize an archive member name to a relative POSIX path."""
    normalized = name.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


def is_metadata_member(name: str, metadata_filename: str, excluded_dir: str = "charts") -> bool:
    """Check whether an archive member is a top-level metadata document.

    Matches `<dir>/<metadata_filename>` exactly: two path segments, the
    first not being the excluded subpackage directory.
    """
    parts = PurePosixPath(normalize_member_name(name)).parts
    if len(parts) != 2:
        return False
    directory, filename = parts
    return filename == metadata_filename and directory != excluded_dir


def find_metadata_members(
    archive: tarfile.TarFile,
    metadata_filename: str,
    excluded_dir: str = "charts",
) -> list[tarfile.TarInfo]:
    """Return all regular-file members matching the metadata pattern."""
    matches = []
    for member in archive.getmembers():
        if not member.isfile():
            continue
        if is_metadata_member(member.name, metadata_filename, excluded_dir):
            logger.debug("Metadata candidate: %s", member.name)
            matches.append(member)
    return matches


def extract_metadata(
    package: bytes,
    metadata_filename: str = "Chart.yaml",
    excluded_dir: str = "charts",
    limits: SecurityLimits | None = None,
) -> bytes:
    """Extract the raw bytes of the sole metadata member of a package.

    Args:
        package: Complete package archive bytes (any tar compression)
        metadata_filename: Fixed filename of the metadata document
        excluded_dir: Subpackage directory that is never inspected
        limits: Security limits for the extracted member

    Returns:
        Metadata bytes, verbatim

    Raises:
        ExtractionError: If the archive cannot be opened or zero or
            several metadata members match
    """
    limits = limits or SecurityLimits()

    try:
        with tarfile.open(fileobj=io.BytesIO(package), mode="r:*") as archive:
            matches = find_metadata_members(archive, metadata_filename, excluded_dir)

            if not matches:
                raise ExtractionError(f"No */{metadata_filename} found in package")
            if len(matches) > 1:
                names = ", ".join(sorted(m.name for m in matches))
                raise ExtractionError(
                    f"Multiple */{metadata_filename} members found in package: {names}"
                )

            member = matches[0]
            if member.size > limits.max_metadata_size:
                raise ExtractionError(
                    f"Metadata member too large: {member.name} "
                    f"({member.size} bytes > {limits.max_metadata_size})"
                )

            fileobj = archive.extractfile(member)
            if fileobj is None:
                raise ExtractionError(f"Cannot extract {member.name}")
            with fileobj:
                data = fileobj.read()
    except (tarfile.TarError, zlib.error, EOFError, OSError) as e:
        raise ExtractionError(f"Cannot open package archive: {e}") from e

    logger.debug("Extracted %s (%d bytes)", member.name, len(data))
    return data
