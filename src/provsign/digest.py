"""SHA-256 content digests in the `sha256:<hex>` provenance encoding.

The same functions are used when signing and when verifying, so the two
sides can never disagree on how a package is hashed.
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

DIGEST_ALGORITHM = "sha256"
DIGEST_PREFIX = f"{DIGEST_ALGORITHM}:"
DEFAULT_CHUNK_SIZE = 8192

_HEX_DIGEST_RE = re.compile(r"^[0-9a-f]{64}$")


def digest_bytes(data: bytes) -> str:
    """Return the lowercase hex SHA-256 of `data`."""
    return hashlib.sha256(data).hexdigest()


def digest_file(path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """Return the lowercase hex SHA-256 of a file, read in chunks.

    The result does not depend on `chunk_size`.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    sha256_hash = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(chunk_size):
            sha256_hash.update(chunk)
    return sha256_hash.hexdigest()


def format_digest(hex_digest: str) -> str:
    """Prefix a hex digest with the algorithm name (`sha256:<hex>`)."""
    if not _HEX_DIGEST_RE.match(hex_digest):
        raise ValueError(f"Not a lowercase SHA-256 hex digest: {hex_digest!r}")
    return f"{DIGEST_PREFIX}{hex_digest}"


def parse_digest(value: str) -> str:
    """Strip the `sha256:` prefix and return the hex part.

    Raises:
        ValueError: If the value is not a well-formed `sha256:<hex>` digest
    """
    if not value.startswith(DIGEST_PREFIX):
        raise ValueError(f"Unsupported digest algorithm: {value!r}")
    hex_digest = value[len(DIGEST_PREFIX):]
    if not _HEX_DIGEST_RE.match(hex_digest):
        raise ValueError(f"Malformed digest: {value!r}")
    return hex_digest


def package_digest(data: bytes) -> str:
    """Digest of complete package bytes in provenance encoding."""
    return format_digest(digest_bytes(data))
