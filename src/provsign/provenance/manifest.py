"""Canonical provenance manifest for a package archive."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from provsign.archive import extract_metadata
from provsign.config import ProvenanceConfig
from provsign.digest import package_digest, parse_digest
from provsign.security import safe_read_file

logger = logging.getLogger(__name__)

# YAML document-end marker separating metadata from the files section
DOCUMENT_END = b"..."
FILES_HEADER = b"files:"
CHECKSUM_INDENT = "  "


def checksum_line(filename: str, digest: str) -> str:
    """Format the files entry for a package: `  <filename>: sha256:<hex>`."""
    parse_digest(digest)
    return f"{CHECKSUM_INDENT}{filename}: {digest}"


@dataclass(frozen=True)
class ProvenanceManifest:
    """Plaintext that gets clearsigned into a `.prov` file.

    Binds the package metadata document (verbatim bytes) to the SHA-256
    digest of the package it came from.
    """

    metadata: bytes
    filename: str
    digest: str

    def __post_init__(self) -> None:
        if not self.filename or "/" in self.filename or "\n" in self.filename:
            raise ValueError(f"filename must be a base filename, got {self.filename!r}")
        parse_digest(self.digest)

    @property
    def checksum_line(self) -> str:
        """The files entry the verifier looks for."""
        return checksum_line(self.filename, self.digest)

    def render(self) -> bytes:
        """Render the canonical manifest bytes.

        Layout:
            <metadata, verbatim>
            <blank line>
            ...
            files:
              <filename>: sha256:<hex>
        """
        metadata = self.metadata
        if not metadata.endswith(b"\n"):
            metadata += b"\n"

        return b"".join([
            metadata,
            b"\n",
            DOCUMENT_END + b"\n",
            FILES_HEADER + b"\n",
            self.checksum_line.encode("utf-8") + b"\n",
        ])

    def metadata_fields(self) -> dict[str, Any]:
        """Parse the metadata document for display.

        Never used for signing or verification, which treat the
        metadata as opaque bytes.
        """
        try:
            data = yaml.safe_load(self.metadata.decode("utf-8"))
        except (UnicodeDecodeError, yaml.YAMLError) as e:
            logger.debug("Metadata of %s is not parseable YAML: %s", self.filename, e)
            return {}
        return data if isinstance(data, dict) else {}

    def describe(self) -> str:
        """Short `name version` label, falling back to the filename."""
        fields = self.metadata_fields()
        name, version = fields.get("name"), fields.get("version")
        if name is None:
            return self.filename
        return f"{name} {version}" if version is not None else str(name)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        fields = self.metadata_fields()
        return {
            "filename": self.filename,
            "digest": self.digest,
            "name": fields.get("name"),
            "version": fields.get("version"),
            "metadata": self.metadata.decode("utf-8", errors="replace"),
        }

    @classmethod
    def from_package_bytes(
        cls,
        package: bytes,
        filename: str,
        config: ProvenanceConfig | None = None,
    ) -> ProvenanceManifest:
        """Build a manifest from package bytes that were already read."""
        config = config or ProvenanceConfig()

        digest = package_digest(package)
        metadata = extract_metadata(
            package,
            metadata_filename=config.metadata_filename,
            excluded_dir=config.excluded_dir,
            limits=config.limits,
        )
        return cls(metadata=metadata, filename=filename, digest=digest)

    @classmethod
    def build(
        cls,
        package_path: Path,
        config: ProvenanceConfig | None = None,
    ) -> ProvenanceManifest:
        """Build the manifest for a package file.

        Args:
            package_path: Path to the package archive
            config: Archive layout and size limits

        Returns:
            ProvenanceManifest

        Raises:
            PackageIOError: If the package cannot be read
            ExtractionError: If the metadata member cannot be located
        """
        config = config or ProvenanceConfig()
        package_path = Path(package_path)

        package = safe_read_file(package_path, config.limits)
        manifest = cls.from_package_bytes(package, package_path.name, config)

        logger.info("Built manifest for %s (%s)", manifest.filename, manifest.digest)
        return manifest
