"""Provenance verification for tamper detection.

Verification is two independent checks that must both pass:
1. The `.prov` envelope carries a valid signature from a key in the keyring.
2. The signed manifest lists the exact digest of the package under test.

A valid signature over a stale manifest, or over a manifest for different
package bytes, fails the second check.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from provsign.config import ProvenanceConfig
from provsign.digest import package_digest
from provsign.exceptions import DigestMismatch, SignatureInvalid
from provsign.provenance.clearsign import cleartext_lines
from provsign.provenance.manifest import CHECKSUM_INDENT, checksum_line
from provsign.provenance.signing import SignatureCheck, SignatureChecker
from provsign.security import safe_read_file

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    """Result of a successful verification."""

    filename: str
    digest: str
    signature: SignatureCheck
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def valid(self) -> bool:
        return self.signature.valid

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "valid": self.valid,
            "filename": self.filename,
            "digest": self.digest,
            "signature": self.signature.to_dict(),
            "timestamp": self.timestamp,
        }

    def write_json(self, path: Path) -> None:
        """Write to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, sort_keys=True)


def declared_digest(lines: list[str], filename: str) -> str | None:
    """Digest the manifest declares for `filename`, if any line names it.

    Used only to report what was expected on a mismatch; the verdict
    itself is an exact line match.
    """
    prefix = f"{CHECKSUM_INDENT}{filename}: "
    for line in lines:
        if line.startswith(prefix):
            return line[len(prefix):].strip()
    return None


class ProvenanceVerifier:
    """Verifier for package provenance documents."""

    def __init__(
        self,
        checker: SignatureChecker,
        config: ProvenanceConfig | None = None,
    ) -> None:
        self.checker = checker
        self.config = config or ProvenanceConfig()

    def verify(
        self,
        package_path: Path,
        provenance_path: Path | None = None,
    ) -> VerificationResult:
        """Verify a package against its provenance document.

        Args:
            package_path: Package archive under test
            provenance_path: Clearsigned provenance file (default: `<pkg>.prov`)

        Returns:
            VerificationResult

        Raises:
            PackageIOError: If either file cannot be read
            SignatureInvalid: If the signature does not verify
            SignatureUnknownKey: If the signing key is not in the keyring
            DigestMismatch: If the signed manifest does not list the package digest
        """
        package_path = Path(package_path)
        if provenance_path is None:
            provenance_path = self.config.provenance_path(package_path)
        provenance_path = Path(provenance_path)
        limits = self.config.limits

        document = safe_read_file(provenance_path, limits)

        # Signature first; manifest content is not trusted before this passes
        signature = self.checker.check(document)
        if not signature.valid:
            raise SignatureInvalid(f"Signature check failed for {provenance_path}: {signature.status}")
        logger.debug("Signature valid for %s (key %s)", provenance_path, signature.key_id)

        computed = package_digest(safe_read_file(package_path, limits))

        filename = package_path.name
        lines = cleartext_lines(document)
        if checksum_line(filename, computed) not in lines:
            expected = declared_digest(lines, filename)
            logger.warning(
                "Digest mismatch for %s: computed %s, provenance declares %s",
                filename,
                computed,
                expected,
            )
            raise DigestMismatch(filename, expected, computed)

        logger.info("Verified %s (%s)", filename, computed)
        return VerificationResult(filename=filename, digest=computed, signature=signature)

    def verify_and_report(
        self,
        package_path: Path,
        output_path: Path,
        provenance_path: Path | None = None,
    ) -> VerificationResult:
        """Verify and write a JSON report of the successful result."""
        result = self.verify(package_path, provenance_path)
        result.write_json(output_path)
        return result
