"""Failure taxonomy for signing and verification.

Every error carries a stable exit code so callers (and the CLI) can tell
"untrusted key" apart from "broken signature" or "package was modified".
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ExitCode(IntEnum):
    """Process exit codes for provenance operations."""

    OK = 0
    GENERAL_ERROR = 1
    IO_ERROR = 2
    DIGEST_MISMATCH = 3
    EXTRACTION_ERROR = 4
    SIGNATURE_INVALID = 5
    SIGNATURE_UNKNOWN_KEY = 6
    SIGNING_FAILED = 7


class ProvenanceError(Exception):
    """Base class for all provenance failures."""

    exit_code: ExitCode = ExitCode.GENERAL_ERROR

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "error": type(self).__name__,
            "exit_code": int(self.exit_code),
            "message": str(self),
        }


class PackageIOError(ProvenanceError):
    """Package or provenance file could not be read."""

    exit_code = ExitCode.IO_ERROR


class ExtractionError(ProvenanceError):
    """Metadata member could not be located in the package archive."""

    exit_code = ExitCode.EXTRACTION_ERROR


class SignatureInvalid(ProvenanceError):
    """Signature check failed (bad signature, untrusted or malformed envelope)."""

    exit_code = ExitCode.SIGNATURE_INVALID


class MalformedEnvelope(SignatureInvalid):
    """Provenance document is not a well-formed clearsign envelope."""


class SignatureUnknownKey(ProvenanceError):
    """The signing key is not present in the keyring."""

    exit_code = ExitCode.SIGNATURE_UNKNOWN_KEY

    def __init__(self, message: str, key_id: str | None = None) -> None:
        super().__init__(message)
        self.key_id = key_id

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["key_id"] = self.key_id
        return result


class DigestMismatch(ProvenanceError):
    """Package bytes do not match the digest recorded in the signed manifest."""

    exit_code = ExitCode.DIGEST_MISMATCH

    def __init__(self, filename: str, expected: str | None, computed: str) -> None:
        self.filename = filename
        self.expected = expected
        self.computed = computed
        super().__init__(
            f"SHA verify error: {computed} does not match provenance for {filename} "
            f"(expected: {expected or 'no entry'})"
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result.update({
            "filename": self.filename,
            "expected": self.expected,
            "computed": self.computed,
        })
        return result


class SigningError(ProvenanceError):
    """The signer could not produce a clearsigned document."""

    exit_code = ExitCode.SIGNING_FAILED


class ConfigError(ProvenanceError):
    """Invalid configuration."""
