"""Package provenance (signed, tamper-evident manifests).

Provides canonical provenance manifest generation, OpenPGP clearsigning
and two-step verification of a package against its `.prov` file.
"""

from __future__ import annotations

from provsign.exceptions import (
    DigestMismatch,
    ExitCode,
    ExtractionError,
    MalformedEnvelope,
    PackageIOError,
    ProvenanceError,
    SignatureInvalid,
    SignatureUnknownKey,
    SigningError,
)
from provsign.provenance.clearsign import extract_cleartext
from provsign.provenance.manifest import ProvenanceManifest, checksum_line
from provsign.provenance.signing import (
    GPGSignatureChecker,
    GPGSigner,
    SignatureCheck,
    SignatureChecker,
    Signer,
    sign_package,
)
from provsign.provenance.verifier import ProvenanceVerifier, VerificationResult

__all__ = [
    "DigestMismatch",
    "ExitCode",
    "ExtractionError",
    "GPGSignatureChecker",
    "GPGSigner",
    "MalformedEnvelope",
    "PackageIOError",
    "ProvenanceError",
    "ProvenanceManifest",
    "ProvenanceVerifier",
    "SignatureCheck",
    "SignatureChecker",
    "SignatureInvalid",
    "SignatureUnknownKey",
    "Signer",
    "SigningError",
    "VerificationResult",
    "checksum_line",
    "extract_cleartext",
    "sign_package",
]
