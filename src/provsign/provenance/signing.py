"""OpenPGP clearsigning of provenance manifests.

Signing and signature checking are capabilities: anything that can
clearsign a byte buffer (or check a clearsigned one against a keyring) can
be plugged in. The default implementations drive GnuPG through python-gnupg
and use the configuration in `ProvenanceConfig`:
- gnupghome: keyring directory (default: gpg's own default)
- signing_key: explicit key selection (`gpg -u`)
- passphrase / interactive: batch mode with loopback pinentry, or let the
  gpg agent prompt
"""

from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import gnupg

from provsign.config import ProvenanceConfig
from provsign.exceptions import SignatureInvalid, SignatureUnknownKey, SigningError
from provsign.provenance.manifest import ProvenanceManifest

logger = logging.getLogger(__name__)

# python-gnupg status for a signature made by a key missing from the keyring
STATUS_NO_PUBLIC_KEY = "no public key"


@dataclass(frozen=True)
class SignatureCheck:
    """Outcome of a successful signature check."""

    valid: bool
    key_id: str | None = None
    fingerprint: str | None = None
    username: str | None = None
    status: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "valid": self.valid,
            "key_id": self.key_id,
            "fingerprint": self.fingerprint,
            "username": self.username,
            "status": self.status,
        }


class Signer(ABC):
    """Capability that clearsigns a plaintext buffer."""

    @abstractmethod
    def clearsign(self, plaintext: bytes) -> bytes:
        """Return an OpenPGP clearsign envelope around `plaintext`.

        Raises:
            SigningError: If no signature could be produced
        """


class SignatureChecker(ABC):
    """Capability that checks a clearsigned document against a keyring."""

    @abstractmethod
    def check(self, document: bytes) -> SignatureCheck:
        """Check the signature of a clearsigned document.

        Returns:
            SignatureCheck with `valid=True`

        Raises:
            SignatureUnknownKey: If the signing key is not in the keyring
            SignatureInvalid: For any other failure
        """


def _open_gpg(config: ProvenanceConfig, use_agent: bool = False) -> gnupg.GPG:
    """Create a python-gnupg handle for the configured binary and keyring."""
    return gnupg.GPG(
        gpgbinary=config.gpg_binary,
        gnupghome=config.gnupghome,
        use_agent=use_agent,
    )


class GPGSigner(Signer):
    """Clearsign with GnuPG."""

    def __init__(self, config: ProvenanceConfig | None = None) -> None:
        self.config = config or ProvenanceConfig()

    def _extra_args(self, gpg: gnupg.GPG) -> list[str]:
        args: list[str] = []
        # --local-user, unlike --default-key, fails when the key is missing
        if self.config.signing_key:
            args.extend(["--local-user", self.config.signing_key])
        if self.config.interactive:
            return args

        args.extend(["--quiet", "--batch"])
        # python-gnupg adds loopback itself when it pipes a passphrase
        if self.config.passphrase is None and getattr(gpg, "version", None) and gpg.version >= (2, 1):
            args.extend(["--pinentry-mode", "loopback"])
        return args

    def _key_fingerprints(self, gpg: gnupg.GPG) -> set[str]:
        """Fingerprints (primary and subkeys) of the secret keys matching `signing_key`."""
        fingerprints: set[str] = set()
        for key in gpg.list_keys(True, keys=self.config.signing_key):
            fingerprints.add(key.get("fingerprint") or "")
            for subkey in key.get("subkeys") or []:
                if len(subkey) > 2 and subkey[2]:
                    fingerprints.add(subkey[2])
        return {fp.upper() for fp in fingerprints if fp}

    def clearsign(self, plaintext: bytes) -> bytes:
        try:
            gpg = _open_gpg(self.config, use_agent=self.config.interactive)
        except (OSError, ValueError) as e:
            raise SigningError(f"Cannot run {self.config.gpg_binary}: {e}") from e

        allowed: set[str] = set()
        if self.config.signing_key:
            allowed = self._key_fingerprints(gpg)
            if not allowed:
                raise SigningError(f"No secret key for {self.config.signing_key} in keyring")

        logger.debug(
            "Clearsigning %d bytes (key=%s, interactive=%s)",
            len(plaintext),
            self.config.signing_key or "default",
            self.config.interactive,
        )

        result = gpg.sign(
            plaintext,
            passphrase=self.config.passphrase,
            clearsign=True,
            extra_args=self._extra_args(gpg),
        )

        if not result or not result.data:
            detail = getattr(result, "status", None) or "no signature produced"
            raise SigningError(f"gpg clearsign failed: {detail}")

        if allowed and (result.fingerprint or "").upper() not in allowed:
            raise SigningError(
                f"gpg signed with key {result.fingerprint}, not the requested {self.config.signing_key}"
            )

        logger.info("Signed with key %s", result.fingerprint)
        return bytes(result.data)


class GPGSignatureChecker(SignatureChecker):
    """Check clearsigned documents with GnuPG."""

    def __init__(self, config: ProvenanceConfig | None = None) -> None:
        self.config = config or ProvenanceConfig()

    def check(self, document: bytes) -> SignatureCheck:
        try:
            gpg = _open_gpg(self.config)
        except (OSError, ValueError) as e:
            raise SignatureInvalid(f"Cannot run {self.config.gpg_binary}: {e}") from e

        verified = gpg.verify(document)

        if verified.status == STATUS_NO_PUBLIC_KEY:
            raise SignatureUnknownKey(
                f"Signing key {verified.key_id} not found in keyring",
                key_id=verified.key_id,
            )
        if not verified.valid:
            raise SignatureInvalid(f"Signature verification failed: {verified.status or 'no valid signature'}")

        return SignatureCheck(
            valid=True,
            key_id=verified.key_id,
            fingerprint=verified.fingerprint,
            username=verified.username,
            status=verified.status,
        )


def write_atomic(path: Path, data: bytes) -> None:
    """Write `data` to `path` so that a partial file never appears at `path`."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def sign_package(
    package_path: Path,
    signer: Signer,
    output_path: Path | None = None,
    config: ProvenanceConfig | None = None,
) -> Path:
    """Build the manifest for a package, clearsign it and write the `.prov` file.

    Args:
        package_path: Package archive to sign
        signer: Signer capability
        output_path: Where to write the provenance file (default: `<pkg>.prov`)
        config: Archive layout and limits

    Returns:
        Path to the provenance file

    Raises:
        PackageIOError: If the package cannot be read
        ExtractionError: If the metadata member cannot be located
        SigningError: If the signer fails
    """
    config = config or ProvenanceConfig()
    package_path = Path(package_path)
    if output_path is None:
        output_path = config.provenance_path(package_path)

    manifest = ProvenanceManifest.build(package_path, config)
    logger.info("Signing %s (%s)", package_path.name, manifest.describe())
    signed = signer.clearsign(manifest.render())

    try:
        write_atomic(Path(output_path), signed)
    except OSError as e:
        raise SigningError(f"Cannot write provenance file {output_path}: {e}") from e

    logger.info("Wrote provenance for %s to %s", package_path.name, output_path)
    return Path(output_path)
