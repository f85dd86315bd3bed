"""Round-trip tests against a real GnuPG installation.

Skipped when no `gpg` binary is on PATH.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

import gnupg
import pytest

from provsign.config import ProvenanceConfig
from provsign.digest import package_digest
from provsign.exceptions import DigestMismatch, SignatureInvalid, SignatureUnknownKey, SigningError
from provsign.provenance.clearsign import extract_cleartext
from provsign.provenance.manifest import ProvenanceManifest
from provsign.provenance.signing import GPGSignatureChecker, GPGSigner, sign_package
from provsign.provenance.verifier import ProvenanceVerifier

pytestmark = pytest.mark.skipif(shutil.which("gpg") is None, reason="gpg binary not installed")


@pytest.fixture(scope="module")
def gnupghome():
    """Keyring with one unprotected signing key.

    Kept under a short path: gpg-agent socket paths are length limited.
    """
    home = tempfile.mkdtemp(prefix="provsign-gpg-")
    gpg = gnupg.GPG(gnupghome=home)
    key_input = gpg.gen_key_input(
        key_type="RSA",
        key_length=2048,
        name_real="Release Bot",
        name_email="release@example.com",
        no_protection=True,
    )
    key = gpg.gen_key(key_input)
    assert key.fingerprint, key.stderr

    yield home, key.fingerprint
    shutil.rmtree(home, ignore_errors=True)


@pytest.fixture
def config(gnupghome) -> ProvenanceConfig:
    home, fingerprint = gnupghome
    return ProvenanceConfig(gnupghome=home, signing_key=fingerprint)


class TestGPGRoundTrip:
    """Sign and verify with GnuPG."""

    def test_sign_and_verify(self, foo_package: Path, config: ProvenanceConfig, gnupghome):
        """Test verify(package, sign(package)) succeeds with the same keyring."""
        prov = sign_package(foo_package, GPGSigner(config), config=config)

        result = ProvenanceVerifier(GPGSignatureChecker(config), config).verify(foo_package, prov)

        assert result.digest == package_digest(foo_package.read_bytes())
        assert result.signature.fingerprint == gnupghome[1]

    def test_envelope_contains_manifest(self, foo_package: Path, config: ProvenanceConfig):
        """Test the signed text is the canonical manifest."""
        prov = sign_package(foo_package, GPGSigner(config), config=config)

        manifest_lines = ProvenanceManifest.build(foo_package, config).render().split(b"\n")[:6]
        assert extract_cleartext(prov.read_bytes()).split(b"\n")[:6] == manifest_lines

    def test_tampered_package(self, foo_package: Path, config: ProvenanceConfig):
        """Test a flipped byte gives DigestMismatch while the signature holds."""
        sign_package(foo_package, GPGSigner(config), config=config)
        data = bytearray(foo_package.read_bytes())
        data[len(data) // 2] ^= 0xFF
        foo_package.write_bytes(bytes(data))

        with pytest.raises(DigestMismatch):
            ProvenanceVerifier(GPGSignatureChecker(config), config).verify(foo_package)

    def test_tampered_digest_line(self, foo_package: Path, config: ProvenanceConfig):
        """Test editing the digest inside the .prov breaks the signature."""
        prov = sign_package(foo_package, GPGSigner(config), config=config)
        digest = package_digest(foo_package.read_bytes())
        prov.write_text(
            prov.read_text(encoding="utf-8").replace(digest, package_digest(b"evil")),
            encoding="utf-8",
        )

        with pytest.raises(SignatureInvalid):
            ProvenanceVerifier(GPGSignatureChecker(config), config).verify(foo_package)

    def test_unknown_key(self, foo_package: Path, config: ProvenanceConfig):
        """Test a keyring without the signing key reports SignatureUnknownKey."""
        sign_package(foo_package, GPGSigner(config), config=config)
        empty_home = tempfile.mkdtemp(prefix="provsign-empty-")
        try:
            empty = ProvenanceConfig(gnupghome=empty_home)
            with pytest.raises(SignatureUnknownKey):
                ProvenanceVerifier(GPGSignatureChecker(empty), empty).verify(foo_package)
        finally:
            shutil.rmtree(empty_home, ignore_errors=True)

    def test_unknown_signing_key(self, foo_package: Path, gnupghome):
        """Test selecting a key that is not in the keyring fails to sign."""
        config = ProvenanceConfig(gnupghome=gnupghome[0], signing_key="nobody@example.invalid")

        with pytest.raises(SigningError):
            sign_package(foo_package, GPGSigner(config), config=config)

        assert not (foo_package.parent / "foo-0.1.0.tgz.prov").exists()
