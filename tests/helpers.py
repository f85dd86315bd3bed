"""Shared test helpers: package archives and in-process signing doubles."""

from __future__ import annotations

import base64
import hashlib
import hmac
import io
import tarfile
from pathlib import Path

from provsign.exceptions import SignatureInvalid, SignatureUnknownKey, SigningError
from provsign.provenance.clearsign import (
    BEGIN_SIGNATURE,
    BEGIN_SIGNED_MESSAGE,
    END_SIGNATURE,
    extract_cleartext,
)
from provsign.provenance.signing import SignatureCheck, SignatureChecker, Signer

FOO_CHART_YAML = b"name: foo\nversion: 0.1.0\n"


def build_tgz(path: Path, members: dict[str, bytes], compression: str = "gz") -> Path:
    """Write a tar archive with the given member names and contents."""
    mode = f"w:{compression}" if compression else "w"
    with tarfile.open(path, mode) as archive:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mtime = 1700000000
            archive.addfile(info, io.BytesIO(data))
    return path


class HMACClearsigner(Signer):
    """Produces clearsign-shaped envelopes with an HMAC in place of a signature."""

    def __init__(self, key_id: str, secret: bytes, fail: bool = False) -> None:
        self.key_id = key_id
        self.secret = secret
        self.fail = fail
        self.signed: list[bytes] = []

    def clearsign(self, plaintext: bytes) -> bytes:
        if self.fail:
            raise SigningError("signer unavailable")
        self.signed.append(plaintext)

        text = plaintext.decode("utf-8")
        if text.endswith("\n"):
            text = text[:-1]
        escaped = [f"- {line}" if line.startswith("-") else line for line in text.split("\n")]

        mac = hmac.new(self.secret, text.encode("utf-8"), hashlib.sha256).hexdigest()
        blob = base64.b64encode(f"{self.key_id}:{mac}".encode("ascii")).decode("ascii")

        lines = [
            BEGIN_SIGNED_MESSAGE,
            "Hash: SHA256",
            "",
            *escaped,
            BEGIN_SIGNATURE,
            "",
            blob,
            END_SIGNATURE,
            "",
        ]
        return "\n".join(lines).encode("utf-8")


class HMACChecker(SignatureChecker):
    """Checks envelopes made by HMACClearsigner against a keyring of secrets."""

    def __init__(self, keyring: dict[str, bytes]) -> None:
        self.keyring = keyring

    def check(self, document: bytes) -> SignatureCheck:
        text = extract_cleartext(document)
        lines = document.decode("utf-8").split("\n")
        blob = lines[lines.index(BEGIN_SIGNATURE) + 2]
        key_id, mac = base64.b64decode(blob).decode("ascii").split(":")

        if key_id not in self.keyring:
            raise SignatureUnknownKey(f"No public key {key_id}", key_id=key_id)

        expected = hmac.new(self.keyring[key_id], text, hashlib.sha256).hexdigest()
        if not hmac.compare_digest(expected, mac):
            raise SignatureInvalid("BAD signature")

        return SignatureCheck(
            valid=True,
            key_id=key_id,
            fingerprint=key_id * 2,
            username="Release Bot <release@example.com>",
            status="signature valid",
        )
