"""OpenPGP cleartext signature framework (RFC 4880 section 7).

Only the text between the armor headers and the signature block is covered
by the signature, so anything a verifier reads out of a `.prov` file must
come from there and nowhere else.
"""

from __future__ import annotations

from provsign.exceptions import MalformedEnvelope

BEGIN_SIGNED_MESSAGE = "-----BEGIN PGP SIGNED MESSAGE-----"
BEGIN_SIGNATURE = "-----BEGIN PGP SIGNATURE-----"
END_SIGNATURE = "-----END PGP SIGNATURE-----"


def _split_lines(document: bytes) -> list[str]:
    try:
        text = document.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedEnvelope(f"Provenance document is not valid UTF-8: {e}") from e
    return [line.rstrip("\r") for line in text.split("\n")]


def _undash(line: str) -> str:
    if line.startswith("- "):
        return line[2:]
    if line.startswith("-"):
        raise MalformedEnvelope(f"Line not dash-escaped in signed text: {line!r}")
    return line


def extract_cleartext(document: bytes) -> bytes:
    """Return the signed text of a clearsigned document.

    Dash escaping is undone and line endings are normalized to `\\n`. The
    trailing line break before the signature block belongs to the armor and
    is not included.

    Raises:
        MalformedEnvelope: If the document is not exactly one well-formed
            clearsign envelope
    """
    lines = _split_lines(document)

    # Skip leading blank lines only
    pos = 0
    while pos < len(lines) and not lines[pos].strip():
        pos += 1

    if pos >= len(lines) or lines[pos].strip() != BEGIN_SIGNED_MESSAGE:
        raise MalformedEnvelope("Missing BEGIN PGP SIGNED MESSAGE header")
    pos += 1

    # Armor headers ("Hash: SHA256") end at the first blank line
    while pos < len(lines) and lines[pos].strip():
        if ":" not in lines[pos]:
            raise MalformedEnvelope(f"Invalid armor header: {lines[pos]!r}")
        pos += 1
    if pos >= len(lines):
        raise MalformedEnvelope("Missing blank line after armor headers")
    pos += 1

    text_lines = []
    while pos < len(lines) and lines[pos] != BEGIN_SIGNATURE:
        if lines[pos] == BEGIN_SIGNED_MESSAGE:
            raise MalformedEnvelope("Nested or repeated signed message")
        text_lines.append(_undash(lines[pos]))
        pos += 1
    if pos >= len(lines):
        raise MalformedEnvelope("Missing BEGIN PGP SIGNATURE block")

    try:
        end = lines.index(END_SIGNATURE, pos + 1)
    except ValueError:
        raise MalformedEnvelope("Missing END PGP SIGNATURE line") from None

    if any(line.strip() for line in lines[end + 1:]):
        raise MalformedEnvelope("Unexpected content after signature block")

    return "\n".join(text_lines).encode("utf-8")


def cleartext_lines(document: bytes) -> list[str]:
    """Signed text of a clearsigned document, split into lines."""
    return extract_cleartext(document).decode("utf-8").split("\n")
