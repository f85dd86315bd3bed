"""Tests for the digest utility."""

from __future__ import annotations

from pathlib import Path

import pytest

from provsign.digest import (
    digest_bytes,
    digest_file,
    format_digest,
    package_digest,
    parse_digest,
)

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
ABC_SHA256 = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


class TestDigestBytes:
    """Test hashing of in-memory data."""

    def test_known_vectors(self):
        """Test against published SHA-256 vectors."""
        assert digest_bytes(b"") == EMPTY_SHA256
        assert digest_bytes(b"abc") == ABC_SHA256

    def test_deterministic(self):
        """Test same input gives same digest."""
        data = b"chart bytes" * 1000
        assert digest_bytes(data) == digest_bytes(data)

    def test_package_digest_prefix(self):
        """Test provenance encoding of a package digest."""
        assert package_digest(b"abc") == f"sha256:{ABC_SHA256}"


class TestDigestFile:
    """Test chunked hashing of files."""

    @pytest.mark.parametrize("chunk_size", [1, 7, 64, 8192, 1 << 20])
    def test_chunk_size_independent(self, tmp_path: Path, chunk_size: int):
        """Test digest of a file does not depend on read chunking."""
        data = bytes(range(256)) * 97
        path = tmp_path / "pkg.tgz"
        path.write_bytes(data)

        assert digest_file(path, chunk_size=chunk_size) == digest_bytes(data)

    def test_invalid_chunk_size(self, tmp_path: Path):
        """Test non-positive chunk size is rejected."""
        path = tmp_path / "pkg.tgz"
        path.write_bytes(b"x")

        with pytest.raises(ValueError):
            digest_file(path, chunk_size=0)


class TestDigestEncoding:
    """Test sha256:<hex> formatting and parsing."""

    def test_format_and_parse(self):
        """Test format then parse returns the hex part."""
        assert format_digest(ABC_SHA256) == f"sha256:{ABC_SHA256}"
        assert parse_digest(f"sha256:{ABC_SHA256}") == ABC_SHA256

    @pytest.mark.parametrize(
        "value",
        [
            ABC_SHA256,
            f"sha512:{ABC_SHA256}",
            f"sha256:{ABC_SHA256.upper()}",
            f"sha256:{ABC_SHA256[:-1]}",
            f"sha256:{ABC_SHA256} ",
            "sha256:",
        ],
    )
    def test_parse_rejects_malformed(self, value: str):
        """Test malformed digests are rejected."""
        with pytest.raises(ValueError):
            parse_digest(value)

    def test_format_rejects_uppercase(self):
        """Test only lowercase hex is accepted."""
        with pytest.raises(ValueError):
            format_digest(ABC_SHA256.upper())
