# tests/unit/cache/test_unit_fingerprint.py — v2
"""Tests for cache/fingerprint.py — content fingerprinting."""

from __future__ import annotations

import hashlib

import pytest

from imagematch.cache.fingerprint import (
    FINGERPRINT_LENGTH,
    compute_fingerprint,
    fingerprint_bytes,
    is_fingerprint,
)


class TestFingerprintBytes:
    def test_sha256_hex(self):
        assert fingerprint_bytes(b"abc") == hashlib.sha256(b"abc").hexdigest()

    def test_length(self):
        assert len(fingerprint_bytes(b"")) == FINGERPRINT_LENGTH


class TestComputeFingerprint:
    def test_same_bytes_same_fingerprint(self, tmp_path):
        a = tmp_path / "a.jpg"
        b = tmp_path / "nested" / "renamed.png"
        b.parent.mkdir()
        a.write_bytes(b"\xff\xd8same-content")
        b.write_bytes(b"\xff\xd8same-content")
        assert compute_fingerprint(a) == compute_fingerprint(b)

    def test_different_bytes_differ(self, tmp_path):
        a = tmp_path / "a.jpg"
        b = tmp_path / "b.jpg"
        a.write_bytes(b"one")
        b.write_bytes(b"two")
        assert compute_fingerprint(a) != compute_fingerprint(b)

    def test_matches_in_memory_digest(self, tmp_path):
        payload = bytes(range(256)) * 10_000
        path = tmp_path / "big.bin"
        path.write_bytes(payload)
        assert compute_fingerprint(path) == fingerprint_bytes(payload)

    def test_missing_file_raises_oserror(self, tmp_path):
        with pytest.raises(OSError):
            compute_fingerprint(tmp_path / "missing.jpg")


class TestIsFingerprint:
    def test_valid(self):
        assert is_fingerprint(fingerprint_bytes(b"x"))

    @pytest.mark.parametrize("value", ["", "abc", "G" * 64, "A" * 64, "../" + "a" * 61])
    def test_invalid(self, value):
        assert not is_fingerprint(value)
