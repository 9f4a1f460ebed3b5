# src/cache/fingerprint.py — v3
"""Content fingerprinting for cache keys.

The fingerprint is a SHA-256 digest of the raw file bytes. Name, path and
mtime play no part, so a renamed or moved file keeps its cache entry.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

FINGERPRINT_LENGTH = 64

_CHUNK_SIZE = 1024 * 1024


def fingerprint_bytes(raw_bytes: bytes) -> str:
    """SHA-256 hex digest of in-memory bytes."""
    return hashlib.sha256(raw_bytes).hexdigest()


def compute_fingerprint(file_path: Path | str) -> str:
    """Fingerprint a file's content.

    Reads the whole file in 1 MiB chunks so large originals never sit in
    memory twice.

    Args:
        file_path: File to hash.

    Returns:
        64-char lowercase hex digest.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    digest = hashlib.sha256()
    with open(file_path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def is_fingerprint(value: str) -> bool:
    """Whether value looks like a fingerprint produced by this module."""
    if len(value) != FINGERPRINT_LENGTH:
        return False
    try:
        int(value, 16)
    except ValueError:
        return False
    return value == value.lower()
