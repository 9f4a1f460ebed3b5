# src/batch/models.py — v2
"""Scan models: ScanEntry, ScanResult."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class ScanEntry(BaseModel):
    """A single image discovered during a directory scan."""

    identifier: str
    file_path: Path
    size_bytes: int = Field(ge=0)


class ScanResult(BaseModel):
    """All images found under one scan root."""

    scan_root: Path
    recursive: bool
    entries: list[ScanEntry] = Field(default_factory=list)

    @property
    def files(self) -> dict[str, Path]:
        """identifier → path mapping consumed by the embedding provider."""
        return {e.identifier: e.file_path for e in self.entries}

    def __len__(self) -> int:
        return len(self.entries)
