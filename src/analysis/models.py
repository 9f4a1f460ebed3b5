# src/analysis/models.py — v1
"""Payload types exchanged with the image analysis service."""

from __future__ import annotations

from pydantic import BaseModel


class ImageInput(BaseModel):
    """Image payload for vision-enabled description calls."""

    data: bytes
    media_type: str
    source_id: str | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)
