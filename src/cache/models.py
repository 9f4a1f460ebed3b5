# src/cache/models.py — v2
"""Cache domain models: CacheEntry, CacheStats."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CacheEntry(BaseModel):
    """Description and embedding previously computed for one file content."""

    model_config = ConfigDict(frozen=True)

    fingerprint: str
    description: str
    embedding: list[float]
    created_at: datetime

    @property
    def dimensions(self) -> int:
        return len(self.embedding)


class CacheStats(BaseModel):
    """Snapshot of a cache store for the `cache stats` command."""

    backend: str
    location: str
    total_entries: int = Field(ge=0)
