# src/cache/base_cache_store.py — v2
"""Abstract cache store interface.

Stores are keyed strictly by content fingerprint. Every method is a single
atomic operation; there are no transactions spanning calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType

from imagematch.cache.models import CacheEntry, CacheStats


class CacheError(Exception):
    """Storage-layer failure on a single cache operation."""


class BaseCacheStore(ABC):
    """Unified interface for embedding cache backends.

    Usable as an async context manager so the storage handle is released on
    every exit path::

        async with SqliteCacheStore(db_path) as cache:
            entry = await cache.get(fingerprint)
    """

    @abstractmethod
    async def get(self, fingerprint: str) -> CacheEntry | None:
        """Retrieve the entry for a fingerprint, None when absent.

        Raises:
            CacheError: On storage failure or a corrupt record.
        """

    @abstractmethod
    async def set(
        self, fingerprint: str, description: str, embedding: list[float]
    ) -> int:
        """Upsert an entry (last write wins, created_at refreshed).

        Returns:
            Backend record id.

        Raises:
            CacheError: On storage failure.
        """

    @abstractmethod
    async def delete(self, fingerprint: str) -> bool:
        """Invalidate one entry. Returns True if something was removed."""

    @abstractmethod
    async def evict_older_than(self, max_age_days: float) -> int:
        """Delete entries created before now - max_age_days.

        Returns:
            Number of entries removed.
        """

    @abstractmethod
    async def count(self) -> int:
        """Number of stored entries."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying storage handle."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Backend identifier (sqlite, json)."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable storage location."""

    async def stats(self) -> CacheStats:
        return CacheStats(
            backend=self.backend_name,
            location=self.location,
            total_entries=await self.count(),
        )

    async def __aenter__(self) -> BaseCacheStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
