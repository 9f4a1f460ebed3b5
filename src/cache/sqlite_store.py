# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite, default).

Uses stdlib sqlite3. One connection is shared by the whole run; a lock makes
each get/set/evict a single transaction, and the blocking calls run in a
worker thread so the event loop keeps scheduling analysis tasks.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

from imagematch.cache.base_cache_store import BaseCacheStore, CacheError
from imagematch.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS embedding_cache (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    fingerprint TEXT NOT NULL UNIQUE,
    description TEXT NOT NULL,
    embedding TEXT NOT NULL,
    created_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_embedding_cache_created_at
    ON embedding_cache(created_at);
"""

_UPSERT = """
INSERT INTO embedding_cache (fingerprint, description, embedding, created_at)
VALUES (?, ?, ?, ?)
ON CONFLICT(fingerprint) DO UPDATE SET
    description = excluded.description,
    embedding = excluded.embedding,
    created_at = excluded.created_at
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed embedding cache."""

    def __init__(
        self,
        db_path: Path | str,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._db_path = Path(db_path).expanduser()
        self._clock = clock or _utcnow
        self._lock = threading.Lock()
        self._closed = False
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                str(self._db_path), check_same_thread=False
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise CacheError(f"Cannot open cache database {self._db_path}: {e}") from e
        logger.debug("SQLite cache opened at %s", self._db_path)

    async def get(self, fingerprint: str) -> CacheEntry | None:
        row = await asyncio.to_thread(
            self._run,
            "SELECT fingerprint, description, embedding, created_at "
            "FROM embedding_cache WHERE fingerprint = ?",
            (fingerprint,),
            "one",
        )
        if row is None:
            return None
        return self._row_to_entry(row)

    async def set(
        self, fingerprint: str, description: str, embedding: list[float]
    ) -> int:
        created_at = self._clock().timestamp()
        payload = json.dumps([float(v) for v in embedding])
        return await asyncio.to_thread(
            self._upsert, fingerprint, description, payload, created_at
        )

    async def delete(self, fingerprint: str) -> bool:
        removed = await asyncio.to_thread(
            self._run,
            "DELETE FROM embedding_cache WHERE fingerprint = ?",
            (fingerprint,),
            "rowcount",
        )
        return removed > 0

    async def evict_older_than(self, max_age_days: float) -> int:
        if max_age_days < 0:
            raise ValueError("max_age_days must be >= 0")
        cutoff = self._clock() - timedelta(days=max_age_days)
        removed = await asyncio.to_thread(
            self._run,
            "DELETE FROM embedding_cache WHERE created_at < ?",
            (cutoff.timestamp(),),
            "rowcount",
        )
        logger.info(
            "Evicted %d cache entries older than %s days", removed, max_age_days
        )
        return removed

    async def count(self) -> int:
        row = await asyncio.to_thread(
            self._run, "SELECT COUNT(*) FROM embedding_cache", (), "one"
        )
        return int(row[0]) if row else 0

    def close(self) -> None:
        """Close the database connection (idempotent)."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._conn.close()
        logger.debug("SQLite cache closed: %s", self._db_path)

    @property
    def backend_name(self) -> str:
        return "sqlite"

    @property
    def location(self) -> str:
        return str(self._db_path)

    # --- internals (run in worker threads) ---

    def _run(self, sql: str, params: tuple[Any, ...], fetch: str) -> Any:
        """Execute one statement as one transaction."""
        try:
            with self._lock, self._conn:
                cursor = self._conn.execute(sql, params)
                if fetch == "one":
                    return cursor.fetchone()
                return cursor.rowcount
        except sqlite3.Error as e:
            raise CacheError(f"SQLite cache operation failed: {e}") from e

    def _upsert(
        self, fingerprint: str, description: str, payload: str, created_at: float
    ) -> int:
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    _UPSERT, (fingerprint, description, payload, created_at)
                )
                row = self._conn.execute(
                    "SELECT id FROM embedding_cache WHERE fingerprint = ?",
                    (fingerprint,),
                ).fetchone()
        except sqlite3.Error as e:
            raise CacheError(f"SQLite cache write failed: {e}") from e
        return int(row[0])

    @staticmethod
    def _row_to_entry(row: tuple[Any, ...]) -> CacheEntry:
        fingerprint, description, embedding_json, created_at = row
        try:
            embedding = json.loads(embedding_json)
            if not isinstance(embedding, list):
                raise ValueError("embedding is not a list")
            return CacheEntry(
                fingerprint=fingerprint,
                description=description,
                embedding=embedding,
                created_at=datetime.fromtimestamp(float(created_at), tz=timezone.utc),
            )
        except (ValueError, TypeError) as e:
            raise CacheError(f"Corrupt cache entry {fingerprint}: {e}") from e
