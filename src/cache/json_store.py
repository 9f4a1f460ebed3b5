# src/cache/json_store.py — v2
"""JSON file-based cache store (CACHE_BACKEND=json).

One JSON document per fingerprint under CACHE_ROOT, sharded by the first two
hex chars. Writes go to a temp file then os.replace, so a reader never sees a
half-written entry.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from imagematch.cache.base_cache_store import BaseCacheStore, CacheError
from imagematch.cache.fingerprint import fingerprint_bytes, is_fingerprint
from imagematch.cache.models import CacheEntry

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(
        self,
        cache_root: Path | str,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._root = Path(cache_root).expanduser()
        self._clock = clock or _utcnow
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"Cannot create cache root {self._root}: {e}") from e

    async def get(self, fingerprint: str) -> CacheEntry | None:
        return await asyncio.to_thread(self._read, self._entry_path(fingerprint))

    async def set(
        self, fingerprint: str, description: str, embedding: list[float]
    ) -> int:
        entry = CacheEntry(
            fingerprint=fingerprint,
            description=description,
            embedding=[float(v) for v in embedding],
            created_at=self._clock(),
        )
        await asyncio.to_thread(self._write, self._entry_path(fingerprint), entry)
        return self.record_id(fingerprint)

    async def delete(self, fingerprint: str) -> bool:
        path = self._entry_path(fingerprint)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheError(f"Cannot delete cache entry {fingerprint}: {e}") from e
        return True

    async def evict_older_than(self, max_age_days: float) -> int:
        if max_age_days < 0:
            raise ValueError("max_age_days must be >= 0")
        cutoff = self._clock() - timedelta(days=max_age_days)
        removed = await asyncio.to_thread(self._evict, cutoff)
        logger.info(
            "Evicted %d cache entries older than %s days", removed, max_age_days
        )
        return removed

    async def count(self) -> int:
        return await asyncio.to_thread(lambda: sum(1 for _ in self._iter_files()))

    def close(self) -> None:
        """Nothing to release; files are opened per call."""

    @property
    def backend_name(self) -> str:
        return "json"

    @property
    def location(self) -> str:
        return str(self._root)

    @staticmethod
    def record_id(fingerprint: str) -> int:
        """Stable integer id for a fingerprint (files carry no row id)."""
        return int(fingerprint_bytes(fingerprint.encode("utf-8"))[:12], 16)

    # --- internals ---

    def _entry_path(self, fingerprint: str) -> Path:
        if not is_fingerprint(fingerprint):
            raise CacheError(f"Invalid fingerprint key: {fingerprint!r}")
        return self._root / fingerprint[:2] / f"{fingerprint}.json"

    def _iter_files(self):
        return self._root.glob("*/*.json")

    @staticmethod
    def _read(path: Path) -> CacheEntry | None:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheError(f"Cannot read cache entry {path.name}: {e}") from e
        except UnicodeDecodeError as e:
            raise CacheError(f"Corrupt cache entry {path.name}: {e}") from e
        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError as e:
            raise CacheError(f"Corrupt cache entry {path.name}: {e}") from e

    @staticmethod
    def _write(path: Path, entry: CacheEntry) -> None:
        # One temp file per writer; the last os.replace wins.
        tmp: Path | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent,
                prefix=f"{path.stem}.", suffix=".tmp", delete=False,
            ) as fh:
                tmp = Path(fh.name)
                fh.write(entry.model_dump_json())
            os.replace(tmp, path)
        except OSError as e:
            if tmp is not None:
                tmp.unlink(missing_ok=True)
            raise CacheError(f"Cannot write cache entry {path.name}: {e}") from e

    def _evict(self, cutoff: datetime) -> int:
        removed = 0
        for path in list(self._iter_files()):
            try:
                created_at = CacheEntry.model_validate_json(
                    path.read_text(encoding="utf-8")
                ).created_at
            except (OSError, UnicodeDecodeError, ValidationError) as e:
                logger.warning("Skipping unreadable cache file %s: %s", path, e)
                continue
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            if created_at < cutoff:
                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    raise CacheError(f"Cannot evict {path.name}: {e}") from e
                removed += 1
        return removed
