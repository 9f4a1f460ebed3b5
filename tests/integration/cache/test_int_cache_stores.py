# tests/integration/cache/test_int_cache_stores.py — v1
"""Behaviour shared by every cache backend, run against real storage."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from imagematch.cache.base_cache_store import BaseCacheStore
from imagematch.cache.fingerprint import compute_fingerprint, fingerprint_bytes
from imagematch.cache.json_store import JsonCacheStore
from imagematch.cache.sqlite_store import SqliteCacheStore

FP_A = fingerprint_bytes(b"image a")
FP_B = fingerprint_bytes(b"image b")


@pytest.fixture(params=["sqlite", "json"])
def make_store(request, tmp_path, clock):
    def _make() -> BaseCacheStore:
        if request.param == "sqlite":
            return SqliteCacheStore(tmp_path / "store" / "cache.db", clock=clock)
        return JsonCacheStore(tmp_path / "store", clock=clock)

    return _make


class TestCacheStoreContract:
    @pytest.mark.asyncio
    async def test_persists_across_instances(self, make_store):
        async with make_store() as store:
            await store.set(FP_A, "a red ring", [0.1, 0.2, 0.3])

        async with make_store() as reopened:
            entry = await reopened.get(FP_A)
            assert entry is not None
            assert entry.description == "a red ring"
            assert entry.embedding == [0.1, 0.2, 0.3]
            assert await reopened.count() == 1

    @pytest.mark.asyncio
    async def test_upsert_keeps_single_entry(self, make_store, clock):
        async with make_store() as store:
            first_id = await store.set(FP_A, "old", [1.0, 0.0])
            clock.now += timedelta(hours=1)
            second_id = await store.set(FP_A, "new", [0.0, 1.0])

            entry = await store.get(FP_A)
            assert first_id == second_id
            assert entry.description == "new"
            assert entry.created_at == clock.now
            assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_eviction_by_age(self, make_store, clock):
        async with make_store() as store:
            await store.set(FP_A, "old", [1.0])
            clock.now += timedelta(days=10)
            await store.set(FP_B, "fresh", [1.0])

            assert await store.evict_older_than(5) == 1
            assert await store.get(FP_A) is None
            assert await store.get(FP_B) is not None

    @pytest.mark.asyncio
    async def test_delete_and_stats(self, make_store):
        async with make_store() as store:
            await store.set(FP_A, "a", [1.0])
            assert await store.delete(FP_A) is True
            assert await store.delete(FP_A) is False

            stats = await store.stats()
            assert stats.total_entries == 0
            assert stats.backend == store.backend_name

    @pytest.mark.asyncio
    async def test_concurrent_writers(self, make_store, tmp_path):
        files = []
        for i in range(20):
            path = tmp_path / "files" / f"{i}.bin"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(f"content {i}".encode())
            files.append(path)

        async with make_store() as store:
            fingerprints = [compute_fingerprint(p) for p in files]
            await asyncio.gather(
                *(store.set(fp, f"file {i}", [float(i)]) for i, fp in enumerate(fingerprints))
            )
            assert await store.count() == 20
            entry = await store.get(fingerprints[7])
            assert entry.embedding == [7.0]
