# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation (CACHE_BACKEND)."""

from __future__ import annotations

from imagematch.cache.base_cache_store import BaseCacheStore
from imagematch.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to Settings() values.

    Returns:
        Configured BaseCacheStore implementation.

    Raises:
        ValueError: Unknown backend name.
        CacheError: Storage cannot be opened.
    """
    settings = settings or Settings()
    backend = settings.cache_backend

    if backend == "sqlite":
        from imagematch.cache.sqlite_store import SqliteCacheStore
        return SqliteCacheStore(db_path=settings.cache_db_path)

    if backend == "json":
        from imagematch.cache.json_store import JsonCacheStore
        return JsonCacheStore(cache_root=settings.cache_root)

    raise ValueError(f"Unsupported cache backend: {backend!r}")
