# src/pipeline/orchestrator.py — v2
"""Match pipeline orchestrator.

Drives one matching run:
  1. Scan the base and join directories for images
  2. Open the cache (scoped to the run) and evict stale entries if configured
  3. Embed both collections through one shared limiter
  4. Match join embeddings against base embeddings
  5. Return a PipelineReport

The orchestrator owns the run's ConcurrencyLimiter; every external call made
during the run goes through it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from imagematch.batch.scanner import ImageScanner
from imagematch.cache.base_cache_store import CacheError
from imagematch.concurrency.limiter import ConcurrencyLimiter
from imagematch.config.settings import Settings
from imagematch.logging.context import set_run_context
from imagematch.matching.match_engine import MatchEngine
from imagematch.pipeline.embedding_provider import EmbeddingProvider
from imagematch.pipeline.models import CollectionSummary, PipelineReport

if TYPE_CHECKING:
    from imagematch.analysis.base_analyzer import BaseImageAnalyzer
    from imagematch.analysis.image_optimizer import ImageOptimizer
    from imagematch.cache.base_cache_store import BaseCacheStore
    from imagematch.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)


class MatchPipeline:
    """Top-level orchestrator for a base/join matching run.

    Collaborators left as None are built from settings. An injected cache is
    used as-is and left open; a cache built here is closed when the run ends.

    Args:
        settings: Application settings. Loaded from .env if None.
        analyzer: Image description service.
        embedder: Text embedding service.
        cache: Cache store override.
        optimizer: Image optimizer override.
        limiter: Limiter override (a fresh one per run otherwise).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        analyzer: BaseImageAnalyzer | None = None,
        embedder: BaseEmbedder | None = None,
        cache: BaseCacheStore | None = None,
        optimizer: ImageOptimizer | None = None,
        limiter: ConcurrencyLimiter | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._analyzer = analyzer
        self._embedder = embedder
        self._cache = cache
        self._optimizer = optimizer
        self._limiter = limiter

    async def run(self, base_dir: Path | str, join_dir: Path | str) -> PipelineReport:
        """Execute a full matching run.

        Raises:
            ValueError: A directory does not exist.
            MatchError: Embeddings have inconsistent dimensions.
        """
        s = self._settings
        started_at = datetime.now(timezone.utc)
        t0 = time.monotonic()
        run_id = _generate_run_id()
        set_run_context(run_id)

        engine = MatchEngine(
            top_n=s.match_top_n,
            min_similarity=s.match_min_similarity,
            max_per_base=s.match_max_per_base,
        )
        scanner = ImageScanner(s.image_extensions_list)
        base_scan = scanner.scan(Path(base_dir), recursive=s.recursive_search)
        join_scan = scanner.scan(Path(join_dir), recursive=s.recursive_search)
        logger.info(
            "Run %s: %d base images, %d join images",
            run_id, len(base_scan), len(join_scan),
        )

        limiter = self._limiter or ConcurrencyLimiter(
            max_concurrent=s.max_concurrent_requests,
            request_delay_s=s.request_delay_s,
            task_timeout_s=s.task_timeout_s,
        )

        async with contextlib.AsyncExitStack() as stack:
            cache = self._cache
            if cache is None and s.cache_enabled:
                cache = self._open_cache()
                if cache is not None:
                    await stack.enter_async_context(cache)

            evicted = 0
            if cache is not None and s.cache_max_age_days is not None:
                try:
                    evicted = await cache.evict_older_than(s.cache_max_age_days)
                except CacheError as e:
                    logger.warning("Cache eviction failed: %s", e)

            provider = EmbeddingProvider(
                analyzer=self._analyzer or _default_analyzer(s),
                embedder=self._embedder or _default_embedder(s),
                limiter=limiter,
                cache=cache,
                optimizer=self._optimizer or _default_optimizer(s),
            )
            base, join = await asyncio.gather(
                provider.embed_collection(base_scan.files, "base"),
                provider.embed_collection(join_scan.files, "join"),
            )

        outcome = engine.match_records(base.records, join.records)

        report = PipelineReport(
            run_id=run_id,
            started_at=started_at,
            duration_seconds=round(time.monotonic() - t0, 2),
            base=CollectionSummary.from_embeddings(base_scan.scan_root, len(base_scan), base),
            join=CollectionSummary.from_embeddings(join_scan.scan_root, len(join_scan), join),
            outcome=outcome,
            failures=[*base.failures, *join.failures],
            evicted_entries=evicted,
        )
        logger.info(
            "Run %s complete in %.1fs: %d groups, %d cache hits, %d computed, "
            "%d failures (peak %d concurrent requests)",
            run_id, report.duration_seconds, len(outcome.results),
            report.cache_hits, report.computed, len(report.failures),
            limiter.peak_in_flight,
        )
        return report

    def _open_cache(self) -> BaseCacheStore | None:
        from imagematch.cache.cache_factory import create_cache_store

        try:
            return create_cache_store(self._settings)
        except CacheError as e:
            logger.warning("Cache unavailable, running without it: %s", e)
            return None


def _default_analyzer(settings: Settings) -> BaseImageAnalyzer:
    from imagematch.analysis.analyzer_factory import create_analyzer

    return create_analyzer(settings)


def _default_embedder(settings: Settings) -> BaseEmbedder:
    from imagematch.embeddings.embedder_factory import create_embedder

    return create_embedder(settings)


def _default_optimizer(settings: Settings) -> ImageOptimizer:
    from imagematch.analysis.image_optimizer import ImageOptimizer

    return ImageOptimizer(max_size=settings.max_image_size, quality=settings.image_quality)


def _generate_run_id() -> str:
    """Generate a run ID: yyyymmdd_hhmmss_{uuid4_short}."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{ts}_{uuid.uuid4().hex[:8]}"
