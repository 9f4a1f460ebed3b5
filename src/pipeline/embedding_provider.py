# src/pipeline/embedding_provider.py — v1
"""Turn image files into embeddings, reusing cached results.

For each file:
  1. Fingerprint the content (worker thread).
  2. Look the fingerprint up in the cache. A hit returns immediately.
  3. On a miss, submit ONE limiter task that optimizes the image, asks the
     analysis service for a description, embeds that description and writes
     the entry back to the cache.

Concurrent misses for identical content share the first caller's in-flight
future, so duplicate files in a batch cost one analysis.

Cache trouble never fails a file: a failed read is treated as a miss and a
failed write is logged. Service failures surface as AnalysisError with the
original cause chained; unreadable files surface as OSError.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Mapping

from imagematch.analysis.base_analyzer import AnalysisError
from imagematch.analysis.models import ImageInput
from imagematch.cache.base_cache_store import CacheError
from imagematch.cache.fingerprint import compute_fingerprint
from imagematch.cache.models import CacheEntry
from imagematch.concurrency.limiter import TaskTimeoutError
from imagematch.logging.context import set_collection_context, set_file_context
from imagematch.pipeline.models import (
    CollectionEmbeddings,
    EmbeddingOutcome,
    FileFailure,
)

if TYPE_CHECKING:
    from imagematch.analysis.base_analyzer import BaseImageAnalyzer
    from imagematch.analysis.image_optimizer import ImageOptimizer
    from imagematch.cache.base_cache_store import BaseCacheStore
    from imagematch.concurrency.limiter import ConcurrencyLimiter
    from imagematch.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)


class EmbeddingProvider:
    """Cache-first embedding lookup for image files.

    Args:
        analyzer: Vision service producing descriptions.
        embedder: Text embedding service.
        limiter: Throttle shared by every external call of the run.
        cache: Optional persistent store; None disables caching.
        optimizer: Optional image optimizer; None sends the raw file bytes.
    """

    def __init__(
        self,
        analyzer: BaseImageAnalyzer,
        embedder: BaseEmbedder,
        limiter: ConcurrencyLimiter,
        cache: BaseCacheStore | None = None,
        optimizer: ImageOptimizer | None = None,
    ) -> None:
        self._analyzer = analyzer
        self._embedder = embedder
        self._limiter = limiter
        self._cache = cache
        self._optimizer = optimizer
        self._in_progress: dict[str, asyncio.Future[CacheEntry]] = {}

    async def get_embedding(self, path: Path | str) -> EmbeddingOutcome:
        """Embedding for one file, from cache or freshly computed.

        Raises:
            OSError: File cannot be read.
            AnalysisError: Analysis or embedding service failed, or timed out.
        """
        path = Path(path)
        fingerprint = await asyncio.to_thread(compute_fingerprint, path)

        pending = self._in_progress.get(fingerprint)
        if pending is None:
            cached = await self._lookup(fingerprint)
            if cached is not None:
                logger.debug("Cache hit for %s (%s)", path.name, fingerprint[:12])
                return EmbeddingOutcome(path=path, entry=cached, cache_hit=True)
            pending = self._in_progress.get(fingerprint)

        if pending is not None:
            logger.debug("Awaiting in-flight analysis of %s", fingerprint[:12])
            entry = await asyncio.shield(pending)
            return EmbeddingOutcome(
                path=path, entry=entry, cache_hit=False, deduplicated=True
            )

        future: asyncio.Future[CacheEntry] = asyncio.get_running_loop().create_future()
        future.add_done_callback(_retrieve_exception)
        self._in_progress[fingerprint] = future
        try:
            entry = await self._limiter.execute(
                lambda: self._compute(path, fingerprint)
            )
        except TaskTimeoutError as e:
            error = AnalysisError(f"Analysis of {path.name} timed out: {e}")
            future.set_exception(error)
            raise error from e
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(entry)
        finally:
            self._in_progress.pop(fingerprint, None)

        return EmbeddingOutcome(path=path, entry=entry, cache_hit=False)

    async def embed_collection(
        self, files: Mapping[str, Path], name: str = "collection"
    ) -> CollectionEmbeddings:
        """Embed every file of a collection concurrently.

        Files that fail with OSError or AnalysisError are recorded as
        FileFailure and the rest of the batch carries on.
        """
        set_collection_context(name)
        results = await asyncio.gather(
            *(self._embed_one(identifier, Path(p)) for identifier, p in files.items())
        )

        collection = CollectionEmbeddings(name=name)
        for identifier, outcome, failure in results:
            if outcome is not None:
                collection.outcomes[identifier] = outcome
            if failure is not None:
                collection.failures.append(failure)

        logger.info(
            "Embedded %d/%d %s images (%d cache hits, %d computed, %d failed)",
            len(collection.outcomes), len(files), name,
            collection.cache_hits, collection.computed, len(collection.failures),
        )
        return collection

    async def _embed_one(
        self, identifier: str, path: Path
    ) -> tuple[str, EmbeddingOutcome | None, FileFailure | None]:
        set_file_context(identifier)
        try:
            outcome = await self.get_embedding(path)
        except OSError as e:
            logger.warning("Cannot read %s: %s", path, e)
            return identifier, None, FileFailure(
                identifier=identifier, path=path, error_kind="io_error", message=str(e)
            )
        except AnalysisError as e:
            logger.warning("Analysis failed for %s: %s", path, e)
            return identifier, None, FileFailure(
                identifier=identifier,
                path=path,
                error_kind="analysis_error",
                message=str(e),
            )
        return identifier, outcome, None

    async def _lookup(self, fingerprint: str) -> CacheEntry | None:
        if self._cache is None:
            return None
        try:
            return await self._cache.get(fingerprint)
        except CacheError as e:
            logger.warning("Cache read failed for %s, treating as miss: %s", fingerprint[:12], e)
            return None

    async def _store(self, fingerprint: str, description: str, embedding: list[float]) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.set(fingerprint, description, embedding)
        except CacheError as e:
            logger.warning("Cache write failed for %s: %s", fingerprint[:12], e)

    async def _compute(self, path: Path, fingerprint: str) -> CacheEntry:
        """Body of the limiter task for one cache miss."""
        image = await self._prepare_image(path)

        try:
            description = await self._analyzer.describe(image)
        except AnalysisError:
            raise
        except Exception as e:
            raise AnalysisError(f"Image analysis failed for {path.name}: {e}") from e
        if not description or not description.strip():
            raise AnalysisError(f"Empty description for {path.name}")

        try:
            embedding = await self._embedder.embed_query(description)
        except AnalysisError:
            raise
        except Exception as e:
            raise AnalysisError(f"Embedding failed for {path.name}: {e}") from e
        if not embedding:
            raise AnalysisError(f"Empty embedding for {path.name}")

        await self._store(fingerprint, description, list(embedding))
        logger.debug("Computed embedding for %s (%d dims)", path.name, len(embedding))
        return CacheEntry(
            fingerprint=fingerprint,
            description=description,
            embedding=list(embedding),
            created_at=datetime.now(timezone.utc),
        )

    async def _prepare_image(self, path: Path) -> ImageInput:
        if self._optimizer is not None:
            return await asyncio.to_thread(self._optimizer.optimize, path)
        data = await asyncio.to_thread(path.read_bytes)
        media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return ImageInput(data=data, media_type=media_type, source_id=path.name)


def _retrieve_exception(future: asyncio.Future[CacheEntry]) -> None:
    # Marks the exception as retrieved when no duplicate caller awaited it.
    if not future.cancelled():
        future.exception()
