# src/pipeline/models.py — v1
"""Pipeline models: EmbeddingOutcome, FileFailure, CollectionEmbeddings, PipelineReport."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from imagematch.cache.models import CacheEntry
from imagematch.matching.models import EmbeddingRecord, MatchOutcome

ErrorKind = Literal["io_error", "analysis_error"]


class EmbeddingOutcome(BaseModel):
    """Embedding obtained for one file, and where it came from."""

    path: Path
    entry: CacheEntry
    cache_hit: bool
    deduplicated: bool = False

    @property
    def fingerprint(self) -> str:
        return self.entry.fingerprint

    @property
    def embedding(self) -> list[float]:
        return self.entry.embedding


class FileFailure(BaseModel):
    """A file that could not be embedded; the batch carried on without it."""

    identifier: str
    path: Path
    error_kind: ErrorKind
    message: str


class CollectionEmbeddings(BaseModel):
    """Embeddings for one collection (base or join) of images."""

    name: str
    outcomes: dict[str, EmbeddingOutcome] = Field(default_factory=dict)
    failures: list[FileFailure] = Field(default_factory=list)

    @property
    def records(self) -> list[EmbeddingRecord]:
        """One record per embedded file, ordered by identifier."""
        return [
            EmbeddingRecord(identifier=k, embedding=self.outcomes[k].embedding)
            for k in sorted(self.outcomes)
        ]

    @property
    def cache_hits(self) -> int:
        return sum(1 for o in self.outcomes.values() if o.cache_hit)

    @property
    def computed(self) -> int:
        """Files analysed by the external services during this run."""
        return sum(
            1 for o in self.outcomes.values() if not o.cache_hit and not o.deduplicated
        )

    @property
    def deduplicated(self) -> int:
        """Files that reused another in-flight analysis of identical content."""
        return sum(1 for o in self.outcomes.values() if o.deduplicated)


class CollectionSummary(BaseModel):
    """Per-collection counters for the report."""

    name: str
    root: Path
    files_found: int
    embedded: int
    cache_hits: int
    computed: int
    deduplicated: int
    failed: int

    @classmethod
    def from_embeddings(
        cls, root: Path, files_found: int, embeddings: CollectionEmbeddings
    ) -> CollectionSummary:
        return cls(
            name=embeddings.name,
            root=root,
            files_found=files_found,
            embedded=len(embeddings.outcomes),
            cache_hits=embeddings.cache_hits,
            computed=embeddings.computed,
            deduplicated=embeddings.deduplicated,
            failed=len(embeddings.failures),
        )


class PipelineReport(BaseModel):
    """Result of one `match` run, serialisable for a downstream placement tool."""

    run_id: str
    started_at: datetime
    duration_seconds: float
    base: CollectionSummary
    join: CollectionSummary
    outcome: MatchOutcome
    failures: list[FileFailure] = Field(default_factory=list)
    evicted_entries: int = 0

    @property
    def cache_hits(self) -> int:
        return self.base.cache_hits + self.join.cache_hits

    @property
    def computed(self) -> int:
        return self.base.computed + self.join.computed
