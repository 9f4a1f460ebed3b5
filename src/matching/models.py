# src/matching/models.py — v1
"""Matching domain models: EmbeddingRecord, MatchCandidate, MatchResult, MatchOutcome."""

from __future__ import annotations

from pydantic import BaseModel, Field


class EmbeddingRecord(BaseModel):
    """One identifier and its embedding vector."""

    identifier: str
    embedding: list[float]


class MatchCandidate(BaseModel):
    """A join image attached to a base image."""

    join_id: str
    similarity: float = Field(ge=-1.0, le=1.0)


class MatchResult(BaseModel):
    """All join images grouped under one base image, best first."""

    base_id: str
    matches: list[MatchCandidate] = Field(default_factory=list)

    @property
    def join_ids(self) -> list[str]:
        return [m.join_id for m in self.matches]


class MatchOutcome(BaseModel):
    """Complete output of one matching run."""

    results: list[MatchResult] = Field(default_factory=list)
    unmatched_join: list[str] = Field(default_factory=list)
    unmatched_base: list[str] = Field(default_factory=list)
    top_n: int
    min_similarity: float

    @property
    def matched_join_count(self) -> int:
        """Distinct join identifiers placed under at least one base."""
        return len({m.join_id for r in self.results for m in r.matches})

    def result_for(self, base_id: str) -> MatchResult | None:
        for result in self.results:
            if result.base_id == base_id:
                return result
        return None
