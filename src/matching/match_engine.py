# src/matching/match_engine.py — v1
"""Group join images under base images by embedding similarity.

Every join image is compared with every base image. A join keeps its
``top_n`` best bases whose similarity reaches ``min_similarity``; ties go to
the lexically smaller base id. Groups are then built per base. This is not a
one-to-one assignment: a base can absorb several joins (several photos of the
same product), and a join can land under up to ``top_n`` bases.

Output ordering is fully deterministic for a given input.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

import numpy as np

from imagematch.matching.models import (
    EmbeddingRecord,
    MatchCandidate,
    MatchOutcome,
    MatchResult,
)
from imagematch.matching.similarity import MatchError, cosine_similarity_matrix

logger = logging.getLogger(__name__)

Embeddings = Mapping[str, Sequence[float]]


class MatchEngine:
    """Top-N / threshold matcher.

    Args:
        top_n: Maximum bases kept per join (>= 1).
        min_similarity: Inclusive threshold in [-1, 1].
        max_per_base: Optional cap on joins per base group (best kept).
            None leaves groups unbounded.
    """

    def __init__(
        self,
        top_n: int = 5,
        min_similarity: float = 0.75,
        max_per_base: int | None = None,
    ) -> None:
        if top_n < 1:
            raise MatchError("top_n must be >= 1")
        if not -1.0 <= min_similarity <= 1.0:
            raise MatchError("min_similarity must be within [-1, 1]")
        if max_per_base is not None and max_per_base < 1:
            raise MatchError("max_per_base must be >= 1 when set")
        self.top_n = top_n
        self.min_similarity = min_similarity
        self.max_per_base = max_per_base

    def match(self, base: Embeddings, join: Embeddings) -> MatchOutcome:
        """Match join embeddings against base embeddings.

        Raises:
            MatchError: Embeddings do not all share one dimensionality.
        """
        base_ids = sorted(base)
        join_ids = sorted(join)
        dims = _common_dimensions(base, join)

        groups: dict[str, list[MatchCandidate]] = {}
        if base_ids and join_ids:
            base_matrix = _stack(base, base_ids, dims)
            join_matrix = _stack(join, join_ids, dims)
            sims = cosine_similarity_matrix(join_matrix, base_matrix)

            for j, join_id in enumerate(join_ids):
                row = sims[j]
                # base_ids is sorted, so a stable sort on -similarity breaks
                # ties by base id.
                for b in np.argsort(-row, kind="stable")[: self.top_n]:
                    score = float(row[b])
                    if score < self.min_similarity:
                        break
                    groups.setdefault(base_ids[b], []).append(
                        MatchCandidate(join_id=join_id, similarity=score)
                    )

        results: list[MatchResult] = []
        for base_id in sorted(groups):
            matches = sorted(groups[base_id], key=lambda m: (-m.similarity, m.join_id))
            if self.max_per_base is not None:
                matches = matches[: self.max_per_base]
            results.append(MatchResult(base_id=base_id, matches=matches))

        placed = {m.join_id for r in results for m in r.matches}
        outcome = MatchOutcome(
            results=results,
            unmatched_join=[j for j in join_ids if j not in placed],
            unmatched_base=[b for b in base_ids if b not in groups],
            top_n=self.top_n,
            min_similarity=self.min_similarity,
        )
        logger.info(
            "Matched %d/%d join images into %d base groups "
            "(%d bases unmatched, top_n=%d, min_similarity=%.3f)",
            len(placed), len(join_ids), len(results),
            len(outcome.unmatched_base), self.top_n, self.min_similarity,
        )
        return outcome

    def match_records(
        self, base: Iterable[EmbeddingRecord], join: Iterable[EmbeddingRecord]
    ) -> MatchOutcome:
        """Match two record lists; identifiers must be unique per side."""
        return self.match(_to_mapping(base, "base"), _to_mapping(join, "join"))


def _to_mapping(records: Iterable[EmbeddingRecord], label: str) -> dict[str, list[float]]:
    mapping: dict[str, list[float]] = {}
    for record in records:
        if record.identifier in mapping:
            raise MatchError(f"Duplicate {label} identifier {record.identifier!r}")
        mapping[record.identifier] = record.embedding
    return mapping


def _common_dimensions(base: Embeddings, join: Embeddings) -> int:
    """Check every vector shares one length before any comparison."""
    dims: int | None = None
    first_id = ""
    for collection, label in ((base, "base"), (join, "join")):
        for identifier, vector in collection.items():
            size = len(vector)
            if size == 0:
                raise MatchError(f"Empty embedding for {label} {identifier!r}")
            if dims is None:
                dims, first_id = size, identifier
            elif size != dims:
                raise MatchError(
                    f"Dimension mismatch: {label} {identifier!r} has {size} "
                    f"dimensions, {first_id!r} has {dims}"
                )
    return dims or 0


def _stack(embeddings: Embeddings, ids: list[str], dims: int) -> np.ndarray:
    matrix = np.asarray([embeddings[i] for i in ids], dtype=np.float64)
    return matrix.reshape(len(ids), dims)
