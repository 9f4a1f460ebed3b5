# src/matching/similarity.py — v3
"""Cosine similarity on numpy arrays.

sim(u, v) = u·v / (||u|| * ||v||), defined as 0 when either norm is zero.
Results are clipped to [-1, 1] to absorb float rounding.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np


class MatchError(Exception):
    """Embeddings cannot be compared (dimension mismatch, empty vectors) or
    the matcher is misconfigured."""


def cosine_similarity(u: Sequence[float], v: Sequence[float]) -> float:
    """Cosine similarity between two vectors.

    Raises:
        MatchError: Vectors differ in dimensionality.
    """
    a = np.asarray(u, dtype=np.float64)
    b = np.asarray(v, dtype=np.float64)
    if a.ndim != 1 or b.ndim != 1:
        raise MatchError("Embeddings must be one-dimensional vectors")
    if a.shape != b.shape:
        raise MatchError(
            f"Dimension mismatch: {a.shape[0]} vs {b.shape[0]}"
        )
    norm = float(np.linalg.norm(a)) * float(np.linalg.norm(b))
    if norm == 0.0:
        return 0.0
    return float(np.clip(np.dot(a, b) / norm, -1.0, 1.0))


def cosine_similarity_matrix(rows: np.ndarray, cols: np.ndarray) -> np.ndarray:
    """Pairwise cosine similarity between the rows of two matrices.

    Args:
        rows: Array of shape (n, d).
        cols: Array of shape (m, d).

    Returns:
        Array of shape (n, m); entry [i, j] is sim(rows[i], cols[j]).

    Raises:
        MatchError: Inputs are not 2D or their dimensions differ.
    """
    if rows.ndim != 2 or cols.ndim != 2:
        raise MatchError(f"Expected 2D arrays, got {rows.ndim}D and {cols.ndim}D")
    if rows.shape[1] != cols.shape[1]:
        raise MatchError(
            f"Dimension mismatch: {rows.shape[1]} vs {cols.shape[1]}"
        )
    if rows.shape[0] == 0 or cols.shape[0] == 0:
        return np.zeros((rows.shape[0], cols.shape[0]), dtype=np.float64)

    row_norms = np.linalg.norm(rows, axis=1)
    col_norms = np.linalg.norm(cols, axis=1)
    denom = np.outer(row_norms, col_norms)
    dots = rows @ cols.T
    with np.errstate(divide="ignore", invalid="ignore"):
        sims = np.where(denom > 0.0, dots / np.where(denom > 0.0, denom, 1.0), 0.0)
    return np.clip(sims, -1.0, 1.0)
