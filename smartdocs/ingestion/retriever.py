"""
Brute-force cosine top-k over the full stored vector set.

Scores are ``dot(a, b) / (|a| * |b| + 1e-8)`` so all-zero vectors score 0
instead of raising. Ranking is a stable descending sort: equal scores keep
ascending index order, which is insertion order in the store.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

EPSILON = 1e-8


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine over the first ``min(len(a), len(b))`` dimensions."""
    n = min(len(a), len(b))
    x = np.asarray(a[:n], dtype=np.float64)
    y = np.asarray(b[:n], dtype=np.float64)
    return float(np.dot(x, y) / (np.linalg.norm(x) * np.linalg.norm(y) + EPSILON))


def cosine_scores(query: Sequence[float], vectors: Sequence[Sequence[float]]) -> np.ndarray:
    """Similarity of *query* against every vector, in input order."""
    if len(vectors) == 0:
        return np.zeros(0, dtype=np.float64)

    dims = {len(v) for v in vectors}
    if len(dims) == 1 and dims.pop() == len(query):
        q = np.asarray(query, dtype=np.float64)
        m = np.asarray(vectors, dtype=np.float64)
        norms = np.linalg.norm(m, axis=1) * np.linalg.norm(q)
        return (m @ q) / (norms + EPSILON)

    # ragged input: compare each pair on its common prefix
    return np.array([cosine_similarity(query, v) for v in vectors], dtype=np.float64)


def top_k(query: Sequence[float], vectors: Sequence[Sequence[float]], k: int) -> list[int]:
    """Indices of the *k* most similar vectors, best first.

    ``k`` larger than the number of vectors returns every index ranked; an
    empty vector set returns ``[]``.
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    scores = cosine_scores(query, vectors)
    if scores.size == 0:
        return []
    order = np.argsort(-scores, kind="stable")
    return [int(i) for i in order[:k]]
