"""Brute-force cosine similarity ranking.

Scores every candidate vector against a query vector in-process.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np


@dataclass
class RankCandidate:
    """A vector to score, with the payload returned alongside its score."""

    id: str
    vector: Sequence[float] | None
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class ScoredCandidate:
    """A ranked candidate."""

    id: str
    score: float
    payload: dict[str, Any]


def cosine_similarity(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """Compute cosine similarity between two vectors.

    Returns 0.0 for missing, zero-norm or dimension-mismatched vectors.
    """
    if a is None or b is None:
        return 0.0

    try:
        a_arr = np.asarray(a, dtype=np.float64)
        b_arr = np.asarray(b, dtype=np.float64)
    except (TypeError, ValueError):
        return 0.0

    if a_arr.ndim != 1 or a_arr.shape != b_arr.shape:
        return 0.0

    norm_a = np.linalg.norm(a_arr)
    norm_b = np.linalg.norm(b_arr)

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a_arr, b_arr) / (norm_a * norm_b))


class SimilarityRanker:
    """Ranks candidates by cosine similarity to a query vector."""

    def rank(
        self,
        query_vector: Sequence[float],
        candidates: Sequence[RankCandidate],
        min_score: float,
        top_k: int,
    ) -> list[ScoredCandidate]:
        """Score, filter and order candidates.

        Args:
            query_vector: Embedding of the query
            candidates: Vectors to score
            min_score: Candidates scoring at or below this are dropped
            top_k: Maximum number of results

        Returns:
            Candidates scoring above ``min_score``, highest first; ties keep input order
        """
        if top_k <= 0:
            return []

        scored = [
            ScoredCandidate(
                id=candidate.id,
                score=cosine_similarity(query_vector, candidate.vector),
                payload=candidate.payload,
            )
            for candidate in candidates
        ]
        passing = [s for s in scored if s.score > min_score]

        # sorted() is stable, so equal scores stay in input order
        passing = sorted(passing, key=lambda s: s.score, reverse=True)
        return passing[:top_k]


__all__ = ["RankCandidate", "ScoredCandidate", "SimilarityRanker", "cosine_similarity"]
