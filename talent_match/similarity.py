from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
from loguru import logger

from .pipeline_types import Talent


class DimensionMismatchError(ValueError):
    """Raised when vectors compared against each other differ in length."""


def _as_vector(vec) -> np.ndarray:
    arr = np.asarray(vec, dtype="float64")
    if arr.ndim != 1:
        raise DimensionMismatchError(f"Expected a 1-D vector, got shape {arr.shape}")
    return arr


def cosine_similarity(a, b) -> float:
    """
    Cosine similarity between two vectors.

    A zero-norm vector on either side has no direction, so the similarity is
    reported as 0.0 instead of NaN. Lengths must match.
    """
    va, vb = _as_vector(a), _as_vector(b)
    if va.shape[0] != vb.shape[0]:
        raise DimensionMismatchError(
            f"Cannot compare vectors of dimension {va.shape[0]} and {vb.shape[0]}"
        )

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    sim = float(np.dot(va, vb)) / (norm_a * norm_b)
    if not np.isfinite(sim):
        return 0.0
    return sim


def rank(
    query_vector,
    candidates: Sequence[Tuple[Talent, Sequence[float]]],
) -> List[Talent]:
    """
    Score every candidate against ``query_vector`` and sort by score.

    Parameters
    ----------
    query_vector :
        Embedding of the job description.
    candidates :
        ``(talent, vector)`` pairs in their original order.

    Returns
    -------
    List[Talent]
        Copies of the talents with ``score`` set, descending by score. Equal
        scores keep their input order.
    """
    q = _as_vector(query_vector)
    vectors = [_as_vector(vec) for _, vec in candidates]
    for i, vec in enumerate(vectors):
        if vec.shape[0] != q.shape[0]:
            raise DimensionMismatchError(
                f"Candidate {i} has dimension {vec.shape[0]}, query has {q.shape[0]}"
            )

    scored = [
        talent.with_score(cosine_similarity(q, vec))
        for (talent, _), vec in zip(candidates, vectors)
    ]
    # list.sort is stable, also with reverse=True
    scored.sort(key=lambda t: t.score, reverse=True)
    logger.debug("Ranked {} candidates by cosine similarity", len(scored))
    return scored
