# talent_match/metrics.py
from __future__ import annotations

import math
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from . import config
from .config import FeedbackMetrics, Metrics
from .pipeline_types import Talent


# ---------- DCG ----------

def dcg(gains: Sequence[Optional[float]]) -> float:
    """
    Discounted cumulative gain, ``sum(g / log2(i + 2))`` with 0-based ``i``.
    ``None`` gains contribute nothing but still occupy their rank position.
    """
    total = 0.0
    for i, g in enumerate(gains):
        if g is None:
            continue
        total += g / math.log2(i + 2)
    return total


# ---------- shared metrics ----------

def relevance_metrics(
    gains: Sequence[Optional[float]],
    is_relevant: Callable[[float], bool],
) -> Metrics:
    """
    Precision and NDCG over a ranking.

    ``gains`` holds one entry per ranked position; ``None`` means the
    position has no judgement. Precision is computed over judged positions
    only, the ideal DCG sorts the judged gains descending, and the actual DCG
    keeps the ranked order. Both come out as 0 when nothing counts.
    """
    judged: List[float] = [g for g in gains if g is not None]
    if not judged:
        return Metrics(precision=0.0, ndcg=0.0)

    relevant = sum(1 for g in judged if is_relevant(g))
    precision = relevant / float(len(judged))

    ideal = dcg(sorted(judged, reverse=True))
    actual = dcg(gains)
    ndcg = actual / ideal if ideal > 0 else 0.0
    return Metrics(precision=precision, ndcg=ndcg)


def score_metrics(
    ranked: Sequence[Talent],
    threshold: float = config.RELEVANCE_THRESHOLD,
) -> Metrics:
    """Metrics from similarity scores; relevant means ``score > threshold``."""
    gains = [float(t.score or 0.0) for t in ranked]
    return relevance_metrics(gains, lambda g: g > threshold)


def feedback_metrics(
    ranked: Sequence[Talent],
    feedback: Dict[str, bool],
) -> FeedbackMetrics:
    """
    Metrics from human relevance judgements (1 relevant / 0 not).

    Candidates without feedback are skipped but keep their rank position.
    Returns ``None`` metrics until at least one ranked candidate is judged.
    """
    ranked_ids = {t.id for t in ranked}
    unknown = [cid for cid in feedback if cid not in ranked_ids]
    if unknown:
        logger.warning("Ignoring feedback for {} ids not in the ranking: {}", len(unknown), unknown)

    gains: List[Optional[float]] = []
    for t in ranked:
        if t.id in feedback:
            gains.append(1.0 if feedback[t.id] else 0.0)
        else:
            gains.append(None)

    if all(g is None for g in gains):
        return FeedbackMetrics()

    m = relevance_metrics(gains, lambda g: g > 0)
    return FeedbackMetrics(precision=m.precision, ndcg=m.ndcg)
