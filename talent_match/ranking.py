from __future__ import annotations

"""
Candidate ranking orchestration.

Job description + already-filtered talents in, ranked talents out:

- one QUERY embedding for the job text, one DOCUMENT batch for the profiles
- cosine ranking via ``similarity.rank``
- profile-strength ordering whenever the embedding step fails
- metrics + analysis assembly for the HTTP layer (``match_talents``)
"""

from typing import List, Sequence

from loguru import logger

from . import config
from .analysis import NO_FILTER_MATCHES_ANALYSIS, NO_MATCHES_ANALYSIS, build_analysis
from .config import Metrics, TalentMatchingRequest, TalentMatchingResponse
from .embeddings import EmbeddingError, EmbeddingProvider, EmbedMode
from .metrics import score_metrics
from .pipeline_types import Talent
from .similarity import rank
from .talent_store import TalentStore, apply_post_filters


def compose_profile_text(talent: Talent) -> str:
    """
    Text embedded for a talent: headline, summary, current title and the
    comma-joined skills, in that order, skipping whatever is missing.
    """
    parts = [
        talent.headline,
        talent.summary,
        talent.current_title,
        ", ".join(talent.skills) if talent.skills else None,
    ]
    return " ".join(p for p in parts if p)


def rank_by_profile_strength(talents: Sequence[Talent]) -> List[Talent]:
    scored = [
        t.with_score(
            t.profile_strength if t.profile_strength is not None else config.FALLBACK_PROFILE_STRENGTH
        )
        for t in talents
    ]
    scored.sort(key=lambda t: t.score, reverse=True)
    return scored


def rank_candidates(
    job_description: str,
    talents: Sequence[Talent],
    provider: EmbeddingProvider,
) -> List[Talent]:
    """
    Rank ``talents`` by semantic similarity to ``job_description``.

    Never raises for embedding trouble: a failing or malformed provider
    response is logged and the profile-strength ranking is returned instead.
    """
    talents = list(talents)
    if not talents:
        return []

    try:
        job_vectors = provider.embed([job_description], EmbedMode.QUERY)
        profile_texts = [compose_profile_text(t) for t in talents]
        talent_vectors = provider.embed(profile_texts, EmbedMode.DOCUMENT)
        if len(job_vectors) != 1 or len(talent_vectors) != len(talents):
            raise EmbeddingError(
                f"Expected 1 + {len(talents)} embeddings, got "
                f"{len(job_vectors)} + {len(talent_vectors)}"
            )
        ranked = rank(job_vectors[0], list(zip(talents, talent_vectors)))
    except Exception as e:  # provider errors, malformed payloads, dimension mismatches
        logger.warning("Semantic ranking failed; falling back to profile strength: {}", e)
        return rank_by_profile_strength(talents)

    logger.info(
        "Ranked {} talents semantically (top score={:.3f})",
        len(ranked), ranked[0].score,
    )
    return ranked


def match_talents(
    request: TalentMatchingRequest,
    store: TalentStore,
    provider: EmbeddingProvider,
    threshold: float = config.RELEVANCE_THRESHOLD,
) -> TalentMatchingResponse:
    """
    Full request path: store filters, post filters, ranking, metrics and the
    analysis text. Store failures propagate; the caller turns them into a 500.
    """
    talents = store.query(request)
    if not talents:
        logger.info("No talents matched the required skills / store filters")
        return TalentMatchingResponse(
            candidates=[],
            metrics=Metrics(precision=0.0, ndcg=0.0),
            analysis=NO_MATCHES_ANALYSIS,
        )

    filtered = apply_post_filters(talents, request)
    if not filtered:
        logger.info("{} talents matched skills but none passed the post filters", len(talents))
        return TalentMatchingResponse(
            candidates=[],
            metrics=Metrics(precision=0.0, ndcg=0.0),
            analysis=NO_FILTER_MATCHES_ANALYSIS,
        )

    ranked = rank_candidates(request.job_description, filtered, provider)
    metrics = score_metrics(ranked, threshold=threshold)
    relevant = sum(1 for t in ranked if (t.score or 0.0) > threshold)

    return TalentMatchingResponse(
        candidates=ranked,
        metrics=metrics,
        analysis=build_analysis(len(ranked), relevant),
    )
