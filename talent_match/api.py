from __future__ import annotations

"""
FastAPI application for talent matching.

- POST /api/talent-matching: filter -> rank -> metrics -> analysis
- POST /api/talent-matching/feedback-metrics: metrics from reviewer feedback
- Embedding failures degrade to profile-strength ranking inside the pipeline;
  anything else that escapes is logged and reported as a generic 500
"""

import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .config import (
    EMBEDDING_PROVIDER,
    FeedbackMetrics,
    FeedbackMetricsRequest,
    HealthResponse,
    LOG_DIR,
    TALENTS_PATH,
    TalentMatchingRequest,
    TalentMatchingResponse,
)
from .embeddings import EmbeddingProvider, build_embedding_provider
from .metrics import feedback_metrics
from .pipeline_types import Talent
from .ranking import match_talents
from .talent_store import TalentStore

GENERIC_ERROR = "Failed to process request"


# -----------------------
# Collaborators
# -----------------------

_store: Optional[TalentStore] = None
_provider: Optional[EmbeddingProvider] = None
_log_sink_id: Optional[int] = None


def get_store() -> TalentStore:
    global _store
    if _store is None:
        _store = TalentStore.from_path(TALENTS_PATH)
    return _store


def get_provider() -> EmbeddingProvider:
    global _provider
    if _provider is None:
        _provider = build_embedding_provider()
    return _provider


# -----------------------
# FastAPI app + startup
# -----------------------

app = FastAPI()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def setup_file_logging() -> int:
    """Add the rotating file sink once per process; later startups reuse it."""
    global _log_sink_id
    if _log_sink_id is None:
        LOG_DIR.mkdir(exist_ok=True)
        _log_sink_id = logger.add(
            LOG_DIR / "talent_match.log", rotation="10 MB", retention=5, level="INFO"
        )
    return _log_sink_id


@app.on_event("startup")
def startup_event() -> None:
    setup_file_logging()
    logger.info("Starting app warmup...")
    try:
        store = get_store()
        logger.info("Loaded talent store with {} records", len(store))
    except Exception as e:
        logger.warning("Warmup partial failure (talent store): {}", e)
    try:
        get_provider()
        logger.info("Embedding provider ready: {}", EMBEDDING_PROVIDER)
    except Exception as e:
        logger.warning("Warmup partial failure (embedding provider): {}", e)
    logger.info("Warmup complete.")


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="healthy")


@app.post("/api/talent-matching", response_model=TalentMatchingResponse)
def talent_matching(req: TalentMatchingRequest):
    try:
        return match_talents(req, get_store(), get_provider())
    except Exception:
        logger.exception("Error in talent matching")
        return JSONResponse(status_code=500, content={"error": GENERIC_ERROR})


@app.post("/api/talent-matching/feedback-metrics", response_model=FeedbackMetrics)
def talent_feedback_metrics(req: FeedbackMetricsRequest) -> FeedbackMetrics:
    # only ids and order matter for the feedback formulas
    ranked = [Talent(id=cid) for cid in req.candidate_ids]
    return feedback_metrics(ranked, req.feedback)


# -----------------------
# CLI convenience
# -----------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
