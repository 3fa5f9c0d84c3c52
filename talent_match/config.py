from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .pipeline_types import Talent


# ---------------------------
# Paths
# ---------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
TALENTS_PATH = Path(os.getenv("TALENTS_PATH", str(DATA_DIR / "talents.parquet")))

MODELS_DIR = PROJECT_ROOT / "models"  # for HF cache if you want to mount it


# ---------------------------
# Embedding provider (pinned)
# ---------------------------

# "cohere" (hosted) or "sentence-transformers" (local)
EMBEDDING_PROVIDER = os.getenv("EMBEDDING_PROVIDER", "cohere")

# Hosted model; job text and profile texts must be embedded with the same one
DEFAULT_EMBEDDING_MODEL = "embed-english-v3.0"
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL)

# Local dense encoder
LOCAL_ENCODER_MODEL = os.getenv("LOCAL_ENCODER_MODEL", "BAAI/bge-base-en-v1.5")
BGE_QUERY_INSTRUCTION = "Represent this sentence for searching relevant passages: "

COHERE_API_URL = os.getenv("COHERE_API_URL", "https://api.cohere.com")
COHERE_API_KEY = os.getenv("COHERE_API_KEY", "")

# content-addressed embedding cache; 0 disables it
EMBEDDING_CACHE_SIZE = int(os.getenv("EMBEDDING_CACHE_SIZE", "0"))

HF_ENV_VARS = {
    "TRANSFORMERS_CACHE": str(MODELS_DIR),
}


# ---------------------------
# Ranking policy
# ---------------------------

# score strictly above this counts as relevant
DEFAULT_RELEVANCE_THRESHOLD = 0.7
RELEVANCE_THRESHOLD = float(os.getenv("RELEVANCE_THRESHOLD", str(DEFAULT_RELEVANCE_THRESHOLD)))

# score given to talents without profile_strength when embeddings are down
FALLBACK_PROFILE_STRENGTH = 0.5


# ---------------------------
# HTTP hardening
# ---------------------------

HTTP_CONNECT_TIMEOUT = 3.0
HTTP_READ_TIMEOUT = float(os.getenv("HTTP_READ_TIMEOUT", "15.0"))

HTTP_USER_AGENT = "talent-match/1.0"


# ---------------------------
# Logging / observability
# ---------------------------

LOG_DIR = PROJECT_ROOT / "logs"


# ---------------------------
# Pydantic models shared around the app
# ---------------------------

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TalentMatchingRequest(_CamelModel):
    """
    Request body for POST /api/talent-matching.

    ``required_skills`` is the mandatory store predicate; everything else is an
    optional filter that only applies when set.
    """

    job_description: str = Field(min_length=1)
    required_skills: List[str]
    location: Optional[str] = None
    experience_level: Optional[str] = None
    currency: Optional[str] = None
    education: Optional[str] = None
    job_types: Optional[List[str]] = None
    desired_roles: Optional[List[str]] = None
    industries: Optional[List[str]] = None
    remote_preference: Optional[str] = None
    min_years_of_experience: Optional[float] = None
    max_years_of_experience: Optional[float] = None
    min_salary: Optional[float] = None
    max_salary: Optional[float] = None
    is_verified_only: Optional[bool] = None


class Metrics(BaseModel):
    precision: float
    ndcg: float


class FeedbackMetrics(BaseModel):
    """Feedback-based metrics; both ``None`` until something has been judged."""

    precision: Optional[float] = None
    ndcg: Optional[float] = None


class TalentMatchingResponse(BaseModel):
    """
    Response body for POST /api/talent-matching.
    """

    candidates: List[Talent]
    metrics: Metrics
    analysis: str


class FeedbackMetricsRequest(_CamelModel):
    candidate_ids: List[str]
    feedback: Dict[str, bool]


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    """
    Response body for GET /health.
    """

    status: str
