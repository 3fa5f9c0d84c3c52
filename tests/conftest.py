import math

import numpy as np
import pytest

from talent_match.embeddings import EmbeddingError, EmbedMode


def unit_vector_with_similarity(s: float) -> list:
    """2-D unit vector whose cosine with [1, 0] is exactly ``s``."""
    return [s, math.sqrt(max(0.0, 1.0 - s * s))]


class StubProvider:
    """
    Deterministic provider: the job text always maps to [1, 0] and each
    profile text maps to whatever vector the test registered for it.
    """

    def __init__(self, vectors_by_text=None, job_vector=(1.0, 0.0)):
        self.vectors_by_text = dict(vectors_by_text or {})
        self.job_vector = list(job_vector)
        self.calls = []

    def embed(self, texts, mode):
        texts = list(texts)
        self.calls.append((texts, mode))
        if mode is EmbedMode.QUERY:
            return np.array([self.job_vector for _ in texts], dtype="float32")
        return np.array([self.vectors_by_text[t] for t in texts], dtype="float32")


class FailingProvider:
    def __init__(self, exc=None):
        self.exc = exc or EmbeddingError("provider down")
        self.calls = 0

    def embed(self, texts, mode):
        self.calls += 1
        raise self.exc


@pytest.fixture
def talent_records():
    return [
        {
            "id": "t1",
            "full_name": "Ada Lovelace",
            "headline": "Backend engineer",
            "summary": "Builds Python APIs",
            "current_title": "Senior Engineer",
            "skills": ["python", "fastapi", "sql"],
            "seniority_level": "senior",
            "location": "London, UK",
            "years_of_experience": 8,
            "is_verified": True,
            "profile_strength": 0.9,
            "job_types": ["full-time"],
            "desired_roles": ["backend"],
            "industries": ["fintech"],
            "remote_preference": "remote",
            "education": [{"degree": "M.S. Computer Science", "school": "UCL", "year": 2012}],
            "salary_expectation_range": {"min": 90000, "max": 120000, "currency": "GBP"},
        },
        {
            "id": "t2",
            "full_name": "Grace Hopper",
            "headline": "Data engineer",
            "current_title": "Engineer",
            "skills": ["python", "spark"],
            "seniority_level": "mid",
            "location": "Berlin",
            "years_of_experience": 4,
            "is_verified": False,
            "profile_strength": 0.6,
            "job_types": ["contract"],
            "desired_roles": ["data"],
            "industries": ["retail"],
            "remote_preference": "hybrid",
            "education": [{"degree": "B.S. Mathematics", "school": "TU Berlin", "year": 2018}],
            "salary_expectation_range": {"min": 60000, "max": 80000, "currency": "EUR"},
        },
        {
            "id": "t3",
            "full_name": "Linus Torvalds",
            "skills": ["c", "python", "fastapi"],
            "location": "Portland",
            "years_of_experience": None,
            "job_types": ["full-time", "contract"],
        },
    ]
