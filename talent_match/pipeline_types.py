"""Typed containers shared across pipeline modules."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class EducationEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    degree: Optional[str] = None
    school: Optional[str] = None
    year: Optional[int] = None


class SalaryRange(BaseModel):
    model_config = ConfigDict(extra="allow")

    min: Optional[float] = None
    max: Optional[float] = None
    currency: Optional[str] = None


class Talent(BaseModel):
    """
    A candidate profile as returned by the talent store.

    Unknown columns are kept and echoed back to the caller untouched. Ranking
    only ever reads fields and attaches ``score``.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    full_name: Optional[str] = None
    headline: Optional[str] = None
    summary: Optional[str] = None
    current_title: Optional[str] = None
    current_company: Optional[str] = None
    skills: Optional[List[str]] = None
    industries: Optional[List[str]] = None
    job_types: Optional[List[str]] = None
    desired_roles: Optional[List[str]] = None
    seniority_level: Optional[str] = None
    location: Optional[str] = None
    remote_preference: Optional[str] = None
    years_of_experience: Optional[float] = None
    education: Optional[List[EducationEntry]] = None
    salary_expectation_range: Optional[SalaryRange] = None
    profile_strength: Optional[float] = None
    is_verified: Optional[bool] = None
    score: Optional[float] = None

    def with_score(self, score: float) -> "Talent":
        return self.model_copy(update={"score": float(score)})
