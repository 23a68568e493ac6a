"""Core data models for the applicant ranker.

Input models (CandidateProfile, JobRequirements, Application) are frozen and
normalize their fields once on construction; everything downstream reads
plain, already-defaulted values.
"""

import math
from collections.abc import Mapping
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

WITHDRAWN = "WITHDRAWN"


class Tier(str, Enum):
    """Discrete readiness bucket derived from the composite score."""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    POTENTIAL = "POTENTIAL"
    DEVELOPING = "DEVELOPING"
    NOT_READY = "NOT_READY"


def _as_number(value: Any) -> float | None:
    """Coerce a loosely-typed numeric field, returning None when unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _positive_or_none(value: Any) -> float | None:
    number = _as_number(value)
    if number is None or number <= 0:
        return None
    return number


def _names(value: Any) -> list[str]:
    """Accept plain strings or ``{"name": ...}`` records, dropping blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    names: list[str] = []
    for item in value:
        if isinstance(item, Mapping):
            item = item.get("name") or ""
        text = str(item).strip()
        if text:
            names.append(text)
    return names


def _calendar_date(value: Any) -> Any:
    """Promote bare dates (as YAML loads them) to midnight datetimes."""
    if value == "":
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Convert aware datetimes to naive UTC; naive values are assumed UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _optional_id(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


class CandidateProfile(BaseModel):
    """Snapshot of an applicant's profile, built fresh for each scoring call."""

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    name: str = ""
    email: str = ""
    avatar: str | None = None
    skills: list[str] = Field(default_factory=list)
    years_experience: float = 0.0
    qualifications: list[str] = Field(default_factory=list)
    location: str = ""
    expected_salary: float | None = None
    available_from: datetime | None = None
    verified: bool = False
    referred: bool = False

    @field_validator("user_id", mode="before")
    @classmethod
    def user_id_as_text(cls, v: Any) -> str | None:
        return _optional_id(v)

    @field_validator("name", "email", "location", mode="before")
    @classmethod
    def text_or_empty(cls, v: Any) -> str:
        return str(v).strip() if v is not None else ""

    @field_validator("skills", "qualifications", mode="before")
    @classmethod
    def name_list(cls, v: Any) -> list[str]:
        return _names(v)

    @field_validator("years_experience", mode="before")
    @classmethod
    def years_non_negative(cls, v: Any) -> float:
        return max(0.0, _as_number(v) or 0.0)

    @field_validator("expected_salary", mode="before")
    @classmethod
    def salary_positive(cls, v: Any) -> float | None:
        return _positive_or_none(v)

    @field_validator("verified", "referred", mode="before")
    @classmethod
    def truthy(cls, v: Any) -> bool:
        return bool(v)

    @field_validator("available_from", mode="before")
    @classmethod
    def calendar_date(cls, v: Any) -> Any:
        return _calendar_date(v)

    @field_validator("available_from", mode="after")
    @classmethod
    def naive_utc(cls, v: datetime | None) -> datetime | None:
        return to_naive_utc(v)


class JobRequirements(BaseModel):
    """Requirements of a single job listing. Read-only for scoring."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    required_skills: list[str] = Field(default_factory=list)
    preferred_skills: list[str] = Field(default_factory=list)
    min_experience: float = 0.0
    max_experience: float | None = None
    required_qualifications: list[str] = Field(default_factory=list)
    location: str = ""
    remote: bool = False
    salary_max: float | None = None
    start_date: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v: Any) -> str:
        return str(v)

    @field_validator("title", "location", mode="before")
    @classmethod
    def text_or_empty(cls, v: Any) -> str:
        return str(v).strip() if v is not None else ""

    @field_validator("required_skills", "preferred_skills", "required_qualifications", mode="before")
    @classmethod
    def name_list(cls, v: Any) -> list[str]:
        return _names(v)

    @field_validator("required_skills", mode="after")
    @classmethod
    def unique_required(cls, v: list[str]) -> list[str]:
        seen: set[str] = set()
        unique: list[str] = []
        for skill in v:
            key = skill.lower().strip()
            if key not in seen:
                seen.add(key)
                unique.append(skill)
        return unique

    @field_validator("min_experience", mode="before")
    @classmethod
    def min_non_negative(cls, v: Any) -> float:
        return max(0.0, _as_number(v) or 0.0)

    @field_validator("max_experience", mode="before")
    @classmethod
    def max_numeric(cls, v: Any) -> float | None:
        return _as_number(v)

    @field_validator("salary_max", mode="before")
    @classmethod
    def salary_positive(cls, v: Any) -> float | None:
        return _positive_or_none(v)

    @field_validator("remote", mode="before")
    @classmethod
    def truthy(cls, v: Any) -> bool:
        return bool(v)

    @field_validator("start_date", mode="before")
    @classmethod
    def calendar_date(cls, v: Any) -> Any:
        return _calendar_date(v)

    @field_validator("start_date", mode="after")
    @classmethod
    def naive_utc(cls, v: datetime | None) -> datetime | None:
        return to_naive_utc(v)


class Application(BaseModel):
    """One candidate's application to one job, with per-application overrides."""

    model_config = ConfigDict(frozen=True)

    id: str
    job_id: str
    user_id: str
    status: str = "SUBMITTED"
    applied_at: datetime | None = None
    expected_salary: float | None = None
    available_from: datetime | None = None
    candidate: CandidateProfile = Field(default_factory=CandidateProfile, validate_default=True)

    @field_validator("id", "job_id", "user_id", mode="before")
    @classmethod
    def ids_as_text(cls, v: Any) -> str:
        return str(v)

    @field_validator("status", mode="before")
    @classmethod
    def status_upper(cls, v: Any) -> str:
        return str(v or "SUBMITTED").strip().upper()

    @field_validator("expected_salary", mode="before")
    @classmethod
    def salary_positive(cls, v: Any) -> float | None:
        return _positive_or_none(v)

    @field_validator("applied_at", "available_from", mode="before")
    @classmethod
    def calendar_date(cls, v: Any) -> Any:
        return _calendar_date(v)

    @field_validator("applied_at", "available_from", mode="after")
    @classmethod
    def naive_utc(cls, v: datetime | None) -> datetime | None:
        return to_naive_utc(v)

    @field_validator("candidate", mode="after")
    @classmethod
    def candidate_owns_user_id(cls, v: CandidateProfile, info: ValidationInfo) -> CandidateProfile:
        user_id = info.data.get("user_id")
        if v.user_id is None and user_id:
            return v.model_copy(update={"user_id": user_id})
        return v

    @property
    def effective_salary(self) -> float | None:
        """Application override, else the candidate's profile default."""
        return self.expected_salary or self.candidate.expected_salary

    @property
    def effective_available_from(self) -> datetime | None:
        return self.available_from or self.candidate.available_from


# ---------------------------------------------------------------------------
# Scoring output
# ---------------------------------------------------------------------------


class Flag(BaseModel):
    """A red (severity set) or green (no severity) indicator."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    severity: Literal["warning", "info"] | None = None
    description: str
    detail: str | None = None


class Recommendation(BaseModel):
    """Advisory, non-scored hint for the employer."""

    model_config = ConfigDict(frozen=True)

    type: str
    message: str


class ScoreBreakdown(BaseModel):
    """Weight-scaled, independently rounded points per dimension."""

    model_config = ConfigDict(frozen=True)

    skills_required: int
    skills_preferred: int
    experience: int
    qualifications: int
    cultural: int
    availability: int

    def total(self) -> int:
        return sum(self.model_dump().values())


class SkillsAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    matched_required: list[str] = Field(default_factory=list)
    matched_preferred: list[str] = Field(default_factory=list)
    missing_required: list[str] = Field(default_factory=list)


class CandidateScore(BaseModel):
    """Full scoring result for one candidate against one job."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    tier: Tier
    breakdown: ScoreBreakdown
    skills_analysis: SkillsAnalysis
    green_flags: list[Flag] = Field(default_factory=list)
    red_flags: list[Flag] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)


class CandidateSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str = ""
    avatar: str | None = None
    location: str = ""
    years_experience: float = 0.0


class RankedApplicant(CandidateScore):
    """A scored application as it appears in a ranking."""

    application_id: str
    user_id: str
    applied_at: datetime | None = None
    status: str
    candidate: CandidateSummary


class ApplicantStats(BaseModel):
    """Aggregate view over every scored applicant for a job."""

    total: int
    by_tier: dict[Tier, int]
    average_score: int
    with_red_flags: int
    with_green_flags: int
    top_candidate: RankedApplicant | None = None


Winner = Literal["candidate1", "candidate2"]


class DimensionComparison(BaseModel):
    candidate1: int
    candidate2: int
    winner: Winner


class CandidateComparison(BaseModel):
    """Side-by-side comparison of two applicants for the same job."""

    candidate1: RankedApplicant
    candidate2: RankedApplicant
    winner: Winner | Literal["tie"]
    score_difference: int
    comparison: dict[str, DimensionComparison]
