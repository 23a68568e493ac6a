"""Configuration models and YAML loader for the applicant ranker."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator


class ScoringWeights(BaseModel):
    """Point allocation per scoring dimension. Must add up to 100."""

    skills_required: float = Field(default=35.0, ge=0.0)
    skills_preferred: float = Field(default=15.0, ge=0.0)
    experience: float = Field(default=20.0, ge=0.0)
    qualifications: float = Field(default=15.0, ge=0.0)
    cultural: float = Field(default=10.0, ge=0.0)
    availability: float = Field(default=5.0, ge=0.0)

    @model_validator(mode="after")
    def weights_sum_to_100(self) -> "ScoringWeights":
        total = sum(self.model_dump().values())
        if abs(total - 100.0) > 1e-9:
            msg = f"scoring weights must sum to 100, got {total:g}"
            raise ValueError(msg)
        return self


class TierThresholds(BaseModel):
    """Minimum rounded composite score for each readiness tier."""

    excellent: int = 80
    good: int = 65
    potential: int = 50
    developing: int = 35

    @model_validator(mode="after")
    def strictly_descending(self) -> "TierThresholds":
        if not self.excellent > self.good > self.potential > self.developing:
            msg = "tier thresholds must be strictly descending"
            raise ValueError(msg)
        return self


class ExperienceBands(BaseModel):
    """Banded years-of-experience policy."""

    default_min_years: float = 0.0
    default_max_years: float = 15.0
    under_min_ceiling: float = 70.0
    underqualified_shortfall: float = 2.0
    overqualified_margin: float = 5.0
    overqualified_score: float = 70.0
    slightly_over_score: float = 85.0


class RedFlagRules(BaseModel):
    """Thresholds for red flag detection."""

    overqualified_margin: float = 5.0
    # Jobs without a max experience are checked against this value.
    default_max_years: float = 10.0
    salary_tolerance: float = Field(default=1.2, gt=0.0)
    delayed_start_days: int = Field(default=30, ge=0)


class CulturalSignalConfig(BaseModel):
    """Baseline and bonuses for community-engagement signals."""

    baseline: float = 50.0
    mentorship_bonus: float = 15.0
    training_bonus: float = 10.0
    community_bonus: float = 10.0
    forum_post_threshold: int = Field(default=5, ge=1)
    badge_bonus: float = 10.0
    verified_bonus: float = 10.0
    referral_bonus: float = 10.0


class ScoringConfig(BaseModel):
    """Everything the score composer needs; injectable for tests."""

    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    tiers: TierThresholds = Field(default_factory=TierThresholds)
    experience: ExperienceBands = Field(default_factory=ExperienceBands)
    red_flags: RedFlagRules = Field(default_factory=RedFlagRules)
    cultural: CulturalSignalConfig = Field(default_factory=CulturalSignalConfig)
    availability_penalty_per_day: float = Field(default=2.0, ge=0.0)


class RankingConfig(BaseModel):
    """Limits for ranking and aggregate operations."""

    default_limit: int = Field(default=50, ge=1)
    aggregate_limit: int = Field(default=1000, ge=1)
    max_concurrency: int = Field(default=10, ge=1)


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/applicants.db"


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
