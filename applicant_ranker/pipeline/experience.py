"""Banded years-of-experience evaluation.

Bands (defaults from ExperienceBands):
  years < min            -> years/min * 70, underqualified if short by > 2
  years > max + 5        -> 70, overqualified
  max < years <= max + 5 -> 85
  min <= years <= max    -> 100
"""

from pydantic import BaseModel

from applicant_ranker.core.config import ExperienceBands


class ExperienceMatch(BaseModel):
    score: float
    is_overqualified: bool = False
    is_underqualified: bool = False


def calculate_experience_match(
    candidate_years: float | None,
    min_years: float | None,
    max_years: float | None,
    bands: ExperienceBands | None = None,
) -> ExperienceMatch:
    """Score how well years of experience fit a job's min/max band."""
    bands = bands or ExperienceBands()
    years = candidate_years or 0.0
    # A zero or missing bound falls back to the configured default.
    minimum = min_years or bands.default_min_years
    maximum = max_years or bands.default_max_years

    if years < minimum:
        return ExperienceMatch(
            score=max(0.0, years / minimum * bands.under_min_ceiling),
            is_underqualified=minimum - years > bands.underqualified_shortfall,
        )
    if years > maximum + bands.overqualified_margin:
        return ExperienceMatch(score=bands.overqualified_score, is_overqualified=True)
    if years > maximum:
        return ExperienceMatch(score=bands.slightly_over_score)
    return ExperienceMatch(score=100.0)
