"""Weighted multi-factor scoring of a candidate against a job.

Each dimension yields a 0-100 sub-score which is scaled by its weight
(ScoringWeights, summing to 100). The composite is the rounded sum of the
unrounded addends; every breakdown entry is rounded on its own, so the
breakdown total may differ from the composite by a few points.
"""

import logging
import math
from datetime import datetime

from applicant_ranker.core.config import ScoringConfig, TierThresholds
from applicant_ranker.core.schemas import (
    Application,
    CandidateProfile,
    CandidateScore,
    Flag,
    JobRequirements,
    Recommendation,
    ScoreBreakdown,
    SkillsAnalysis,
    Tier,
    to_naive_utc,
    utcnow,
)
from applicant_ranker.pipeline.experience import ExperienceMatch, calculate_experience_match
from applicant_ranker.pipeline.flags import (
    LOCATION_MISMATCH,
    SALARY_MISMATCH,
    days_late,
    detect_red_flags,
)
from applicant_ranker.pipeline.matcher import (
    SkillsMatch,
    calculate_qualification_score,
    calculate_skills_match,
)
from applicant_ranker.pipeline.signals import calculate_cultural_signals
from applicant_ranker.sources.base import SignalSource

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 upwards (2.5 -> 3), unlike the built-in banker's rounding."""
    return math.floor(value + 0.5)


def tier_for_score(score: int, thresholds: TierThresholds | None = None) -> Tier:
    """Map a rounded composite score onto its readiness tier."""
    thresholds = thresholds or TierThresholds()
    if score >= thresholds.excellent:
        return Tier.EXCELLENT
    if score >= thresholds.good:
        return Tier.GOOD
    if score >= thresholds.potential:
        return Tier.POTENTIAL
    if score >= thresholds.developing:
        return Tier.DEVELOPING
    return Tier.NOT_READY


def availability_score(
    available_from: datetime | None,
    preferred_start: datetime | None,
    penalty_per_day: float = 2.0,
    now: datetime | None = None,
) -> float:
    """100 when available on time, minus penalty_per_day for each day late."""
    if available_from is None:
        return 100.0
    start = preferred_start or to_naive_utc(now) or utcnow()
    if available_from <= start:
        return 100.0
    return max(0.0, 100.0 - days_late(available_from, start) * penalty_per_day)


def generate_recommendations(
    skills: SkillsMatch,
    experience: ExperienceMatch,
    red_flags: list[Flag],
) -> list[Recommendation]:
    """Advisory notes for the employer. Only conditions that hold produce one."""
    recommendations: list[Recommendation] = []
    flag_ids = {f.id for f in red_flags}

    if 0 < len(skills.missing_required) <= 2:
        recommendations.append(Recommendation(
            type="training",
            message=f"Consider if candidate can develop "
                    f"{', '.join(skills.missing_required)} skills through training",
        ))

    if experience.is_overqualified:
        recommendations.append(Recommendation(
            type="interview",
            message="Discuss career goals to understand interest in this role level",
        ))

    if LOCATION_MISMATCH.id in flag_ids:
        recommendations.append(Recommendation(
            type="discussion",
            message="Clarify relocation willingness or remote work arrangements",
        ))

    if SALARY_MISMATCH.id in flag_ids:
        recommendations.append(Recommendation(
            type="negotiation",
            message="Discuss total compensation package including benefits "
                    "and growth opportunities",
        ))

    return recommendations


async def calculate_candidate_score(
    candidate: CandidateProfile,
    job: JobRequirements,
    application: Application | None = None,
    *,
    signals: SignalSource,
    config: ScoringConfig | None = None,
    now: datetime | None = None,
) -> CandidateScore:
    """Score a single candidate against a job.

    Args:
        candidate: Normalized candidate profile.
        job: Job requirements.
        application: Optional application whose salary/start overrides win.
        signals: Source of community activity counts (failures are tolerated).
        config: Weights and thresholds; defaults to ScoringConfig().
        now: Reference time when the job has no preferred start date.

    Returns:
        CandidateScore with composite score, tier, breakdown, flags and
        recommendations.
    """
    config = config or ScoringConfig()
    weights = config.weights

    skills = calculate_skills_match(
        candidate.skills, job.required_skills, job.preferred_skills,
    )
    experience = calculate_experience_match(
        candidate.years_experience,
        job.min_experience,
        job.max_experience,
        config.experience,
    )
    qualification = calculate_qualification_score(
        candidate.qualifications, job.required_qualifications,
    )
    cultural = await calculate_cultural_signals(candidate, signals, config.cultural)

    available_from = (
        application.effective_available_from if application is not None
        else candidate.available_from
    )
    availability = availability_score(
        available_from, job.start_date, config.availability_penalty_per_day, now,
    )

    points = {
        "skills_required": skills.required_score / 100 * weights.skills_required,
        "skills_preferred": skills.preferred_score / 100 * weights.skills_preferred,
        "experience": experience.score / 100 * weights.experience,
        "qualifications": qualification / 100 * weights.qualifications,
        "cultural": cultural.score / 100 * weights.cultural,
        "availability": availability / 100 * weights.availability,
    }
    breakdown = ScoreBreakdown(**{k: round_half_up(v) for k, v in points.items()})
    score = max(0, min(100, round_half_up(sum(points.values()))))

    red_flags = detect_red_flags(candidate, job, application, config.red_flags)

    logger.debug(
        "Scored candidate %s for job %s: %d (%s)",
        candidate.user_id, job.id, score, breakdown.model_dump(),
    )

    return CandidateScore(
        score=score,
        tier=tier_for_score(score, config.tiers),
        breakdown=breakdown,
        skills_analysis=SkillsAnalysis(
            matched_required=skills.matched_required,
            matched_preferred=skills.matched_preferred,
            missing_required=skills.missing_required,
        ),
        green_flags=cultural.signals,
        red_flags=red_flags,
        recommendations=generate_recommendations(skills, experience, red_flags),
    )
