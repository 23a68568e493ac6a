"""Red and green flag catalog and red flag detection.

Red flags are evaluated in a fixed order: overqualified, location, salary,
delayed start. Green flags come from the cultural signal aggregator.
"""

import logging
import math
from datetime import datetime

from applicant_ranker.core.config import RedFlagRules
from applicant_ranker.core.schemas import Application, CandidateProfile, Flag, JobRequirements

logger = logging.getLogger(__name__)

# --- red flags -------------------------------------------------------------

OVERQUALIFIED = Flag(
    id="overqualified",
    label="May be Overqualified",
    severity="warning",
    description="Candidate may have significantly more experience than required",
)
LOCATION_MISMATCH = Flag(
    id="location_mismatch",
    label="Location Consideration",
    severity="info",
    description="Candidate may need relocation or remote work arrangement",
)
SALARY_MISMATCH = Flag(
    id="salary_mismatch",
    label="Salary Expectations",
    severity="warning",
    description="Expected salary may exceed budget range",
)
DELAYED_START = Flag(
    id="delayed_start",
    label="Delayed Availability",
    severity="info",
    description="Candidate cannot start within the preferred timeframe",
)

# --- green flags -----------------------------------------------------------

MENTORSHIP_ACTIVE = Flag(
    id="mentorship_active",
    label="Active Mentee",
    description="Currently engaged in platform mentorship program",
)
TRAINING_COMPLETE = Flag(
    id="training_complete",
    label="Training Completed",
    description="Has completed relevant training courses on platform",
)
COMMUNITY_ENGAGED = Flag(
    id="community_engaged",
    label="Community Member",
    description="Active participant in community forums",
)
BADGE_HOLDER = Flag(
    id="badge_holder",
    label="Credential Holder",
    description="Has earned relevant digital credentials",
)
VERIFIED_PROFILE = Flag(
    id="verified_profile",
    label="Verified Profile",
    description="Profile has been verified by community elder",
)
REFERRAL = Flag(
    id="referral",
    label="Internal Referral",
    description="Referred by another platform member",
)


def days_late(available_from: datetime, preferred_start: datetime) -> int:
    """Whole days (rounded up) between the preferred start and availability."""
    seconds = (available_from - preferred_start).total_seconds()
    return math.ceil(seconds / 86400)


def is_remote(job: JobRequirements) -> bool:
    return job.remote or "remote" in job.location.lower()


def _format_years(value: float) -> str:
    return f"{value:g}"


def detect_red_flags(
    candidate: CandidateProfile,
    job: JobRequirements,
    application: Application | None = None,
    rules: RedFlagRules | None = None,
) -> list[Flag]:
    """Return the red flags that apply, in rule-evaluation order."""
    rules = rules or RedFlagRules()
    flags: list[Flag] = []

    years = candidate.years_experience
    max_years = job.max_experience or rules.default_max_years
    if years > max_years + rules.overqualified_margin:
        flags.append(OVERQUALIFIED.model_copy(update={
            "detail": f"{_format_years(years)} years experience vs "
                      f"{_format_years(max_years)} max preferred",
        }))

    candidate_location = candidate.location.lower()
    job_location = job.location.lower()
    if (
        not is_remote(job)
        and candidate_location
        and job_location
        and candidate_location not in job_location
        and job_location not in candidate_location
    ):
        flags.append(LOCATION_MISMATCH.model_copy(update={
            "detail": f"Candidate: {candidate.location}, Job: {job.location}",
        }))

    if application is not None:
        expected = application.effective_salary
        available_from = application.effective_available_from
    else:
        expected = candidate.expected_salary
        available_from = candidate.available_from

    budget = job.salary_max
    if expected and budget and expected > budget * rules.salary_tolerance:
        flags.append(SALARY_MISMATCH.model_copy(update={
            "detail": f"Expected: ${expected:,.0f}, Budget: ${budget:,.0f}",
        }))

    if available_from and job.start_date and available_from > job.start_date:
        late = days_late(available_from, job.start_date)
        if late > rules.delayed_start_days:
            flags.append(DELAYED_START.model_copy(update={
                "detail": f"Available {late} days after preferred start",
            }))

    if flags:
        logger.debug("Red flags for %s: %s", candidate.user_id, [f.id for f in flags])
    return flags
