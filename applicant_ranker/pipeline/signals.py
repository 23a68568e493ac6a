"""Community-engagement (cultural) signal aggregation.

Each count lookup is isolated: a failure becomes an ``Err`` result and the
signal is treated as absent (count 0). Nothing raised by a SignalSource ever
leaves this module.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field

from applicant_ranker.core.config import CulturalSignalConfig
from applicant_ranker.core.schemas import CandidateProfile, Flag
from applicant_ranker.pipeline.flags import (
    BADGE_HOLDER,
    COMMUNITY_ENGAGED,
    MENTORSHIP_ACTIVE,
    REFERRAL,
    TRAINING_COMPLETE,
    VERIFIED_PROFILE,
)
from applicant_ranker.sources.base import SignalSource

logger = logging.getLogger(__name__)


class Ok(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: int


class Err(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str


LookupResult = Ok | Err


class CulturalSignals(BaseModel):
    """Bounded engagement score plus the green flags that triggered."""

    score: float
    signals: list[Flag] = Field(default_factory=list)


async def lookup_count(
    name: str,
    lookup: Callable[[str], Awaitable[int]],
    user_id: str,
) -> LookupResult:
    """Run one count lookup, capturing any failure as an Err."""
    try:
        value = int(await lookup(user_id) or 0)
    except Exception as e:
        logger.warning(
            "Signal lookup '%s' failed for user %s: treating as absent",
            name, user_id,
            exc_info=True,
        )
        return Err(reason=f"{name}: {e!r}")
    return Ok(value=max(0, value))


def count_or_zero(result: LookupResult) -> int:
    """Failed lookups count as zero."""
    if isinstance(result, Ok):
        return result.value
    return 0


async def calculate_cultural_signals(
    candidate: CandidateProfile,
    source: SignalSource,
    config: CulturalSignalConfig | None = None,
) -> CulturalSignals:
    """Score community engagement for a candidate (0-100, baseline 50)."""
    config = config or CulturalSignalConfig()
    user_id = candidate.user_id
    if not user_id:
        return CulturalSignals(score=config.baseline)

    mentorship, courses, posts, badges = await asyncio.gather(
        lookup_count("mentorship_sessions", source.count_mentorship_sessions, user_id),
        lookup_count("completed_courses", source.count_completed_courses, user_id),
        lookup_count("forum_posts", source.count_forum_posts, user_id),
        lookup_count("badges", source.count_badges, user_id),
    )

    checks: list[tuple[bool, Flag, float]] = [
        (count_or_zero(mentorship) > 0, MENTORSHIP_ACTIVE, config.mentorship_bonus),
        (count_or_zero(courses) > 0, TRAINING_COMPLETE, config.training_bonus),
        (count_or_zero(posts) >= config.forum_post_threshold, COMMUNITY_ENGAGED,
         config.community_bonus),
        (count_or_zero(badges) > 0, BADGE_HOLDER, config.badge_bonus),
        (candidate.verified, VERIFIED_PROFILE, config.verified_bonus),
        (candidate.referred, REFERRAL, config.referral_bonus),
    ]

    score = config.baseline
    signals: list[Flag] = []
    for present, flag, bonus in checks:
        if present:
            signals.append(flag)
            score += bonus

    return CulturalSignals(score=max(0.0, min(100.0, score)), signals=signals)
