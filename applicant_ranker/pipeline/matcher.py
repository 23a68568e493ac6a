"""Skill and qualification matching.

Matching is fuzzy containment: after lowercasing and trimming, two names
match when they are equal or either one is a substring of the other
("javascript" matches "javascript programming").
"""

import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class SkillsMatch(BaseModel):
    """Overlap between a candidate's skills and a job's skill lists."""

    required_score: float
    preferred_score: float
    matched_required: list[str] = Field(default_factory=list)
    matched_preferred: list[str] = Field(default_factory=list)
    missing_required: list[str] = Field(default_factory=list)


def clean(names: list[str]) -> list[str]:
    """Lowercase and trim names, dropping blanks. Repeats are kept."""
    cleaned = (n.lower().strip() for n in names)
    return [n for n in cleaned if n]


def normalize(names: list[str]) -> list[str]:
    """Like clean(), but also drops repeats (order kept)."""
    return list(dict.fromkeys(clean(names)))


def fuzzy_match(a: str, b: str) -> bool:
    return a == b or a in b or b in a


def _matched(wanted: list[str], have: list[str]) -> list[str]:
    return [w for w in wanted if any(fuzzy_match(h, w) for h in have)]


def _percent(matched: int, total: int) -> float:
    # Nothing asked for means nothing missing.
    if total == 0:
        return 100.0
    return matched / total * 100.0


def calculate_skills_match(
    candidate_skills: list[str],
    required_skills: list[str],
    preferred_skills: list[str],
) -> SkillsMatch:
    """Compare a candidate's skills against required and preferred skills.

    Returns:
        SkillsMatch with 0-100 scores and the normalized matched/missing names.
    """
    have = normalize(candidate_skills)
    # Job lists keep repeats: every listed entry counts towards the total.
    required = clean(required_skills)
    preferred = clean(preferred_skills)

    matched_required = _matched(required, have)
    matched_preferred = _matched(preferred, have)
    missing_required = [s for s in required if s not in matched_required]

    if missing_required:
        logger.debug("Missing required skills: %s", ", ".join(missing_required))

    return SkillsMatch(
        required_score=_percent(len(matched_required), len(required)),
        preferred_score=_percent(len(matched_preferred), len(preferred)),
        matched_required=matched_required,
        matched_preferred=matched_preferred,
        missing_required=missing_required,
    )


def calculate_qualification_score(
    candidate_qualifications: list[str],
    required_qualifications: list[str],
) -> float:
    """Percentage of required qualifications the candidate holds (0-100)."""
    required = clean(required_qualifications)
    matched = _matched(required, normalize(candidate_qualifications))
    return _percent(len(matched), len(required))
