"""Ranking service: wires job lookup, application listing, scoring and ordering.

Data flow for a ranking:
  1. Job lookup (JobNotFoundError if absent)
  2. Application listing (withdrawn excluded unless requested)
  3. Concurrent per-application scoring, bounded by max_concurrency
  4. Filter by min_score and tier
  5. Stable sort by score, descending
  6. Truncate to limit
"""

import asyncio
import json
import logging
from datetime import datetime

from applicant_ranker.core.config import Settings
from applicant_ranker.core.exceptions import (
    ApplicationNotFoundError,
    CandidateNotFoundError,
    JobNotFoundError,
)
from applicant_ranker.core.schemas import (
    ApplicantStats,
    Application,
    CandidateComparison,
    CandidateSummary,
    DimensionComparison,
    JobRequirements,
    RankedApplicant,
    ScoreBreakdown,
    Tier,
    to_naive_utc,
    utcnow,
)
from applicant_ranker.pipeline.scorer import calculate_candidate_score, round_half_up
from applicant_ranker.sources.base import ApplicantSource, SignalSource

logger = logging.getLogger(__name__)


def summarize_candidate(application: Application) -> CandidateSummary:
    """Display-oriented summary; name falls back to the email's local part."""
    profile = application.candidate
    name = profile.name or profile.email.split("@")[0]
    return CandidateSummary(
        id=application.user_id,
        name=name,
        email=profile.email,
        avatar=profile.avatar,
        location=profile.location,
        years_experience=profile.years_experience,
    )


class ApplicantRanker:
    """Ranks, summarizes and compares the applicants for a job.

    Usage::

        ranker = ApplicantRanker(source, signals, settings)
        ranked = await ranker.rank_applicants_for_job("job-1", min_score=50)
    """

    def __init__(
        self,
        source: ApplicantSource,
        signals: SignalSource,
        settings: Settings | None = None,
        *,
        now: datetime | None = None,
    ) -> None:
        self._source = source
        self._signals = signals
        self._settings = settings or Settings()
        self._now = to_naive_utc(now)

    async def rank_applicants_for_job(
        self,
        job_id: str,
        *,
        min_score: int = 0,
        tier: Tier | str | None = None,
        include_withdrawn: bool = False,
        limit: int | None = None,
    ) -> list[RankedApplicant]:
        """Score every applicant for a job and return them best first.

        Ties keep the order in which the source listed the applications.

        Raises:
            JobNotFoundError: If the job does not exist.
            ValueError: If limit is negative.
        """
        if limit is None:
            limit = self._settings.ranking.default_limit
        if limit < 0:
            msg = f"limit must be >= 0, got {limit}"
            raise ValueError(msg)
        job = await self._get_job(job_id)

        applications = await self._source.list_applications(
            job_id, include_withdrawn=include_withdrawn,
        )
        logger.info("Scoring %d applications for job %s", len(applications), job_id)

        scored = await self._score_all(job, applications, self._reference_time())

        ranked = [a for a in scored if a.score >= min_score]
        if tier:
            wanted = Tier(tier)
            ranked = [a for a in ranked if a.tier == wanted]

        ranked.sort(key=lambda a: a.score, reverse=True)
        ranked = ranked[:limit]

        logger.info(
            "Job %s: %d scored, %d after filters (min_score=%d, tier=%s)",
            job_id, len(scored), len(ranked), min_score, tier,
        )
        return ranked

    async def get_applicant_stats(self, job_id: str) -> ApplicantStats:
        """Tier counts, mean score, flag counts and top candidate for a job."""
        ranked = await self.rank_applicants_for_job(
            job_id, min_score=0, limit=self._settings.ranking.aggregate_limit,
        )
        by_tier = {t: 0 for t in Tier}
        for a in ranked:
            by_tier[a.tier] += 1

        average = round_half_up(sum(a.score for a in ranked) / len(ranked)) if ranked else 0

        return ApplicantStats(
            total=len(ranked),
            by_tier=by_tier,
            average_score=average,
            with_red_flags=sum(1 for a in ranked if a.red_flags),
            with_green_flags=sum(1 for a in ranked if a.green_flags),
            top_candidate=ranked[0] if ranked else None,
        )

    async def compare_candidates(
        self, job_id: str, candidate_id1: str, candidate_id2: str,
    ) -> CandidateComparison:
        """Side-by-side comparison of two applicants (by candidate id).

        Raises:
            JobNotFoundError: If the job does not exist.
            CandidateNotFoundError: If either candidate is not a ranked applicant.
        """
        ranked = await self.rank_applicants_for_job(
            job_id, min_score=0, limit=self._settings.ranking.aggregate_limit,
        )
        by_user: dict[str, RankedApplicant] = {}
        for a in ranked:
            by_user.setdefault(a.user_id, a)

        first = by_user.get(candidate_id1)
        second = by_user.get(candidate_id2)
        if first is None or second is None:
            missing = [
                cid for cid, found in ((candidate_id1, first), (candidate_id2, second))
                if found is None
            ]
            raise CandidateNotFoundError(job_id, missing)

        if first.score > second.score:
            winner = "candidate1"
        elif second.score > first.score:
            winner = "candidate2"
        else:
            winner = "tie"

        comparison: dict[str, DimensionComparison] = {}
        for dimension in ScoreBreakdown.model_fields:
            a = getattr(first.breakdown, dimension)
            b = getattr(second.breakdown, dimension)
            comparison[dimension] = DimensionComparison(
                candidate1=a,
                candidate2=b,
                winner="candidate1" if a >= b else "candidate2",
            )

        return CandidateComparison(
            candidate1=first,
            candidate2=second,
            winner=winner,
            score_difference=abs(first.score - second.score),
            comparison=comparison,
        )

    async def score_application(self, job_id: str, application_id: str) -> RankedApplicant:
        """Score a single application, withdrawn or not.

        Raises:
            JobNotFoundError: If the job does not exist.
            ApplicationNotFoundError: If the job has no such application.
        """
        job = await self._get_job(job_id)
        applications = await self._source.list_applications(job_id, include_withdrawn=True)
        for application in applications:
            if application.id == application_id:
                return await self._score(job, application, self._reference_time())
        raise ApplicationNotFoundError(job_id, application_id)

    async def _get_job(self, job_id: str) -> JobRequirements:
        job = await self._source.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def _reference_time(self) -> datetime:
        # Shared by every candidate scored in one call.
        return self._now or utcnow()

    async def _score_all(
        self, job: JobRequirements, applications: list[Application], now: datetime,
    ) -> list[RankedApplicant]:
        # gather() keeps input order regardless of completion order.
        semaphore = asyncio.Semaphore(self._settings.ranking.max_concurrency)

        async def task(application: Application) -> RankedApplicant:
            async with semaphore:
                return await self._score(job, application, now)

        return list(await asyncio.gather(*(task(a) for a in applications)))

    async def _score(
        self, job: JobRequirements, application: Application, now: datetime,
    ) -> RankedApplicant:
        result = await calculate_candidate_score(
            application.candidate,
            job,
            application,
            signals=self._signals,
            config=self._settings.scoring,
            now=now,
        )
        return RankedApplicant(
            application_id=application.id,
            user_id=application.user_id,
            applied_at=application.applied_at,
            status=application.status,
            candidate=summarize_candidate(application),
            **dict(result),
        )


def export_ranking_json(ranked: list[RankedApplicant]) -> str:
    """Export a ranking as a JSON string."""
    data = [a.model_dump(mode="json") for a in ranked]
    return json.dumps(data, indent=2)
