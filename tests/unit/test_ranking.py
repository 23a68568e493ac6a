"""Tests for ApplicantRanker: ranking, stats, comparison and single scoring."""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from applicant_ranker.core.config import RankingConfig, Settings
from applicant_ranker.core.exceptions import (
    ApplicationNotFoundError,
    CandidateNotFoundError,
    JobNotFoundError,
    NotFoundError,
)
from applicant_ranker.core.schemas import (
    WITHDRAWN,
    Application,
    CandidateProfile,
    JobRequirements,
    Tier,
)
from applicant_ranker.pipeline import ranking
from applicant_ranker.pipeline.ranking import ApplicantRanker, export_ranking_json
from applicant_ranker.sources.base import ApplicantSource, SignalSource

# ---------------------------------------------------------------------------
# Mock source
# ---------------------------------------------------------------------------


class MockSource(ApplicantSource, SignalSource):
    """In-memory jobs and applications; activity counts per user."""

    def __init__(
        self,
        jobs: list[JobRequirements],
        applications: list[Application],
        *,
        mentorship: dict[str, int] | None = None,
        delays: dict[str, float] | None = None,
        failing_users: set[str] | None = None,
    ) -> None:
        self._jobs = {j.id: j for j in jobs}
        self._applications = applications
        self._mentorship = mentorship or {}
        self._delays = delays or {}
        self._failing = failing_users or set()
        self.active = 0
        self.peak = 0

    async def get_job(self, job_id: str) -> JobRequirements | None:
        return self._jobs.get(job_id)

    async def list_applications(
        self, job_id: str, *, include_withdrawn: bool = False,
    ) -> list[Application]:
        return [
            a for a in self._applications
            if a.job_id == job_id and (include_withdrawn or a.status != WITHDRAWN)
        ]

    async def count_mentorship_sessions(self, user_id: str) -> int:
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self._delays.get(user_id, 0.0))
            if user_id in self._failing:
                raise ConnectionError("mentorship store down")
            return self._mentorship.get(user_id, 0)
        finally:
            self.active -= 1

    async def count_completed_courses(self, user_id: str) -> int:
        return 0

    async def count_forum_posts(self, user_id: str) -> int:
        return 0

    async def count_badges(self, user_id: str) -> int:
        return 0


JOB = JobRequirements(
    id="job-1",
    required_skills=["Python", "SQL"],
    preferred_skills=["Docker"],
    min_experience=2,
    max_experience=6,
)


def _strong(app_id: str, user_id: str, **kw: object) -> Application:
    """Scores 95 with no activity."""
    candidate = CandidateProfile(
        name=f"Candidate {user_id}",
        email=f"{user_id}@example.com",
        skills=["Python", "SQL", "Docker"],
        years_experience=4,
    )
    return Application(id=app_id, job_id="job-1", user_id=user_id, candidate=candidate, **kw)  # type: ignore[arg-type]


def _weak(app_id: str, user_id: str, **kw: object) -> Application:
    """Scores 25 with no activity."""
    candidate = CandidateProfile(email=f"{user_id}@example.com", years_experience=0)
    return Application(id=app_id, job_id="job-1", user_id=user_id, candidate=candidate, **kw)  # type: ignore[arg-type]


def _ranker(source: MockSource, **limits: int) -> ApplicantRanker:
    return ApplicantRanker(source, source, Settings(ranking=RankingConfig(**limits)))


# ---------------------------------------------------------------------------
# rank_applicants_for_job
# ---------------------------------------------------------------------------


class TestRankApplicants:
    async def test_min_score_keeps_ties_in_listing_order(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1"), _strong("a2", "u2"), _weak("a3", "u3")])
        ranked = await _ranker(source).rank_applicants_for_job("job-1", min_score=50)
        assert [a.application_id for a in ranked] == ["a1", "a2"]
        assert [a.score for a in ranked] == [95, 95]

    async def test_sorted_descending(self) -> None:
        source = MockSource([JOB], [_weak("a1", "u1"), _strong("a2", "u2"), _strong("a3", "u3")])
        ranked = await _ranker(source).rank_applicants_for_job("job-1")
        assert [a.application_id for a in ranked] == ["a2", "a3", "a1"]

    async def test_order_independent_of_completion_order(self) -> None:
        source = MockSource(
            [JOB],
            [_strong("a1", "u1"), _strong("a2", "u2"), _strong("a3", "u3")],
            delays={"u1": 0.03, "u2": 0.02, "u3": 0.0},
        )
        ranked = await _ranker(source).rank_applicants_for_job("job-1")
        assert [a.application_id for a in ranked] == ["a1", "a2", "a3"]

    async def test_tier_filter(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1"), _weak("a2", "u2")])
        ranked = await _ranker(source).rank_applicants_for_job("job-1", tier="NOT_READY")
        assert [a.application_id for a in ranked] == ["a2"]
        assert ranked[0].tier == Tier.NOT_READY

    async def test_withdrawn_excluded_by_default(self) -> None:
        source = MockSource(
            [JOB], [_strong("a1", "u1", status=WITHDRAWN), _weak("a2", "u2")],
        )
        ranker = _ranker(source)
        default = await ranker.rank_applicants_for_job("job-1")
        included = await ranker.rank_applicants_for_job("job-1", include_withdrawn=True)
        assert [a.application_id for a in default] == ["a2"]
        assert [a.application_id for a in included] == ["a1", "a2"]

    async def test_limit(self) -> None:
        apps = [_strong(f"a{i}", f"u{i}") for i in range(5)]
        ranked = await _ranker(MockSource([JOB], apps)).rank_applicants_for_job("job-1", limit=2)
        assert [a.application_id for a in ranked] == ["a0", "a1"]

    async def test_negative_limit_rejected(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1")])
        with pytest.raises(ValueError, match="limit"):
            await _ranker(source).rank_applicants_for_job("job-1", limit=-1)

    async def test_zero_limit(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1")])
        assert await _ranker(source).rank_applicants_for_job("job-1", limit=0) == []

    async def test_default_limit_from_settings(self) -> None:
        apps = [_strong(f"a{i}", f"u{i}") for i in range(5)]
        ranker = _ranker(MockSource([JOB], apps), default_limit=3)
        assert len(await ranker.rank_applicants_for_job("job-1")) == 3

    async def test_no_applications(self) -> None:
        assert await _ranker(MockSource([JOB], [])).rank_applicants_for_job("job-1") == []

    async def test_unknown_job(self) -> None:
        with pytest.raises(JobNotFoundError):
            await _ranker(MockSource([JOB], [])).rank_applicants_for_job("nope")

    async def test_candidate_summary(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1"), _weak("a2", "u2")])
        ranked = await _ranker(source).rank_applicants_for_job("job-1")
        assert ranked[0].candidate.name == "Candidate u1"
        assert ranked[1].candidate.name == "u2"
        assert ranked[1].candidate.id == "u2"

    async def test_concurrency_is_bounded(self) -> None:
        apps = [_strong(f"a{i}", f"u{i}") for i in range(6)]
        source = MockSource([JOB], apps, delays={f"u{i}": 0.01 for i in range(6)})
        await _ranker(source, max_concurrency=2).rank_applicants_for_job("job-1")
        assert source.peak == 2

    async def test_failing_lookup_isolated_to_one_candidate(self) -> None:
        source = MockSource(
            [JOB],
            [_strong("a1", "u1"), _strong("a2", "u2")],
            mentorship={"u1": 2, "u2": 2},
            failing_users={"u1"},
        )
        ranked = await _ranker(source).rank_applicants_for_job("job-1")
        by_app = {a.application_id: a for a in ranked}
        # 50 baseline -> 5 points; active mentee 65 -> 6.5 -> 7 points
        assert by_app["a1"].breakdown.cultural == 5
        assert by_app["a2"].breakdown.cultural == 7
        assert [f.id for f in by_app["a2"].green_flags] == ["mentorship_active"]

    async def test_export_json(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1")])
        ranked = await _ranker(source).rank_applicants_for_job("job-1")
        data = json.loads(export_ranking_json(ranked))
        assert data[0]["application_id"] == "a1"
        assert data[0]["tier"] == "EXCELLENT"
        assert data[0]["breakdown"]["skills_required"] == 35


# ---------------------------------------------------------------------------
# get_applicant_stats
# ---------------------------------------------------------------------------


class TestApplicantStats:
    async def test_aggregates(self) -> None:
        overqualified = Application(
            id="a3", job_id="job-1", user_id="u3",
            candidate=CandidateProfile(skills=["Python", "SQL", "Docker"], years_experience=20),
        )
        source = MockSource(
            [JOB],
            [_weak("a1", "u1"), _strong("a2", "u2"), overqualified],
            mentorship={"u2": 1},
        )
        stats = await _ranker(source).get_applicant_stats("job-1")
        assert stats.total == 3
        assert stats.by_tier[Tier.EXCELLENT] == 2
        assert stats.by_tier[Tier.NOT_READY] == 1
        assert stats.by_tier[Tier.GOOD] == 0
        assert set(stats.by_tier) == set(Tier)
        assert stats.with_red_flags == 1
        assert stats.with_green_flags == 1
        assert stats.top_candidate is not None
        assert stats.top_candidate.application_id == "a2"
        # 25 + 97 + 89 = 211 -> 70.33
        assert stats.average_score == 70

    async def test_empty(self) -> None:
        stats = await _ranker(MockSource([JOB], [])).get_applicant_stats("job-1")
        assert stats.total == 0
        assert stats.average_score == 0
        assert stats.top_candidate is None

    async def test_unknown_job(self) -> None:
        with pytest.raises(NotFoundError):
            await _ranker(MockSource([], [])).get_applicant_stats("job-1")


# ---------------------------------------------------------------------------
# compare_candidates
# ---------------------------------------------------------------------------


class TestCompareCandidates:
    async def test_winner_and_dimensions(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1"), _weak("a2", "u2")])
        result = await _ranker(source).compare_candidates("job-1", "u1", "u2")
        assert result.winner == "candidate1"
        assert result.score_difference == 70
        assert result.comparison["skills_required"].candidate1 == 35
        assert result.comparison["skills_required"].candidate2 == 0
        assert result.comparison["skills_required"].winner == "candidate1"
        assert set(result.comparison) == {
            "skills_required", "skills_preferred", "experience",
            "qualifications", "cultural", "availability",
        }

    async def test_symmetry(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1"), _weak("a2", "u2")])
        ranker = _ranker(source)
        forward = await ranker.compare_candidates("job-1", "u1", "u2")
        backward = await ranker.compare_candidates("job-1", "u2", "u1")
        assert forward.score_difference == backward.score_difference
        assert forward.winner == "candidate1"
        assert backward.winner == "candidate2"

    async def test_tie_both_directions(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1"), _strong("a2", "u2")])
        ranker = _ranker(source)
        forward = await ranker.compare_candidates("job-1", "u1", "u2")
        backward = await ranker.compare_candidates("job-1", "u2", "u1")
        assert forward.winner == backward.winner == "tie"
        assert forward.score_difference == 0

    async def test_equal_dimension_goes_to_first(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1"), _weak("a2", "u2")])
        result = await _ranker(source).compare_candidates("job-1", "u2", "u1")
        assert result.comparison["qualifications"].winner == "candidate1"
        assert result.comparison["skills_required"].winner == "candidate2"

    async def test_missing_candidate(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1")])
        with pytest.raises(CandidateNotFoundError) as exc_info:
            await _ranker(source).compare_candidates("job-1", "u1", "ghost")
        assert exc_info.value.missing == ["ghost"]

    async def test_withdrawn_candidate_not_comparable(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1"), _weak("a2", "u2", status=WITHDRAWN)])
        with pytest.raises(CandidateNotFoundError):
            await _ranker(source).compare_candidates("job-1", "u1", "u2")


# ---------------------------------------------------------------------------
# score_application
# ---------------------------------------------------------------------------


class TestScoreApplication:
    async def test_scores_one(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1"), _weak("a2", "u2")])
        result = await _ranker(source).score_application("job-1", "a2")
        assert result.application_id == "a2"
        assert result.score == 25

    async def test_withdrawn_still_scored(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1", status=WITHDRAWN)])
        result = await _ranker(source).score_application("job-1", "a1")
        assert result.status == WITHDRAWN

    async def test_missing_application(self) -> None:
        source = MockSource([JOB], [_strong("a1", "u1")])
        with pytest.raises(ApplicationNotFoundError):
            await _ranker(source).score_application("job-1", "a9")


# ---------------------------------------------------------------------------
# Reference time
# ---------------------------------------------------------------------------


class TestReferenceTime:
    async def test_aware_now_accepted(self) -> None:
        # 10:00 at UTC+10 is midnight UTC; available ten days later.
        now = datetime(2026, 3, 1, 10, tzinfo=timezone(timedelta(hours=10)))
        source = MockSource([JOB], [_strong("a1", "u1", available_from=datetime(2026, 3, 11))])
        ranker = ApplicantRanker(source, source, now=now)
        [ranked] = await ranker.rank_applicants_for_job("job-1")
        assert ranked.breakdown.availability == 4
        assert ranked.score == 94

    async def test_one_reference_time_per_call(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[datetime] = []

        def fake_utcnow() -> datetime:
            calls.append(datetime(2026, 3, 1))
            return calls[-1]

        monkeypatch.setattr(ranking, "utcnow", fake_utcnow)
        apps = [_strong(f"a{i}", f"u{i}", available_from=datetime(2026, 3, 6)) for i in range(3)]
        ranked = await _ranker(MockSource([JOB], apps)).rank_applicants_for_job("job-1")
        assert len(calls) == 1
        assert [a.breakdown.availability for a in ranked] == [5, 5, 5]
        assert [a.score for a in ranked] == [95, 95, 95]
