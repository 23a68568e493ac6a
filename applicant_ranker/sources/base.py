"""Abstract collaborators the ranking pipeline reads from."""

from abc import ABC, abstractmethod

from applicant_ranker.core.schemas import Application, JobRequirements


class ApplicantSource(ABC):
    """Looks up jobs and the applications made to them."""

    @abstractmethod
    async def get_job(self, job_id: str) -> JobRequirements | None:
        """Return the job with its skill requirements, or None if absent."""

    @abstractmethod
    async def list_applications(
        self, job_id: str, *, include_withdrawn: bool = False,
    ) -> list[Application]:
        """Return applications for a job with embedded candidate profiles.

        Withdrawn applications are left out unless include_withdrawn is set.
        """


class SignalSource(ABC):
    """Per-user community activity counts. Any call may fail independently."""

    @abstractmethod
    async def count_mentorship_sessions(self, user_id: str) -> int:
        """Sessions the user attended as a mentee."""

    @abstractmethod
    async def count_completed_courses(self, user_id: str) -> int:
        """Course enrolments with a completed status."""

    @abstractmethod
    async def count_forum_posts(self, user_id: str) -> int:
        """Forum replies authored by the user."""

    @abstractmethod
    async def count_badges(self, user_id: str) -> int:
        """Badges awarded to the user."""
