"""SQLite-backed applicant and signal source."""

import sqlite3

from applicant_ranker.core import db
from applicant_ranker.core.schemas import Application, JobRequirements
from applicant_ranker.sources.base import ApplicantSource, SignalSource


class SQLiteSource(ApplicantSource, SignalSource):
    """Serves jobs, applications and activity counts from a local database."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def get_job(self, job_id: str) -> JobRequirements | None:
        return db.get_job(self._conn, job_id)

    async def list_applications(
        self, job_id: str, *, include_withdrawn: bool = False,
    ) -> list[Application]:
        return db.list_applications(self._conn, job_id, include_withdrawn)

    async def count_mentorship_sessions(self, user_id: str) -> int:
        return db.count_mentor_sessions(self._conn, user_id)

    async def count_completed_courses(self, user_id: str) -> int:
        return db.count_completed_courses(self._conn, user_id)

    async def count_forum_posts(self, user_id: str) -> int:
        return db.count_forum_replies(self._conn, user_id)

    async def count_badges(self, user_id: str) -> int:
        return db.count_badges(self._conn, user_id)
