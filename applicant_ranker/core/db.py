"""SQLite record store for jobs, candidates, applications and community activity."""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from applicant_ranker.core.schemas import (
    WITHDRAWN,
    Application,
    CandidateProfile,
    JobRequirements,
    utcnow,
)

logger = logging.getLogger(__name__)

_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS jobs (
    id                      TEXT PRIMARY KEY,
    title                   TEXT NOT NULL DEFAULT '',
    location                TEXT NOT NULL DEFAULT '',
    remote                  INTEGER NOT NULL DEFAULT 0,
    min_experience          REAL NOT NULL DEFAULT 0,
    max_experience          REAL,
    salary_max              REAL,
    start_date              TEXT,
    required_qualifications TEXT NOT NULL DEFAULT '[]'
);
"""

_JOB_SKILLS_TABLE = """
CREATE TABLE IF NOT EXISTS job_skills (
    job_id  TEXT NOT NULL,
    name    TEXT NOT NULL,
    kind    TEXT NOT NULL CHECK (kind IN ('required', 'preferred')),
    PRIMARY KEY (job_id, name, kind)
);
"""

_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id               TEXT PRIMARY KEY,
    email            TEXT NOT NULL DEFAULT '',
    name             TEXT NOT NULL DEFAULT '',
    avatar           TEXT,
    location         TEXT NOT NULL DEFAULT '',
    years_experience REAL,
    qualifications   TEXT NOT NULL DEFAULT '[]',
    expected_salary  REAL,
    available_from   TEXT,
    verified         INTEGER NOT NULL DEFAULT 0,
    referred         INTEGER NOT NULL DEFAULT 0
);
"""

_USER_SKILLS_TABLE = """
CREATE TABLE IF NOT EXISTS user_skills (
    user_id TEXT NOT NULL,
    name    TEXT NOT NULL,
    PRIMARY KEY (user_id, name)
);
"""

_APPLICATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS applications (
    id              TEXT PRIMARY KEY,
    job_id          TEXT NOT NULL,
    user_id         TEXT NOT NULL,
    status          TEXT NOT NULL DEFAULT 'SUBMITTED',
    expected_salary REAL,
    available_from  TEXT,
    created_at      TEXT NOT NULL,
    UNIQUE(job_id, user_id)
);
"""

_ACTIVITY_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS mentor_sessions (
        id        INTEGER PRIMARY KEY AUTOINCREMENT,
        mentee_id TEXT NOT NULL,
        mentor_id TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS course_enrolments (
        user_id   TEXT NOT NULL,
        course_id TEXT NOT NULL,
        status    TEXT NOT NULL DEFAULT 'ENROLLED',
        PRIMARY KEY (user_id, course_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS forum_replies (
        id       INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id  TEXT NOT NULL,
        topic_id TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS user_badges (
        user_id TEXT NOT NULL,
        badge   TEXT NOT NULL,
        PRIMARY KEY (user_id, badge)
    );
    """,
)


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    for ddl in (_JOBS_TABLE, _JOB_SKILLS_TABLE, _USERS_TABLE, _USER_SKILLS_TABLE,
                _APPLICATIONS_TABLE, *_ACTIVITY_TABLES):
        conn.execute(ddl)
    conn.commit()
    return conn


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


def upsert_job(conn: sqlite3.Connection, job: JobRequirements) -> None:
    """Insert or replace a job together with its skill lists."""
    conn.execute(
        """
        INSERT OR REPLACE INTO jobs
            (id, title, location, remote, min_experience, max_experience,
             salary_max, start_date, required_qualifications)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            job.id,
            job.title,
            job.location,
            int(job.remote),
            job.min_experience,
            job.max_experience,
            job.salary_max,
            _iso(job.start_date),
            json.dumps(job.required_qualifications),
        ),
    )
    conn.execute("DELETE FROM job_skills WHERE job_id = ?", (job.id,))
    conn.executemany(
        "INSERT OR IGNORE INTO job_skills (job_id, name, kind) VALUES (?, ?, ?)",
        [(job.id, s, "required") for s in job.required_skills]
        + [(job.id, s, "preferred") for s in job.preferred_skills],
    )
    conn.commit()


def get_job(conn: sqlite3.Connection, job_id: str) -> JobRequirements | None:
    """Load a job with its required and preferred skills, or None."""
    row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
    if row is None:
        return None
    skills = conn.execute(
        "SELECT name, kind FROM job_skills WHERE job_id = ? ORDER BY rowid", (job_id,),
    ).fetchall()
    return JobRequirements(
        id=row["id"],
        title=row["title"],
        location=row["location"],
        remote=bool(row["remote"]),
        min_experience=row["min_experience"],
        max_experience=row["max_experience"],
        salary_max=row["salary_max"],
        start_date=row["start_date"],
        required_qualifications=json.loads(row["required_qualifications"]),
        required_skills=[s["name"] for s in skills if s["kind"] == "required"],
        preferred_skills=[s["name"] for s in skills if s["kind"] == "preferred"],
    )


# ---------------------------------------------------------------------------
# Candidates and applications
# ---------------------------------------------------------------------------


def upsert_candidate(conn: sqlite3.Connection, profile: CandidateProfile) -> None:
    """Insert or replace a candidate profile and its skills."""
    if not profile.user_id:
        msg = "candidate profile needs a user_id to be stored"
        raise ValueError(msg)
    conn.execute(
        """
        INSERT OR REPLACE INTO users
            (id, email, name, avatar, location, years_experience, qualifications,
             expected_salary, available_from, verified, referred)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            profile.user_id,
            profile.email,
            profile.name,
            profile.avatar,
            profile.location,
            profile.years_experience,
            json.dumps(profile.qualifications),
            profile.expected_salary,
            _iso(profile.available_from),
            int(profile.verified),
            int(profile.referred),
        ),
    )
    conn.execute("DELETE FROM user_skills WHERE user_id = ?", (profile.user_id,))
    conn.executemany(
        "INSERT OR IGNORE INTO user_skills (user_id, name) VALUES (?, ?)",
        [(profile.user_id, s) for s in profile.skills],
    )
    conn.commit()


def get_candidate(conn: sqlite3.Connection, user_id: str) -> CandidateProfile | None:
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    if row is None:
        return None
    skills = conn.execute(
        "SELECT name FROM user_skills WHERE user_id = ? ORDER BY rowid", (user_id,),
    ).fetchall()
    return CandidateProfile(
        user_id=row["id"],
        email=row["email"],
        name=row["name"],
        avatar=row["avatar"],
        location=row["location"],
        years_experience=row["years_experience"],
        qualifications=json.loads(row["qualifications"]),
        expected_salary=row["expected_salary"],
        available_from=row["available_from"],
        verified=bool(row["verified"]),
        referred=bool(row["referred"]),
        skills=[s["name"] for s in skills],
    )


def insert_application(conn: sqlite3.Connection, application: Application) -> bool:
    """Insert an application, ignoring it if the id or (job, user) pair exists.

    Returns True if a new row was inserted, False if it was a duplicate.
    """
    applied_at = application.applied_at or utcnow()
    try:
        conn.execute(
            """
            INSERT INTO applications
                (id, job_id, user_id, status, expected_salary, available_from, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                application.id,
                application.job_id,
                application.user_id,
                application.status,
                application.expected_salary,
                _iso(application.available_from),
                applied_at.isoformat(),
            ),
        )
        conn.commit()
        return True
    except sqlite3.IntegrityError:
        return False


def list_applications(
    conn: sqlite3.Connection,
    job_id: str,
    include_withdrawn: bool = False,
) -> list[Application]:
    """Applications for a job in submission order, with candidate profiles embedded."""
    query = "SELECT * FROM applications WHERE job_id = ?"
    params: list[Any] = [job_id]
    if not include_withdrawn:
        query += " AND status != ?"
        params.append(WITHDRAWN)
    query += " ORDER BY created_at, rowid"

    applications: list[Application] = []
    for row in conn.execute(query, params).fetchall():
        candidate = get_candidate(conn, row["user_id"])
        if candidate is None:
            logger.warning(
                "Application %s references unknown user %s - using empty profile",
                row["id"], row["user_id"],
            )
            candidate = CandidateProfile(user_id=row["user_id"])
        applications.append(Application(
            id=row["id"],
            job_id=row["job_id"],
            user_id=row["user_id"],
            status=row["status"],
            applied_at=row["created_at"],
            expected_salary=row["expected_salary"],
            available_from=row["available_from"],
            candidate=candidate,
        ))
    return applications


# ---------------------------------------------------------------------------
# Community activity
# ---------------------------------------------------------------------------


def record_mentor_session(
    conn: sqlite3.Connection, mentee_id: str, mentor_id: str | None = None,
) -> None:
    conn.execute(
        "INSERT INTO mentor_sessions (mentee_id, mentor_id) VALUES (?, ?)",
        (mentee_id, mentor_id),
    )
    conn.commit()


def record_course_enrolment(
    conn: sqlite3.Connection, user_id: str, course_id: str, status: str = "COMPLETED",
) -> None:
    conn.execute(
        "INSERT OR REPLACE INTO course_enrolments (user_id, course_id, status) VALUES (?, ?, ?)",
        (user_id, course_id, status.upper()),
    )
    conn.commit()


def record_forum_reply(
    conn: sqlite3.Connection, user_id: str, topic_id: str | None = None,
) -> None:
    conn.execute(
        "INSERT INTO forum_replies (user_id, topic_id) VALUES (?, ?)",
        (user_id, topic_id),
    )
    conn.commit()


def award_badge(conn: sqlite3.Connection, user_id: str, badge: str) -> None:
    conn.execute(
        "INSERT OR IGNORE INTO user_badges (user_id, badge) VALUES (?, ?)",
        (user_id, badge),
    )
    conn.commit()


def _count(conn: sqlite3.Connection, query: str, params: tuple[Any, ...]) -> int:
    return int(conn.execute(query, params).fetchone()[0])


def count_mentor_sessions(conn: sqlite3.Connection, user_id: str) -> int:
    return _count(conn, "SELECT COUNT(*) FROM mentor_sessions WHERE mentee_id = ?", (user_id,))


def count_completed_courses(conn: sqlite3.Connection, user_id: str) -> int:
    return _count(
        conn,
        "SELECT COUNT(*) FROM course_enrolments WHERE user_id = ? AND status = 'COMPLETED'",
        (user_id,),
    )


def count_forum_replies(conn: sqlite3.Connection, user_id: str) -> int:
    return _count(conn, "SELECT COUNT(*) FROM forum_replies WHERE user_id = ?", (user_id,))


def count_badges(conn: sqlite3.Connection, user_id: str) -> int:
    return _count(conn, "SELECT COUNT(*) FROM user_badges WHERE user_id = ?", (user_id,))


# ---------------------------------------------------------------------------
# Bulk load
# ---------------------------------------------------------------------------


def load_dataset(conn: sqlite3.Connection, data: dict[str, Any]) -> dict[str, int]:
    """Load jobs, candidates (with activity) and applications from a mapping.

    Expected keys: ``jobs``, ``candidates``, ``applications``. A candidate may
    carry an ``activity`` mapping with ``mentorship_sessions``,
    ``completed_courses`` and ``forum_posts`` counts and a ``badges`` list.

    Returns the number of records loaded per key.
    """
    counts = {"jobs": 0, "candidates": 0, "applications": 0}

    for raw in data.get("jobs") or []:
        upsert_job(conn, JobRequirements.model_validate(raw))
        counts["jobs"] += 1

    for raw in data.get("candidates") or []:
        raw = dict(raw)
        activity = raw.pop("activity", None) or {}
        profile = CandidateProfile.model_validate(raw)
        upsert_candidate(conn, profile)
        _load_activity(conn, profile.user_id or "", activity)
        counts["candidates"] += 1

    for raw in data.get("applications") or []:
        if insert_application(conn, Application.model_validate(raw)):
            counts["applications"] += 1

    logger.info(
        "Loaded %d jobs, %d candidates, %d applications",
        counts["jobs"], counts["candidates"], counts["applications"],
    )
    return counts


def _load_activity(conn: sqlite3.Connection, user_id: str, activity: dict[str, Any]) -> None:
    for _ in range(int(activity.get("mentorship_sessions", 0))):
        record_mentor_session(conn, user_id)
    for i in range(int(activity.get("completed_courses", 0))):
        record_course_enrolment(conn, user_id, f"course-{i + 1}")
    for _ in range(int(activity.get("forum_posts", 0))):
        record_forum_reply(conn, user_id)
    for badge in activity.get("badges") or []:
        award_badge(conn, user_id, str(badge))
