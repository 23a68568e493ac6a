"""Exceptions raised by the ranking service."""


class RankingError(Exception):
    """Base exception for ranking errors."""


class NotFoundError(RankingError, LookupError):
    """A requested record does not exist."""


class JobNotFoundError(NotFoundError):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class CandidateNotFoundError(NotFoundError):
    """Raised when one or both compared candidates have not applied."""

    def __init__(self, job_id: str, missing: list[str]) -> None:
        super().__init__(
            f"Candidate(s) not found among applicants for job {job_id}: {', '.join(missing)}"
        )
        self.job_id = job_id
        self.missing = missing


class ApplicationNotFoundError(NotFoundError):
    def __init__(self, job_id: str, application_id: str) -> None:
        super().__init__(f"Application {application_id} not found for job {job_id}")
        self.job_id = job_id
        self.application_id = application_id
