"""
Error taxonomy for provider jobs and scoring
"""

import re
from typing import Optional


class JobError(Exception):
    """Base class for failures while driving a provider job."""

    def __init__(self, reason: str, job_id: Optional[str] = None):
        self.reason = reason
        self.job_id = job_id
        message = f"{reason} (job {job_id})" if job_id else reason
        super().__init__(message)


class JobSubmissionError(JobError):
    """Job creation failed, or the outer retry budget ran out."""

    def __init__(
        self,
        reason: str,
        job_id: Optional[str] = None,
        retryable: bool = True,
        attempts: Optional[int] = None,
    ):
        self.retryable = retryable
        self.attempts = attempts
        super().__init__(reason, job_id)


class JobFailedError(JobError):
    """The provider reported a terminal failure for the job."""


class ZeroResultsError(JobFailedError):
    """The job completed but produced no items."""

    def __init__(self, job_id: Optional[str] = None, query: Optional[str] = None):
        self.query = query
        reason = "Search completed with 0 results"
        if query:
            reason += f" for query '{query[:80]}'"
        super().__init__(reason, job_id)


class JobTimeoutError(JobError):
    """Polling ran through every attempt without a terminal status."""

    def __init__(self, attempts: int, elapsed_ms: float, job_id: Optional[str] = None):
        self.attempts = attempts
        self.elapsed_ms = elapsed_ms
        super().__init__(
            f"Job did not finish after {attempts} attempts ({elapsed_ms / 1000:.1f}s)",
            job_id,
        )


class JobPollingError(JobError):
    """Too many consecutive status-check failures."""

    def __init__(self, consecutive_errors: int, last_error: str, job_id: Optional[str] = None):
        self.consecutive_errors = consecutive_errors
        self.last_error = last_error
        super().__init__(
            f"Status check failed {consecutive_errors} times in a row: {last_error}",
            job_id,
        )


class ScoringResponseError(ValueError):
    """The scoring model returned text that does not match the contract."""


# =============================================================================
# Message sanitizing
# =============================================================================

_SECRET_PATTERNS = [
    re.compile(r"(sk-[A-Za-z0-9_\-]{8,})"),
    re.compile(r"((?:api[_-]?key|apikey|x-api-key|authorization)[\"']?\s*[:=]\s*[\"']?)([^\s\"',}]+)", re.IGNORECASE),
    re.compile(r"(Bearer\s+)([A-Za-z0-9._\-]+)"),
]


def sanitize_error_message(message: str, max_length: int = 200) -> str:
    """Redact credentials from an error message before it is recorded."""
    cleaned = _SECRET_PATTERNS[0].sub("[REDACTED]", message)
    cleaned = _SECRET_PATTERNS[2].sub(r"\1[REDACTED]", cleaned)
    cleaned = _SECRET_PATTERNS[1].sub(r"\1[REDACTED]", cleaned)
    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length] + "..."
    return cleaned
