"""
Outer retry with exponential backoff.

Wraps a whole create-and-poll sequence so a submission hiccup does not force
the caller to re-drive the job. Provider failures, empty results, timeouts and
status-check escalation are final and pass straight through, so a job that was
accepted is never submitted twice.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..config.settings import RETRY_CONFIG
from ..core.errors import JobSubmissionError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable_job_error(exc: BaseException) -> bool:
    """Retry submission failures flagged retryable, nothing else."""
    return isinstance(exc, JobSubmissionError) and exc.retryable


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    multiplier: Optional[float] = None,
    max_delay: Optional[float] = None,
    retry_if: Callable[[BaseException], bool] = is_retryable_job_error,
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    description: str = "Job",
) -> T:
    """
    Await ``operation`` until it succeeds or the attempt budget runs out.

    Delay before retry n is ``base_delay * multiplier ** (n - 1)``, capped at
    ``max_delay``.

    Raises:
        JobSubmissionError: every attempt failed with a retryable error
        Exception: the first non-retryable error, unchanged
    """
    attempts = attempts or RETRY_CONFIG["attempts"]
    base_delay = RETRY_CONFIG["base_delay_seconds"] if base_delay is None else base_delay
    multiplier = multiplier or RETRY_CONFIG["multiplier"]
    max_delay = RETRY_CONFIG["max_delay_seconds"] if max_delay is None else max_delay

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=base_delay, exp_base=multiplier, max=max_delay),
        retry=retry_if_exception(retry_if),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=sleep or asyncio.sleep,
    )

    try:
        async for attempt in retrying:
            with attempt:
                return await operation()
    except RetryError as e:
        last = e.last_attempt.exception()
        raise JobSubmissionError(
            f"{description} failed after {attempts} attempts: {last}",
            retryable=False,
            attempts=attempts,
        ) from last
