"""
Async Job Poller
================
Long-poll loop for provider jobs, shared by search and enrichment jobs.

The caller supplies a ``check`` coroutine that inspects the job once and
classifies the result as a PollOutcome. The poller owns the loop:
- continue:          sleep, count the attempt, check again
- transient_error:   sleep and check again; too many in a row escalates
- success:           return the payload
- terminal_failure:  raise JobFailedError with the provider's reason
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from ..models.schemas import PollAttempt, PollOutcome, PollStatus
from ..config.settings import POLLING_CONFIG
from ..core.errors import JobFailedError, JobPollingError, JobTimeoutError

logger = logging.getLogger(__name__)

CheckFn = Callable[[], Awaitable[PollOutcome]]


class JobPoller:
    """
    Polls a job until it reaches a terminal outcome.

    Counters live on a PollAttempt created per ``poll`` call, so one poller
    can serve any number of concurrent jobs.
    """

    def __init__(
        self,
        interval_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
        max_consecutive_errors: Optional[int] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else POLLING_CONFIG["interval_seconds"]
        )
        self.max_attempts = max_attempts or POLLING_CONFIG["max_attempts"]
        self.max_consecutive_errors = (
            max_consecutive_errors or POLLING_CONFIG["max_consecutive_errors"]
        )
        self._sleep = sleep

    async def poll(
        self,
        check: CheckFn,
        interval_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
        job_id: Optional[str] = None,
    ) -> Any:
        """
        Run the poll loop.

        Args:
            check: Coroutine returning the job's current PollOutcome
            interval_seconds: Override of the sleep between checks
            max_attempts: Override of the attempt ceiling
            job_id: Used in log lines and error messages

        Returns:
            The payload carried by the success outcome

        Raises:
            JobFailedError: provider reported a terminal failure
            JobTimeoutError: ``max_attempts`` checks without a terminal outcome
            JobPollingError: too many consecutive transient errors
        """
        interval = self.interval_seconds if interval_seconds is None else interval_seconds
        ceiling = max_attempts or self.max_attempts
        state = PollAttempt()
        started = time.monotonic()

        while True:
            outcome = await check()
            state.elapsed_ms = (time.monotonic() - started) * 1000

            if outcome.status == PollStatus.SUCCESS:
                logger.info(
                    f"Job {job_id or '?'} finished after {state.attempt_number + 1} checks "
                    f"({state.elapsed_ms / 1000:.1f}s)"
                )
                return outcome.payload

            if outcome.status == PollStatus.TERMINAL_FAILURE:
                logger.error(f"Job {job_id or '?'} failed: {outcome.reason}")
                raise JobFailedError(outcome.reason or "Provider reported failure", job_id)

            if outcome.status == PollStatus.TRANSIENT_ERROR:
                state.consecutive_errors += 1
                state.last_error = outcome.reason
                if state.consecutive_errors >= self.max_consecutive_errors:
                    raise JobPollingError(
                        state.consecutive_errors, outcome.reason or "unknown error", job_id
                    )
                logger.warning(
                    f"Status check for job {job_id or '?'} failed "
                    f"({state.consecutive_errors}/{self.max_consecutive_errors}): {outcome.reason}"
                )
            else:
                state.consecutive_errors = 0
                state.attempt_number += 1
                if state.attempt_number >= ceiling:
                    raise JobTimeoutError(state.attempt_number, state.elapsed_ms, job_id)
                logger.debug(f"Job {job_id or '?'} still running (attempt {state.attempt_number}/{ceiling})")

            await self._sleep(interval)


async def poll(
    check: CheckFn,
    interval_seconds: float,
    max_attempts: int,
    max_consecutive_errors: int = POLLING_CONFIG["max_consecutive_errors"],
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """Functional shortcut for a one-off JobPoller."""
    poller = JobPoller(
        interval_seconds=interval_seconds,
        max_attempts=max_attempts,
        max_consecutive_errors=max_consecutive_errors,
        sleep=sleep,
    )
    return await poller.poll(check)
