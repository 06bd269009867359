"""
Tests for the Async Job Poller

Covers terminal outcomes, the attempt ceiling and consecutive-error escalation.
"""
from unittest.mock import AsyncMock

import pytest

from intent_engine.core.errors import JobFailedError, JobPollingError, JobTimeoutError
from intent_engine.models.schemas import PollOutcome
from intent_engine.polling.poller import JobPoller, poll


class TestJobPoller:
    """Test suite for JobPoller."""

    @pytest.mark.asyncio
    async def test_returns_payload_on_success(self, no_sleep):
        check = AsyncMock(side_effect=[
            PollOutcome.proceed(),
            PollOutcome.proceed(),
            PollOutcome.success({"id": "ws_1", "status": "idle"}),
        ])
        poller = JobPoller(interval_seconds=5, max_attempts=10, sleep=no_sleep)

        payload = await poller.poll(check)

        assert payload == {"id": "ws_1", "status": "idle"}
        assert check.await_count == 3
        assert no_sleep.await_count == 2
        no_sleep.assert_awaited_with(5)

    @pytest.mark.asyncio
    async def test_always_continue_times_out_after_max_attempts(self, no_sleep):
        check = AsyncMock(return_value=PollOutcome.proceed())
        poller = JobPoller(interval_seconds=5, max_attempts=4, sleep=no_sleep)

        with pytest.raises(JobTimeoutError) as exc_info:
            await poller.poll(check, job_id="ws_1")

        assert check.await_count == 4
        assert exc_info.value.attempts == 4
        assert exc_info.value.job_id == "ws_1"

    @pytest.mark.asyncio
    async def test_terminal_failure_raises_with_reason(self, no_sleep):
        check = AsyncMock(return_value=PollOutcome.terminal_failure("Provider reported status 'paused'"))
        poller = JobPoller(interval_seconds=5, max_attempts=10, sleep=no_sleep)

        with pytest.raises(JobFailedError) as exc_info:
            await poller.poll(check)

        assert "paused" in exc_info.value.reason
        assert check.await_count == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_consecutive_transient_errors_escalate_before_max_attempts(self, no_sleep):
        check = AsyncMock(return_value=PollOutcome.transient_error("503 Service Unavailable"))
        poller = JobPoller(interval_seconds=5, max_attempts=20, max_consecutive_errors=5, sleep=no_sleep)

        with pytest.raises(JobPollingError) as exc_info:
            await poller.poll(check)

        assert check.await_count == 5
        assert exc_info.value.consecutive_errors == 5
        assert "503" in exc_info.value.last_error

    @pytest.mark.asyncio
    async def test_error_counter_resets_after_a_good_check(self, no_sleep):
        flaky = [PollOutcome.transient_error("timeout")] * 4
        check = AsyncMock(side_effect=flaky + [PollOutcome.proceed()] + flaky + [PollOutcome.success("done")])
        poller = JobPoller(interval_seconds=1, max_attempts=10, max_consecutive_errors=5, sleep=no_sleep)

        assert await poller.poll(check) == "done"
        assert check.await_count == 10

    @pytest.mark.asyncio
    async def test_transient_errors_do_not_use_attempt_budget(self, no_sleep):
        check = AsyncMock(side_effect=[
            PollOutcome.transient_error("timeout"),
            PollOutcome.transient_error("timeout"),
            PollOutcome.proceed(),
            PollOutcome.success("done"),
        ])
        poller = JobPoller(interval_seconds=1, max_attempts=2, sleep=no_sleep)

        assert await poller.poll(check) == "done"

    @pytest.mark.asyncio
    async def test_poll_function_shortcut(self, no_sleep):
        check = AsyncMock(return_value=PollOutcome.proceed())

        with pytest.raises(JobTimeoutError):
            await poll(check, interval_seconds=0, max_attempts=3, sleep=no_sleep)

        assert check.await_count == 3
