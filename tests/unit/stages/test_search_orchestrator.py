"""
Tests for Stage 1: Search & Enrichment Orchestration

The provider is simulated with httpx.MockTransport so the real client code
(paths, payloads, status handling) is exercised end to end.
"""
import json
from unittest.mock import AsyncMock

import httpx
import pytest

from intent_engine.core.errors import (
    JobFailedError,
    JobPollingError,
    JobSubmissionError,
    JobTimeoutError,
    ZeroResultsError,
)
from intent_engine.models.schemas import EnrichmentJobSpec, PollStatus, SearchJobSpec
from intent_engine.polling.poller import JobPoller
from intent_engine.providers.websets import WebsetsClient
from intent_engine.stages.stage1_search import SearchOrchestrator, classify_status

PREFIX = "/websets/v0/websets"


def make_orchestrator(handler, max_attempts=10, **kwargs):
    client = WebsetsClient(
        api_key="test-key", base_url="https://api.test", transport=httpx.MockTransport(handler)
    )
    poller = JobPoller(interval_seconds=0, max_attempts=max_attempts, sleep=AsyncMock())
    return SearchOrchestrator(client, poller=poller, retry_base_delay=0, sleep=AsyncMock(), **kwargs)


def search_provider(statuses, items, create_status=200, seen=None):
    """Provider whose status checks walk through ``statuses``."""
    remaining = list(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if request.method == "POST" and request.url.path == PREFIX:
            if create_status != 200:
                return httpx.Response(create_status, json={"error": "nope"})
            return httpx.Response(200, json={"id": "ws_1", "status": "pending"})
        if request.url.path == f"{PREFIX}/ws_1":
            status = remaining.pop(0) if len(remaining) > 1 else remaining[0]
            return httpx.Response(200, json={"id": "ws_1", "status": status})
        if request.url.path == f"{PREFIX}/ws_1/items":
            return httpx.Response(200, json={"data": items})
        return httpx.Response(404)

    return handler


class TestClassifyStatus:
    """Status string mapping."""

    def test_success_failure_and_running(self):
        assert classify_status("idle", ["idle"], ["failed"]).status == PollStatus.SUCCESS
        assert classify_status("FAILED", ["idle"], ["failed"]).status == PollStatus.TERMINAL_FAILURE
        assert classify_status("running", ["idle"], ["failed"]).status == PollStatus.CONTINUE
        assert classify_status(None, ["idle"], ["failed"]).status == PollStatus.CONTINUE


class TestSearchOrchestrator:
    """Test suite for SearchOrchestrator."""

    @pytest.mark.asyncio
    async def test_returns_items_once_job_is_idle(self):
        seen = []
        items = [{"id": f"item_{i}"} for i in range(10)]
        orchestrator = make_orchestrator(
            search_provider(["running", "running", "idle"], items, seen=seen)
        )

        result = await orchestrator.create_and_await(
            SearchJobSpec(query="fintech companies", count=10, exclude_ids=["ws_old"])
        )

        assert result.job_id == "ws_1"
        assert len(result.items) == 10
        assert result.is_partial is False
        assert result.warnings == []

        create = seen[0]
        body = json.loads(create.content)
        assert create.headers["x-api-key"] == "test-key"
        assert body["search"]["query"] == "fintech companies"
        assert body["search"]["count"] == 10
        assert body["search"]["exclude"] == [{"source": "webset", "id": "ws_old"}]

    @pytest.mark.asyncio
    async def test_short_result_set_is_partial(self):
        items = [{"id": f"item_{i}"} for i in range(3)]
        orchestrator = make_orchestrator(search_provider(["completed"], items))

        result = await orchestrator.create_and_await(
            SearchJobSpec(query="fintech", count=10, min_results=5)
        )

        assert result.is_partial is True
        assert len(result.items) == 3
        assert "Only 3" in result.warnings[0]

    @pytest.mark.asyncio
    async def test_zero_items_is_a_failure(self):
        orchestrator = make_orchestrator(search_provider(["idle"], []))

        with pytest.raises(ZeroResultsError) as exc_info:
            await orchestrator.create_and_await(SearchJobSpec(query="nothing matches", count=5))

        assert exc_info.value.job_id == "ws_1"
        assert "0 results" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_provider_failure_status_raises(self):
        orchestrator = make_orchestrator(search_provider(["running", "paused"], []))

        with pytest.raises(JobFailedError) as exc_info:
            await orchestrator.create_and_await(SearchJobSpec(query="fintech"))

        assert "paused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_never_finishing_job_times_out(self):
        orchestrator = make_orchestrator(search_provider(["running"], []), max_attempts=3)

        with pytest.raises(JobTimeoutError):
            await orchestrator.create_and_await(SearchJobSpec(query="fintech"))

    @pytest.mark.asyncio
    async def test_client_error_on_submit_is_not_retried(self):
        seen = []
        orchestrator = make_orchestrator(search_provider(["idle"], [], create_status=400, seen=seen))

        with pytest.raises(JobSubmissionError) as exc_info:
            await orchestrator.create_and_await_with_retry(SearchJobSpec(query="fintech"))

        assert exc_info.value.retryable is False
        assert len([r for r in seen if r.method == "POST"]) == 1

    @pytest.mark.asyncio
    async def test_server_error_on_submit_is_retried(self):
        calls = {"create": 0}
        items = [{"id": "item_1"}]

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                calls["create"] += 1
                if calls["create"] == 1:
                    return httpx.Response(503, json={"error": "unavailable"})
                return httpx.Response(200, json={"id": "ws_1", "status": "pending"})
            if request.url.path.endswith("/items"):
                return httpx.Response(200, json={"data": items})
            return httpx.Response(200, json={"id": "ws_1", "status": "idle"})

        orchestrator = make_orchestrator(handler)

        result = await orchestrator.create_and_await_with_retry(SearchJobSpec(query="fintech"))

        assert calls["create"] == 2
        assert result.items == items

    @pytest.mark.asyncio
    async def test_retry_budget_exhausted(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502)

        orchestrator = make_orchestrator(handler, retry_attempts=3)

        with pytest.raises(JobSubmissionError) as exc_info:
            await orchestrator.create_and_await_with_retry(SearchJobSpec(query="fintech"))

        assert exc_info.value.attempts == 3

    @pytest.mark.asyncio
    async def test_failing_status_checks_do_not_resubmit(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.method == "POST":
                return httpx.Response(200, json={"id": "ws_1", "status": "pending"})
            return httpx.Response(503, json={"error": "unavailable"})

        orchestrator = make_orchestrator(handler)

        with pytest.raises(JobPollingError) as exc_info:
            await orchestrator.create_and_await_with_retry(SearchJobSpec(query="fintech"))

        assert exc_info.value.consecutive_errors == 5
        assert len([r for r in seen if r.method == "POST"]) == 1
        assert len([r for r in seen if r.method == "GET"]) == 5

    @pytest.mark.asyncio
    async def test_enrichment_flow_fetches_item_results(self):
        statuses = ["pending", "completed"]

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if request.method == "POST" and path == f"{PREFIX}/ws_1/enrichments":
                body = json.loads(request.content)
                assert body == {"description": "Find target persona CTO,VP Engineering", "format": "email"}
                return httpx.Response(200, json={"id": "en_1", "status": "pending"})
            if path == f"{PREFIX}/ws_1/enrichments/en_1":
                return httpx.Response(200, json={"id": "en_1", "status": statuses.pop(0)})
            if path == f"{PREFIX}/ws_1/items/item_1/enrichments":
                return httpx.Response(200, json={"enrichments": [{"result": ["cto@acme.test"]}]})
            return httpx.Response(404)

        orchestrator = make_orchestrator(handler)

        result = await orchestrator.create_and_await_enrichment(
            EnrichmentJobSpec(job_id="ws_1", personas=["CTO", "VP Engineering"], item_id="item_1")
        )

        assert result.enrichment_id == "en_1"
        assert result.status == "completed"
        assert result.item_enrichments == [{"result": ["cto@acme.test"]}]

    @pytest.mark.asyncio
    async def test_canceled_enrichment_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(200, json={"id": "en_1", "status": "pending"})
            return httpx.Response(200, json={"id": "en_1", "status": "canceled"})

        orchestrator = make_orchestrator(handler)

        with pytest.raises(JobFailedError):
            await orchestrator.create_and_await_enrichment(
                EnrichmentJobSpec(job_id="ws_1", description="Find emails")
            )
