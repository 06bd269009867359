"""
Stage 1: Search & Enrichment Orchestration
==========================================
Drives a provider job from creation to a materialized result set.

Flow:
  submit job (with exclusion filter) → poll status → fetch items

- Zero items is a hard failure (ZeroResultsError)
- Fewer items than requested is a warning; the partial set is returned
- ``create_and_await_with_retry`` wraps the whole flow in an outer
  exponential backoff for submission-time instability
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ..models.schemas import (
    EnrichmentJobSpec,
    EnrichmentResult,
    PollOutcome,
    ProviderJob,
    ResultSet,
    SearchJobSpec,
)
from ..config.settings import (
    ENRICHMENT_STATUS,
    POLLING_CONFIG,
    RETRY_CONFIG,
    SEARCH_STATUS,
)
from ..core.errors import (
    JobFailedError,
    JobSubmissionError,
    ZeroResultsError,
    sanitize_error_message,
)
from ..polling.poller import JobPoller
from ..polling.retry import retry_with_backoff
from ..providers.websets import WebsetsClient, is_retryable_http_error

logger = logging.getLogger(__name__)


def classify_status(
    status: Optional[str],
    success: List[str],
    failure: List[str],
    payload: Any = None,
) -> PollOutcome:
    """Map a provider status string onto a poll outcome."""
    normalized = (status or "").lower()
    if normalized in success:
        return PollOutcome.success(payload)
    if normalized in failure:
        return PollOutcome.terminal_failure(f"Provider reported status '{normalized}'")
    return PollOutcome.proceed()


class SearchOrchestrator:
    """
    Stage 1: Create provider jobs and wait for their results.
    """

    def __init__(
        self,
        client: WebsetsClient,
        poller: Optional[JobPoller] = None,
        retry_attempts: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        retry_multiplier: Optional[float] = None,
        retry_max_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Args:
            client: Provider API client
            poller: Job poller (built from POLLING_CONFIG if not provided)
            retry_*: Outer retry settings (RETRY_CONFIG defaults)
            sleep: Sleep used by the outer retry
        """
        self.client = client
        self.poller = poller or JobPoller(
            interval_seconds=POLLING_CONFIG["interval_seconds"],
            max_attempts=POLLING_CONFIG["max_attempts"],
            max_consecutive_errors=POLLING_CONFIG["max_consecutive_errors"],
        )
        self.retry_attempts = retry_attempts or RETRY_CONFIG["attempts"]
        self.retry_base_delay = (
            RETRY_CONFIG["base_delay_seconds"] if retry_base_delay is None else retry_base_delay
        )
        self.retry_multiplier = retry_multiplier or RETRY_CONFIG["multiplier"]
        self.retry_max_delay = (
            RETRY_CONFIG["max_delay_seconds"] if retry_max_delay is None else retry_max_delay
        )
        self._sleep = sleep

    # =========================================================================
    # Search jobs
    # =========================================================================

    async def create_and_await(self, job_spec: SearchJobSpec) -> ResultSet:
        """
        Submit a search job and wait for its items.

        Raises:
            JobSubmissionError: the job could not be created
            JobFailedError: provider failure, or zero results
            JobTimeoutError / JobPollingError: from the poller
        """
        start_time = time.time()

        job = await self._submit_search(job_spec)
        await self.poller.poll(self._search_check(job), job_id=job.id)

        try:
            items = await self.client.list_items(job.id)
        except httpx.HTTPError as e:
            raise JobFailedError(
                f"Job completed but its items could not be fetched: {sanitize_error_message(str(e))}",
                job.id,
            ) from e

        if not items:
            raise ZeroResultsError(job_id=job.id, query=job_spec.query)

        result = ResultSet(
            job_id=job.id,
            items=items,
            requested_count=job_spec.count,
            processing_time_ms=round((time.time() - start_time) * 1000, 2),
        )

        minimum = job_spec.min_results
        if minimum and len(items) < minimum:
            warning = f"Only {len(items)} of the {minimum} requested minimum results were found"
            logger.warning(f"Job {job.id}: {warning}")
            result.is_partial = True
            result.warnings.append(warning)

        logger.info(f"Job {job.id} returned {len(items)} items")
        return result

    async def create_and_await_with_retry(self, job_spec: SearchJobSpec) -> ResultSet:
        """Same as ``create_and_await``, wrapped in the outer backoff retry."""
        return await retry_with_backoff(
            lambda: self.create_and_await(job_spec),
            attempts=self.retry_attempts,
            base_delay=self.retry_base_delay,
            multiplier=self.retry_multiplier,
            max_delay=self.retry_max_delay,
            sleep=self._sleep,
            description=f"Search '{job_spec.query[:60]}'",
        )

    async def _submit_search(self, job_spec: SearchJobSpec) -> ProviderJob:
        try:
            return await self.client.create_webset(
                query=job_spec.query,
                count=job_spec.count,
                entity_type=job_spec.entity_type,
                exclude_ids=job_spec.exclude_ids,
            )
        except (httpx.HTTPError, ValueError) as e:
            raise JobSubmissionError(
                f"Could not create search job: {sanitize_error_message(str(e))}",
                retryable=isinstance(e, httpx.HTTPError) and is_retryable_http_error(e),
            ) from e

    def _search_check(self, job: ProviderJob):
        async def check() -> PollOutcome:
            try:
                data = await self.client.get_webset(job.id)
            except httpx.HTTPError as e:
                return PollOutcome.transient_error(sanitize_error_message(str(e)))
            job.status = data.get("status", job.status)
            return classify_status(
                job.status, SEARCH_STATUS["success"], SEARCH_STATUS["failure"], data
            )
        return check

    # =========================================================================
    # Enrichment jobs
    # =========================================================================

    async def create_and_await_enrichment(self, spec: EnrichmentJobSpec) -> EnrichmentResult:
        """
        Create an enrichment on a completed search job and wait for it.

        When ``spec.item_id`` is set the item's enrichment results are fetched
        as well.
        """
        try:
            enrichment = await self.client.create_enrichment(
                spec.job_id, spec.resolved_description(), spec.format
            )
        except (httpx.HTTPError, ValueError) as e:
            raise JobSubmissionError(
                f"Could not create enrichment: {sanitize_error_message(str(e))}",
                job_id=spec.job_id,
                retryable=isinstance(e, httpx.HTTPError) and is_retryable_http_error(e),
            ) from e

        async def check() -> PollOutcome:
            try:
                data = await self.client.get_enrichment(spec.job_id, enrichment.id)
            except httpx.HTTPError as e:
                return PollOutcome.transient_error(sanitize_error_message(str(e)))
            enrichment.status = data.get("status", enrichment.status)
            return classify_status(
                enrichment.status,
                ENRICHMENT_STATUS["success"],
                ENRICHMENT_STATUS["failure"],
                data,
            )

        payload = await self.poller.poll(check, job_id=enrichment.id)

        item_enrichments: List[Dict[str, Any]] = []
        if spec.item_id:
            try:
                item_enrichments = await self.client.get_item_enrichments(spec.job_id, spec.item_id)
            except httpx.HTTPError as e:
                raise JobFailedError(
                    f"Enrichment completed but item results could not be fetched: "
                    f"{sanitize_error_message(str(e))}",
                    enrichment.id,
                ) from e

        return EnrichmentResult(
            job_id=spec.job_id,
            enrichment_id=enrichment.id,
            status=enrichment.status,
            enrichment=payload or {},
            item_enrichments=item_enrichments,
        )
