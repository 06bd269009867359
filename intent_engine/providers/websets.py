"""Websets API client: search jobs, items and enrichments over httpx."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..models.schemas import JobKind, ProviderJob
from ..config.settings import WEBSETS_CONFIG

logger = logging.getLogger(__name__)

API_PREFIX = "/websets/v0/websets"


def is_retryable_http_error(exc: BaseException) -> bool:
    """
    Classify an httpx failure.

    Retries on:
    - Timeouts and connection errors
    - Server errors (5xx) and rate limiting (429)

    Does NOT retry on other client errors (4xx).
    """
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status >= 500 or status == 429
    return isinstance(exc, (httpx.TimeoutException, httpx.TransportError))


class WebsetsClient:
    """
    Thin async client for the websets provider.

    Responsibilities:
    - Own an httpx.AsyncClient for connection reuse
    - Translate job resources into ProviderJob handles
    - Leave polling and retry decisions to the orchestrator
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else WEBSETS_CONFIG["api_key"]
        self.base_url = base_url or WEBSETS_CONFIG["base_url"]
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"x-api-key": self.api_key, "Content-Type": "application/json"},
            timeout=timeout or WEBSETS_CONFIG["request_timeout"],
            transport=transport,
        )

    async def __aenter__(self) -> "WebsetsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._client.request(method, path, json=payload)
        response.raise_for_status()
        if not response.content:
            return {}
        return response.json()

    # =========================================================================
    # Search jobs
    # =========================================================================

    async def create_webset(
        self,
        query: str,
        count: int,
        entity_type: str = "company",
        exclude_ids: Optional[List[str]] = None,
    ) -> ProviderJob:
        search: Dict[str, Any] = {
            "query": query,
            "count": count,
            "entity": {"type": entity_type},
        }
        if exclude_ids:
            search["exclude"] = [{"source": "webset", "id": i} for i in exclude_ids]

        data = await self._request("POST", API_PREFIX, {"search": search})
        job_id = data.get("id")
        if not job_id:
            raise ValueError("Provider response did not include a job id")
        logger.info(f"Created webset {job_id} for query '{query[:60]}' (count={count})")
        return ProviderJob(
            id=job_id,
            kind=JobKind.SEARCH,
            status=data.get("status", "pending"),
            result_location=f"{API_PREFIX}/{job_id}/items",
        )

    async def get_webset(self, webset_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"{API_PREFIX}/{webset_id}")

    async def list_items(self, webset_id: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", f"{API_PREFIX}/{webset_id}/items")
        return list(data.get("data") or [])

    # =========================================================================
    # Enrichments
    # =========================================================================

    async def create_enrichment(
        self, webset_id: str, description: str, format: str = "email"
    ) -> ProviderJob:
        data = await self._request(
            "POST",
            f"{API_PREFIX}/{webset_id}/enrichments",
            {"description": description, "format": format},
        )
        enrichment_id = data.get("id")
        if not enrichment_id:
            raise ValueError("Provider response did not include an enrichment id")
        return ProviderJob(
            id=enrichment_id,
            kind=JobKind.ENRICHMENT,
            status=data.get("status", "pending"),
            result_location=f"{API_PREFIX}/{webset_id}/enrichments/{enrichment_id}",
        )

    async def get_enrichment(self, webset_id: str, enrichment_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"{API_PREFIX}/{webset_id}/enrichments/{enrichment_id}")

    async def get_item_enrichments(self, webset_id: str, item_id: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", f"{API_PREFIX}/{webset_id}/items/{item_id}/enrichments")
        return list(data.get("enrichments") or data.get("data") or [])
