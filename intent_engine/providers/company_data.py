"""Company records client with batched collection."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config.settings import COMPANY_DATA_CONFIG, BATCH_CONFIG
from ..core.utils import run_in_batches

logger = logging.getLogger(__name__)


class CompanyDataClient:
    """Fetches full company records by provider id."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else COMPANY_DATA_CONFIG["api_key"]
        self._client = httpx.AsyncClient(
            base_url=base_url or COMPANY_DATA_CONFIG["base_url"],
            headers={"apikey": self.api_key, "accept": "application/json"},
            timeout=timeout or COMPANY_DATA_CONFIG["request_timeout"],
            transport=transport,
        )

    async def __aenter__(self) -> "CompanyDataClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def collect_company(self, company_id: str) -> Dict[str, Any]:
        response = await self._client.get(f"/company/collect/{company_id}")
        response.raise_for_status()
        return response.json()

    async def collect_companies(
        self,
        company_ids: List[str],
        batch_size: int = BATCH_CONFIG["batch_size"],
        delay_seconds: float = BATCH_CONFIG["delay_seconds"],
    ) -> List[Dict[str, Any]]:
        """
        Collect many records in batches; ids that fail are left out.
        """
        results = await run_in_batches(
            company_ids, self.collect_company, batch_size, delay_seconds
        )
        records = [r for r in results if r is not None]
        if len(records) < len(company_ids):
            logger.warning(
                f"Collected {len(records)} of {len(company_ids)} company records"
            )
        return records
