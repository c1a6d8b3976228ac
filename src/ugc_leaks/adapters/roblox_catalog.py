# src/ugc_leaks/adapters/roblox_catalog.py
from __future__ import annotations

import logging
import time

import httpx
from pydantic import BaseModel, Field, ValidationError

from ugc_leaks.core.metrics import EXTERNAL_API_COUNT, EXTERNAL_API_DURATION
from ugc_leaks.domain.models import LimitedItem, NotLimitedItem
from ugc_leaks.domain.ports import CatalogSourcePort, ExternalApiError, UpstreamRateLimitedError

logger = logging.getLogger(__name__)

SOURCE = "roblox_catalog"

_DEFAULT_BASE_URL = "https://catalog.roblox.com"

# ---------------------------------------------------------------------------
# Raw response schema (only the fields we care about)
# ---------------------------------------------------------------------------


class _CatalogItemDetails(BaseModel):
    id: int | None = None
    item_type: str | None = Field(default=None, alias="itemType")
    collectible_item_id: str | None = Field(default=None, alias="collectibleItemId")
    units_available: int | None = Field(default=None, alias="unitsAvailableForConsumption")
    total_quantity: int | None = Field(default=None, alias="totalQuantity")
    has_resellers: bool | None = Field(default=None, alias="hasResellers")
    sale_location_type: str | None = Field(default=None, alias="saleLocationType")

    model_config = {"populate_by_name": True}


class RobloxCatalogAdapter(CatalogSourcePort):
    """
    Adapter for the Roblox catalog item details endpoint.
    Maps the raw details payload onto LimitedItem / NotLimitedItem.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = _DEFAULT_BASE_URL,
        timeout: float = 10.0,
    ) -> None:
        self._client = http_client
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def fetch_stock(self, asset_id: str) -> LimitedItem | NotLimitedItem:
        url = f"{self._base_url}/v1/catalog/items/{asset_id}/details"
        started = time.perf_counter()
        try:
            response = await self._client.get(
                url,
                params={"itemType": "Asset"},
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            EXTERNAL_API_COUNT.labels(source=SOURCE, status="timeout").inc()
            raise ExternalApiError(SOURCE, f"Timed out after {self._timeout}s") from e
        except httpx.RequestError as e:
            EXTERNAL_API_COUNT.labels(source=SOURCE, status="error").inc()
            raise ExternalApiError(SOURCE, f"Connection error: {e}") from e
        finally:
            EXTERNAL_API_DURATION.labels(source=SOURCE).observe(time.perf_counter() - started)

        EXTERNAL_API_COUNT.labels(source=SOURCE, status=str(response.status_code)).inc()

        if response.status_code == 429:
            logger.warning("Rate limited by Roblox catalog API (asset %s)", asset_id)
            raise UpstreamRateLimitedError(SOURCE)
        if not 200 <= response.status_code < 300:
            raise ExternalApiError(SOURCE, f"HTTP {response.status_code}")

        try:
            raw = _CatalogItemDetails.model_validate(response.json())
            return self._normalize(raw)
        except (ValueError, ValidationError) as e:
            raise ExternalApiError(SOURCE, f"Malformed response: {e}") from e

    @staticmethod
    def _normalize(raw: _CatalogItemDetails) -> LimitedItem | NotLimitedItem:
        # Only collectibles carry a trackable unit count.
        if raw.collectible_item_id and raw.total_quantity is not None:
            return LimitedItem(available=raw.units_available or 0, total=raw.total_quantity)
        return NotLimitedItem()
