from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable, Iterable

from ugc_leaks.core.metrics import CACHE_HITS, CACHE_MISSES
from ugc_leaks.domain.models import (
    CacheEntry,
    LimitedItem,
    RateLimitState,
    StockError,
    StockErrorReason,
    StockLevel,
)
from ugc_leaks.domain.ports import (
    CatalogSourcePort,
    ExternalApiError,
    InvalidAssetIdsError,
    UpstreamRateLimitedError,
)

logger = logging.getLogger(__name__)

_CATALOG_URL_RE = re.compile(r"/catalog/(\d+)", re.ASCII)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


def _is_ascii_number(value: str) -> bool:
    return value.isascii() and value.isdigit()


def extract_asset_id(value: str) -> str | None:
    """Pulls the numeric asset id out of a catalog URL, or accepts a bare id."""
    if not value:
        return None
    match = _CATALOG_URL_RE.search(value)
    if match:
        return match.group(1)
    if _is_ascii_number(value):
        return value
    return None


def parse_asset_ids(ids: str | None, urls: str | None) -> list[str]:
    """
    Parses the comma separated ``ids`` and ``urls`` query parameters.
    Invalid entries are dropped, duplicates removed (first occurrence wins).
    """
    found: list[str] = []
    if ids:
        found.extend(part.strip() for part in ids.split(",") if _is_ascii_number(part.strip()))
    if urls:
        for url in urls.split(","):
            asset_id = extract_asset_id(url.strip())
            if asset_id:
                found.append(asset_id)
    return list(dict.fromkeys(found))


class StockCache:
    """
    In-memory stock cache in front of the catalog API.

    Successful lookups live for ``success_ttl`` seconds, errors for the shorter
    ``error_ttl``. Outbound calls are spaced by ``min_request_delay`` and
    suspended entirely for ``rate_limit_cooldown`` seconds after an HTTP 429.
    One instance is shared by the whole process.
    """

    def __init__(
        self,
        adapter: CatalogSourcePort,
        *,
        success_ttl: float = 300.0,
        error_ttl: float = 120.0,
        rate_limit_cooldown: float = 600.0,
        min_request_delay: float = 0.1,
        batch_size: int = 5,
        batch_pause: float = 0.2,
        max_ids: int = 50,
        clock: Clock = time.time,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._adapter = adapter
        self._success_ttl = success_ttl
        self._error_ttl = error_ttl
        self._cooldown = rate_limit_cooldown
        self._min_delay = min_request_delay
        self._batch_size = batch_size
        self._batch_pause = batch_pause
        self._max_ids = max_ids
        self._clock = clock
        self._sleep = sleep
        self._entries: dict[str, CacheEntry] = {}
        self.rate_limit = RateLimitState()

    @property
    def max_ids(self) -> int:
        return self._max_ids

    async def get_stock(self, asset_ids: Iterable[str]) -> dict[str, StockLevel | StockError]:
        """
        Returns the stock for every requested asset, keyed by asset id.

        Raises:
            InvalidAssetIdsError: No ids at all, or more than ``max_ids``.
        """
        unique_ids = list(dict.fromkeys(asset_ids))
        if not unique_ids:
            raise InvalidAssetIdsError(
                "No valid asset IDs provided. Use ?ids=123,456 or ?urls=..."
            )
        if len(unique_ids) > self._max_ids:
            raise InvalidAssetIdsError(f"Maximum {self._max_ids} asset IDs per request")

        results: dict[str, StockLevel | StockError] = {}
        for start in range(0, len(unique_ids), self._batch_size):
            batch = unique_ids[start : start + self._batch_size]
            batch_results = await asyncio.gather(*(self.fetch(asset_id) for asset_id in batch))
            results.update(zip(batch, batch_results))

            if start + self._batch_size < len(unique_ids):
                await self._sleep(self._batch_pause)
        return results

    async def fetch(self, asset_id: str) -> StockLevel | StockError:
        """Single asset lookup: cache first, then the catalog unless rate limited."""
        cached = self._entries.get(asset_id)
        if cached is not None and self._is_fresh(cached):
            CACHE_HITS.inc()
            return cached.result
        CACHE_MISSES.inc()

        if self.is_rate_limited():
            return self._rate_limited_fallback(asset_id, cached)

        await self._wait_for_request_slot()
        # Another lookup in the same batch may have tripped the limiter meanwhile.
        if self.is_rate_limited():
            return self._rate_limited_fallback(asset_id, cached)

        try:
            lookup = await self._adapter.fetch_stock(asset_id)
        except UpstreamRateLimitedError:
            self._enter_rate_limited()
            if cached is not None:
                # Re-stamp so the stale value survives the cooldown.
                self._store(asset_id, cached.result)
                return cached.result
            return self._store(
                asset_id,
                StockError(reason=StockErrorReason.RATE_LIMITED, message="Rate limited"),
            )
        except ExternalApiError as e:
            logger.error("Error fetching stock for asset %s: %s", asset_id, e.detail)
            return self._store(
                asset_id, StockError(reason=StockErrorReason.UPSTREAM_ERROR, message=e.detail)
            )
        except Exception as e:
            logger.exception("Unexpected error fetching stock for asset %s", asset_id)
            return self._store(
                asset_id,
                StockError(reason=StockErrorReason.UPSTREAM_ERROR, message=str(e) or "Unknown error"),
            )

        if isinstance(lookup, LimitedItem):
            result: StockLevel | StockError = StockLevel(
                current_stock=lookup.available, total_stock=lookup.total
            )
        else:
            result = StockError(reason=StockErrorReason.NOT_LIMITED, message="Not a limited item")
        return self._store(asset_id, result)

    def is_rate_limited(self) -> bool:
        """True while inside a cooldown; flips back to normal once the deadline passes."""
        state = self.rate_limit
        if state.is_rate_limited and self._clock() < state.rate_limit_reset_time:
            return True
        state.is_rate_limited = False
        return False

    def peek(self, asset_id: str) -> CacheEntry | None:
        return self._entries.get(asset_id)

    def clear(self) -> None:
        self._entries.clear()
        self.rate_limit = RateLimitState()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ttl_for(self, entry: CacheEntry) -> float:
        return self._error_ttl if entry.is_error else self._success_ttl

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp < self._ttl_for(entry)

    def _store(self, asset_id: str, result: StockLevel | StockError) -> StockLevel | StockError:
        self._entries[asset_id] = CacheEntry(result=result, timestamp=self._clock())
        return result

    def _rate_limited_fallback(
        self, asset_id: str, cached: CacheEntry | None
    ) -> StockLevel | StockError:
        if cached is not None:
            return cached.result
        return self._store(
            asset_id,
            StockError(
                reason=StockErrorReason.RATE_LIMITED, message="Rate limited - retrying later"
            ),
        )

    def _enter_rate_limited(self) -> None:
        self.rate_limit.is_rate_limited = True
        self.rate_limit.rate_limit_reset_time = self._clock() + self._cooldown
        logger.warning("Catalog rate limit hit, pausing lookups for %.0fs", self._cooldown)

    async def _wait_for_request_slot(self) -> None:
        # The slot is reserved before sleeping so concurrent callers queue up.
        now = self._clock()
        slot = max(now, self.rate_limit.last_request_time + self._min_delay)
        self.rate_limit.last_request_time = slot
        if slot > now:
            await self._sleep(slot - now)
