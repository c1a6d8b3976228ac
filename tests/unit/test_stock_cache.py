from unittest.mock import AsyncMock

import pytest

from ugc_leaks.domain.models import (
    LimitedItem,
    NotLimitedItem,
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
from ugc_leaks.services.stock_cache import StockCache, extract_asset_id, parse_asset_ids


class FakeClock:
    def __init__(self, start: float = 10_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def adapter() -> AsyncMock:
    mock = AsyncMock(spec=CatalogSourcePort)
    mock.fetch_stock.return_value = LimitedItem(available=5, total=100)
    return mock


def make_cache(adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep, **kwargs) -> StockCache:
    kwargs.setdefault("min_request_delay", 0.0)
    return StockCache(adapter, clock=clock, sleep=sleep, **kwargs)


# ---------------------------------------------------------------------------
# Id parsing
# ---------------------------------------------------------------------------


def test_extract_asset_id_from_url_and_bare_id() -> None:
    assert extract_asset_id("https://www.roblox.com/catalog/123456/Cool-Hat") == "123456"
    assert extract_asset_id("987") == "987"
    assert extract_asset_id("https://www.roblox.com/games/42/Place") is None
    assert extract_asset_id("") is None
    assert extract_asset_id("abc") is None


def test_parse_asset_ids_merges_and_deduplicates() -> None:
    ids = parse_asset_ids(
        "111, 222,abc,,111",
        "https://www.roblox.com/catalog/333/Hat,https://www.roblox.com/catalog/222/Dup,nope",
    )
    assert ids == ["111", "222", "333"]


def test_parse_asset_ids_empty() -> None:
    assert parse_asset_ids(None, None) == []
    assert parse_asset_ids("", "") == []


def test_non_ascii_digits_are_not_asset_ids() -> None:
    assert parse_asset_ids("²³,12,١٢", None) == ["12"]
    assert extract_asset_id("²³") is None
    assert extract_asset_id("https://www.roblox.com/catalog/١٢/Hat") is None


# ---------------------------------------------------------------------------
# Lookups and caching
# ---------------------------------------------------------------------------


@pytest.mark.asyncio  # type: ignore[misc]
async def test_limited_item_is_returned_and_cached(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    cache = make_cache(adapter, clock, sleep)

    first = await cache.get_stock(["123"])
    assert first == {"123": StockLevel(current_stock=5, total_stock=100)}

    clock.advance(299)
    second = await cache.get_stock(["123"])
    assert second == first
    adapter.fetch_stock.assert_awaited_once_with("123")


@pytest.mark.asyncio  # type: ignore[misc]
async def test_success_entry_expires_after_ttl(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    cache = make_cache(adapter, clock, sleep, success_ttl=300)
    await cache.get_stock(["123"])

    clock.advance(300)
    adapter.fetch_stock.return_value = LimitedItem(available=4, total=100)
    result = await cache.get_stock(["123"])

    assert result["123"] == StockLevel(current_stock=4, total_stock=100)
    assert adapter.fetch_stock.await_count == 2


@pytest.mark.asyncio  # type: ignore[misc]
async def test_not_limited_item_is_cached_with_error_ttl(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    adapter.fetch_stock.return_value = NotLimitedItem()
    cache = make_cache(adapter, clock, sleep, error_ttl=120)

    result = await cache.get_stock(["55"])
    assert result["55"] == StockError(
        reason=StockErrorReason.NOT_LIMITED, message="Not a limited item"
    )

    clock.advance(119)
    await cache.get_stock(["55"])
    assert adapter.fetch_stock.await_count == 1

    clock.advance(1)
    await cache.get_stock(["55"])
    assert adapter.fetch_stock.await_count == 2


@pytest.mark.asyncio  # type: ignore[misc]
async def test_upstream_error_is_reported_per_item(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    async def fetch(asset_id: str) -> LimitedItem:
        if asset_id == "2":
            raise ExternalApiError("roblox_catalog", "HTTP 500")
        return LimitedItem(available=1, total=10)

    adapter.fetch_stock.side_effect = fetch
    cache = make_cache(adapter, clock, sleep)

    result = await cache.get_stock(["1", "2", "3"])

    assert isinstance(result["1"], StockLevel)
    assert result["2"] == StockError(reason=StockErrorReason.UPSTREAM_ERROR, message="HTTP 500")
    assert isinstance(result["3"], StockLevel)
    assert cache.peek("2") is not None and cache.peek("2").is_error


@pytest.mark.asyncio  # type: ignore[misc]
async def test_unexpected_exception_becomes_upstream_error(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    adapter.fetch_stock.side_effect = RuntimeError("boom")
    cache = make_cache(adapter, clock, sleep)

    result = await cache.get_stock(["9"])

    assert result["9"] == StockError(reason=StockErrorReason.UPSTREAM_ERROR, message="boom")


# ---------------------------------------------------------------------------
# Upstream rate limiting
# ---------------------------------------------------------------------------


@pytest.mark.asyncio  # type: ignore[misc]
async def test_429_suspends_lookups_until_cooldown_ends(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    adapter.fetch_stock.side_effect = UpstreamRateLimitedError("roblox_catalog")
    cache = make_cache(adapter, clock, sleep, rate_limit_cooldown=600)

    first = await cache.get_stock(["1"])
    assert first["1"] == StockError(reason=StockErrorReason.RATE_LIMITED, message="Rate limited")
    assert cache.is_rate_limited()

    second = await cache.get_stock(["2"])
    assert second["2"] == StockError(
        reason=StockErrorReason.RATE_LIMITED, message="Rate limited - retrying later"
    )
    adapter.fetch_stock.assert_awaited_once_with("1")

    clock.advance(600)
    adapter.fetch_stock.side_effect = None
    adapter.fetch_stock.return_value = LimitedItem(available=3, total=30)

    assert not cache.is_rate_limited()
    recovered = await cache.get_stock(["2"])
    assert recovered["2"] == StockLevel(current_stock=3, total_stock=30)


@pytest.mark.asyncio  # type: ignore[misc]
async def test_stale_value_is_served_while_rate_limited(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    cache = make_cache(adapter, clock, sleep, success_ttl=300)
    await cache.get_stock(["7"])

    clock.advance(301)
    adapter.fetch_stock.side_effect = UpstreamRateLimitedError("roblox_catalog")
    result = await cache.get_stock(["7"])

    assert result["7"] == StockLevel(current_stock=5, total_stock=100)
    assert cache.is_rate_limited()
    # Re-stamped, so it is fresh again.
    entry = cache.peek("7")
    assert entry is not None and entry.timestamp == clock.now


@pytest.mark.asyncio  # type: ignore[misc]
async def test_429_stops_remaining_lookups_in_the_batch(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    adapter.fetch_stock.side_effect = UpstreamRateLimitedError("roblox_catalog")
    cache = make_cache(adapter, clock, sleep)

    result = await cache.get_stock(["1", "2", "3"])

    assert adapter.fetch_stock.await_count == 1
    assert all(isinstance(value, StockError) for value in result.values())
    assert result["2"].message == "Rate limited - retrying later"


# ---------------------------------------------------------------------------
# Batching, spacing and validation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio  # type: ignore[misc]
async def test_ids_are_fetched_in_batches_with_pauses(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    cache = make_cache(adapter, clock, sleep, batch_size=5, batch_pause=0.2)
    ids = [str(i) for i in range(1, 13)]

    result = await cache.get_stock(ids)

    assert list(result) == ids
    assert adapter.fetch_stock.await_count == 12
    # 5 + 5 + 2: a pause between batches, none after the last one.
    assert sleep.calls == [0.2, 0.2]


@pytest.mark.asyncio  # type: ignore[misc]
async def test_outbound_requests_are_spaced(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    cache = make_cache(adapter, clock, sleep, min_request_delay=0.1, batch_size=5)

    await cache.get_stock(["1", "2", "3"])

    assert sleep.calls == [pytest.approx(0.1), pytest.approx(0.2)]


@pytest.mark.asyncio  # type: ignore[misc]
async def test_cache_hits_do_not_wait_for_a_slot(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    cache = make_cache(adapter, clock, sleep, min_request_delay=0.1)
    await cache.get_stock(["1"])
    sleep.calls.clear()

    await cache.get_stock(["1"])

    assert sleep.calls == []


@pytest.mark.asyncio  # type: ignore[misc]
async def test_duplicate_ids_are_fetched_once(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    cache = make_cache(adapter, clock, sleep)

    result = await cache.get_stock(["1", "1", "2"])

    assert list(result) == ["1", "2"]
    assert adapter.fetch_stock.await_count == 2


@pytest.mark.asyncio  # type: ignore[misc]
async def test_no_ids_is_rejected(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    cache = make_cache(adapter, clock, sleep)

    with pytest.raises(InvalidAssetIdsError, match="No valid asset IDs"):
        await cache.get_stock([])


@pytest.mark.asyncio  # type: ignore[misc]
async def test_too_many_ids_is_rejected(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    cache = make_cache(adapter, clock, sleep, max_ids=50)

    with pytest.raises(InvalidAssetIdsError, match="Maximum 50 asset IDs per request"):
        await cache.get_stock([str(i) for i in range(51)])
    adapter.fetch_stock.assert_not_awaited()


def test_clear_resets_entries_and_rate_limit(
    adapter: AsyncMock, clock: FakeClock, sleep: RecordingSleep
) -> None:
    cache = make_cache(adapter, clock, sleep)
    cache.rate_limit.is_rate_limited = True
    cache.rate_limit.rate_limit_reset_time = clock.now + 100

    cache.clear()

    assert not cache.is_rate_limited()
    assert cache.peek("1") is None

