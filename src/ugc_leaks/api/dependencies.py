# src/ugc_leaks/api/dependencies.py
from functools import lru_cache

import httpx
from fastapi import Depends

from ugc_leaks.adapters.roblox_catalog import RobloxCatalogAdapter
from ugc_leaks.core.config import Settings, get_settings
from ugc_leaks.domain.models import RateLimitConfig
from ugc_leaks.domain.ports import CatalogSourcePort
from ugc_leaks.repositories.database import Database
from ugc_leaks.repositories.item_repository import ItemRepository, ScheduledItemRepository
from ugc_leaks.repositories.user_repository import (
    AuditLogRepository,
    SessionRepository,
    UserRepository,
)
from ugc_leaks.services.auth_service import AuthService
from ugc_leaks.services.item_service import ItemService
from ugc_leaks.services.login_limiter import LoginLimiter
from ugc_leaks.services.schedule_service import ScheduleService
from ugc_leaks.services.stock_cache import StockCache


# Shared HTTP Client (Connection Pooling)
@lru_cache
def get_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        headers={"User-Agent": "Mozilla/5.0 (compatible; UGCLeaks/1.0)"},
        follow_redirects=True,
    )


def get_catalog_adapter(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> CatalogSourcePort:
    return RobloxCatalogAdapter(
        http_client=client,
        base_url=settings.catalog_base_url,
        timeout=settings.catalog_timeout_seconds,
    )


# Singleton Stock Cache: one cache and one rate-limit state per process
_stock_cache: StockCache | None = None


def get_stock_cache(
    adapter: CatalogSourcePort = Depends(get_catalog_adapter),
    settings: Settings = Depends(get_settings),
) -> StockCache:
    global _stock_cache
    if _stock_cache is None:
        _stock_cache = StockCache(
            adapter,
            success_ttl=settings.stock_success_ttl_seconds,
            error_ttl=settings.stock_error_ttl_seconds,
            rate_limit_cooldown=settings.stock_rate_limit_cooldown_seconds,
            min_request_delay=settings.stock_min_request_delay_seconds,
            batch_size=settings.stock_batch_size,
            batch_pause=settings.stock_batch_pause_seconds,
            max_ids=settings.stock_max_ids,
        )
    return _stock_cache


@lru_cache
def get_login_limiter() -> LoginLimiter:
    return LoginLimiter()


def get_signin_limit(settings: Settings = Depends(get_settings)) -> RateLimitConfig:
    return RateLimitConfig(
        window_seconds=settings.signin_window_seconds,
        max_requests=settings.signin_max_attempts,
        block_duration_seconds=settings.signin_block_seconds,
    )


def get_signup_limit(settings: Settings = Depends(get_settings)) -> RateLimitConfig:
    return RateLimitConfig(
        window_seconds=settings.signup_window_seconds,
        max_requests=settings.signup_max_attempts,
        block_duration_seconds=settings.signup_block_seconds,
    )


# Singleton Database (initialized on first access)
_database: Database | None = None


async def get_database(settings: Settings = Depends(get_settings)) -> Database:
    global _database
    if _database is None:
        database = Database(database_url=settings.database_url)
        await database.initialize()
        _database = database
    return _database


def get_auth_service(
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(
        users=UserRepository(database),
        sessions=SessionRepository(database),
        audit_log=AuditLogRepository(database),
        settings=settings,
    )


def get_item_service(database: Database = Depends(get_database)) -> ItemService:
    return ItemService(repository=ItemRepository(database))


def get_schedule_service(
    database: Database = Depends(get_database),
    stock_cache: StockCache = Depends(get_stock_cache),
) -> ScheduleService:
    return ScheduleService(repository=ScheduledItemRepository(database), stock_cache=stock_cache)


async def close_shared_resources() -> None:
    """Closes the HTTP client and the database engine (app shutdown)."""
    global _database, _stock_cache
    _stock_cache = None
    client = get_http_client()
    await client.aclose()
    get_http_client.cache_clear()
    if _database is not None:
        await _database.dispose()
        _database = None
