# src/ugc_leaks/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "UGC Leaks API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./ugc_leaks.db"

    # Auth
    jwt_secret: str = Field(default="your-secret-key-change-this-in-production")
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7
    bcrypt_rounds: int = 12

    # CORS
    cors_origins: list[str] = Field(default=["*"])

    # Roblox catalog / stock cache
    catalog_base_url: str = "https://catalog.roblox.com"
    catalog_timeout_seconds: float = 10.0
    stock_success_ttl_seconds: float = 300.0
    stock_error_ttl_seconds: float = 120.0
    stock_rate_limit_cooldown_seconds: float = 600.0
    stock_min_request_delay_seconds: float = 0.1
    stock_batch_size: int = 5
    stock_batch_pause_seconds: float = 0.2
    stock_max_ids: int = 50

    # Rate Limiting (slowapi, per client address)
    stock_rate_limit: str = "60/minute"

    # Login throttling
    signin_window_seconds: float = 15 * 60
    signin_max_attempts: int = 5
    signin_block_seconds: float = 15 * 60
    signup_window_seconds: float = 60 * 60
    signup_max_attempts: int = 3
    signup_block_seconds: float = 60 * 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
