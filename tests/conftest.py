# tests/conftest.py
from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient

import ugc_leaks.api.dependencies as _deps
from ugc_leaks.core.config import Settings, get_settings
from ugc_leaks.core.rate_limit import limiter
from ugc_leaks.core.security import create_access_token
from ugc_leaks.domain.models import Role, User
from ugc_leaks.main import app


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
    )


@pytest.fixture
def client(test_settings: Settings) -> Generator[TestClient, None, None]:
    # Fresh in-memory database, stock cache and attempt counters per test.
    _deps._database = None
    _deps._stock_cache = None
    _deps.get_login_limiter.cache_clear()
    limiter.reset()
    app.dependency_overrides[get_settings] = lambda: test_settings
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
        _deps._database = None
        _deps._stock_cache = None
        _deps.get_login_limiter.cache_clear()


@pytest.fixture
def auth_headers(test_settings: Settings) -> Callable[..., dict]:
    """Builds an Authorization header for a token with the given role."""

    def _headers(role: str = Role.EDITOR, user_id: str = "user-1") -> dict:
        user = User(id=user_id, username=f"{role}-user", email=f"{role}@example.com", role=Role.USER)
        token = create_access_token(user.model_copy(update={"role": role}), test_settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def editor_headers(auth_headers: Callable[..., dict]) -> dict:
    return auth_headers(Role.EDITOR)
