# src/ugc_leaks/core/security.py
"""Bearer token authentication and role checks.

Tokens are HS256 JWTs carrying ``userId``, ``email`` and ``role``. There is no
revocation list: a token stays valid until it expires, and a role change only
takes effect once the user signs in again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from pydantic import ValidationError

from ugc_leaks.core.config import Settings, get_settings
from ugc_leaks.domain.models import ROLE_HIERARCHY, Role, TokenPayload, User

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthFailure:
    status_code: int
    detail: str

    def to_http_exception(self) -> HTTPException:
        headers = {"WWW-Authenticate": "Bearer"} if self.status_code == 401 else None
        return HTTPException(status_code=self.status_code, detail=self.detail, headers=headers)


def create_access_token(user: User, settings: Settings) -> str:
    """Issue a signed token for ``user`` (default lifetime: 7 days)."""
    now = datetime.now(UTC)
    payload = {
        "userId": user.id,
        "email": user.email,
        "role": str(user.role),
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_expire_days),
    }
    return str(jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm))


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None


def decode_access_token(token: str, settings: Settings) -> TokenPayload | None:
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],  # Explicit list prevents algorithm confusion
        )
    except JWTError as e:
        logger.info("Token verification failed: %s", e)
        return None

    try:
        return TokenPayload.model_validate(claims)
    except ValidationError:
        logger.info("Token verification failed: missing claims")
        return None


def verify_token(request: Request, settings: Settings) -> TokenPayload | None:
    """Returns the decoded payload of the request's bearer token, or None."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None:
        return None
    return decode_access_token(token, settings)


def role_rank(role: str) -> int:
    """Position in the hierarchy; -1 for anything unknown."""
    try:
        return ROLE_HIERARCHY.index(role)
    except ValueError:
        return -1


def has_required_role(user_role: str, required_role: str) -> bool:
    """user < editor < owner. Unknown roles never satisfy a requirement."""
    user_rank = role_rank(user_role)
    if user_rank < 0:
        return False
    return user_rank >= role_rank(required_role)


def require_auth(request: Request, settings: Settings) -> TokenPayload | AuthFailure:
    payload = verify_token(request, settings)
    if payload is None:
        return AuthFailure(status.HTTP_401_UNAUTHORIZED, "Authentication required")
    return payload


def require_role(
    request: Request, settings: Settings, required_role: str = Role.EDITOR
) -> TokenPayload | AuthFailure:
    result = require_auth(request, settings)
    if isinstance(result, AuthFailure):
        return result
    if not has_required_role(result.role, required_role):
        return AuthFailure(
            status.HTTP_403_FORBIDDEN, f"Access denied. Required role: {required_role}"
        )
    return result


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------


async def get_current_user(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> TokenPayload:
    """
    FastAPI Dependency: validates the bearer token and returns its payload.
    Raises HTTP 401 if the token is missing, invalid or expired.
    """
    result = require_auth(request, settings)
    if isinstance(result, AuthFailure):
        raise result.to_http_exception()
    return result


class RoleChecker:
    """FastAPI Dependency enforcing a minimum role (401 / 403 on failure)."""

    def __init__(self, required_role: Role = Role.EDITOR) -> None:
        self.required_role = required_role

    async def __call__(
        self,
        request: Request,
        settings: Settings = Depends(get_settings),
    ) -> TokenPayload:
        result = require_role(request, settings, self.required_role)
        if isinstance(result, AuthFailure):
            raise result.to_http_exception()
        return result


def get_client_ip(request: Request) -> str:
    """Client address, honoring the usual reverse proxy headers."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client:
        return request.client.host
    return "unknown"
