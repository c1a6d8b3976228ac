import logging
import math
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ugc_leaks.api.dependencies import (
    get_auth_service,
    get_login_limiter,
    get_signin_limit,
    get_signup_limit,
)
from ugc_leaks.core.metrics import LOGIN_ATTEMPTS_BLOCKED
from ugc_leaks.core.security import (
    RoleChecker,
    extract_bearer_token,
    get_client_ip,
    get_current_user,
)
from ugc_leaks.domain.models import (
    GrantAccessRequest,
    GrantAccessResponse,
    RateLimitConfig,
    Role,
    SigninRequest,
    SigninResponse,
    SignupRequest,
    SignupResponse,
    TokenPayload,
    User,
)
from ugc_leaks.domain.ports import (
    InvalidCredentialsError,
    InvalidRoleError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from ugc_leaks.services.auth_service import AuthService
from ugc_leaks.services.login_limiter import LoginLimiter, attempt_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

ServiceDep = Annotated[AuthService, Depends(get_auth_service)]
LimiterDep = Annotated[LoginLimiter, Depends(get_login_limiter)]
CurrentUserDep = Annotated[TokenPayload, Depends(get_current_user)]
OwnerDep = Annotated[TokenPayload, Depends(RoleChecker(Role.OWNER))]


def _enforce_attempt_limit(
    limiter: LoginLimiter, purpose: str, request: Request, config: RateLimitConfig
) -> str:
    """Counts one attempt; raises HTTP 429 with Retry-After when over budget."""
    key = attempt_key(purpose, get_client_ip(request))
    decision = limiter.check_rate_limit(key, config)
    if not decision.allowed:
        LOGIN_ATTEMPTS_BLOCKED.labels(purpose=purpose).inc()
        retry_after = max(1, math.ceil(decision.reset_in))
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many {purpose} attempts. Please try again later.",
            headers={"Retry-After": str(retry_after)},
        )
    return key


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    request: Request,
    payload: SignupRequest,
    service: ServiceDep,
    limiter: LimiterDep,
    limit: Annotated[RateLimitConfig, Depends(get_signup_limit)],
) -> SignupResponse:
    """Registers an account. The first account ever created becomes the owner."""
    _enforce_attempt_limit(limiter, "signup", request, limit)
    try:
        return await service.signup(payload)
    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/signin", response_model=SigninResponse)
async def signin(
    request: Request,
    payload: SigninRequest,
    service: ServiceDep,
    limiter: LimiterDep,
    limit: Annotated[RateLimitConfig, Depends(get_signin_limit)],
) -> SigninResponse:
    """Exchanges email and password for a bearer token."""
    key = _enforce_attempt_limit(limiter, "signin", request, limit)
    try:
        result = await service.signin(payload)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    limiter.clear_rate_limit(key)
    return result


@router.post("/signout")
async def signout(request: Request, current_user: CurrentUserDep, service: ServiceDep) -> dict:
    token = extract_bearer_token(request.headers.get("authorization"))
    if token:
        await service.signout(token)
    return {"message": "Signed out successfully"}


@router.get("/me")
async def me(current_user: CurrentUserDep, service: ServiceDep) -> dict[str, User]:
    try:
        user = await service.get_user(current_user.user_id)
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return {"user": user}


@router.post("/grant-access", response_model=GrantAccessResponse)
async def grant_access(
    payload: GrantAccessRequest, owner: OwnerDep, service: ServiceDep
) -> GrantAccessResponse:
    """Owner-only: sets another user's role."""
    try:
        user = await service.grant_access(
            acting_user_id=owner.user_id,
            target_user_id=payload.target_user_id,
            new_role=payload.new_role,
        )
    except InvalidRoleError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except UserNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Target user not found"
        )
    return GrantAccessResponse(message=f"User role updated to {payload.new_role}", user=user)
