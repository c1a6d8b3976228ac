from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ugc_leaks.api.dependencies import get_auth_service
from ugc_leaks.core.security import RoleChecker
from ugc_leaks.domain.models import Role, TokenPayload, User
from ugc_leaks.domain.ports import UserNotFoundError
from ugc_leaks.services.auth_service import AuthService

router = APIRouter(prefix="/users", tags=["Users"])

OwnerDep = Annotated[TokenPayload, Depends(RoleChecker(Role.OWNER))]
ServiceDep = Annotated[AuthService, Depends(get_auth_service)]


@router.get("/search", response_model=User)
async def search_user(
    owner: OwnerDep,
    service: ServiceDep,
    username: str = Query(min_length=1, max_length=50),
) -> User:
    """Owner-only exact username lookup (used by the role management page)."""
    try:
        return await service.find_by_username(username)
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
