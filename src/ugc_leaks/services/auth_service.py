from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta

from ugc_leaks.core.config import Settings
from ugc_leaks.core.passwords import hash_password, verify_password
from ugc_leaks.core.security import create_access_token
from ugc_leaks.domain.models import (
    ROLE_HIERARCHY,
    Role,
    SigninRequest,
    SigninResponse,
    SignupRequest,
    SignupResponse,
    User,
)
from ugc_leaks.domain.ports import (
    InvalidCredentialsError,
    InvalidRoleError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from ugc_leaks.repositories.user_repository import (
    AuditLogRepository,
    SessionRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


class AuthService:
    """Account lifecycle: signup, signin/signout and role management."""

    def __init__(
        self,
        users: UserRepository,
        sessions: SessionRepository,
        audit_log: AuditLogRepository,
        settings: Settings,
    ) -> None:
        self._users = users
        self._sessions = sessions
        self._audit_log = audit_log
        self._settings = settings

    async def signup(self, payload: SignupRequest) -> SignupResponse:
        """
        Creates an account. The very first account becomes the owner.

        Raises:
            UserAlreadyExistsError: Email or username already taken.
        """
        if await self._users.exists(email=payload.email, username=payload.username):
            raise UserAlreadyExistsError()

        is_first_user = await self._users.count() == 0
        role = Role.OWNER if is_first_user else Role.USER
        user = await self._users.create(
            user_id=str(uuid.uuid4()),
            username=payload.username,
            email=payload.email,
            password_hash=hash_password(payload.password, rounds=self._settings.bcrypt_rounds),
            role=role,
        )
        logger.info("Created account %s with role %s", user.id, role)

        greeting = "You are now the owner." if is_first_user else "Welcome!"
        return SignupResponse(message=f"Account created successfully! {greeting}", user=user)

    async def signin(self, payload: SigninRequest) -> SigninResponse:
        """
        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
        """
        credentials = await self._users.find_credentials_by_email(payload.email)
        if credentials is None or not verify_password(payload.password, credentials.password_hash):
            raise InvalidCredentialsError()

        user = User.model_validate(credentials.model_dump(exclude={"password_hash"}))
        token = create_access_token(user, self._settings)
        await self._sessions.create(
            session_id=str(uuid.uuid4()),
            user_id=user.id,
            token=token,
            expires_at=datetime.now(UTC) + timedelta(days=self._settings.jwt_expire_days),
        )
        return SigninResponse(message="Signed in successfully", token=token, user=user)

    async def signout(self, token: str) -> None:
        await self._sessions.delete_by_token(token)

    async def get_user(self, user_id: str) -> User:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def find_by_username(self, username: str) -> User:
        user = await self._users.find_by_username(username)
        if user is None:
            raise UserNotFoundError(username)
        return user

    async def grant_access(self, acting_user_id: str, target_user_id: str, new_role: str) -> User:
        """
        Changes another user's role and records it in the audit log.

        Raises:
            InvalidRoleError: ``new_role`` is not part of the hierarchy.
            UserNotFoundError: No such target user.
        """
        if new_role not in ROLE_HIERARCHY:
            raise InvalidRoleError(new_role)

        previous = await self._users.find_by_id(target_user_id)
        if previous is None:
            raise UserNotFoundError(target_user_id)

        updated = await self._users.update_role(target_user_id, new_role)
        if updated is None:
            raise UserNotFoundError(target_user_id)

        await self._audit_log.record(
            action="GRANT_ACCESS",
            user_id=acting_user_id,
            target_user_id=target_user_id,
            details={"newRole": new_role, "previousRole": str(previous.role)},
        )
        logger.info(
            "User %s changed role of %s from %s to %s",
            acting_user_id,
            target_user_id,
            previous.role,
            new_role,
        )
        return updated
