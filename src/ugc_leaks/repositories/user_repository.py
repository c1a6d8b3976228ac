from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from sqlalchemy import CursorResult, delete, func, or_, select
from sqlalchemy.exc import IntegrityError

from ugc_leaks.domain.models import User, UserCredentials
from ugc_leaks.domain.ports import UserAlreadyExistsError
from ugc_leaks.repositories.database import Database
from ugc_leaks.repositories.orm import AuditLogORM, SessionORM, UserORM


class UserRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    async def count(self) -> int:
        async with self._db.async_session_maker() as session:
            result = await session.execute(select(func.count()).select_from(UserORM))
            return int(result.scalar_one())

    async def exists(self, email: str, username: str) -> bool:
        """True if either the email or the username is already taken."""
        async with self._db.async_session_maker() as session:
            result = await session.execute(
                select(UserORM.id).where(
                    or_(UserORM.email == email, UserORM.username == username)
                )
            )
            return result.first() is not None

    async def create(
        self, user_id: str, username: str, email: str, password_hash: str, role: str
    ) -> User:
        """
        Raises:
            UserAlreadyExistsError: Email or username taken by a concurrent signup.
        """
        try:
            async with self._db.async_session_maker() as session, session.begin():
                orm_user = UserORM(
                    id=user_id,
                    username=username,
                    email=email,
                    password_hash=password_hash,
                    role=role,
                )
                session.add(orm_user)
        except IntegrityError as e:
            raise UserAlreadyExistsError() from e
        return User.model_validate(orm_user)

    async def find_by_id(self, user_id: str) -> User | None:
        async with self._db.async_session_maker() as session:
            orm_user = await session.get(UserORM, user_id)
            return User.model_validate(orm_user) if orm_user else None

    async def find_by_username(self, username: str) -> User | None:
        async with self._db.async_session_maker() as session:
            result = await session.execute(select(UserORM).where(UserORM.username == username))
            orm_user = result.scalar_one_or_none()
            return User.model_validate(orm_user) if orm_user else None

    async def find_credentials_by_email(self, email: str) -> UserCredentials | None:
        async with self._db.async_session_maker() as session:
            result = await session.execute(select(UserORM).where(UserORM.email == email))
            orm_user = result.scalar_one_or_none()
            return UserCredentials.model_validate(orm_user) if orm_user else None

    async def update_role(self, user_id: str, role: str) -> User | None:
        async with self._db.async_session_maker() as session, session.begin():
            orm_user = await session.get(UserORM, user_id)
            if orm_user is None:
                return None
            orm_user.role = role
        return User.model_validate(orm_user)


class SessionRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    async def create(self, session_id: str, user_id: str, token: str, expires_at: datetime) -> None:
        async with self._db.async_session_maker() as session, session.begin():
            session.add(
                SessionORM(id=session_id, user_id=user_id, token=token, expires_at=expires_at)
            )

    async def delete_by_token(self, token: str) -> int:
        async with self._db.async_session_maker() as session, session.begin():
            result = await session.execute(delete(SessionORM).where(SessionORM.token == token))
            if isinstance(result, CursorResult):
                return int(result.rowcount)
            return 0


class AuditLogRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    async def record(
        self,
        action: str,
        user_id: str | None,
        target_user_id: str | None,
        details: dict[str, Any] | None = None,
    ) -> None:
        async with self._db.async_session_maker() as session, session.begin():
            session.add(
                AuditLogORM(
                    action=action,
                    user_id=user_id,
                    target_user_id=target_user_id,
                    details=json.dumps(details) if details is not None else None,
                )
            )

