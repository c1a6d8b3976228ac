from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import CursorResult, delete, select
from sqlalchemy.sql.elements import ColumnElement

from ugc_leaks.domain.models import ScheduledItem, UgcItem
from ugc_leaks.repositories.database import Database
from ugc_leaks.repositories.orm import ScheduledItemORM, UgcItemORM


def _identifier_clause(
    model: type[UgcItemORM] | type[ScheduledItemORM], identifier: str
) -> ColumnElement[bool]:
    """Items are addressable by their numeric id or by their uuid."""
    if identifier.isascii() and identifier.isdigit():
        return model.id == int(identifier)
    return model.uuid == identifier


class ItemRepository:
    """Released UGC items (``ugc_items``)."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def find_all(
        self,
        creator: str | None = None,
        method: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[UgcItem]:
        query = select(UgcItemORM)
        if creator:
            query = query.where(UgcItemORM.creator.ilike(f"%{creator}%"))
        if method:
            query = query.where(UgcItemORM.method == method)
        query = query.order_by(UgcItemORM.release_date_time.desc())
        if limit is not None:
            query = query.limit(limit)
        if offset is not None:
            query = query.offset(offset)

        async with self._db.async_session_maker() as session:
            result = await session.execute(query)
            return [UgcItem.model_validate(row) for row in result.scalars()]

    async def find(self, identifier: str) -> UgcItem | None:
        async with self._db.async_session_maker() as session:
            result = await session.execute(
                select(UgcItemORM).where(_identifier_clause(UgcItemORM, identifier))
            )
            orm_item = result.scalar_one_or_none()
            return UgcItem.model_validate(orm_item) if orm_item else None

    async def create(self, values: dict[str, Any]) -> UgcItem:
        async with self._db.async_session_maker() as session, session.begin():
            orm_item = UgcItemORM(uuid=str(uuid.uuid4()), **values)
            session.add(orm_item)
        return UgcItem.model_validate(orm_item)

    async def update(self, identifier: str, changes: dict[str, Any]) -> UgcItem | None:
        async with self._db.async_session_maker() as session, session.begin():
            result = await session.execute(
                select(UgcItemORM).where(_identifier_clause(UgcItemORM, identifier))
            )
            orm_item = result.scalar_one_or_none()
            if orm_item is None:
                return None
            for key, value in changes.items():
                setattr(orm_item, key, value)
        return UgcItem.model_validate(orm_item)

    async def delete(self, identifier: str) -> bool:
        async with self._db.async_session_maker() as session, session.begin():
            result = await session.execute(
                delete(UgcItemORM).where(_identifier_clause(UgcItemORM, identifier))
            )
            if isinstance(result, CursorResult):
                return bool(result.rowcount > 0)
            return False


class ScheduledItemRepository:
    """Upcoming releases (``scheduled_items``), ordered by release time."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def find_all(
        self, limit: int | None = None, offset: int | None = None
    ) -> list[ScheduledItem]:
        query = select(ScheduledItemORM).order_by(
            ScheduledItemORM.release_date_time.asc(), ScheduledItemORM.id.asc()
        )
        if limit is not None:
            query = query.limit(limit)
        if offset is not None:
            query = query.offset(offset)

        async with self._db.async_session_maker() as session:
            result = await session.execute(query)
            return [ScheduledItem.model_validate(row) for row in result.scalars()]

    async def find(self, identifier: str) -> ScheduledItem | None:
        async with self._db.async_session_maker() as session:
            result = await session.execute(
                select(ScheduledItemORM).where(_identifier_clause(ScheduledItemORM, identifier))
            )
            orm_item = result.scalar_one_or_none()
            return ScheduledItem.model_validate(orm_item) if orm_item else None

    async def create(self, values: dict[str, Any]) -> ScheduledItem:
        async with self._db.async_session_maker() as session, session.begin():
            orm_item = ScheduledItemORM(uuid=str(uuid.uuid4()), **values)
            session.add(orm_item)
        return ScheduledItem.model_validate(orm_item)

    async def update(self, identifier: str, changes: dict[str, Any]) -> ScheduledItem | None:
        async with self._db.async_session_maker() as session, session.begin():
            result = await session.execute(
                select(ScheduledItemORM).where(_identifier_clause(ScheduledItemORM, identifier))
            )
            orm_item = result.scalar_one_or_none()
            if orm_item is None:
                return None
            for key, value in changes.items():
                setattr(orm_item, key, value)
        return ScheduledItem.model_validate(orm_item)

    async def delete(self, identifier: str) -> bool:
        async with self._db.async_session_maker() as session, session.begin():
            result = await session.execute(
                delete(ScheduledItemORM).where(_identifier_clause(ScheduledItemORM, identifier))
            )
            if isinstance(result, CursorResult):
                return bool(result.rowcount > 0)
            return False
