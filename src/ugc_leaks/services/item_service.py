from __future__ import annotations

from ugc_leaks.domain.models import UgcItem, UgcItemCreate, UgcItemUpdate
from ugc_leaks.domain.ports import ItemNotFoundError
from ugc_leaks.repositories.item_repository import ItemRepository


class ItemService:
    def __init__(self, repository: ItemRepository) -> None:
        self._repo = repository

    async def list_items(
        self,
        creator: str | None = None,
        method: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[UgcItem]:
        return await self._repo.find_all(creator=creator, method=method, limit=limit, offset=offset)

    async def get_item(self, identifier: str) -> UgcItem:
        item = await self._repo.find(identifier)
        if item is None:
            raise ItemNotFoundError(identifier)
        return item

    async def create_item(self, payload: UgcItemCreate) -> UgcItem:
        return await self._repo.create(payload.model_dump())

    async def update_item(self, identifier: str, payload: UgcItemUpdate) -> UgcItem:
        """Applies only the fields the caller sent. Raises ValueError if there are none."""
        changes = payload.changes()
        if not changes:
            raise ValueError("No valid fields to update")
        item = await self._repo.update(identifier, changes)
        if item is None:
            raise ItemNotFoundError(identifier)
        return item

    async def delete_item(self, identifier: str) -> UgcItem:
        item = await self.get_item(identifier)
        await self._repo.delete(identifier)
        return item
