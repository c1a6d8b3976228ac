from __future__ import annotations

import logging

from ugc_leaks.domain.models import (
    ScheduledItem,
    ScheduledItemCreate,
    ScheduledItemUpdate,
    ScheduledItemWithStock,
    StockError,
    StockLevel,
)
from ugc_leaks.domain.ports import InvalidAssetIdsError, ItemNotFoundError
from ugc_leaks.repositories.item_repository import ScheduledItemRepository
from ugc_leaks.services.stock_cache import StockCache, extract_asset_id

logger = logging.getLogger(__name__)

_KIND = "Scheduled item"


class ScheduleService:
    """Upcoming releases plus their live stock from the shared StockCache."""

    def __init__(self, repository: ScheduledItemRepository, stock_cache: StockCache) -> None:
        self._repo = repository
        self._stock = stock_cache

    async def list_items(
        self, limit: int | None = None, offset: int | None = None
    ) -> list[ScheduledItem]:
        return await self._repo.find_all(limit=limit, offset=offset)

    async def list_items_with_stock(
        self, limit: int | None = None, offset: int | None = None
    ) -> list[ScheduledItemWithStock]:
        items = await self._repo.find_all(limit=limit, offset=offset)
        asset_ids = {item.id: extract_asset_id(item.item_link) for item in items}

        wanted = list(dict.fromkeys(a for a in asset_ids.values() if a))
        stock: dict[str, StockLevel | StockError] = {}
        for start in range(0, len(wanted), self._stock.max_ids):
            stock.update(await self._stock.get_stock(wanted[start : start + self._stock.max_ids]))

        return [
            ScheduledItemWithStock(
                **item.model_dump(),
                live_stock=stock.get(asset_ids[item.id]) if asset_ids[item.id] else None,
            )
            for item in items
        ]

    async def get_item(self, identifier: str) -> ScheduledItem:
        item = await self._repo.find(identifier)
        if item is None:
            raise ItemNotFoundError(identifier, _KIND)
        return item

    async def create_item(self, payload: ScheduledItemCreate) -> ScheduledItem:
        return await self._repo.create(payload.model_dump())

    async def update_item(self, identifier: str, payload: ScheduledItemUpdate) -> ScheduledItem:
        changes = payload.changes()
        if not changes:
            raise ValueError("No fields to update")
        item = await self._repo.update(identifier, changes)
        if item is None:
            raise ItemNotFoundError(identifier, _KIND)
        return item

    async def delete_item(self, identifier: str) -> None:
        if not await self._repo.delete(identifier):
            raise ItemNotFoundError(identifier, _KIND)

    async def refresh_stock(self, identifier: str) -> ScheduledItemWithStock:
        """
        Reads the item's live stock and persists it as the final stock.
        A reading of zero marks the item sold out.

        Raises:
            ItemNotFoundError: Unknown item.
            InvalidAssetIdsError: The item has no usable catalog link.
        """
        item = await self.get_item(identifier)
        asset_id = extract_asset_id(item.item_link)
        if asset_id is None:
            raise InvalidAssetIdsError("Scheduled item has no catalog link to read stock from")

        live = (await self._stock.get_stock([asset_id]))[asset_id]
        if isinstance(live, StockLevel):
            changes: dict[str, object] = {
                "final_current_stock": live.current_stock,
                "final_total_stock": live.total_stock,
            }
            # A single zero reading is trusted; there is no second confirmation.
            if live.current_stock == 0 and not item.sold_out:
                changes["sold_out"] = True
                logger.info("Scheduled item %s (asset %s) is sold out", item.uuid, asset_id)
            updated = await self._repo.update(identifier, changes)
            if updated is None:
                raise ItemNotFoundError(identifier, _KIND)
            item = updated

        return ScheduledItemWithStock(**item.model_dump(), live_stock=live)
