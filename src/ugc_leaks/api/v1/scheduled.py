from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ugc_leaks.api.dependencies import get_schedule_service
from ugc_leaks.core.security import RoleChecker
from ugc_leaks.domain.models import (
    Role,
    ScheduledItem,
    ScheduledItemCreate,
    ScheduledItemUpdate,
    ScheduledItemWithStock,
    TokenPayload,
)
from ugc_leaks.domain.ports import InvalidAssetIdsError, ItemNotFoundError
from ugc_leaks.services.schedule_service import ScheduleService

router = APIRouter(prefix="/scheduled", tags=["Scheduled"])

ServiceDep = Annotated[ScheduleService, Depends(get_schedule_service)]
EditorDep = Annotated[TokenPayload, Depends(RoleChecker(Role.EDITOR))]

_NOT_FOUND = "Scheduled item not found"


@router.get("", response_model=list[ScheduledItemWithStock])
async def list_scheduled(
    service: ServiceDep,
    limit: int | None = Query(default=None, ge=1, le=500),
    offset: int | None = Query(default=None, ge=0),
    include_stock: bool = False,
) -> list[ScheduledItem] | list[ScheduledItemWithStock]:
    """Upcoming releases, soonest first. ``include_stock`` adds live catalog stock."""
    if include_stock:
        return await service.list_items_with_stock(limit=limit, offset=offset)
    return await service.list_items(limit=limit, offset=offset)


@router.get("/{item_id}", response_model=ScheduledItem)
async def get_scheduled(item_id: str, service: ServiceDep) -> ScheduledItem:
    try:
        return await service.get_item(item_id)
    except ItemNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)


@router.post("", response_model=ScheduledItem, status_code=status.HTTP_201_CREATED)
async def create_scheduled(
    payload: ScheduledItemCreate, editor: EditorDep, service: ServiceDep
) -> ScheduledItem:
    return await service.create_item(payload)


@router.put("/{item_id}", response_model=ScheduledItem)
async def update_scheduled(
    item_id: str, payload: ScheduledItemUpdate, editor: EditorDep, service: ServiceDep
) -> ScheduledItem:
    try:
        return await service.update_item(item_id, payload)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ItemNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)


@router.delete("/{item_id}")
async def delete_scheduled(item_id: str, editor: EditorDep, service: ServiceDep) -> dict:
    try:
        await service.delete_item(item_id)
    except ItemNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return {"message": "Scheduled item deleted successfully"}


@router.post("/{item_id}/refresh-stock", response_model=ScheduledItemWithStock)
async def refresh_stock(
    item_id: str, editor: EditorDep, service: ServiceDep
) -> ScheduledItemWithStock:
    """Reads live stock for the item's catalog link and stores it as its final stock."""
    try:
        return await service.refresh_stock(item_id)
    except ItemNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    except InvalidAssetIdsError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
