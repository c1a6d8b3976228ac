from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ugc_leaks.api.dependencies import get_item_service
from ugc_leaks.core.security import RoleChecker
from ugc_leaks.domain.models import Role, TokenPayload, UgcItem, UgcItemCreate, UgcItemUpdate
from ugc_leaks.domain.ports import ItemNotFoundError
from ugc_leaks.services.item_service import ItemService

router = APIRouter(prefix="/items", tags=["Items"])

ServiceDep = Annotated[ItemService, Depends(get_item_service)]
EditorDep = Annotated[TokenPayload, Depends(RoleChecker(Role.EDITOR))]


@router.get("", response_model=list[UgcItem])
async def list_items(
    service: ServiceDep,
    creator: str | None = None,
    method: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=500),
    offset: int | None = Query(default=None, ge=0),
) -> list[UgcItem]:
    """Released items, newest release first."""
    return await service.list_items(creator=creator, method=method, limit=limit, offset=offset)


@router.get("/{item_id}", response_model=UgcItem)
async def get_item(item_id: str, service: ServiceDep) -> UgcItem:
    try:
        return await service.get_item(item_id)
    except ItemNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")


@router.post("", response_model=UgcItem, status_code=status.HTTP_201_CREATED)
async def create_item(payload: UgcItemCreate, editor: EditorDep, service: ServiceDep) -> UgcItem:
    return await service.create_item(payload)


@router.put("/{item_id}", response_model=UgcItem)
async def update_item(
    item_id: str, payload: UgcItemUpdate, editor: EditorDep, service: ServiceDep
) -> UgcItem:
    try:
        return await service.update_item(item_id, payload)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ItemNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")


@router.delete("/{item_id}")
async def delete_item(item_id: str, editor: EditorDep, service: ServiceDep) -> dict:
    try:
        item = await service.delete_item(item_id)
    except ItemNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return {"message": "Item deleted successfully", "item": item.model_dump(mode="json")}
