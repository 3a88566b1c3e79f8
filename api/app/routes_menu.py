"""Menu catalog routes; reading the menu needs no login."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from .auth import get_identity
from .deps.store import get_store
from .domain.identity import Identity
from .repos.store import Store
from .schemas import MenuItemCreateIn, MenuItemOut, MenuItemUpdateIn, dump
from .services import menu as menu_service
from .utils.responses import ok

router = APIRouter(prefix="/api/menu", tags=["menu"])


@router.get("")
async def list_menu(
    branch_id: Optional[int] = None, store: Store = Depends(get_store)
) -> dict:
    items = await menu_service.list_menu(store, branch_id)
    return ok([dump(MenuItemOut, i) for i in items])


@router.post("", status_code=201)
async def create_menu_item(
    payload: MenuItemCreateIn,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    item = await menu_service.create_menu_item(store, identity, **payload.model_dump())
    return ok(dump(MenuItemOut, item))


@router.put("/{item_id}")
async def update_menu_item(
    item_id: int,
    payload: MenuItemUpdateIn,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    """Change price, text or availability of a dish."""

    item = await menu_service.update_menu_item(
        store, identity, item_id, **payload.model_dump()
    )
    return ok(dump(MenuItemOut, item))


@router.delete("/{item_id}")
async def delete_menu_item(
    item_id: int,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    await menu_service.delete_menu_item(store, identity, item_id)
    return ok({"id": item_id, "deleted": True})
