"""Branch inventory endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from .auth import get_identity
from .deps.store import get_store
from .domain.identity import Identity
from .repos.store import Store
from .schemas import InventoryCreateIn, InventoryItemOut, InventoryUpdateIn, dump
from .services import inventory as inventory_service
from .utils.responses import ok

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.get("")
async def list_inventory(
    branch_id: Optional[int] = None,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    items = await inventory_service.list_inventory(store, identity, branch_id)
    return ok([dump(InventoryItemOut, i) for i in items])


@router.post("", status_code=201)
async def create_inventory_item(
    payload: InventoryCreateIn,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    item = await inventory_service.create_inventory_item(
        store, identity, **payload.model_dump()
    )
    return ok(dump(InventoryItemOut, item))


@router.put("/{item_id}")
async def update_inventory_item(
    item_id: int,
    payload: InventoryUpdateIn,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    """Adjust stock level or reorder threshold."""

    item = await inventory_service.update_inventory_item(
        store,
        identity,
        item_id,
        quantity=payload.quantity,
        min_threshold=payload.min_threshold,
    )
    return ok(dump(InventoryItemOut, item))


@router.delete("/{item_id}")
async def delete_inventory_item(
    item_id: int,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    await inventory_service.delete_inventory_item(store, identity, item_id)
    return ok({"id": item_id, "deleted": True})
