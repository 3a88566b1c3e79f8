"""Order creation, listing, status changes and deletion."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from .auth import get_identity
from .deps.store import get_store
from .domain.identity import Identity
from .repos.store import Store
from .schemas import CreateOrderIn, OrderOut, StatusIn, dump
from .services import orders as order_service
from .utils.responses import ok

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("")
async def list_orders(
    status: Optional[str] = None,
    branch_id: Optional[int] = None,
    customer_id: Optional[int] = None,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    """Return orders visible to the caller, newest first."""

    orders = await order_service.list_orders(
        store, identity, status=status, branch_id=branch_id, customer_id=customer_id
    )
    return ok([dump(OrderOut, o) for o in orders])


@router.post("", status_code=201)
async def create_order(
    payload: CreateOrderIn,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    order = await order_service.create_order(
        store,
        identity,
        [line.model_dump() for line in payload.items],
        explicit_branch_id=payload.branch_id,
        delivery_address=payload.delivery_address,
        customer_id_override=payload.customer_id,
    )
    return ok(dump(OrderOut, order))


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    order = await order_service.get_order(store, identity, order_id)
    return ok(dump(OrderOut, order))


@router.patch("/{order_id}/status")
async def update_status(
    order_id: int,
    payload: StatusIn,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    """Move an order to the requested status."""

    order = await order_service.transition_order_status(
        store, identity, order_id, payload.status
    )
    return ok(dump(OrderOut, order))


@router.delete("/{order_id}")
async def delete_order(
    order_id: int,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    await order_service.delete_order(store, identity, order_id)
    return ok({"id": order_id, "deleted": True})
