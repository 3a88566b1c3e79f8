"""Payment capture and lookup per order."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from .auth import get_identity
from .deps.store import get_store
from .domain.identity import Identity
from .repos.store import Store
from .schemas import OrderOut, PaymentIn, PaymentOut, dump
from .services import payments as payment_service
from .utils.responses import ok

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/{order_id}", status_code=201)
async def create_payment(
    order_id: int,
    payload: PaymentIn,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    """Settle ``order_id`` for its exact total."""

    payment = await payment_service.create_payment(
        store, identity, order_id, payload.amount, payload.method
    )
    return ok(dump(PaymentOut, payment))


@router.get("/{order_id}")
async def get_payment(
    order_id: int,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    payment = await payment_service.get_payment(store, identity, order_id)
    return ok(dump(PaymentOut, payment))


@router.post("/{payment_id}/reprint")
async def reprint_receipt(
    payment_id: int,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    """Return the payment and its order for printing a receipt again."""

    payment, order = await payment_service.reprint_receipt(store, identity, payment_id)
    return ok({"payment": dump(PaymentOut, payment), "order": dump(OrderOut, order)})
