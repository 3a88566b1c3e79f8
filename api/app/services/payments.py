"""Payment guard: one completed payment per order, for the exact total."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from config import get_settings

from ..domain.errors import AuthorizationError, NotFoundError, ValidationError
from ..domain.identity import Identity
from ..domain.payment import PaymentMethod, PaymentStatus
from ..policy import Action, Deny, Target, can_perform, require
from ..pricing import money, parse_money
from ..repos.store import Store

logger = logging.getLogger(__name__)


def parse_method(value: Any) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError as exc:
        raise ValidationError(
            "INVALID_METHOD",
            f"Unknown payment method {value!r}",
            {"allowed": [m.value for m in PaymentMethod]},
        ) from exc


def parse_amount(value: Any) -> Decimal:
    """Return ``value`` as a positive money amount."""

    return parse_money(value, "INVALID_AMOUNT")


async def create_payment(
    store: Store,
    identity: Optional[Identity],
    order_id: int,
    amount: Any,
    method: Any,
):
    """Record a ``COMPLETED`` payment for ``order_id``.

    Only the owning customer or a cashier of the order's branch may pay. The
    amount must equal the order total within the configured tolerance.
    """

    if identity is None:
        raise AuthorizationError("NOT_AUTHENTICATED", "Authentication required")
    method = parse_method(method)
    amount = parse_amount(amount)
    tolerance = get_settings().payment_tolerance

    async with store.transaction():
        order = await store.find_order(order_id, for_update=True)
        if order is None:
            raise NotFoundError(
                "ORDER_NOT_FOUND", "Order not found", {"order_id": order_id}
            )

        decision = can_perform(
            identity,
            Action.CREATE_PAYMENT,
            Target(branch_id=order.branch_id, customer_id=order.customer_id),
        )
        if isinstance(decision, Deny):
            raise AuthorizationError(
                "UNAUTHORIZED",
                "Unauthorized to process payment for this order",
                {"reason": decision.reason.value},
            )

        if order.payment is not None:
            raise ValidationError(
                "DUPLICATE_PAYMENT",
                "Payment already processed for this order",
                {"order_id": order.id, "payment_id": order.payment.id},
            )

        total = money(order.total_amount)
        if abs(amount - total) > tolerance:
            raise ValidationError(
                "AMOUNT_MISMATCH",
                "Payment amount does not match order total",
                {"amount": str(amount), "total_amount": str(total)},
            )

        payment = await store.create_payment(
            order.id, amount, method, PaymentStatus.COMPLETED
        )

    logger.info(
        "payment.completed",
        extra={
            "order_id": order_id,
            "payment_id": payment.id,
            "user": identity.id,
            "role": identity.role.value,
        },
    )
    return payment


async def get_payment(store: Store, identity: Optional[Identity], order_id: int):
    """Return the payment recorded for ``order_id``."""

    require(identity, Action.VIEW_PAYMENT)
    order = await store.find_order(order_id)
    if order is None:
        raise NotFoundError("ORDER_NOT_FOUND", "Order not found", {"order_id": order_id})
    require(
        identity,
        Action.VIEW_PAYMENT,
        Target(branch_id=order.branch_id, customer_id=order.customer_id),
    )
    payment = await store.find_payment(order_id)
    if payment is None:
        raise NotFoundError(
            "PAYMENT_NOT_FOUND", "Payment not found", {"order_id": order_id}
        )
    return payment


async def reprint_receipt(store: Store, identity: Optional[Identity], payment_id: int):
    """Return ``(payment, order)`` for printing a receipt again.

    Branch staff may reprint only for their own branch.
    """

    require(identity, Action.REPRINT_RECEIPT)
    payment = await store.find_payment_by_id(payment_id)
    if payment is None:
        raise NotFoundError(
            "PAYMENT_NOT_FOUND", "Payment not found", {"payment_id": payment_id}
        )
    order = await store.find_order(payment.order_id)
    if order is None:
        raise NotFoundError(
            "ORDER_NOT_FOUND", "Order not found", {"order_id": payment.order_id}
        )
    require(identity, Action.REPRINT_RECEIPT, Target(branch_id=order.branch_id))

    logger.info(
        "receipt.reprinted",
        extra={
            "order_id": order.id,
            "payment_id": payment.id,
            "user": identity.id,
            "role": identity.role.value,
        },
    )
    return payment, order


__all__ = [
    "create_payment",
    "get_payment",
    "parse_amount",
    "parse_method",
    "reprint_receipt",
]
