"""Order creation, listing, status transitions and deletion.

Every operation takes the store and the caller identity explicitly. Writes
run inside a single store transaction so that an order, its items and any
payment side effect are applied together or not at all.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..domain.errors import AuthorizationError, NotFoundError, StateError, ValidationError
from ..domain.identity import Identity, Role
from ..domain.order_status import OrderStatus, can_transition
from ..domain.payment import PaymentStatus
from ..policy import (
    STATUS_PERMISSIONS,
    Action,
    Target,
    can_request_status,
    require,
    require_list_scope,
)
from ..pricing import LineRequest, resolve_order
from ..repos.store import Store

logger = logging.getLogger(__name__)


def parse_status(value: Any) -> OrderStatus:
    """Return ``value`` as an :class:`OrderStatus` or raise ``INVALID_STATUS``."""

    try:
        return OrderStatus(value)
    except ValueError as exc:
        raise ValidationError(
            "INVALID_STATUS",
            f"Unknown order status {value!r}",
            {"allowed": [s.value for s in OrderStatus]},
        ) from exc


async def _load(store: Store, order_id: int, for_update: bool = False):
    order = await store.find_order(order_id, for_update=for_update)
    if order is None:
        raise NotFoundError(
            "ORDER_NOT_FOUND", "Order not found", {"order_id": order_id}
        )
    return order


async def create_order(
    store: Store,
    identity: Optional[Identity],
    items: Iterable[Mapping[str, Any] | LineRequest],
    explicit_branch_id: Optional[int] = None,
    delivery_address: Optional[str] = None,
    customer_id_override: Optional[int] = None,
):
    """Create a ``PENDING`` order priced at current catalog prices.

    Customers always order for themselves. Staff may name a customer; branch
    scoped staff always order into their own branch.
    """

    scope = require(identity, Action.CREATE_ORDER, Target(branch_id=explicit_branch_id))

    if identity.role is Role.CUSTOMER:
        customer_id = identity.id
    elif customer_id_override is not None:
        customer_id = customer_id_override
    else:
        customer_id = identity.id

    branch_id = explicit_branch_id
    if identity.is_branch_scoped:
        branch_id = scope.branch_id

    async with store.transaction():
        if customer_id != identity.id:
            customer = await store.find_user(customer_id)
            if customer is None:
                raise NotFoundError(
                    "CUSTOMER_NOT_FOUND",
                    f"Customer {customer_id} not found",
                    {"customer_id": customer_id},
                )
        draft = await resolve_order(store, items, branch_id, delivery_address)
        order = await store.create_order(draft, customer_id, delivery_address)

    logger.info(
        "order.created",
        extra={
            "order_id": order.id,
            "branch_id": order.branch_id,
            "user": identity.id,
            "role": identity.role.value,
        },
    )
    return order


async def list_orders(
    store: Store,
    identity: Optional[Identity],
    status: Optional[OrderStatus | str] = None,
    branch_id: Optional[int] = None,
    customer_id: Optional[int] = None,
) -> Sequence[Any]:
    """Return the orders visible to ``identity``, newest first.

    Orders outside the caller's scope are filtered out, never reported as an
    error.
    """

    scope = require_list_scope(identity, Action.VIEW_ORDERS, branch_id)
    wanted_customer = scope.customer_id
    if wanted_customer is None and customer_id is not None:
        if identity.is_privileged or identity.role is Role.BRANCH_MANAGER:
            wanted_customer = customer_id
    wanted_status = parse_status(status) if status is not None else None
    return await store.list_orders(
        branch_id=scope.branch_id,
        customer_id=wanted_customer,
        status=wanted_status,
    )


async def get_order(store: Store, identity: Optional[Identity], order_id: int):
    """Return one order if it is visible to ``identity``."""

    require(identity, Action.VIEW_ORDERS)
    order = await _load(store, order_id)
    require(
        identity,
        Action.VIEW_ORDERS,
        Target(branch_id=order.branch_id, customer_id=order.customer_id),
    )
    return order


async def transition_order_status(
    store: Store,
    identity: Optional[Identity],
    order_id: int,
    new_status: OrderStatus | str,
):
    """Move an order to ``new_status``.

    The request must be legal in the state machine and within the caller's
    permitted statuses. Cancelling an order that has a payment refunds the
    payment in the same transaction. The status write is conditional on the
    status that was validated, so a concurrent change makes this call fail
    instead of overwriting it.
    """

    require(identity, Action.TRANSITION_ORDER)
    requested = parse_status(new_status)

    async with store.transaction():
        order = await _load(store, order_id, for_update=True)
        require(identity, Action.TRANSITION_ORDER, Target(branch_id=order.branch_id))

        current = OrderStatus(order.status)
        if not can_transition(current, requested):
            raise StateError(
                "INVALID_TRANSITION",
                f"Cannot transition from {current.value} to {requested.value}",
                {"current": current.value, "requested": requested.value},
            )
        if not can_request_status(identity, requested):
            allowed = sorted(s.value for s in STATUS_PERMISSIONS[identity.role])
            raise AuthorizationError(
                "ROLE_NOT_PERMITTED",
                f"Role {identity.role.value} may only set status to "
                + " or ".join(allowed),
                {"requested": requested.value, "allowed": allowed},
            )

        if not await store.update_order_status(order.id, current, requested):
            raise StateError(
                "INVALID_TRANSITION",
                "Order status changed concurrently; reload and retry",
                {"current": current.value, "requested": requested.value},
            )

        if requested is OrderStatus.CANCELLED and order.payment is not None:
            await store.update_payment_status(order.payment.id, PaymentStatus.REFUNDED)
            logger.info(
                "payment.refunded",
                extra={"order_id": order.id, "payment_id": order.payment.id},
            )

    logger.info(
        "order.status_changed",
        extra={
            "order_id": order_id,
            "from_status": current.value,
            "to_status": requested.value,
            "user": identity.id,
            "role": identity.role.value,
        },
    )
    return await _load(store, order_id)


async def delete_order(store: Store, identity: Optional[Identity], order_id: int) -> None:
    """Delete an order that has not been delivered, refunding its payment."""

    require(identity, Action.DELETE_ORDER)

    async with store.transaction():
        order = await _load(store, order_id, for_update=True)
        require(identity, Action.DELETE_ORDER, Target(branch_id=order.branch_id))

        if OrderStatus(order.status) is OrderStatus.DELIVERED:
            raise StateError(
                "CANNOT_DELETE_DELIVERED",
                "Cannot delete delivered orders",
                {"current": OrderStatus.DELIVERED.value},
            )
        if order.payment is not None:
            await store.update_payment_status(order.payment.id, PaymentStatus.REFUNDED)
        await store.delete_order(order.id)

    logger.info(
        "order.deleted",
        extra={"order_id": order_id, "user": identity.id, "role": identity.role.value},
    )


__all__ = [
    "create_order",
    "delete_order",
    "get_order",
    "list_orders",
    "parse_status",
    "transition_order_status",
]
