"""Branch scoped inventory management."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ..domain.errors import NotFoundError, ValidationError
from ..domain.identity import Identity
from ..policy import Action, Target, require
from ..repos.store import Store

logger = logging.getLogger(__name__)


def _count(field: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(
            "INVALID_FIELD",
            f"{field} must be a non-negative integer",
            {"field": field, "value": value},
        )
    return value


def _text(field: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            "INVALID_FIELD", f"{field} is required", {"field": field}
        )
    return value.strip()


async def _load(store: Store, item_id: int):
    item = await store.find_inventory_item(item_id)
    if item is None:
        raise NotFoundError(
            "INVENTORY_NOT_FOUND", "Inventory item not found", {"item_id": item_id}
        )
    return item


async def list_inventory(
    store: Store, identity: Optional[Identity], branch_id: Optional[int] = None
) -> Sequence[Any]:
    """Return inventory for the caller's branch, or any branch for managers.

    Branch staff asking for another branch get ``BRANCH_MISMATCH``.
    """

    scope = require(identity, Action.VIEW_INVENTORY, Target(branch_id=branch_id))
    return await store.list_inventory(branch_id=scope.branch_id)


async def update_inventory_item(
    store: Store,
    identity: Optional[Identity],
    item_id: int,
    quantity: Optional[int] = None,
    min_threshold: Optional[int] = None,
):
    require(identity, Action.UPDATE_INVENTORY)
    fields = {}
    if quantity is not None:
        fields["quantity"] = _count("quantity", quantity)
    if min_threshold is not None:
        fields["min_threshold"] = _count("min_threshold", min_threshold)

    async with store.transaction():
        item = await _load(store, item_id)
        require(identity, Action.UPDATE_INVENTORY, Target(branch_id=item.branch_id))
        if fields:
            item = await store.update_inventory_item(item_id, **fields)

    logger.info(
        "inventory.updated",
        extra={"branch_id": item.branch_id, "user": identity.id, "role": identity.role.value},
    )
    return item


async def create_inventory_item(
    store: Store,
    identity: Optional[Identity],
    name: str,
    quantity: int,
    unit: str,
    min_threshold: int,
    branch_id: Optional[int] = None,
):
    """Add a stock line to a branch; defaults to the caller's own branch."""

    if branch_id is None and identity is not None:
        branch_id = identity.branch_id
    scope = require(identity, Action.CREATE_INVENTORY, Target(branch_id=branch_id))
    branch_id = scope.branch_id
    if branch_id is None:
        raise ValidationError("MISSING_BRANCH", "branch_id is required")

    fields = {
        "name": _text("name", name),
        "unit": _text("unit", unit),
        "quantity": _count("quantity", quantity),
        "min_threshold": _count("min_threshold", min_threshold),
        "branch_id": branch_id,
    }
    async with store.transaction():
        item = await store.create_inventory_item(**fields)

    logger.info(
        "inventory.created",
        extra={"branch_id": branch_id, "user": identity.id, "role": identity.role.value},
    )
    return item


async def delete_inventory_item(
    store: Store, identity: Optional[Identity], item_id: int
) -> None:
    require(identity, Action.DELETE_INVENTORY)
    async with store.transaction():
        item = await _load(store, item_id)
        require(identity, Action.DELETE_INVENTORY, Target(branch_id=item.branch_id))
        await store.delete_inventory_item(item_id)

    logger.info(
        "inventory.deleted",
        extra={"branch_id": item.branch_id, "user": identity.id, "role": identity.role.value},
    )


__all__ = [
    "create_inventory_item",
    "delete_inventory_item",
    "list_inventory",
    "update_inventory_item",
]
