"""Menu catalog maintenance.

Prices set here are read by order pricing at creation time. Orders already
placed keep the unit price captured on their lines, so edits and removals
never change existing totals.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ..domain.errors import NotFoundError, ValidationError
from ..domain.identity import Identity
from ..policy import Action, Target, require
from ..pricing import parse_money
from ..repos.store import Store

logger = logging.getLogger(__name__)


def _text(field: str, value: Any, required: bool = False) -> str:
    if not isinstance(value, str) or (required and not value.strip()):
        raise ValidationError(
            "MISSING_FIELDS" if required else "INVALID_FIELD",
            f"{field} is required" if required else f"{field} must be text",
            {"field": field},
        )
    return value.strip()


def _flag(field: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(
            "INVALID_FIELD", f"{field} must be true or false", {"field": field}
        )
    return value


async def _load(store: Store, item_id: int):
    item = await store.find_menu_item(item_id)
    if item is None:
        raise NotFoundError(
            "MENU_ITEM_NOT_FOUND", "Menu item not found", {"menu_item_id": item_id}
        )
    return item


async def list_menu(store: Store, branch_id: Optional[int] = None) -> Sequence[Any]:
    """Return the live catalog, optionally for one branch."""

    return await store.list_menu_items(branch_id=branch_id)


async def create_menu_item(
    store: Store,
    identity: Optional[Identity],
    name: Any,
    price: Any,
    description: Any = "",
    category: Any = "",
    is_available: Any = True,
    branch_id: Optional[int] = None,
):
    """Add a dish; branch managers add to their own branch only."""

    if branch_id is None and identity is not None and identity.is_branch_scoped:
        branch_id = identity.branch_id
    scope = require(identity, Action.CREATE_MENU_ITEM, Target(branch_id=branch_id))
    branch_id = scope.branch_id
    if branch_id is None:
        raise ValidationError("MISSING_BRANCH", "branch_id is required")

    fields = {
        "name": _text("name", name, required=True),
        "price": parse_money(price, "INVALID_PRICE", "price"),
        "description": _text("description", description),
        "category": _text("category", category),
        "is_available": _flag("is_available", is_available),
        "branch_id": branch_id,
    }
    async with store.transaction():
        if await store.find_branch(branch_id) is None:
            raise ValidationError(
                "MISSING_BRANCH",
                f"Branch {branch_id} not found",
                {"branch_id": branch_id},
            )
        item = await store.create_menu_item(**fields)

    logger.info(
        "menu.created",
        extra={"branch_id": branch_id, "user": identity.id, "role": identity.role.value},
    )
    return item


async def update_menu_item(
    store: Store,
    identity: Optional[Identity],
    item_id: int,
    name: Any = None,
    price: Any = None,
    description: Any = None,
    category: Any = None,
    is_available: Any = None,
):
    require(identity, Action.UPDATE_MENU_ITEM)
    fields = {}
    if name is not None:
        fields["name"] = _text("name", name, required=True)
    if price is not None:
        fields["price"] = parse_money(price, "INVALID_PRICE", "price")
    if description is not None:
        fields["description"] = _text("description", description)
    if category is not None:
        fields["category"] = _text("category", category)
    if is_available is not None:
        fields["is_available"] = _flag("is_available", is_available)

    async with store.transaction():
        item = await _load(store, item_id)
        require(identity, Action.UPDATE_MENU_ITEM, Target(branch_id=item.branch_id))
        if fields:
            item = await store.update_menu_item(item_id, **fields)

    logger.info(
        "menu.updated",
        extra={"branch_id": item.branch_id, "user": identity.id, "role": identity.role.value},
    )
    return item


async def delete_menu_item(store: Store, identity: Optional[Identity], item_id: int) -> None:
    require(identity, Action.DELETE_MENU_ITEM)
    async with store.transaction():
        item = await _load(store, item_id)
        require(identity, Action.DELETE_MENU_ITEM, Target(branch_id=item.branch_id))
        branch_id = item.branch_id
        await store.delete_menu_item(item_id)

    logger.info(
        "menu.deleted",
        extra={"branch_id": branch_id, "user": identity.id, "role": identity.role.value},
    )


__all__ = ["create_menu_item", "delete_menu_item", "list_menu", "update_menu_item"]
