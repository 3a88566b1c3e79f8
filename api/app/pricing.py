"""Order pricing and fulfilling-branch resolution."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional, Sequence

from .domain.errors import NotFoundError, ValidationError
from .repos.store import Store

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


def money(value: Any) -> Decimal:
    """Return ``value`` as a ``Decimal`` rounded to whole cents."""

    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_money(value: Any, code: str, field: str = "amount") -> Decimal:
    """Return ``value`` as a positive cent amount or raise ``code``."""

    label = field.capitalize()
    try:
        amount = money(value)
        # NaN survives quantize, infinities do not
        if not amount.is_finite():
            raise InvalidOperation(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(
            code, f"{label} must be a number", {field: str(value)}
        ) from exc
    if amount <= 0:
        raise ValidationError(code, f"{label} must be positive", {field: str(amount)})
    return amount


@dataclass(frozen=True)
class LineRequest:
    """Requested menu item and quantity."""

    menu_item_id: int
    quantity: int


@dataclass(frozen=True)
class DraftLine:
    menu_item_id: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


@dataclass
class OrderDraft:
    """A priced, branch-assigned order that has not been persisted yet."""

    branch_id: int
    lines: list[DraftLine] = field(default_factory=list)
    total_amount: Decimal = Decimal("0.00")


def normalize_address(value: Optional[str]) -> str:
    """Lower-case ``value`` and strip every non alphanumeric character."""

    return _NON_ALNUM.sub("", (value or "").lower())


def address_score(a: str, b: str) -> int:
    """Count position-wise equal characters over the shorter string.

    This is a prefix alignment count, not an edit distance: ``"42elmst"`` and
    ``"42elmstreet"`` share 7 positions.
    """

    return sum(1 for x, y in zip(a, b) if x == y)


def match_branch(address: str, branches: Sequence[Any]) -> Any:
    """Return the branch whose address best matches ``address``.

    The first branch wins on ties, including when nothing matches at all.
    """

    if not branches:
        raise ValidationError("MISSING_BRANCH", "No branches available")
    wanted = normalize_address(address)
    best = branches[0]
    best_score = 0
    for branch in branches:
        score = address_score(normalize_address(branch.address), wanted)
        if score > best_score:
            best, best_score = branch, score
    return best


def parse_lines(items: Iterable[Mapping[str, Any] | LineRequest]) -> list[LineRequest]:
    """Coerce raw ``{menu_item_id, quantity}`` mappings into ``LineRequest``."""

    lines = []
    for item in items:
        if isinstance(item, LineRequest):
            lines.append(item)
        else:
            lines.append(
                LineRequest(
                    menu_item_id=item["menu_item_id"], quantity=item["quantity"]
                )
            )
    return lines


async def resolve_branch(
    store: Store,
    explicit_branch_id: Optional[int] = None,
    delivery_address: Optional[str] = None,
) -> int:
    """Return the fulfilling branch id for an order."""

    if explicit_branch_id is not None:
        if await store.find_branch(explicit_branch_id) is None:
            raise ValidationError(
                "MISSING_BRANCH",
                f"Branch {explicit_branch_id} not found",
                {"branch_id": explicit_branch_id},
            )
        return explicit_branch_id
    if delivery_address:
        branches = await store.list_branches()
        branch = match_branch(delivery_address, branches)
        logger.info(
            "branch resolved from delivery address",
            extra={"branch_id": branch.id},
        )
        return branch.id
    raise ValidationError(
        "MISSING_BRANCH", "No branchId or delivery address provided"
    )


async def resolve_order(
    store: Store,
    items: Iterable[Mapping[str, Any] | LineRequest],
    explicit_branch_id: Optional[int] = None,
    delivery_address: Optional[str] = None,
) -> OrderDraft:
    """Price ``items`` at current catalog prices and assign a branch.

    Any failing line aborts the whole resolution; nothing is returned
    partially.
    """

    lines = parse_lines(items)
    if not lines:
        raise ValidationError("EMPTY_ORDER", "Order must contain at least one item")

    branch_id = await resolve_branch(store, explicit_branch_id, delivery_address)
    draft = OrderDraft(branch_id=branch_id)
    total = Decimal("0.00")
    for line in lines:
        qty = line.quantity
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise ValidationError(
                "INVALID_QUANTITY",
                "Quantity must be a positive integer",
                {"menu_item_id": line.menu_item_id, "quantity": line.quantity},
            )
        menu_item = await store.find_menu_item(line.menu_item_id)
        if menu_item is None:
            raise NotFoundError(
                "ITEM_NOT_FOUND",
                f"Menu item {line.menu_item_id} not found",
                {"menu_item_id": line.menu_item_id},
            )
        if not menu_item.is_available:
            raise ValidationError(
                "ITEM_UNAVAILABLE",
                f"Menu item {menu_item.name} is not available",
                {"menu_item_id": menu_item.id, "name": menu_item.name},
            )
        unit_price = money(menu_item.price)
        subtotal = money(unit_price * line.quantity)
        total += subtotal
        draft.lines.append(
            DraftLine(
                menu_item_id=menu_item.id,
                quantity=line.quantity,
                unit_price=unit_price,
                subtotal=subtotal,
            )
        )
    draft.total_amount = money(total)
    return draft


__all__ = [
    "DraftLine",
    "LineRequest",
    "OrderDraft",
    "address_score",
    "match_branch",
    "money",
    "normalize_address",
    "parse_lines",
    "parse_money",
    "resolve_branch",
    "resolve_order",
]
