import sys
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from api.app.domain.errors import NotFoundError, ValidationError
from api.app.models import Branch, MenuItem
from api.app.pricing import (
    LineRequest,
    address_score,
    match_branch,
    money,
    normalize_address,
    parse_money,
    resolve_order,
)


def _branch(id, address):
    return SimpleNamespace(id=id, address=address)


def test_normalize_address_strips_punctuation_and_case():
    assert normalize_address("42 Elm St.") == "42elmst"
    assert normalize_address(None) == ""


def test_score_is_positional_not_edit_distance():
    assert address_score("42elmst", "42elmstreet") == 7
    # A one character shift destroys the alignment.
    assert address_score("x42elmst", "42elmst") == 0


def test_delivery_address_picks_best_prefix_match():
    branches = [_branch(1, "42 Elm St"), _branch(2, "99 Oak Ave")]
    assert match_branch("42 Elm Street", branches).id == 1


def test_ties_and_no_match_fall_back_to_first_branch():
    branches = [_branch(1, "1 Aaa"), _branch(2, "1 Aaa")]
    assert match_branch("1 Aaa", branches).id == 1
    assert match_branch("zzz", [_branch(5, "1 Main"), _branch(6, "2 Main")]).id == 5


def test_no_branches_is_missing_branch():
    with pytest.raises(ValidationError) as exc:
        match_branch("42 Elm", [])
    assert exc.value.code == "MISSING_BRANCH"


def test_money_rounds_half_up():
    assert money("2.005") == Decimal("2.01")
    assert money(0.1) + money(0.2) == Decimal("0.30")


@pytest.mark.parametrize("raw", ["NaN", Decimal("NaN"), "sNaN", "Infinity", "-inf", "abc", None])
def test_parse_money_rejects_non_numbers(raw):
    with pytest.raises(ValidationError) as exc:
        parse_money(raw, "INVALID_AMOUNT")
    assert exc.value.code == "INVALID_AMOUNT"
    assert exc.value.message == "Amount must be a number"


def test_parse_money_requires_positive_amount():
    assert parse_money("4.505", "INVALID_PRICE", "price") == Decimal("4.51")
    with pytest.raises(ValidationError) as exc:
        parse_money("0.001", "INVALID_PRICE", "price")
    assert (exc.value.code, exc.value.message) == ("INVALID_PRICE", "Price must be positive")


@pytest.mark.anyio
async def test_resolve_prices_lines_at_current_price(store):
    draft = await resolve_order(
        store,
        [{"menu_item_id": 3, "quantity": 2}, LineRequest(menu_item_id=1, quantity=1)],
        explicit_branch_id=1,
    )
    assert draft.branch_id == 1
    assert [line.subtotal for line in draft.lines] == [Decimal("20.00"), Decimal("4.50")]
    assert draft.total_amount == Decimal("24.50")


@pytest.mark.anyio
async def test_cent_prices_sum_exactly(store):
    draft = await resolve_order(
        store, [{"menu_item_id": 6, "quantity": 3}], explicit_branch_id=1
    )
    assert draft.total_amount == Decimal("0.30")


@pytest.mark.anyio
async def test_explicit_branch_beats_address(store):
    draft = await resolve_order(
        store,
        [{"menu_item_id": 5, "quantity": 1}],
        explicit_branch_id=2,
        delivery_address="42 Elm Street",
    )
    assert draft.branch_id == 2


@pytest.mark.anyio
async def test_address_resolution_uses_store_branches(store):
    draft = await resolve_order(
        store, [{"menu_item_id": 1, "quantity": 1}], delivery_address="99 Oak Avenue"
    )
    assert draft.branch_id == 2


@pytest.mark.anyio
async def test_branch_zero_is_explicit(store, session):
    session.add(Branch(id=0, name="Depot", address="1 Depot Rd"))
    await session.commit()
    draft = await resolve_order(
        store, [{"menu_item_id": 1, "quantity": 1}], explicit_branch_id=0
    )
    assert draft.branch_id == 0


@pytest.mark.anyio
@pytest.mark.parametrize(
    "items, kwargs, code",
    [
        ([], {"explicit_branch_id": 1}, "EMPTY_ORDER"),
        ([{"menu_item_id": 1, "quantity": 1}], {}, "MISSING_BRANCH"),
        ([{"menu_item_id": 1, "quantity": 1}], {"explicit_branch_id": 999}, "MISSING_BRANCH"),
        ([{"menu_item_id": 4, "quantity": 1}], {"explicit_branch_id": 1}, "ITEM_UNAVAILABLE"),
        ([{"menu_item_id": 1, "quantity": 0}], {"explicit_branch_id": 1}, "INVALID_QUANTITY"),
        ([{"menu_item_id": 1, "quantity": -2}], {"explicit_branch_id": 1}, "INVALID_QUANTITY"),
    ],
)
async def test_resolution_failures(store, items, kwargs, code):
    with pytest.raises(ValidationError) as exc:
        await resolve_order(store, items, **kwargs)
    assert exc.value.code == code


@pytest.mark.anyio
async def test_unknown_item_reports_its_id(store):
    with pytest.raises(NotFoundError) as exc:
        await resolve_order(
            store,
            [{"menu_item_id": 1, "quantity": 1}, {"menu_item_id": 99, "quantity": 1}],
            explicit_branch_id=1,
        )
    assert exc.value.code == "ITEM_NOT_FOUND"
    assert exc.value.details == {"menu_item_id": 99}


@pytest.mark.anyio
async def test_unavailable_item_reports_name(store):
    with pytest.raises(ValidationError) as exc:
        await resolve_order(
            store, [{"menu_item_id": 4, "quantity": 1}], explicit_branch_id=1
        )
    assert exc.value.details == {"menu_item_id": 4, "name": "Pie"}


@pytest.mark.anyio
async def test_price_is_reread_each_call(store, session):
    first = await resolve_order(
        store, [{"menu_item_id": 3, "quantity": 1}], explicit_branch_id=1
    )
    item = await session.get(MenuItem, 3)
    item.price = Decimal("12.00")
    await session.commit()
    second = await resolve_order(
        store, [{"menu_item_id": 3, "quantity": 1}], explicit_branch_id=1
    )
    assert first.total_amount == Decimal("10.00")
    assert second.total_amount == Decimal("12.00")
