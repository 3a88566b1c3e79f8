import sys
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import func, select

sys.path.append(str(Path(__file__).resolve().parents[1]))

from api.app.domain.errors import AuthorizationError, NotFoundError, ValidationError
from api.app.domain.payment import PaymentMethod, PaymentStatus
from api.app.models import Payment
from api.app.services.orders import create_order
from api.app.services.payments import create_payment, get_payment


async def _alice_order(store, db):
    return await create_order(
        store, db.alice, [{"menu_item_id": 3, "quantity": 2}], explicit_branch_id=1
    )


async def _count(session):
    return (await session.execute(select(func.count(Payment.id)))).scalar_one()


@pytest.mark.anyio
async def test_owner_pays_exact_total(store, db):
    order = await _alice_order(store, db)
    payment = await create_payment(store, db.alice, order.id, "20.00", "CREDIT_CARD")
    assert payment.status == PaymentStatus.COMPLETED
    assert payment.method == PaymentMethod.CREDIT_CARD
    assert payment.amount == Decimal("20.00")


@pytest.mark.anyio
async def test_amount_within_one_cent_is_accepted(store, db):
    order = await _alice_order(store, db)
    payment = await create_payment(store, db.cashier1, order.id, "19.99", "CASH")
    assert payment.status == PaymentStatus.COMPLETED


@pytest.mark.anyio
async def test_second_payment_is_rejected_without_new_row(store, session, db):
    order = await _alice_order(store, db)
    await create_payment(store, db.alice, order.id, "20.00", "CASH")

    with pytest.raises(ValidationError) as exc:
        await create_payment(store, db.cashier1, order.id, "20.00", "CASH")

    assert exc.value.code == "DUPLICATE_PAYMENT"
    assert await _count(session) == 1


@pytest.mark.anyio
async def test_amount_mismatch(store, session, db):
    order = await _alice_order(store, db)
    with pytest.raises(ValidationError) as exc:
        await create_payment(store, db.alice, order.id, "19.98", "CASH")
    assert exc.value.code == "AMOUNT_MISMATCH"
    assert exc.value.details == {"amount": "19.98", "total_amount": "20.00"}
    assert await _count(session) == 0


@pytest.mark.anyio
async def test_non_owner_customer_is_unauthorized(store, db):
    order = await _alice_order(store, db)
    with pytest.raises(AuthorizationError) as exc:
        await create_payment(store, db.bob, order.id, "20.00", "CASH")
    assert exc.value.code == "UNAUTHORIZED"
    assert exc.value.status_code == 403


@pytest.mark.anyio
async def test_cashier_from_other_branch_is_unauthorized(store, db):
    order = await _alice_order(store, db)
    with pytest.raises(AuthorizationError) as exc:
        await create_payment(store, db.cashier2, order.id, "20.00", "CASH")
    assert exc.value.code == "UNAUTHORIZED"
    assert exc.value.details == {"reason": "BRANCH_MISMATCH"}


@pytest.mark.anyio
async def test_managers_do_not_take_payments(store, db):
    order = await _alice_order(store, db)
    with pytest.raises(AuthorizationError) as exc:
        await create_payment(store, db.admin, order.id, "20.00", "CASH")
    assert exc.value.code == "UNAUTHORIZED"


@pytest.mark.anyio
async def test_input_checks(store, db):
    order = await _alice_order(store, db)
    with pytest.raises(ValidationError) as exc:
        await create_payment(store, db.alice, order.id, "20.00", "BITCOIN")
    assert exc.value.code == "INVALID_METHOD"
    with pytest.raises(ValidationError) as exc:
        await create_payment(store, db.alice, order.id, "-20.00", "CASH")
    assert exc.value.code == "INVALID_AMOUNT"
    for amount in (Decimal("NaN"), "Infinity"):
        with pytest.raises(ValidationError) as exc:
            await create_payment(store, db.alice, order.id, amount, "CASH")
        assert exc.value.code == "INVALID_AMOUNT"
    with pytest.raises(AuthorizationError) as exc:
        await create_payment(store, None, order.id, "20.00", "CASH")
    assert exc.value.code == "NOT_AUTHENTICATED"
    with pytest.raises(NotFoundError) as exc:
        await create_payment(store, db.alice, 404, "20.00", "CASH")
    assert exc.value.code == "ORDER_NOT_FOUND"


@pytest.mark.anyio
async def test_store_unique_index_backs_duplicate_check(store, db):
    order = await _alice_order(store, db)
    async with store.transaction():
        await store.create_payment(
            order.id, Decimal("20.00"), PaymentMethod.CASH, PaymentStatus.COMPLETED
        )
    with pytest.raises(ValidationError) as exc:
        async with store.transaction():
            await store.create_payment(
                order.id, Decimal("20.00"), PaymentMethod.CASH, PaymentStatus.COMPLETED
            )
    assert exc.value.code == "DUPLICATE_PAYMENT"


@pytest.mark.anyio
async def test_get_payment(store, db):
    order = await _alice_order(store, db)
    with pytest.raises(NotFoundError) as exc:
        await get_payment(store, db.alice, order.id)
    assert exc.value.code == "PAYMENT_NOT_FOUND"

    await create_payment(store, db.alice, order.id, "20.00", "CASH")
    assert (await get_payment(store, db.alice, order.id)).order_id == order.id
    assert (await get_payment(store, db.bm1, order.id)).order_id == order.id
    with pytest.raises(AuthorizationError):
        await get_payment(store, db.bob, order.id)
    with pytest.raises(AuthorizationError):
        await get_payment(store, db.chef1, order.id)
