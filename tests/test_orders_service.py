import sys
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy import select

sys.path.append(str(Path(__file__).resolve().parents[1]))

from api.app.domain.errors import (
    AuthorizationError,
    NotFoundError,
    StateError,
    StoreError,
    ValidationError,
)
from api.app.domain.order_status import OrderStatus
from api.app.domain.payment import PaymentMethod, PaymentStatus
from api.app.models import MenuItem, Order, Payment
from api.app.repos_sqlalchemy.store_sql import SQLStore
from api.app.services import orders as svc
from api.app.services.payments import create_payment
from api.app.utils.soft_delete import is_deleted

BURGERS = [{"menu_item_id": 3, "quantity": 2}]


async def _order(store, who, status=OrderStatus.PENDING, branch_id=1, items=BURGERS):
    order = await svc.create_order(store, who, items, explicit_branch_id=branch_id)
    path = {
        OrderStatus.PENDING: [],
        OrderStatus.PREPARING: [OrderStatus.PREPARING],
        OrderStatus.READY: [OrderStatus.PREPARING, OrderStatus.READY],
    }[status]
    for step in path:
        await _force(store, order.id, step)
    return order


async def _force(store, order_id, status):
    order = await store.find_order(order_id)
    async with store.transaction():
        await store.update_order_status(order_id, OrderStatus(order.status), status)


@pytest.mark.anyio
async def test_customer_creates_pending_order(store, db):
    order = await svc.create_order(store, db.alice, BURGERS, explicit_branch_id=1)
    assert order.total_amount == Decimal("20.00")
    assert order.status == OrderStatus.PENDING
    assert order.customer_id == 7
    assert [(i.menu_item_id, i.quantity, i.subtotal) for i in order.items] == [
        (3, 2, Decimal("20.00"))
    ]


@pytest.mark.anyio
async def test_customer_cannot_order_for_someone_else(store, db):
    order = await svc.create_order(
        store, db.alice, BURGERS, explicit_branch_id=1, customer_id_override=8
    )
    assert order.customer_id == 7


@pytest.mark.anyio
async def test_cashier_orders_into_own_branch_for_customer(store, db):
    order = await svc.create_order(store, db.cashier1, BURGERS, customer_id_override=8)
    assert order.branch_id == 1
    assert order.customer_id == 8


@pytest.mark.anyio
async def test_cashier_cannot_order_into_other_branch(store, db):
    with pytest.raises(AuthorizationError) as exc:
        await svc.create_order(store, db.cashier1, BURGERS, explicit_branch_id=2)
    assert exc.value.code == "BRANCH_MISMATCH"


@pytest.mark.anyio
async def test_staff_override_must_name_existing_customer(store, db):
    with pytest.raises(NotFoundError) as exc:
        await svc.create_order(
            store, db.gm, BURGERS, explicit_branch_id=1, customer_id_override=404
        )
    assert exc.value.code == "CUSTOMER_NOT_FOUND"


@pytest.mark.anyio
async def test_chef_cannot_create_orders(store, db):
    with pytest.raises(AuthorizationError) as exc:
        await svc.create_order(store, db.chef1, BURGERS)
    assert exc.value.code == "ROLE_NOT_PERMITTED"


@pytest.mark.anyio
async def test_failed_line_leaves_no_order_behind(store, session, db):
    with pytest.raises(NotFoundError):
        await svc.create_order(
            store,
            db.alice,
            BURGERS + [{"menu_item_id": 99, "quantity": 1}],
            explicit_branch_id=1,
        )
    rows = (await session.execute(select(Order))).scalars().all()
    assert rows == []


@pytest.mark.anyio
async def test_price_snapshot_survives_catalog_change(store, session, db):
    order = await svc.create_order(store, db.alice, BURGERS, explicit_branch_id=1)
    item = await session.get(MenuItem, 3)
    item.price = Decimal("99.99")
    await session.commit()
    reloaded = await store.find_order(order.id)
    assert reloaded.items[0].unit_price == Decimal("10.00")
    assert reloaded.total_amount == Decimal("20.00")


@pytest.mark.anyio
async def test_chef_walks_order_through_kitchen(store, db):
    order = await _order(store, db.alice)
    order = await svc.transition_order_status(store, db.chef1, order.id, "PREPARING")
    assert order.status == OrderStatus.PREPARING
    order = await svc.transition_order_status(store, db.chef1, order.id, "READY")
    assert order.status == OrderStatus.READY
    order = await svc.transition_order_status(
        store, db.cashier1, order.id, OrderStatus.DELIVERED
    )
    assert order.status == OrderStatus.DELIVERED


@pytest.mark.anyio
async def test_preparing_cannot_jump_to_delivered(store, db):
    order = await _order(store, db.alice, OrderStatus.PREPARING)
    with pytest.raises(StateError) as exc:
        await svc.transition_order_status(store, db.chef1, order.id, "DELIVERED")
    assert exc.value.code == "INVALID_TRANSITION"
    assert exc.value.details == {"current": "PREPARING", "requested": "DELIVERED"}


@pytest.mark.anyio
async def test_role_outside_its_status_set_is_rejected(store, db):
    order = await _order(store, db.alice)
    with pytest.raises(AuthorizationError) as exc:
        await svc.transition_order_status(store, db.chef1, order.id, "CANCELLED")
    assert exc.value.code == "ROLE_NOT_PERMITTED"


@pytest.mark.anyio
async def test_roles_without_transition_rights_are_rejected_first(store, db):
    with pytest.raises(AuthorizationError) as exc:
        await svc.transition_order_status(store, db.bm1, 12345, "CANCELLED")
    assert exc.value.code == "ROLE_NOT_PERMITTED"


@pytest.mark.anyio
async def test_cashier_delivers_walk_in_order_directly(store, db):
    order = await _order(store, db.cashier1)
    order = await svc.transition_order_status(store, db.cashier1, order.id, "DELIVERED")
    assert order.status == OrderStatus.DELIVERED


@pytest.mark.anyio
async def test_terminal_orders_never_move(store, db):
    # rejected calls roll back and expire loaded rows
    order_id = (await _order(store, db.alice)).id
    await svc.transition_order_status(store, db.cashier1, order_id, "CANCELLED")
    for target in ("DELIVERED", "CANCELLED"):
        with pytest.raises(StateError):
            await svc.transition_order_status(store, db.cashier1, order_id, target)
    for target in ("PREPARING", "READY"):
        with pytest.raises(StateError):
            await svc.transition_order_status(store, db.chef1, order_id, target)
    assert (await store.find_order(order_id)).status == OrderStatus.CANCELLED


@pytest.mark.anyio
async def test_transition_on_other_branch_is_branch_mismatch(store, db):
    order = await svc.create_order(
        store, db.alice, [{"menu_item_id": 5, "quantity": 1}], explicit_branch_id=2
    )
    with pytest.raises(AuthorizationError) as exc:
        await svc.transition_order_status(store, db.cashier1, order.id, "CANCELLED")
    assert exc.value.code == "BRANCH_MISMATCH"


@pytest.mark.anyio
async def test_unknown_order_and_status(store, db):
    with pytest.raises(NotFoundError) as exc:
        await svc.transition_order_status(store, db.chef1, 404, "PREPARING")
    assert exc.value.code == "ORDER_NOT_FOUND"
    with pytest.raises(ValidationError) as exc:
        await svc.transition_order_status(store, db.chef1, 404, "EATEN")
    assert exc.value.code == "INVALID_STATUS"


@pytest.mark.anyio
async def test_stale_status_write_is_rejected(store, db):
    order = await _order(store, db.alice)
    async with store.transaction():
        assert await store.update_order_status(
            order.id, OrderStatus.PENDING, OrderStatus.PREPARING
        )
    async with store.transaction():
        assert not await store.update_order_status(
            order.id, OrderStatus.PENDING, OrderStatus.CANCELLED
        )
    assert (await store.find_order(order.id)).status == OrderStatus.PREPARING


@pytest.mark.anyio
async def test_cancelling_paid_order_refunds_payment(store, session, db):
    order = await _order(store, db.alice, OrderStatus.READY)
    await create_payment(store, db.alice, order.id, "20.00", PaymentMethod.CASH)

    order = await svc.transition_order_status(store, db.cashier1, order.id, "CANCELLED")

    assert order.status == OrderStatus.CANCELLED
    assert order.payment.status == PaymentStatus.REFUNDED
    rows = (await session.execute(select(Payment))).scalars().all()
    assert [p.status for p in rows] == [PaymentStatus.REFUNDED]


@pytest.mark.anyio
async def test_failed_refund_keeps_order_and_payment_unchanged(store, session, db):
    order_id = (await _order(store, db.alice)).id
    await create_payment(store, db.alice, order_id, "20.00", "CASH")

    with patch.object(SQLStore, "update_payment_status", side_effect=StoreError()):
        with pytest.raises(StoreError):
            await svc.transition_order_status(store, db.cashier1, order_id, "CANCELLED")

    order = await store.find_order(order_id)
    assert order.status == OrderStatus.PENDING
    payment = (await session.execute(select(Payment))).scalar_one()
    await session.refresh(payment)
    assert payment.status == PaymentStatus.COMPLETED


@pytest.mark.anyio
async def test_concurrent_change_between_read_and_write_is_rejected(store, db):
    order_id = (await _order(store, db.alice)).id
    write = SQLStore.update_order_status

    async def chef_gets_there_first(self, oid, expected, status):
        await write(self, oid, expected, OrderStatus.PREPARING)
        return await write(self, oid, expected, status)

    with patch.object(SQLStore, "update_order_status", chef_gets_there_first):
        with pytest.raises(StateError) as exc:
            await svc.transition_order_status(store, db.cashier1, order_id, "CANCELLED")

    assert exc.value.code == "INVALID_TRANSITION"
    assert exc.value.details == {"current": "PENDING", "requested": "CANCELLED"}
    # the whole unit rolled back, including the competing write
    assert (await store.find_order(order_id)).status == OrderStatus.PENDING


@pytest.mark.anyio
async def test_explicit_branch_must_exist(store, session, db):
    with pytest.raises(ValidationError) as exc:
        await svc.create_order(store, db.gm, BURGERS, explicit_branch_id=999)
    assert exc.value.code == "MISSING_BRANCH"
    assert exc.value.details == {"branch_id": 999}
    assert (await session.execute(select(Order))).scalars().all() == []

@pytest.mark.anyio
async def test_listing_filters_other_branches_out(store, db):
    mine = await _order(store, db.alice, branch_id=1)
    other = await svc.create_order(
        store, db.bob, [{"menu_item_id": 5, "quantity": 1}], explicit_branch_id=2
    )

    seen = [o.id for o in await svc.list_orders(store, db.cashier1)]
    assert mine.id in seen
    assert other.id not in seen

    asked_for_other = await svc.list_orders(store, db.cashier1, branch_id=2)
    assert other.id not in [o.id for o in asked_for_other]


@pytest.mark.anyio
async def test_listing_scopes(store, db):
    a = await _order(store, db.alice, branch_id=1)
    b = await svc.create_order(
        store, db.bob, [{"menu_item_id": 5, "quantity": 1}], explicit_branch_id=2
    )

    assert [o.id for o in await svc.list_orders(store, db.alice)] == [a.id]
    assert [o.id for o in await svc.list_orders(store, db.bob)] == [b.id]
    assert {o.id for o in await svc.list_orders(store, db.admin)} == {a.id, b.id}
    assert [o.id for o in await svc.list_orders(store, db.gm, branch_id=2)] == [b.id]
    assert [o.id for o in await svc.list_orders(store, db.gm, customer_id=7)] == [a.id]
    assert await svc.list_orders(store, db.admin, status="READY") == []

    with pytest.raises(AuthorizationError) as exc:
        await svc.list_orders(store, db.drifter)
    assert exc.value.code == "NO_BRANCH_ASSIGNED"


@pytest.mark.anyio
async def test_get_order_respects_ownership(store, db):
    order = await _order(store, db.alice)
    assert (await svc.get_order(store, db.alice, order.id)).id == order.id
    with pytest.raises(AuthorizationError):
        await svc.get_order(store, db.bob, order.id)
    with pytest.raises(AuthorizationError):
        await svc.get_order(store, db.cashier2, order.id)


@pytest.mark.anyio
async def test_manager_deletes_order_and_refunds(store, session, db):
    order = await _order(store, db.alice)
    await create_payment(store, db.alice, order.id, Decimal("20.00"), "CASH")

    await svc.delete_order(store, db.bm1, order.id)

    assert await store.find_order(order.id) is None
    assert await svc.list_orders(store, db.admin) == []
    row = await session.get(Order, order.id)
    assert is_deleted(row)
    payment = (await session.execute(select(Payment))).scalar_one()
    assert payment.status == PaymentStatus.REFUNDED


@pytest.mark.anyio
async def test_delivered_orders_cannot_be_deleted(store, db):
    order = await _order(store, db.alice)
    await svc.transition_order_status(store, db.cashier1, order.id, "DELIVERED")
    with pytest.raises(StateError) as exc:
        await svc.delete_order(store, db.admin, order.id)
    assert exc.value.code == "CANNOT_DELETE_DELIVERED"


@pytest.mark.anyio
async def test_delete_permissions(store, db):
    order_id = (await _order(store, db.alice)).id
    for who in (db.alice, db.cashier1, db.chef1, db.gm):
        with pytest.raises(AuthorizationError) as exc:
            await svc.delete_order(store, who, order_id)
        assert exc.value.code == "ROLE_NOT_PERMITTED"
    with pytest.raises(AuthorizationError) as exc:
        await svc.delete_order(store, db.bm2, order_id)
    assert exc.value.code == "BRANCH_MISMATCH"
    await svc.delete_order(store, db.admin, order_id)
    with pytest.raises(NotFoundError):
        await svc.delete_order(store, db.admin, order_id)
