"""SQLAlchemy implementation of :class:`~api.app.repos.store.Store`.

Each instance wraps one ``AsyncSession``. Reads and writes issued inside
:meth:`SQLStore.transaction` are committed together; any error rolls the whole
unit back. Raw ``SQLAlchemyError`` instances never leave this module: they are
logged with full detail and re-raised as a generic ``StoreError``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from functools import wraps
from typing import Any, AsyncGenerator, Optional, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import StoreError, ValidationError
from ..domain.identity import Role
from ..domain.order_status import OrderStatus
from ..domain.payment import PaymentMethod, PaymentStatus
from ..models import Branch, InventoryItem, MenuItem, Order, OrderItem, Payment, User
from ..pricing import OrderDraft
from ..repos.store import Store
from ..utils.soft_delete import filter_active, soft_delete_values

logger = logging.getLogger(__name__)


def _guard(func):
    """Translate driver and ORM failures into ``StoreError``."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as exc:
            logger.exception("store operation %s failed", func.__name__)
            raise StoreError() from exc

    return wrapper


class SQLStore(Store):
    """Concrete store backed by an ``AsyncSession``."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[None, None]:
        try:
            yield
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("transaction failed")
            raise StoreError() from exc
        except BaseException:
            await self.session.rollback()
            raise

    # branches / catalog

    @_guard
    async def list_branches(self) -> Sequence[Branch]:
        result = await self.session.execute(select(Branch).order_by(Branch.id))
        return result.scalars().all()

    @_guard
    async def find_branch(self, branch_id: int) -> Optional[Branch]:
        return await self.session.get(Branch, branch_id)

    @_guard
    async def create_branch(self, name: str, address: str = "", phone: str = "") -> Branch:
        branch = Branch(name=name, address=address, phone=phone)
        self.session.add(branch)
        await self.session.flush()
        await self.session.refresh(branch)
        return branch

    @_guard
    async def find_menu_item(self, menu_item_id: int) -> Optional[MenuItem]:
        stmt = filter_active(select(MenuItem).where(MenuItem.id == menu_item_id), MenuItem)
        result = await self.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @_guard
    async def list_menu_items(self, branch_id: Optional[int] = None) -> Sequence[MenuItem]:
        stmt = filter_active(select(MenuItem), MenuItem)
        if branch_id is not None:
            stmt = stmt.where(MenuItem.branch_id == branch_id)
        result = await self.session.execute(stmt.order_by(MenuItem.name, MenuItem.id))
        return result.scalars().all()

    @_guard
    async def create_menu_item(self, **fields: Any) -> MenuItem:
        item = MenuItem(**fields)
        self.session.add(item)
        await self._flush_unique(
            "DUPLICATE_MENU_ITEM",
            "Menu item already exists at this branch",
            {"name": fields.get("name")},
        )
        await self.session.refresh(item)
        return item

    @_guard
    async def update_menu_item(self, menu_item_id: int, **fields: Any) -> Optional[MenuItem]:
        item = await self.find_menu_item(menu_item_id)
        if item is None:
            return None
        for key, value in fields.items():
            setattr(item, key, value)
        await self._flush_unique(
            "DUPLICATE_MENU_ITEM",
            "Menu item already exists at this branch",
            {"name": item.name},
        )
        await self.session.refresh(item)
        return item

    @_guard
    async def delete_menu_item(self, menu_item_id: int) -> None:
        await self.session.execute(
            update(MenuItem)
            .where(MenuItem.id == menu_item_id, MenuItem.deleted_at.is_(None))
            .values(**soft_delete_values())
            .execution_options(synchronize_session="evaluate")
        )

    # orders

    @_guard
    async def find_order(self, order_id: int, for_update: bool = False) -> Optional[Order]:
        stmt = filter_active(select(Order).where(Order.id == order_id), Order)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @_guard
    async def list_orders(
        self,
        branch_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        status: Optional[OrderStatus] = None,
    ) -> Sequence[Order]:
        stmt = filter_active(select(Order), Order)
        if branch_id is not None:
            stmt = stmt.where(Order.branch_id == branch_id)
        if customer_id is not None:
            stmt = stmt.where(Order.customer_id == customer_id)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc())
        result = await self.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return result.scalars().all()

    @_guard
    async def create_order(
        self,
        draft: OrderDraft,
        customer_id: int,
        delivery_address: Optional[str] = None,
    ) -> Order:
        order = Order(
            status=OrderStatus.PENDING,
            total_amount=draft.total_amount,
            customer_id=customer_id,
            branch_id=draft.branch_id,
            delivery_address=delivery_address,
            items=[
                OrderItem(
                    menu_item_id=line.menu_item_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    subtotal=line.subtotal,
                )
                for line in draft.lines
            ],
        )
        self.session.add(order)
        await self.session.flush()
        return await self.find_order(order.id)

    @_guard
    async def update_order_status(
        self, order_id: int, expected: OrderStatus, status: OrderStatus
    ) -> bool:
        result = await self.session.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.status == expected,
                Order.deleted_at.is_(None),
            )
            .values(status=status)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount == 1

    @_guard
    async def delete_order(self, order_id: int) -> None:
        await self.session.execute(
            update(Order)
            .where(Order.id == order_id, Order.deleted_at.is_(None))
            .values(**soft_delete_values())
            .execution_options(synchronize_session="evaluate")
        )

    # payments

    @_guard
    async def find_payment(self, order_id: int) -> Optional[Payment]:
        result = await self.session.execute(
            select(Payment)
            .join(Order, Order.id == Payment.order_id)
            .where(Payment.order_id == order_id, Order.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @_guard
    async def find_payment_by_id(self, payment_id: int) -> Optional[Payment]:
        result = await self.session.execute(
            select(Payment)
            .join(Order, Order.id == Payment.order_id)
            .where(Payment.id == payment_id, Order.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @_guard
    async def create_payment(
        self,
        order_id: int,
        amount: Decimal,
        method: PaymentMethod,
        status: PaymentStatus,
    ) -> Payment:
        payment = Payment(order_id=order_id, amount=amount, method=method, status=status)
        self.session.add(payment)
        await self._flush_unique(
            "DUPLICATE_PAYMENT",
            "Payment already processed for this order",
            {"order_id": order_id},
        )
        await self.session.refresh(payment)
        return payment

    @_guard
    async def update_payment_status(self, payment_id: int, status: PaymentStatus) -> None:
        payment = await self.session.get(Payment, payment_id)
        if payment is not None:
            payment.status = status
            await self.session.flush()

    # inventory

    @_guard
    async def list_inventory(self, branch_id: Optional[int] = None) -> Sequence[InventoryItem]:
        stmt = select(InventoryItem)
        if branch_id is not None:
            stmt = stmt.where(InventoryItem.branch_id == branch_id)
        result = await self.session.execute(stmt.order_by(InventoryItem.name))
        return result.scalars().all()

    @_guard
    async def find_inventory_item(self, item_id: int) -> Optional[InventoryItem]:
        return await self.session.get(InventoryItem, item_id, populate_existing=True)

    @_guard
    async def create_inventory_item(self, **fields: Any) -> InventoryItem:
        item = InventoryItem(**fields)
        self.session.add(item)
        await self.session.flush()
        await self.session.refresh(item)
        return item

    @_guard
    async def update_inventory_item(self, item_id: int, **fields: Any) -> Optional[InventoryItem]:
        item = await self.session.get(InventoryItem, item_id)
        if item is None:
            return None
        for key, value in fields.items():
            setattr(item, key, value)
        await self.session.flush()
        await self.session.refresh(item)
        return item

    @_guard
    async def delete_inventory_item(self, item_id: int) -> None:
        item = await self.session.get(InventoryItem, item_id)
        if item is not None:
            await self.session.delete(item)
            await self.session.flush()

    # accounts

    @_guard
    async def find_user(self, user_id: int) -> Optional[User]:
        result = await self.session.execute(
            filter_active(select(User).where(User.id == user_id), User)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @_guard
    async def find_user_by_login(self, login: str) -> Optional[User]:
        stmt = select(User).where(or_(User.username == login, User.email == login))
        result = await self.session.execute(filter_active(stmt, User))
        return result.scalars().first()

    @_guard
    async def list_staff(self, branch_id: Optional[int] = None) -> Sequence[User]:
        stmt = filter_active(select(User).where(User.role != Role.CUSTOMER), User)
        if branch_id is not None:
            stmt = stmt.where(User.branch_id == branch_id)
        result = await self.session.execute(
            stmt.order_by(User.created_at.desc(), User.id.desc())
        )
        return result.scalars().all()

    @_guard
    async def create_user(
        self,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        branch_id: Optional[int] = None,
        created_by_id: Optional[int] = None,
    ) -> User:
        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
            role=role,
            branch_id=branch_id,
            created_by_id=created_by_id,
        )
        self.session.add(user)
        await self._flush_unique(
            "DUPLICATE_USER", "Username or email already registered"
        )
        await self.session.refresh(user)
        return user

    @_guard
    async def update_user(self, user_id: int, **fields: Any) -> Optional[User]:
        user = await self.find_user(user_id)
        if user is None:
            return None
        for key, value in fields.items():
            setattr(user, key, value)
        await self._flush_unique(
            "DUPLICATE_USER", "Username or email already registered"
        )
        await self.session.refresh(user)
        return user

    @_guard
    async def delete_user(self, user_id: int) -> None:
        await self.session.execute(
            update(User)
            .where(User.id == user_id, User.deleted_at.is_(None))
            .values(**soft_delete_values())
            .execution_options(synchronize_session="evaluate")
        )

    async def _flush_unique(
        self, code: str, message: str, details: Optional[dict] = None
    ) -> None:
        """Flush, reporting a unique index violation as ``code``."""

        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ValidationError(code, message, details) from exc


__all__ = ["SQLStore"]
