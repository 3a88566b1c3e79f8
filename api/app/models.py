# models.py

"""Database models for branches, accounts, catalog, orders and payments.

The core operates on these rows through :class:`api.app.repos.store.Store`;
nothing outside ``repos_sqlalchemy`` queries them directly.
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

from .domain.identity import Role
from .domain.order_status import OrderStatus
from .domain.payment import PaymentMethod, PaymentStatus

Base = declarative_base()


class Branch(Base):
    """A physical restaurant location."""

    __tablename__ = "branches"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=False, default="")
    phone = Column(String, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class User(Base):
    """Customer or staff account; removed accounts keep their row."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String, unique=True, nullable=False)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(Enum(Role), nullable=False, default=Role.CUSTOMER)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class MenuItem(Base):
    """Catalog entry; ``price`` is authoritative at order time.

    Removed items are soft-deleted so past order lines keep their reference.
    """

    __tablename__ = "menu_items"
    __table_args__ = (UniqueConstraint("name", "branch_id"),)

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String, nullable=False, default="")
    is_available = Column(Boolean, nullable=False, default=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class InventoryItem(Base):
    """Stock kept at a branch."""

    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    unit = Column(String, nullable=False)
    min_threshold = Column(Integer, nullable=False, default=0)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Order(Base):
    """Customer order fulfilled by a branch."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    total_amount = Column(Numeric(10, 2), nullable=False)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False)
    delivery_address = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItem",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )
    payment = relationship("Payment", uselist=False, lazy="selectin")


class OrderItem(Base):
    """Line item with the unit price snapshotted at creation."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)


class Payment(Base):
    """Settlement for an order; at most one per order."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    method = Column(Enum(PaymentMethod), nullable=False)
    status = Column(Enum(PaymentStatus), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


__all__ = [
    "Base",
    "Branch",
    "InventoryItem",
    "MenuItem",
    "Order",
    "OrderItem",
    "Payment",
    "User",
]
