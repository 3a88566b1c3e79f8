# schemas.py

"""Pydantic models for API payloads and responses."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from .domain.identity import Role
from .domain.order_status import OrderStatus
from .domain.payment import PaymentMethod, PaymentStatus


class OrderLineIn(BaseModel):
    """Requested menu item and quantity."""

    menu_item_id: int
    quantity: int


class CreateOrderIn(BaseModel):
    """Order creation payload.

    ``customer_id`` is honoured for staff only; customers always order for
    themselves.
    """

    items: List[OrderLineIn] = []
    branch_id: Optional[int] = None
    delivery_address: Optional[str] = None
    customer_id: Optional[int] = None


class StatusIn(BaseModel):
    status: str


class PaymentIn(BaseModel):
    amount: Decimal
    method: str


class InventoryCreateIn(BaseModel):
    name: str
    quantity: int
    unit: str
    min_threshold: int
    branch_id: Optional[int] = None


class InventoryUpdateIn(BaseModel):
    quantity: Optional[int] = None
    min_threshold: Optional[int] = None


class StaffCreateIn(BaseModel):
    """New staff account submitted by a manager."""

    username: str
    email: str
    password: str
    role: str
    branch_id: Optional[int] = None


class StaffUpdateIn(BaseModel):
    """Fields to change on a staff account; omitted fields stay as they are."""

    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    branch_id: Optional[int] = None


class SignupIn(BaseModel):
    """Public customer registration."""

    username: str
    email: str
    password: str
    role: Optional[str] = None


class LoginIn(BaseModel):
    """Username or email plus password."""

    login: str
    password: str


class BranchCreateIn(BaseModel):
    name: str
    address: str = ""
    phone: str = ""


class ClosestBranchIn(BaseModel):
    address: str


class MenuItemCreateIn(BaseModel):
    name: str
    price: Decimal
    description: str = ""
    category: str = ""
    is_available: bool = True
    branch_id: Optional[int] = None


class MenuItemUpdateIn(BaseModel):
    name: Optional[str] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None
    category: Optional[str] = None
    is_available: Optional[bool] = None


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_item_id: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    created_at: Optional[datetime] = None


class OrderOut(BaseModel):
    """Order representation returned from the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    status: OrderStatus
    total_amount: Decimal
    customer_id: int
    branch_id: int
    delivery_address: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[OrderItemOut] = []
    payment: Optional[PaymentOut] = None


class InventoryItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    quantity: int
    unit: str
    min_threshold: int
    branch_id: int


class BranchOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: str
    phone: str


class MenuItemOut(BaseModel):
    """Catalog entry as shown to customers and staff."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    price: Decimal
    category: str
    is_available: bool
    branch_id: int


class AccountOut(BaseModel):
    """Account fields safe to return; never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: Role
    branch_id: Optional[int] = None
    created_by_id: Optional[int] = None
    created_at: Optional[datetime] = None


def dump(model: type[BaseModel], obj) -> dict:
    """Serialize an ORM row through ``model`` into JSON-ready primitives."""

    return model.model_validate(obj).model_dump(mode="json")


__all__ = [
    "AccountOut",
    "BranchCreateIn",
    "BranchOut",
    "ClosestBranchIn",
    "CreateOrderIn",
    "InventoryCreateIn",
    "InventoryItemOut",
    "InventoryUpdateIn",
    "LoginIn",
    "MenuItemCreateIn",
    "MenuItemOut",
    "MenuItemUpdateIn",
    "OrderItemOut",
    "OrderLineIn",
    "OrderOut",
    "PaymentIn",
    "PaymentOut",
    "SignupIn",
    "StaffCreateIn",
    "StaffUpdateIn",
    "StatusIn",
    "dump",
]
