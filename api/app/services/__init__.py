"""Service layer helpers for the API."""

from .accounts import signup_customer
from .branches import closest_branch, create_branch, list_branches
from .inventory import (
    create_inventory_item,
    delete_inventory_item,
    list_inventory,
    update_inventory_item,
)
from .menu import create_menu_item, delete_menu_item, list_menu, update_menu_item
from .orders import (
    create_order,
    delete_order,
    get_order,
    list_orders,
    transition_order_status,
)
from .payments import create_payment, get_payment, reprint_receipt
from .staff import (
    create_staff_member,
    delete_staff_member,
    list_staff,
    update_staff_member,
)

__all__ = [
    "closest_branch",
    "create_branch",
    "create_inventory_item",
    "create_menu_item",
    "create_order",
    "create_payment",
    "create_staff_member",
    "delete_inventory_item",
    "delete_menu_item",
    "delete_order",
    "delete_staff_member",
    "get_order",
    "get_payment",
    "list_branches",
    "list_inventory",
    "list_menu",
    "list_orders",
    "list_staff",
    "reprint_receipt",
    "signup_customer",
    "transition_order_status",
    "update_inventory_item",
    "update_menu_item",
    "update_staff_member",
]
