"""Persistent store interface consumed by the core operations.

Lookups return ``None`` when a row does not exist; infrastructure failures
raise :class:`~api.app.domain.errors.StoreError`. Writes issued inside
:meth:`Store.transaction` are applied atomically.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Any, AsyncContextManager, Optional, Sequence

from ..domain.identity import Role
from ..domain.order_status import OrderStatus
from ..domain.payment import PaymentMethod, PaymentStatus

if TYPE_CHECKING:  # pragma: no cover
    from ..pricing import OrderDraft


class Store(ABC):
    """Contract for catalog, order, payment, inventory and staff persistence."""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[None]:
        """Return a context manager committing on success, rolling back on error."""
        raise NotImplementedError

    @abstractmethod
    async def list_branches(self) -> Sequence[Any]:
        """Return all branches ordered by id."""
        raise NotImplementedError

    @abstractmethod
    async def find_branch(self, branch_id: int) -> Optional[Any]:
        raise NotImplementedError

    @abstractmethod
    async def create_branch(self, name: str, address: str = "", phone: str = "") -> Any:
        raise NotImplementedError

    @abstractmethod
    async def find_menu_item(self, menu_item_id: int) -> Optional[Any]:
        """Return the live menu item with ``menu_item_id``."""
        raise NotImplementedError

    @abstractmethod
    async def list_menu_items(self, branch_id: Optional[int] = None) -> Sequence[Any]:
        """Return live menu items, optionally for one branch, by name."""
        raise NotImplementedError

    @abstractmethod
    async def create_menu_item(self, **fields: Any) -> Any:
        """Create a menu item; a name taken at the branch is ``DUPLICATE_MENU_ITEM``."""
        raise NotImplementedError

    @abstractmethod
    async def update_menu_item(self, menu_item_id: int, **fields: Any) -> Optional[Any]:
        raise NotImplementedError

    @abstractmethod
    async def delete_menu_item(self, menu_item_id: int) -> None:
        """Hide the item from the catalog; order lines keep referencing it."""
        raise NotImplementedError

    @abstractmethod
    async def find_order(self, order_id: int, for_update: bool = False) -> Optional[Any]:
        """Return a live (not deleted) order with its items and payment."""
        raise NotImplementedError

    @abstractmethod
    async def list_orders(
        self,
        branch_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        status: Optional[OrderStatus] = None,
    ) -> Sequence[Any]:
        """Return live orders matching every given filter, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def create_order(
        self,
        draft: "OrderDraft",
        customer_id: int,
        delivery_address: Optional[str] = None,
    ) -> Any:
        """Persist ``draft`` as a ``PENDING`` order with its items."""
        raise NotImplementedError

    @abstractmethod
    async def update_order_status(
        self, order_id: int, expected: OrderStatus, status: OrderStatus
    ) -> bool:
        """Set ``status`` only if the order is still in ``expected``.

        Returns ``False`` when no row matched, i.e. the order changed
        concurrently.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete_order(self, order_id: int) -> None:
        """Remove the order from every subsequent read."""
        raise NotImplementedError

    @abstractmethod
    async def find_payment(self, order_id: int) -> Optional[Any]:
        """Return the payment attached to ``order_id``."""
        raise NotImplementedError

    @abstractmethod
    async def find_payment_by_id(self, payment_id: int) -> Optional[Any]:
        """Return a payment whose order is still live."""
        raise NotImplementedError

    @abstractmethod
    async def create_payment(
        self,
        order_id: int,
        amount: Decimal,
        method: PaymentMethod,
        status: PaymentStatus,
    ) -> Any:
        """Create the payment for ``order_id``."""
        raise NotImplementedError

    @abstractmethod
    async def update_payment_status(
        self, payment_id: int, status: PaymentStatus
    ) -> None:
        """Change the status of a payment."""
        raise NotImplementedError

    @abstractmethod
    async def list_inventory(self, branch_id: Optional[int] = None) -> Sequence[Any]:
        """Return inventory items, optionally for one branch, by name."""
        raise NotImplementedError

    @abstractmethod
    async def find_inventory_item(self, item_id: int) -> Optional[Any]:
        raise NotImplementedError

    @abstractmethod
    async def create_inventory_item(self, **fields: Any) -> Any:
        raise NotImplementedError

    @abstractmethod
    async def update_inventory_item(self, item_id: int, **fields: Any) -> Any:
        raise NotImplementedError

    @abstractmethod
    async def delete_inventory_item(self, item_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    async def find_user(self, user_id: int) -> Optional[Any]:
        """Return the active account with ``user_id``."""
        raise NotImplementedError

    @abstractmethod
    async def find_user_by_login(self, login: str) -> Optional[Any]:
        """Return the user whose username or email equals ``login``."""
        raise NotImplementedError

    @abstractmethod
    async def list_staff(self, branch_id: Optional[int] = None) -> Sequence[Any]:
        """Return non-customer accounts, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def create_user(
        self,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        branch_id: Optional[int] = None,
        created_by_id: Optional[int] = None,
    ) -> Any:
        raise NotImplementedError

    @abstractmethod
    async def update_user(self, user_id: int, **fields: Any) -> Optional[Any]:
        """Change account fields; a taken username or email is ``DUPLICATE_USER``."""
        raise NotImplementedError

    @abstractmethod
    async def delete_user(self, user_id: int) -> None:
        """Deactivate the account; it disappears from lookups and login."""
        raise NotImplementedError
