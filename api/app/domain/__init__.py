"""Domain models and helpers."""

from .errors import (
    AuthorizationError,
    CoreError,
    NotFoundError,
    StateError,
    StoreError,
    ValidationError,
)
from .identity import Identity, Role
from .order_status import TRANSITIONS, OrderStatus, can_transition, is_terminal
from .payment import PaymentMethod, PaymentStatus

__all__ = [
    "AuthorizationError",
    "CoreError",
    "Identity",
    "NotFoundError",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "Role",
    "StateError",
    "StoreError",
    "TRANSITIONS",
    "ValidationError",
    "can_transition",
    "is_terminal",
]
