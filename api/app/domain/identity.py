"""Roles and the verified caller identity."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Account roles, from customer up to system administrator."""

    CUSTOMER = "CUSTOMER"
    CHEF = "CHEF"
    CASHIER = "CASHIER"
    BRANCH_MANAGER = "BRANCH_MANAGER"
    GENERAL_MANAGER = "GENERAL_MANAGER"
    ADMIN = "ADMIN"


BRANCH_SCOPED_ROLES = frozenset({Role.CHEF, Role.CASHIER, Role.BRANCH_MANAGER})
PRIVILEGED_ROLES = frozenset({Role.GENERAL_MANAGER, Role.ADMIN})
STAFF_ROLES = frozenset(Role) - {Role.CUSTOMER}


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as resolved by the authentication provider.

    ``branch_id`` is ``None`` when the account has no branch assignment. A
    branch id of ``0`` is a valid assignment, so presence must always be
    checked with ``is not None``.
    """

    id: int
    role: Role
    branch_id: Optional[int] = None

    @property
    def has_branch(self) -> bool:
        return self.branch_id is not None

    @property
    def is_branch_scoped(self) -> bool:
        return self.role in BRANCH_SCOPED_ROLES

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES
