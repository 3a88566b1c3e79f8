"""Role and branch based authorization decisions.

All access rules live in :data:`POLICY`, a single table keyed by
``(Role, Action)``. :func:`can_perform` is a pure function: it never touches
the store, it only decides whether the caller may act on a target and which
implicit :class:`Scope` must be applied to any subsequent query or write.

Client supplied branch ids are never trusted to widen access. For branch
scoped staff the scope is always recomputed from the identity; privileged
roles may pass a branch id that narrows the result set.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .domain.errors import AuthorizationError
from .domain.identity import Identity, Role
from .domain.order_status import OrderStatus


class Action(str, Enum):
    VIEW_ORDERS = "view_orders"
    CREATE_ORDER = "create_order"
    TRANSITION_ORDER = "transition_order"
    DELETE_ORDER = "delete_order"
    CREATE_PAYMENT = "create_payment"
    VIEW_PAYMENT = "view_payment"
    VIEW_INVENTORY = "view_inventory"
    UPDATE_INVENTORY = "update_inventory"
    CREATE_INVENTORY = "create_inventory"
    DELETE_INVENTORY = "delete_inventory"
    VIEW_STAFF = "view_staff"
    CREATE_STAFF = "create_staff"
    UPDATE_STAFF = "update_staff"
    DELETE_STAFF = "delete_staff"
    CREATE_BRANCH = "create_branch"
    CREATE_MENU_ITEM = "create_menu_item"
    UPDATE_MENU_ITEM = "update_menu_item"
    DELETE_MENU_ITEM = "delete_menu_item"
    REPRINT_RECEIPT = "reprint_receipt"


class Rule(str, Enum):
    """How a permitted action is scoped for the caller."""

    SELF = "self"
    BRANCH = "branch"
    ANY = "any"


class DenyReason(str, Enum):
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    ROLE_NOT_PERMITTED = "ROLE_NOT_PERMITTED"
    BRANCH_MISMATCH = "BRANCH_MISMATCH"
    NO_BRANCH_ASSIGNED = "NO_BRANCH_ASSIGNED"


@dataclass(frozen=True)
class Target:
    """Resource the caller wants to act on; ``None`` fields are unknown."""

    branch_id: Optional[int] = None
    customer_id: Optional[int] = None
    staff_role: Optional[Role] = None


@dataclass(frozen=True)
class Scope:
    """Implicit filter derived from the caller's role."""

    branch_id: Optional[int] = None
    customer_id: Optional[int] = None


@dataclass(frozen=True)
class Allow:
    scope: Scope


@dataclass(frozen=True)
class Deny:
    reason: DenyReason
    message: str


Decision = Union[Allow, Deny]

_C, _CH, _CA, _BM, _GM, _AD = (
    Role.CUSTOMER,
    Role.CHEF,
    Role.CASHIER,
    Role.BRANCH_MANAGER,
    Role.GENERAL_MANAGER,
    Role.ADMIN,
)

POLICY: dict[tuple[Role, Action], Rule] = {
    (_C, Action.VIEW_ORDERS): Rule.SELF,
    (_CH, Action.VIEW_ORDERS): Rule.BRANCH,
    (_CA, Action.VIEW_ORDERS): Rule.BRANCH,
    (_BM, Action.VIEW_ORDERS): Rule.BRANCH,
    (_GM, Action.VIEW_ORDERS): Rule.ANY,
    (_AD, Action.VIEW_ORDERS): Rule.ANY,
    (_C, Action.CREATE_ORDER): Rule.SELF,
    (_CA, Action.CREATE_ORDER): Rule.BRANCH,
    (_BM, Action.CREATE_ORDER): Rule.BRANCH,
    (_GM, Action.CREATE_ORDER): Rule.ANY,
    (_AD, Action.CREATE_ORDER): Rule.ANY,
    (_CH, Action.TRANSITION_ORDER): Rule.BRANCH,
    (_CA, Action.TRANSITION_ORDER): Rule.BRANCH,
    (_BM, Action.DELETE_ORDER): Rule.BRANCH,
    (_AD, Action.DELETE_ORDER): Rule.ANY,
    (_C, Action.CREATE_PAYMENT): Rule.SELF,
    (_CA, Action.CREATE_PAYMENT): Rule.BRANCH,
    (_C, Action.VIEW_PAYMENT): Rule.SELF,
    (_CA, Action.VIEW_PAYMENT): Rule.BRANCH,
    (_BM, Action.VIEW_PAYMENT): Rule.BRANCH,
    (_GM, Action.VIEW_PAYMENT): Rule.ANY,
    (_AD, Action.VIEW_PAYMENT): Rule.ANY,
    (_CH, Action.VIEW_INVENTORY): Rule.BRANCH,
    (_CA, Action.VIEW_INVENTORY): Rule.BRANCH,
    (_BM, Action.VIEW_INVENTORY): Rule.BRANCH,
    (_GM, Action.VIEW_INVENTORY): Rule.ANY,
    (_AD, Action.VIEW_INVENTORY): Rule.ANY,
    (_CH, Action.UPDATE_INVENTORY): Rule.BRANCH,
    (_CA, Action.UPDATE_INVENTORY): Rule.BRANCH,
    (_BM, Action.UPDATE_INVENTORY): Rule.BRANCH,
    (_GM, Action.UPDATE_INVENTORY): Rule.ANY,
    (_AD, Action.UPDATE_INVENTORY): Rule.ANY,
    (_BM, Action.CREATE_INVENTORY): Rule.BRANCH,
    (_GM, Action.CREATE_INVENTORY): Rule.ANY,
    (_AD, Action.CREATE_INVENTORY): Rule.ANY,
    (_BM, Action.DELETE_INVENTORY): Rule.BRANCH,
    (_GM, Action.DELETE_INVENTORY): Rule.ANY,
    (_AD, Action.DELETE_INVENTORY): Rule.ANY,
    (_CH, Action.VIEW_STAFF): Rule.BRANCH,
    (_CA, Action.VIEW_STAFF): Rule.BRANCH,
    (_BM, Action.VIEW_STAFF): Rule.BRANCH,
    (_GM, Action.VIEW_STAFF): Rule.ANY,
    (_AD, Action.VIEW_STAFF): Rule.ANY,
    (_BM, Action.CREATE_STAFF): Rule.BRANCH,
    (_GM, Action.CREATE_STAFF): Rule.ANY,
    (_AD, Action.CREATE_STAFF): Rule.ANY,
    (_BM, Action.UPDATE_STAFF): Rule.BRANCH,
    (_GM, Action.UPDATE_STAFF): Rule.ANY,
    (_AD, Action.UPDATE_STAFF): Rule.ANY,
    (_BM, Action.DELETE_STAFF): Rule.BRANCH,
    (_GM, Action.DELETE_STAFF): Rule.ANY,
    (_AD, Action.DELETE_STAFF): Rule.ANY,
    (_GM, Action.CREATE_BRANCH): Rule.ANY,
    (_AD, Action.CREATE_BRANCH): Rule.ANY,
    (_BM, Action.CREATE_MENU_ITEM): Rule.BRANCH,
    (_GM, Action.CREATE_MENU_ITEM): Rule.ANY,
    (_AD, Action.CREATE_MENU_ITEM): Rule.ANY,
    (_BM, Action.UPDATE_MENU_ITEM): Rule.BRANCH,
    (_GM, Action.UPDATE_MENU_ITEM): Rule.ANY,
    (_AD, Action.UPDATE_MENU_ITEM): Rule.ANY,
    (_GM, Action.DELETE_MENU_ITEM): Rule.ANY,
    (_AD, Action.DELETE_MENU_ITEM): Rule.ANY,
    (_CA, Action.REPRINT_RECEIPT): Rule.BRANCH,
    (_BM, Action.REPRINT_RECEIPT): Rule.BRANCH,
    (_GM, Action.REPRINT_RECEIPT): Rule.ANY,
    (_AD, Action.REPRINT_RECEIPT): Rule.ANY,
}

# Statuses each role may request through the transition operation.
STATUS_PERMISSIONS: dict[Role, frozenset[OrderStatus]] = {
    Role.CUSTOMER: frozenset(),
    Role.CHEF: frozenset({OrderStatus.PREPARING, OrderStatus.READY}),
    Role.CASHIER: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    Role.BRANCH_MANAGER: frozenset(),
    Role.GENERAL_MANAGER: frozenset(),
    Role.ADMIN: frozenset(),
}

# Staff roles each role may hire, edit or remove.
CREATABLE_STAFF_ROLES: dict[Role, frozenset[Role]] = {
    Role.BRANCH_MANAGER: frozenset({Role.CHEF, Role.CASHIER}),
    Role.GENERAL_MANAGER: frozenset(
        {Role.CHEF, Role.CASHIER, Role.BRANCH_MANAGER}
    ),
    Role.ADMIN: frozenset(
        {Role.CHEF, Role.CASHIER, Role.BRANCH_MANAGER, Role.GENERAL_MANAGER, Role.ADMIN}
    ),
}

_STAFF_WRITES = frozenset(
    {Action.CREATE_STAFF, Action.UPDATE_STAFF, Action.DELETE_STAFF}
)


def can_perform(
    identity: Optional[Identity], action: Action, target: Target = Target()
) -> Decision:
    """Decide whether ``identity`` may perform ``action`` on ``target``."""

    if identity is None:
        return Deny(DenyReason.NOT_AUTHENTICATED, "Authentication required")

    rule = POLICY.get((identity.role, action))
    if rule is None:
        return Deny(
            DenyReason.ROLE_NOT_PERMITTED,
            f"Role {identity.role.value} may not {action.value.replace('_', ' ')}",
        )

    if action in _STAFF_WRITES and target.staff_role is not None:
        allowed = CREATABLE_STAFF_ROLES.get(identity.role, frozenset())
        if target.staff_role not in allowed:
            verb = action.value.split("_")[0]
            return Deny(
                DenyReason.ROLE_NOT_PERMITTED,
                f"Role {identity.role.value} may not {verb} "
                f"{target.staff_role.value} accounts",
            )

    if rule is Rule.SELF:
        if target.customer_id is not None and target.customer_id != identity.id:
            return Deny(
                DenyReason.ROLE_NOT_PERMITTED, "Resource belongs to another customer"
            )
        return Allow(Scope(customer_id=identity.id))

    if rule is Rule.BRANCH:
        if not identity.has_branch:
            return Deny(
                DenyReason.NO_BRANCH_ASSIGNED, "No branch assigned to this account"
            )
        if target.branch_id is not None and target.branch_id != identity.branch_id:
            return Deny(
                DenyReason.BRANCH_MISMATCH,
                "Access denied. You can only access your assigned branch.",
            )
        return Allow(Scope(branch_id=identity.branch_id))

    return Allow(Scope(branch_id=target.branch_id))


def can_request_status(identity: Identity, status: OrderStatus) -> bool:
    """Return ``True`` if ``identity``'s role may request ``status``."""

    return status in STATUS_PERMISSIONS.get(identity.role, frozenset())


def may_transition(identity: Optional[Identity]) -> bool:
    """Return ``True`` if the role may call the transition operation at all."""

    return identity is not None and bool(STATUS_PERMISSIONS.get(identity.role))


def require(
    identity: Optional[Identity], action: Action, target: Target = Target()
) -> Scope:
    """Return the scope for an allowed action or raise ``AuthorizationError``."""

    decision = can_perform(identity, action, target)
    if isinstance(decision, Deny):
        raise AuthorizationError(decision.reason.value, decision.message)
    return decision.scope


def require_list_scope(
    identity: Optional[Identity], action: Action, branch_id: Optional[int] = None
) -> Scope:
    """Return the filter for a list query.

    ``branch_id`` is a client supplied filter. It narrows results for roles
    with unrestricted scope and is ignored for everyone else, so a cashier
    asking for another branch simply sees their own branch.
    """

    scope = require(identity, action)
    if branch_id is not None and POLICY[(identity.role, action)] is Rule.ANY:
        return Scope(branch_id=branch_id, customer_id=scope.customer_id)
    return scope


__all__ = [
    "Action",
    "Allow",
    "Deny",
    "DenyReason",
    "POLICY",
    "Rule",
    "STATUS_PERMISSIONS",
    "Scope",
    "Target",
    "can_perform",
    "can_request_status",
    "may_transition",
    "require",
    "require_list_scope",
]
