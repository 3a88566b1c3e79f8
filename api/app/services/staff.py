"""Staff listing, hiring, editing and removal."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ..auth import hash_password
from ..domain.errors import AuthorizationError, NotFoundError, ValidationError
from ..domain.identity import BRANCH_SCOPED_ROLES, STAFF_ROLES, Identity, Role
from ..policy import Action, Target, require, require_list_scope
from ..repos.store import Store

logger = logging.getLogger(__name__)


def parse_staff_role(value: Any) -> Role:
    try:
        role = Role(value)
    except ValueError as exc:
        raise ValidationError(
            "INVALID_ROLE",
            f"Unknown role {value!r}",
            {"allowed": sorted(r.value for r in STAFF_ROLES)},
        ) from exc
    if role not in STAFF_ROLES:
        raise ValidationError(
            "INVALID_ROLE",
            "Staff accounts cannot have the CUSTOMER role",
            {"allowed": sorted(r.value for r in STAFF_ROLES)},
        )
    return role


async def list_staff(
    store: Store, identity: Optional[Identity], branch_id: Optional[int] = None
) -> Sequence[Any]:
    """Return staff accounts in the caller's scope, newest first."""

    scope = require_list_scope(identity, Action.VIEW_STAFF, branch_id)
    return await store.list_staff(branch_id=scope.branch_id)


async def create_staff_member(
    store: Store,
    identity: Optional[Identity],
    username: str,
    email: str,
    password: str,
    role: Any,
    branch_id: Optional[int] = None,
):
    """Create a staff account on behalf of a manager or administrator.

    Branch managers hire chefs and cashiers into their own branch only.
    """

    require(identity, Action.CREATE_STAFF)
    values = {"username": username, "email": email, "password": password}
    missing = [k for k, v in values.items() if not isinstance(v, str) or not v.strip()]
    if missing or role is None:
        raise ValidationError(
            "MISSING_FIELDS",
            "All fields are required",
            {"missing": missing + ([] if role is not None else ["role"])},
        )
    staff_role = parse_staff_role(role)

    if branch_id is None and identity.role is Role.BRANCH_MANAGER:
        branch_id = identity.branch_id
    require(
        identity,
        Action.CREATE_STAFF,
        Target(branch_id=branch_id, staff_role=staff_role),
    )
    if staff_role in BRANCH_SCOPED_ROLES and branch_id is None:
        raise ValidationError(
            "MISSING_BRANCH",
            f"{staff_role.value} accounts must be assigned to a branch",
        )

    username = username.strip()
    email = email.strip()
    async with store.transaction():
        existing = await store.find_user_by_login(username)
        if existing is None:
            existing = await store.find_user_by_login(email)
        if existing is not None:
            message = (
                "Username already exists"
                if existing.username == username
                else "Email already registered"
            )
            raise ValidationError("DUPLICATE_USER", message)
        user = await store.create_user(
            username=username,
            email=email,
            password_hash=hash_password(password),
            role=staff_role,
            branch_id=branch_id,
            created_by_id=identity.id,
        )

    logger.info(
        "staff.created",
        extra={
            "user": identity.id,
            "role": identity.role.value,
            "branch_id": branch_id,
        },
    )
    return user


async def _load_staff(store: Store, user_id: int):
    user = await store.find_user(user_id)
    if user is None or user.role is Role.CUSTOMER:
        raise NotFoundError(
            "STAFF_NOT_FOUND", "Staff member not found", {"user_id": user_id}
        )
    return user


def _require_over(identity: Optional[Identity], action: Action, user) -> None:
    """Check that ``identity`` manages ``user``'s branch and role."""

    if identity.is_branch_scoped and user.branch_id is None:
        raise AuthorizationError(
            "BRANCH_MISMATCH",
            "Access denied. You can only access your assigned branch.",
        )
    require(identity, action, Target(branch_id=user.branch_id, staff_role=user.role))


async def update_staff_member(
    store: Store,
    identity: Optional[Identity],
    user_id: int,
    username: Optional[str] = None,
    email: Optional[str] = None,
    password: Optional[str] = None,
    role: Any = None,
    branch_id: Optional[int] = None,
):
    """Change a staff account.

    Branch managers edit chefs and cashiers of their own branch and may not
    change roles or move anyone to another branch. Blank fields are ignored.
    """

    require(identity, Action.UPDATE_STAFF)
    new_role = parse_staff_role(role) if role is not None else None

    async with store.transaction():
        user = await _load_staff(store, user_id)
        _require_over(identity, Action.UPDATE_STAFF, user)
        fields: dict[str, Any] = {}

        if new_role is not None and new_role is not user.role:
            if identity.is_branch_scoped:
                raise AuthorizationError(
                    "ROLE_NOT_PERMITTED", "Branch managers cannot change staff roles"
                )
            require(identity, Action.UPDATE_STAFF, Target(staff_role=new_role))
            fields["role"] = new_role

        if branch_id is not None and branch_id != user.branch_id:
            require(identity, Action.UPDATE_STAFF, Target(branch_id=branch_id))
            if await store.find_branch(branch_id) is None:
                raise ValidationError(
                    "MISSING_BRANCH",
                    f"Branch {branch_id} not found",
                    {"branch_id": branch_id},
                )
            fields["branch_id"] = branch_id

        final_role = fields.get("role", user.role)
        final_branch = fields.get("branch_id", user.branch_id)
        if final_role in BRANCH_SCOPED_ROLES and final_branch is None:
            raise ValidationError(
                "MISSING_BRANCH",
                f"{final_role.value} accounts must be assigned to a branch",
            )

        if isinstance(username, str) and username.strip():
            taken = await store.find_user_by_login(username.strip())
            if taken is not None and taken.id != user.id:
                raise ValidationError("DUPLICATE_USER", "Username already exists")
            fields["username"] = username.strip()
        if isinstance(email, str) and email.strip():
            taken = await store.find_user_by_login(email.strip())
            if taken is not None and taken.id != user.id:
                raise ValidationError("DUPLICATE_USER", "Email already registered")
            fields["email"] = email.strip()
        if isinstance(password, str) and password.strip():
            fields["password_hash"] = hash_password(password)

        if fields:
            user = await store.update_user(user_id, **fields)

    logger.info(
        "staff.updated",
        extra={"user": identity.id, "role": identity.role.value, "branch_id": user.branch_id},
    )
    return user


async def delete_staff_member(
    store: Store, identity: Optional[Identity], user_id: int
) -> None:
    """Deactivate a staff account the caller is allowed to manage."""

    require(identity, Action.DELETE_STAFF)
    async with store.transaction():
        user = await _load_staff(store, user_id)
        _require_over(identity, Action.DELETE_STAFF, user)
        await store.delete_user(user_id)

    logger.info(
        "staff.deleted",
        extra={"user": identity.id, "role": identity.role.value},
    )


__all__ = [
    "create_staff_member",
    "delete_staff_member",
    "list_staff",
    "parse_staff_role",
    "update_staff_member",
]
