"""Public customer registration."""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from ..auth import hash_password
from ..domain.errors import AuthorizationError, ValidationError
from ..domain.identity import Role
from ..repos.store import Store

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PASSWORD_SYMBOLS = set("!@#$%^&*")
MIN_PASSWORD_LENGTH = 8


def check_password_strength(password: str) -> None:
    """Require a minimum length, a digit and one of ``!@#$%^&*``."""

    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            "WEAK_PASSWORD",
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
        )
    if not any(c.isdigit() for c in password) or not _PASSWORD_SYMBOLS & set(password):
        raise ValidationError(
            "WEAK_PASSWORD",
            "Password must contain at least one number and one special character",
        )


async def signup_customer(
    store: Store,
    username: Any,
    email: Any,
    password: Any,
    role: Optional[str] = None,
):
    """Register a ``CUSTOMER`` account.

    Staff accounts are only created by managers, so any other requested role
    is refused. Emails are stored lower-cased.
    """

    values = {"username": username, "email": email, "password": password}
    missing = [k for k, v in values.items() if not isinstance(v, str) or not v.strip()]
    if missing:
        raise ValidationError(
            "MISSING_FIELDS",
            "Username, password and email are required",
            {"missing": missing},
        )
    username = username.strip()
    email = email.strip().lower()
    if not _EMAIL.match(email):
        raise ValidationError("INVALID_EMAIL", "Invalid email format")
    check_password_strength(password)
    if role is not None and role != Role.CUSTOMER.value:
        raise AuthorizationError(
            "ROLE_NOT_PERMITTED", "Only customer registrations are allowed"
        )

    async with store.transaction():
        existing = await store.find_user_by_login(username)
        if existing is None:
            existing = await store.find_user_by_login(email)
        if existing is not None:
            message = (
                "Username already taken"
                if existing.username == username
                else "Email already registered"
            )
            raise ValidationError("DUPLICATE_USER", message)
        user = await store.create_user(
            username=username,
            email=email,
            password_hash=hash_password(password),
            role=Role.CUSTOMER,
        )

    logger.info("auth.signup", extra={"user": user.id, "role": Role.CUSTOMER.value})
    return user


__all__ = ["check_password_strength", "signup_customer"]
