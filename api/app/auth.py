# auth.py

"""Authentication provider: password hashing and JWT bearer identities.

The rest of the application never looks at raw credentials. Routes depend on
:func:`get_identity`, which turns the ``Authorization`` header into an
:class:`~api.app.domain.identity.Identity` or raises an
``AuthorizationError`` with one of ``NO_CREDENTIAL``, ``INVALID_CREDENTIAL``,
``EXPIRED_CREDENTIAL`` or ``MALFORMED_CLAIMS``.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, VerifyMismatchError
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from config import get_settings

from .domain.errors import AuthorizationError
from .domain.identity import Identity, Role
from .repos.store import Store

logger = logging.getLogger(__name__)

ph = PasswordHasher()

bearer_scheme = HTTPBearer(auto_error=False)


class Token(BaseModel):
    """JWT access token returned after authentication."""

    access_token: str
    token_type: str = "bearer"
    role: str
    branch_id: Optional[int] = None


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plaintext password against a stored hash."""

    try:
        return ph.verify(hashed_password, plain_password)
    except VerifyMismatchError:
        return False
    except VerificationError as exc:  # pragma: no cover - unexpected
        logger.error("argon2 verification error: %s", exc)
        raise


async def authenticate_user(store: Store, login: str, password: str):
    """Return the user if ``login``/``password`` match, else ``None``."""

    user = await store.find_user_by_login(login)
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def create_access_token(
    identity: Identity, expires_delta: Optional[timedelta] = None
) -> str:
    """Create a signed JWT carrying ``identity``'s id, role and branch."""

    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims = {"sub": str(identity.id), "role": identity.role.value, "exp": expire}
    if identity.branch_id is not None:
        claims["branch_id"] = identity.branch_id
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: Optional[str]) -> Identity:
    """Verify ``token`` and return the identity it carries."""

    if not token:
        raise AuthorizationError("NO_CREDENTIAL", "No token provided")
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthorizationError("EXPIRED_CREDENTIAL", "Token has expired") from exc
    except jwt.PyJWTError as exc:
        raise AuthorizationError("INVALID_CREDENTIAL", "Invalid token") from exc

    try:
        user_id = int(payload["sub"])
        role = Role(payload["role"])
        branch_id = payload.get("branch_id")
        if branch_id is not None and (
            isinstance(branch_id, bool) or not isinstance(branch_id, int)
        ):
            raise ValueError("branch_id must be an integer")
    except (KeyError, TypeError, ValueError) as exc:
        raise AuthorizationError(
            "MALFORMED_CLAIMS", "Invalid or missing claims in token"
        ) from exc
    return Identity(id=user_id, role=role, branch_id=branch_id)


async def get_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """Resolve the caller identity from the bearer token."""

    identity = decode_token(credentials.credentials if credentials else None)
    request.state.identity = identity
    return identity


__all__ = [
    "Token",
    "authenticate_user",
    "create_access_token",
    "decode_token",
    "get_identity",
    "hash_password",
    "ph",
    "verify_password",
]
