"""Customer signup and password login issuing bearer tokens."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from .auth import Token, authenticate_user, create_access_token
from .deps.store import get_store
from .domain.errors import AuthorizationError
from .domain.identity import Identity
from .repos.store import Store
from .schemas import AccountOut, LoginIn, SignupIn, dump
from .services import accounts as account_service
from .utils.responses import ok

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/login")
async def login(payload: LoginIn, store: Store = Depends(get_store)) -> dict:
    """Exchange a username or email and password for an access token."""

    user = await authenticate_user(store, payload.login, payload.password)
    if user is None:
        logger.info("auth.login_failed")
        raise AuthorizationError("INVALID_CREDENTIAL", "Invalid credentials")
    identity = Identity(id=user.id, role=user.role, branch_id=user.branch_id)
    token = Token(
        access_token=create_access_token(identity),
        role=identity.role.value,
        branch_id=identity.branch_id,
    )
    logger.info(
        "auth.login", extra={"user": identity.id, "role": identity.role.value}
    )
    return ok(token.model_dump())


@router.post("/signup", status_code=201)
async def signup(payload: SignupIn, store: Store = Depends(get_store)) -> dict:
    """Register a customer account; staff are hired through ``/api/staff``."""

    user = await account_service.signup_customer(store, **payload.model_dump())
    return ok(dump(AccountOut, user))
