from __future__ import annotations

"""Staff directory, hiring, editing and removal routes."""

from typing import Optional

from fastapi import APIRouter, Depends

from .auth import get_identity
from .deps.store import get_store
from .domain.identity import Identity
from .repos.store import Store
from .schemas import AccountOut, StaffCreateIn, StaffUpdateIn, dump
from .services import staff as staff_service
from .utils.responses import ok

router = APIRouter(prefix="/api/staff", tags=["staff"])


@router.get("")
async def list_staff(
    branch_id: Optional[int] = None,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    """Return staff accounts in the caller's scope."""

    staff = await staff_service.list_staff(store, identity, branch_id)
    return ok([dump(AccountOut, s) for s in staff])


@router.post("", status_code=201)
async def create_staff_member(
    payload: StaffCreateIn,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    """Create a staff account; the password is stored as an argon2 hash."""

    user = await staff_service.create_staff_member(
        store, identity, **payload.model_dump()
    )
    return ok(dump(AccountOut, user))


@router.put("/{user_id}")
async def update_staff_member(
    user_id: int,
    payload: StaffUpdateIn,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    user = await staff_service.update_staff_member(
        store, identity, user_id, **payload.model_dump()
    )
    return ok(dump(AccountOut, user))


@router.delete("/{user_id}")
async def delete_staff_member(
    user_id: int,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    await staff_service.delete_staff_member(store, identity, user_id)
    return ok({"id": user_id, "deleted": True})
