"""Branch directory routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from .auth import get_identity
from .deps.store import get_store
from .domain.identity import Identity
from .repos.store import Store
from .schemas import BranchCreateIn, BranchOut, ClosestBranchIn, dump
from .services import branches as branch_service
from .utils.responses import ok

router = APIRouter(prefix="/api/branches", tags=["branches"])


@router.get("")
async def list_branches(store: Store = Depends(get_store)) -> dict:
    """Public list of branches."""

    branches = await branch_service.list_branches(store)
    return ok([dump(BranchOut, b) for b in branches])


@router.post("", status_code=201)
async def create_branch(
    payload: BranchCreateIn,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> dict:
    branch = await branch_service.create_branch(store, identity, **payload.model_dump())
    return ok(dump(BranchOut, branch))


@router.post("/closest")
async def closest_branch(
    payload: ClosestBranchIn, store: Store = Depends(get_store)
) -> dict:
    """Return the branch an order for ``address`` would be routed to."""

    branch = await branch_service.closest_branch(store, payload.address)
    return ok(dump(BranchOut, branch))
