"""Branch directory and nearest-branch lookup."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ..domain.errors import NotFoundError, ValidationError
from ..domain.identity import Identity
from ..policy import Action, require
from ..pricing import match_branch
from ..repos.store import Store

logger = logging.getLogger(__name__)


async def list_branches(store: Store) -> Sequence[Any]:
    return await store.list_branches()


async def create_branch(
    store: Store,
    identity: Optional[Identity],
    name: Any,
    address: Optional[str] = "",
    phone: Optional[str] = "",
):
    require(identity, Action.CREATE_BRANCH)
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("MISSING_FIELDS", "Name is required", {"missing": ["name"]})

    async with store.transaction():
        branch = await store.create_branch(
            name=name.strip(),
            address=(address or "").strip(),
            phone=(phone or "").strip(),
        )

    logger.info(
        "branch.created",
        extra={"branch_id": branch.id, "user": identity.id, "role": identity.role.value},
    )
    return branch


async def closest_branch(store: Store, address: Any):
    """Return the branch whose address best matches ``address``.

    Uses the same positional matcher as order branch resolution, so the
    answer predicts where an order for that address would be sent.
    """

    if not isinstance(address, str) or not address.strip():
        raise ValidationError(
            "MISSING_FIELDS", "Address is required", {"missing": ["address"]}
        )
    branches = await store.list_branches()
    if not branches:
        raise NotFoundError("BRANCH_NOT_FOUND", "No branches found")
    return match_branch(address, branches)


__all__ = ["closest_branch", "create_branch", "list_branches"]
