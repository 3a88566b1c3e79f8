"""Dependency helper wiring a request-scoped session to the store."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..repos_sqlalchemy.store_sql import SQLStore


async def get_store(session: AsyncSession = Depends(get_session)) -> SQLStore:
    """Return a :class:`SQLStore` bound to the request's session."""
    return SQLStore(session)
