from datetime import datetime, timezone
from typing import Optional


def filter_active(stmt, model):
    """Restrict ``stmt`` to rows of ``model`` that are not soft-deleted."""
    return stmt.where(model.deleted_at.is_(None))


def soft_delete_values(now: Optional[datetime] = None) -> dict:
    """Return the column values that mark a row as deleted."""
    return {"deleted_at": now or datetime.now(timezone.utc)}


def is_deleted(resource) -> bool:
    return getattr(resource, "deleted_at", None) is not None
