"""Error taxonomy shared by the core operations.

Every error carries a stable machine readable ``code``, a human readable
``message`` and optional ``details`` describing what to fix. The transport
layer maps each class to an HTTP status via ``status_code``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CoreError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400

    def __init__(
        self, code: str, message: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"{type(self).__name__}({self.code!r}, {self.message!r})"


class AuthorizationError(CoreError):
    """Caller is unauthenticated or not allowed to perform the action."""

    status_code = 403

    UNAUTHENTICATED_CODES = frozenset(
        {
            "NOT_AUTHENTICATED",
            "NO_CREDENTIAL",
            "INVALID_CREDENTIAL",
            "EXPIRED_CREDENTIAL",
            "MALFORMED_CLAIMS",
        }
    )

    def __init__(
        self, code: str, message: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(code, message, details)
        if code in self.UNAUTHENTICATED_CODES:
            self.status_code = 401


class ValidationError(CoreError):
    """Caller-correctable problem with the request payload."""

    status_code = 400


class NotFoundError(CoreError):
    """Referenced entity does not exist (or is soft-deleted)."""

    status_code = 404


class StateError(CoreError):
    """Request conflicts with the current state of the entity."""

    status_code = 409


class StoreError(CoreError):
    """Opaque persistence failure; the detail is logged, never returned."""

    status_code = 500

    def __init__(self, message: str = "Internal Server Error") -> None:
        super().__init__("STORE_ERROR", message)


__all__ = [
    "CoreError",
    "AuthorizationError",
    "ValidationError",
    "NotFoundError",
    "StateError",
    "StoreError",
]
