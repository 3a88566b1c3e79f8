"""SQLAlchemy-backed store implementation."""

from .store_sql import SQLStore

__all__ = ["SQLStore"]
