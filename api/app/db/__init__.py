"""Async database engine and session helpers.

The engine URL comes from :func:`config.get_settings`. Tests swap the module
level ``engine`` and ``SessionLocal`` for an in-memory SQLite pair produced by
:func:`create_test_session`.
"""

from __future__ import annotations

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from api.app.obs import add_query_logger
from config import get_settings

from ..models import Base


def build_engine(url: str | None = None) -> AsyncEngine:
    """Create an :class:`AsyncEngine` for ``url`` or the configured DSN."""

    settings = get_settings()
    engine = create_async_engine(url or settings.database_url)
    add_query_logger(engine, "main", settings.slow_query_ms)
    return engine


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


def create_test_session() -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Return a session factory and engine for tests.

    The database uses an in-memory SQLite engine with a static pool so that
    every session shares the same data. Call :func:`init_schema` before use.
    """

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    add_query_logger(engine, "test", get_settings().slow_query_ms)
    return build_sessionmaker(engine), engine


async def init_schema(engine: AsyncEngine) -> None:
    """Create every table that does not exist yet."""

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


engine: AsyncEngine | None = None
SessionLocal: async_sessionmaker[AsyncSession] | None = None


def configure(url: str | None = None) -> None:
    """Initialise the module level engine and session factory."""

    global engine, SessionLocal
    engine = build_engine(url)
    SessionLocal = build_sessionmaker(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session from ``SessionLocal``."""

    if SessionLocal is None:
        configure()
    async with SessionLocal() as session:  # type: ignore[misc]
        yield session


__all__ = [
    "SessionLocal",
    "build_engine",
    "build_sessionmaker",
    "configure",
    "create_test_session",
    "engine",
    "get_session",
    "init_schema",
]
