import os
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool


engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[sessionmaker] = None
Base = declarative_base()


def _engine_kwargs(database_url: str) -> dict:
    kwargs: dict = {"echo": False}
    if database_url.startswith("sqlite+aiosqlite://"):
        # A memory database only exists for the lifetime of its connection.
        kwargs["poolclass"] = StaticPool if ":memory:" in database_url else NullPool
    else:
        kwargs["pool_pre_ping"] = True
    return kwargs


def build_engine(database_url: str) -> AsyncEngine:
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return create_async_engine(database_url, **_engine_kwargs(database_url))


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it from ``DATABASE_URL``.

    Nothing is created at import time so tests and the host application can
    configure the URL first. ``RuntimeError`` is raised when the variable is
    missing at first use.
    """

    global engine, AsyncSessionLocal

    if engine is None:
        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise RuntimeError("DATABASE_URL environment variable is required")
        engine = build_engine(database_url)
        AsyncSessionLocal = sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )

    return engine


async def create_schema(target: AsyncEngine | None = None) -> None:
    """Create every table registered on ``Base`` (idempotent)."""

    from . import models  # noqa: F401  # register tables on Base

    async with (target or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncIterator[AsyncSession]:
    """Provide a database session for FastAPI dependencies."""

    if AsyncSessionLocal is None:
        get_engine()

    assert AsyncSessionLocal is not None  # for type checkers
    async with AsyncSessionLocal() as session:
        yield session


async def dispose_engine() -> None:
    """Close pooled connections and forget the process-wide engine."""

    global engine, AsyncSessionLocal

    if engine is not None:
        await engine.dispose()
    engine = None
    AsyncSessionLocal = None
