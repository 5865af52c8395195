"""
Database connection for the chat core.

DATABASE_URL may be any SQLAlchemy async URL. Hosted Postgres URLs of the form
postgres:// are rewritten to postgresql+asyncpg://; local development uses
async sqlite via aiosqlite.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


def normalize_url(url: str) -> str:
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def utcnow() -> datetime:
    # Stored naive; every reader re-attaches UTC via as_utc().
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Database:
    """Owns the engine and session factory for one process."""

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = normalize_url(url)
        kwargs = {}
        if self.url.startswith("sqlite") and ":memory:" in self.url:
            # one shared connection, otherwise every session sees an empty database
            kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
        self.engine: AsyncEngine = create_async_engine(self.url, echo=echo, **kwargs)
        self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    async def init(self) -> None:
        """Create all tables (safe to call multiple times)."""
        from dealroom.persistence import entities  # noqa: F401  registers the tables

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
