"""
WaifuPicks Backend — Database Session Management
==================================================

What:  Owned async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   `Database` wraps one engine and one session factory. The application
       factory creates it, stores it on `app.state.database`, pings it at
       startup and disposes it at shutdown. Routes receive a session per
       request through `get_db_session`, which commits on success and rolls
       back on error.
Who:   Used by route handlers via FastAPI's dependency injection system, and
       by tests, which hand their own in-memory `Database` to `create_app`.

Connection Pooling Strategy:
    PostgreSQL: pool_size / max_overflow / pre_ping from settings,
                connections recycled hourly.
    SQLite:     in-memory URLs share one connection (StaticPool) so every
                session sees the same tables; file URLs use the default pool.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from waifupicks.config import Settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (shared metadata for Alembic)."""
    pass


def _engine_options(url: URL, settings: Optional[Settings]) -> Dict[str, Any]:
    """Pick pool options that the target dialect accepts."""
    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            return {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        return {}
    if settings is None:
        return {}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": 3600,
    }


class Database:
    """
    Explicitly owned connection handle for the item ledger.

    Lifecycle:
        1. Created by `create_app()` (or by a test fixture)
        2. `ping()` during startup; failure there is fatal
        3. `session()` once per request
        4. `dispose()` during shutdown
    """

    def __init__(self, url: str, settings: Optional[Settings] = None, echo: bool = False):
        self.url = make_url(url)
        self.engine: AsyncEngine = create_async_engine(
            self.url,
            echo=echo,
            **_engine_options(self.url, settings),
        )
        # expire_on_commit=False: ORM rows stay readable after the request commits
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.sqlalchemy_url,
            settings=settings,
            echo=settings.log_level == "DEBUG",
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    async def ping(self) -> None:
        """Round-trip a trivial query; raises if the store is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_schema(self) -> None:
        """Create missing tables from the ORM metadata."""
        # Registers the Item table on Base.metadata
        from waifupicks.models import item  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        One transaction per unit of work.

        Commits when the block exits cleanly, rolls back on any exception
        and re-raises it, always returns the connection to the pool.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    The session comes from the `Database` owned by the running application,
    so both participants of a recorded outcome are written in one
    transaction: either both rows change or neither does.

    Write operations commit the session themselves. The exit code of this
    dependency may run after the response has been sent, so its commit
    only closes out read-only requests; its rollback still discards
    anything left uncommitted by a failed handler.

    Example usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
