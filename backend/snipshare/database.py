"""
SnipShare Backend: Database Engine & Session Management
=========================================================

What:  The `Database` object owning the async engine and session factory,
       the declarative Base, and the per-request session dependency.
How:   `create_app()` builds one Database from Settings and stores it on
       `app.state.database`. `get_db_session()` pulls it from there for each
       request, so nothing in the codebase reaches for a module-level engine.
Who:   Used by route dependencies, the lifespan handler, the health check,
       the `snipshare-init-db` script and the test fixtures.

Connection Pooling:
    PostgreSQL: pool_size / max_overflow / pool_pre_ping from Settings,
    pool_recycle=3600.
    SQLite (tests, local dev): StaticPool for in-memory URLs so every
    session sees the same database; no pool sizing arguments.
"""

import logging
from typing import Any, AsyncGenerator, Dict

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from snipshare.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object between the models, `Database.create_schema()`
    and Alembic.
    """
    pass


def _engine_options(settings: Settings) -> Dict[str, Any]:
    """Engine keyword arguments appropriate for the configured backend."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if settings.is_sqlite:
        options["connect_args"] = {"check_same_thread": False}
        # In-memory SQLite lives inside a single connection.
        if make_url(settings.database_url).database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return options

    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
    )
    return options


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE SET NULL unless foreign keys are switched on.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Owns the async engine and hands out sessions.

    One instance per application. Services never see this object; they
    receive an AsyncSession created from it.
    """

    def __init__(self, url: str, **engine_options: Any):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_options)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        # expire_on_commit=False keeps ORM attributes readable after the
        # services commit (the session outlives each commit in a request).
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.database_url, **_engine_options(settings))

    async def create_schema(self) -> None:
        """
        Create the users and snippets tables if they do not exist.

        Idempotent: `create_all` checks for each table first, so running it on
        every startup is safe.
        """
        # Registers the model classes with Base.metadata.
        from snipshare import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured (users, snippets)")

    async def ping(self) -> bool:
        """Run SELECT 1; returns False instead of raising when unreachable."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def dispose(self) -> None:
        """Close every pooled connection (called on application shutdown)."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the application's Database
        2. Yields it to the route handler (which passes it into services)
        3. On success: commits anything the services left pending
        4. On error: rolls back
        5. Always: closes the session (returns the connection to the pool)

    Services commit their own writes, so step 3 is normally a no-op.
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
