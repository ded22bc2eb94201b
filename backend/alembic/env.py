"""
Alembic Migration Environment
===============================

What:  Points Alembic at the SnipShare database and model metadata.
How:   The target URL is resolved from snipshare.config (DATABASE_URL) unless
       `-x url=...` is given on the command line, so one-off runs against a
       scratch database need no edits to alembic.ini. Online runs use the same
       async drivers as the application (aiosqlite / asyncpg) and hand Alembic
       a sync connection through run_sync(). SQLite gets batch mode because
       it cannot ALTER most column properties in place.
Who:   `alembic upgrade head`, `alembic revision --autogenerate`.
"""

import asyncio
import logging
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context

from snipshare.config import settings
from snipshare.database import Base

# Registers users and snippets with Base.metadata for --autogenerate.
import snipshare.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

MANAGED_TABLES = frozenset(Base.metadata.tables)


def migration_url() -> str:
    """`-x url=...` from the command line, else the application's DATABASE_URL."""
    return context.get_x_argument(as_dictionary=True).get("url") or settings.database_url


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    """Leave tables the models do not declare (sqlite_sequence, manual extras) alone."""
    if type_ == "table":
        return name in MANAGED_TABLES
    return True


def configure_context(**kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        include_object=include_object,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline(url: str) -> None:
    """Write the migration SQL to stdout without connecting (`alembic upgrade --sql`)."""
    configure_context(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=make_url(url).get_backend_name() == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    configure_context(
        connection=connection,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online(url: str) -> None:
    engine = create_async_engine(url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


url = migration_url()
logger.info("Migrating %s", make_url(url).render_as_string(hide_password=True))

if context.is_offline_mode():
    run_migrations_offline(url)
else:
    asyncio.run(run_migrations_online(url))
