"""Migration runner for the signed_orders schema.

Targets DATABASE_URL by default; ``alembic -x database_url=... upgrade head``
points it elsewhere, e.g. at the ME_INTEGRATION_DB test database.
"""
import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from config.settings import settings

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Schema is hand-written SQL; there is no metadata to diff against.
target_metadata = None


def _database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("database_url", settings.DATABASE_URL)


def _configure(**kwargs: object) -> None:
    context.configure(
        target_metadata=target_metadata,
        transaction_per_migration=True,
        **kwargs,
    )


def emit_sql() -> None:
    """--sql mode: print the DDL instead of executing it."""
    _configure(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _apply(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def apply_to_database() -> None:
    # One short-lived connection; the app's pool settings do not apply here.
    engine = create_async_engine(_database_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_apply)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    emit_sql()
else:
    asyncio.run(apply_to_database())
