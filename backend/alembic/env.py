"""
Alembic environment for the tenant store.

WHY: The application talks to PostgreSQL through asyncpg only, so online
migrations run on an async engine and hand a sync connection to alembic
through run_sync. Offline mode renders SQL for the plain PostgreSQL
dialect.

Tables: organizations, users, invites. Per-tenant DynamoDB tables are
created lazily by TenantStorageProvisioner and never migrated here.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from wickops.core.config import settings

# Importing the package registers every model on Base.metadata
from wickops.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit migration SQL without a database connection."""
    _configure(
        url=settings.DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync_migrations(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Apply migrations over an asyncpg connection."""
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = settings.async_database_url
    engine = async_engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    async with engine.connect() as connection:
        await connection.run_sync(_run_sync_migrations)

    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
