"""
Alembic environment configuration for async database migrations.

This module configures the Alembic migration environment with async support,
model imports, and proper migration context for both offline and online modes.
Runs against PostgreSQL with asyncpg or against SQLite with aiosqlite.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from sandtrack.core.config import get_settings
from sandtrack.core.logging import get_logger
from sandtrack.database.base import Base
from sandtrack.database.connection import _convert_database_url_to_async

# Import all models to ensure they are registered with Base.metadata
import sandtrack.database.models  # noqa: F401

# Alembic Config object provides access to values within the .ini file
config = context.config

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

settings = get_settings()
logger = get_logger(__name__)

target_metadata = Base.metadata

database_url = _convert_database_url_to_async(settings.database_url)
config.set_main_option("sqlalchemy.url", database_url)
logger.info(
    "Database URL configured from environment",
    url_prefix=database_url.split("://")[0],
)


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode.

    Configures the context with just a URL so the SQL is emitted to the
    script output without a DBAPI connection.
    """
    url = config.get_main_option("sqlalchemy.url")
    if not url:
        logger.error("No database URL configured for offline migrations")
        raise ValueError("Database URL is required for migrations")

    logger.info("Running migrations in offline mode", url_prefix=url.split("://")[0])

    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=url.startswith("sqlite"),
    )

    with context.begin_transaction():
        context.run_migrations()
    logger.info("Offline migrations completed successfully")


def do_run_migrations(connection: Connection) -> None:
    """
    Execute migrations with the given connection.

    Args:
        connection: SQLAlchemy connection to use for migrations
    """
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        transaction_per_migration=True,
        render_as_batch=connection.dialect.name == "sqlite",
    )

    try:
        with context.begin_transaction():
            context.run_migrations()
        logger.info("Migration execution completed successfully")
    except Exception as e:
        logger.error(
            "Migration execution failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise


async def run_async_migrations() -> None:
    """
    Run migrations in 'online' mode with an async engine.
    """
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = database_url

    connectable = async_engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    try:
        async with connectable.connect() as connection:
            logger.info("Database connection established for migrations")
            await connection.run_sync(do_run_migrations)
    finally:
        await connectable.dispose()
        logger.info("Migration engine disposed")


def run_migrations_online() -> None:
    """
    Run migrations in 'online' mode.

    Entry point for online migrations that delegates to async implementation.
    """
    logger.info("Running migrations in online mode")
    asyncio.run(run_async_migrations())
    logger.info("Online migrations completed successfully")


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
