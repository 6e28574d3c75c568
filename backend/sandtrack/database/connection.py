"""
Database connection management with SQLAlchemy async engine.

This module provides async database connection management using SQLAlchemy 2.0
with connection pooling, health checks, and proper error handling. PostgreSQL
URLs are driven through asyncpg; SQLite URLs (aiosqlite) are accepted for
local runs and the test suite.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from sandtrack.core.config import Settings, get_settings
from sandtrack.core.logging import get_logger

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _convert_database_url_to_async(url: str) -> str:
    """
    Convert PostgreSQL URL to async format.

    Args:
        url: Database connection URL

    Returns:
        Async-compatible database URL with asyncpg driver
    """
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _engine_options(settings: Settings) -> dict[str, Any]:
    """Build dialect specific engine keyword arguments."""
    if settings.is_sqlite:
        return {
            "poolclass": NullPool,
            "connect_args": {"timeout": 15},
        }

    options: dict[str, Any] = {
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "connect_args": {
            "server_settings": {"application_name": settings.app_name},
            "command_timeout": 60,
            "timeout": 10,
        },
    }
    if settings.environment == "test":
        options["poolclass"] = NullPool
    else:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


def create_engine(settings: Optional[Settings] = None) -> AsyncEngine:
    """
    Create async SQLAlchemy engine.

    Args:
        settings: Settings to build the engine from; defaults to the
            cached application settings

    Returns:
        Configured async SQLAlchemy engine
    """
    settings = settings or get_settings()
    database_url = _convert_database_url_to_async(settings.database_url)

    engine = create_async_engine(
        database_url,
        echo=settings.debug,
        **_engine_options(settings),
    )

    logger.info(
        "Database engine created",
        dialect=engine.dialect.name,
        pool_size=None if settings.is_sqlite else settings.db_pool_size,
        environment=settings.environment,
    )

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """
    Get or create the global async database engine.

    Raises:
        RuntimeError: If engine initialization fails
    """
    global _engine

    if _engine is None:
        try:
            _engine = create_engine()
        except (SQLAlchemyError, ValueError, ImportError) as e:
            logger.error(
                "Failed to create database engine",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RuntimeError(f"Database engine initialization failed: {e}") from e

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the global session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
        logger.info("Database session factory created")

    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create async database session with automatic cleanup.

    Services commit their own units of work; anything still pending when
    the block exits cleanly is committed, and the session is rolled back on
    error.

    Yields:
        Async database session
    """
    session_factory = get_session_factory()
    session = session_factory()

    try:
        logger.debug("Database session created")
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.debug(
            "Database session rolled back",
            error_type=type(e).__name__,
        )
        raise
    finally:
        await session.close()
        logger.debug("Database session closed")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database session injection.

    Example:
        @router.get("/trucks")
        async def list_trucks(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_session() as session:
        yield session


async def check_database_health(
    engine: Optional[AsyncEngine] = None,
    max_retries: int = 3,
    retry_delay: float = 1.0,
) -> bool:
    """
    Check database connectivity with retry logic.

    Args:
        engine: Engine to probe; defaults to the global engine
        max_retries: Maximum number of connection attempts
        retry_delay: Base delay between retries in seconds

    Returns:
        True if database is healthy, False otherwise
    """
    for attempt in range(max_retries):
        try:
            probe = engine or get_engine()
            async with probe.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.debug("Database health check passed", attempt=attempt + 1)
            return True
        except (OperationalError, DBAPIError, OSError) as e:
            logger.warning(
                "Database health check failed - connection error",
                attempt=attempt + 1,
                max_retries=max_retries,
                error=str(e),
            )
            if attempt < max_retries - 1:
                await asyncio.sleep(retry_delay * (2**attempt))
        except (SQLAlchemyError, RuntimeError) as e:
            logger.error(
                "Database health check failed",
                attempt=attempt + 1,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    logger.error("Database health check failed after all retries", max_retries=max_retries)
    return False


async def close_database_connections() -> None:
    """
    Dispose of the global engine.

    Called during application shutdown.
    """
    global _engine, _session_factory

    if _engine is not None:
        try:
            await _engine.dispose()
            logger.info("Database connections closed and engine disposed")
        finally:
            _engine = None
            _session_factory = None


async def initialize_database() -> None:
    """
    Initialize database connection and verify connectivity.

    Raises:
        RuntimeError: If database initialization fails
    """
    logger.info("Initializing database connection")
    get_session_factory()

    is_healthy = await check_database_health(max_retries=5, retry_delay=2.0)
    if not is_healthy:
        raise RuntimeError("Database health check failed during initialization")

    logger.info("Database initialized successfully")
