"""
Database connection and session management using SQLAlchemy.
Supports async operations with the asyncpg driver (PostgreSQL) and
aiosqlite (local runs and tests).

The engine is built lazily on first use so that importing hutwatch never
opens a connection.
"""

import logging
from functools import lru_cache

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from hutwatch.config import settings
from hutwatch.models import Base

logger = logging.getLogger(__name__)


@lru_cache()
def get_async_engine() -> AsyncEngine:
    """
    Create the async engine from settings.database_url (cached).
    """
    url = str(settings.database_url)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.debug)

    return create_async_engine(
        url,
        echo=settings.debug,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=5,
        max_overflow=10,
        pool_recycle=3600,
        pool_timeout=30,
        connect_args={
            "server_settings": {"application_name": settings.app_name},
            "timeout": 10,
        },
    )


@lru_cache()
def get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the cached engine."""
    return async_sessionmaker(
        bind=get_async_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db() -> None:
    """
    Create all tables that do not exist yet.
    """
    async with get_async_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")


async def check_db_connection() -> bool:
    """
    Check if database connection is healthy.

    Returns:
        bool: True if connection is healthy, False otherwise
    """
    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection is healthy")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


async def close_db_connections() -> None:
    """Close all database connections and dispose of the engine."""
    if get_async_engine.cache_info().currsize:
        await get_async_engine().dispose()
        get_async_session_factory.cache_clear()
        get_async_engine.cache_clear()
    logger.info("Database connections closed")
