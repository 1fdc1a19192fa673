"""
Database configuration and async session management
"""
from typing import AsyncGenerator

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from reservation.core.config import settings

# PostgreSQL error codes for lock_not_available and query_canceled
LOCK_TIMEOUT_SQLSTATES = {"55P03", "57014"}


def _connect_args(database_url: str) -> dict:
    """Bound lock waits at the store level so a blocked reserve fails instead of hanging"""
    if database_url.startswith("postgresql+asyncpg"):
        return {
            "server_settings": {
                "lock_timeout": str(settings.LOCK_TIMEOUT_MS),
                "statement_timeout": str(settings.STATEMENT_TIMEOUT_MS),
            }
        }
    return {}


# Create async engine
# Using asyncpg driver for PostgreSQL
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,  # Log SQL queries in debug mode
    pool_pre_ping=True,  # Verify connections before using
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    connect_args=_connect_args(settings.DATABASE_URL),
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # Don't expire objects after commit
    autoflush=False,
)

# Create declarative base for models
Base = declarative_base()


def is_lock_timeout(error: DBAPIError) -> bool:
    """True when the driver error means a lock or statement wait ran out"""
    orig = getattr(error, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in LOCK_TIMEOUT_SQLSTATES:
        return True
    # SQLite reports a busy database instead of a lock timeout
    return "database is locked" in str(orig)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI to provide database sessions.

    Every service call opens its own transaction on the session,
    so the session is only closed here.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """
    Initialize database tables.
    Only for development - use migrations in production.
    """
    async with engine.begin() as conn:
        # Import all models to register them with Base
        from reservation import models  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)


async def drop_db():
    """
    Drop all database tables.
    WARNING: Use only in development/testing!
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
