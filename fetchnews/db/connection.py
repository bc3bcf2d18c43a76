"""
Database Connection and Session Management

Uses SQLAlchemy 2.0 async patterns with asyncpg driver.
Following official SQLAlchemy documentation:
https://docs.sqlalchemy.org/en/20/orm/extensions/asyncio.html
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from fetchnews.config.settings import settings


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base for all models.

    All database models should inherit from this class.
    """
    pass


def get_database_url(url: str | None = None) -> str:
    """
    Get the async database URL.

    Converts postgresql:// to postgresql+asyncpg:// for async support.
    """
    url = url or settings.database_url
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Using NullPool for better behavior with async and Docker
engine = create_async_engine(
    get_database_url(),
    echo=settings.debug,
    poolclass=NullPool,
)

async_session_factory = create_session_factory(engine)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting database sessions.

    Usage with FastAPI:
        @router.get("/executions")
        async def list_executions(db: AsyncSession = Depends(get_db_session)):
            ...

    Yields:
        AsyncSession: An async SQLAlchemy session.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions.

    Useful for background tasks and non-FastAPI contexts.

    Usage:
        async with get_db_context() as db:
            await execution_tracker.reconcile_stale(db)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(bind: AsyncEngine | None = None) -> None:
    """
    Initialize database tables.

    Note: In production, use migrations instead.
    This is useful for development and testing.
    """
    # Registers every mapped table on Base.metadata
    import fetchnews.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """
    Close database connections.

    Should be called on application shutdown.
    """
    await engine.dispose()
