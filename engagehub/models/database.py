"""
engagehub.models.database - Database Configuration

Provides database connection and session management:
- get_engine: Create SQLAlchemy async engine
- get_sessionmaker: Create async session factory
- get_db: Async context manager for database sessions
- init_db / drop_db: Create or drop all tables (development/testing only)
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from engagehub.models.base import Base
from engagehub.settings import get_settings


def get_engine(database_url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """
    Create SQLAlchemy async engine.

    Args:
        database_url: Database connection string (uses settings if not provided)
        echo: Whether to echo SQL queries (uses settings if not provided)

    Returns:
        AsyncEngine configured for PostgreSQL with asyncpg
    """
    settings = get_settings()
    url = database_url or settings.database_url

    return create_async_engine(
        url,
        echo=settings.database_echo if echo is None else echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


def get_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create async session factory.

    Adapters receive this factory and open one session per operation.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def get_db(
    database_url: str | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Get database session (async context manager).

    Usage:
        >>> async with get_db() as db:
        ...     users = await db.execute(select(User))
        ...     await db.commit()
    """
    engine = get_engine(database_url)
    sessionmaker = get_sessionmaker(engine)

    async with sessionmaker() as session:
        try:
            yield session
        finally:
            await session.close()
            await engine.dispose()


async def init_db(database_url: str | None = None) -> None:
    """
    Initialize database (create all tables).

    This should only be used in development/testing.
    """
    # Register every model on Base.metadata
    import engagehub.models  # noqa: F401

    engine = get_engine(database_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await engine.dispose()


async def drop_db(database_url: str | None = None) -> None:
    """
    Drop all tables.

    **WARNING:** This will delete all data!
    Only use in development/testing.
    """
    import engagehub.models  # noqa: F401

    engine = get_engine(database_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
