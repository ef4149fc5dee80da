"""Database engine and session management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from storycraft.core.config import settings
from storycraft.core.exceptions import DatabaseError
from storycraft.core.logging import get_logger

logger = get_logger(__name__)

# Global engine instance
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_async_engine() -> AsyncEngine:
    """Get or create the async database engine.

    Returns:
        SQLAlchemy async engine instance.
    """
    global _engine

    if _engine is None:
        database_url = settings.database.async_url
        logger.info("Creating database engine", url=_mask_password(database_url))

        _engine = create_async_engine(
            database_url,
            echo=settings.database.echo,
            pool_size=settings.database.pool_size,
            max_overflow=settings.database.max_overflow,
            pool_pre_ping=True,
        )

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory.

    Returns:
        SQLAlchemy async session factory.
    """
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_async_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _session_factory


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session.

    Commits when the block exits cleanly and rolls back otherwise.

    Yields:
        AsyncSession instance.
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError(str(e)) from e
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create the users, proposals and enhanced_proposals tables."""
    from storycraft.db.models import Base

    engine = get_async_engine()

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database initialization failed", url=_mask_password(settings.database.async_url))
        raise DatabaseError(f"Could not initialize tables: {e}") from e

    logger.info("Database tables initialized")


async def close_db() -> None:
    """Close database connections."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database connections closed")


def _mask_password(url: str) -> str:
    """Mask password in database URL for logging."""
    if "://" not in url:
        return url
    protocol, rest = url.split("://", 1)
    if "@" not in rest:
        return url
    credentials, host_part = rest.rsplit("@", 1)
    if ":" not in credentials:
        return url
    user, _ = credentials.split(":", 1)
    return f"{protocol}://{user}:***@{host_part}"
