from __future__ import annotations

"""
Asynchronous Database Utilities Module

This module backs the reference SQLAlchemy repository adapter. The engine is
created lazily from ``settings.DATABASE_URL`` so that importing the package
never opens a connection.

**Security Note**: DATABASE_URL may embed credentials; it is never logged.

Key Components:
    - create_engine_for: Build an async engine for a URL (in-memory SQLite
      gets a single shared connection).
    - get_engine / get_session_factory: Lazily created process-wide engine and
      session factory.
    - get_async_db: Async context manager yielding a session with rollback on
      error.
    - create_db_and_tables: Create the users and tokens tables.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from user_service.core.config.settings import settings

# Table registration on SQLModel.metadata
from user_service.domain.entities import Token, User  # noqa: F401

logger = structlog.get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    """Build an async engine for ``url``.

    In-memory SQLite databases live inside one connection, so they get a
    ``StaticPool`` that hands the same connection to every session.
    """
    if url.startswith("sqlite") and ":memory:" in url:
        return create_async_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_engine_for(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
        logger.info("Async database engine created", dialect=_engine.dialect.name)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(bind=get_engine(), class_=AsyncSession, expire_on_commit=False)
    return _session_factory


@asynccontextmanager
async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession, rolling back if the caller raises.

    Yields:
        AsyncSession: An asynchronous database session.
    """
    async with get_session_factory()() as session:
        logger.debug("Async database session created")
        try:
            yield session
        except Exception:
            await session.rollback()
            logger.error("Async database session rollback due to error")
            raise
        finally:
            await session.close()
            logger.debug("Async database session closed")


async def create_db_and_tables(engine: Optional[AsyncEngine] = None) -> None:
    """
    Create the users and tokens tables if they do not exist.

    Args:
        engine: Engine to use; defaults to the process-wide engine.
    """
    engine = engine or get_engine()
    logger.info("Creating database tables")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables created")
