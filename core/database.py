"""
Database engine and session management with SQLAlchemy async
"""

from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from core.config import settings
from models.base import Base
import logging

logger = logging.getLogger(__name__)


def build_engine(database_url: Optional[str] = None, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given URL (defaults to settings)"""
    return create_async_engine(
        database_url or settings.DATABASE_URL,
        echo=echo,
        future=True
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """
    Session factory used by every component.

    Autoflush stays off: writes are staged explicitly and flushed by the
    batch coordinator.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet"""
    # Register every mapped table on Base.metadata
    import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables ensured")


# Default engine and session factory for the configured database
engine = build_engine()
async_session_maker = build_session_factory(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session"""
    async with async_session_maker() as session:
        yield session
