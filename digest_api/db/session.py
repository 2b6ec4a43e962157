"""Database engine and session management."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from digest_api.config import get_settings

settings = get_settings()


class Base(DeclarativeBase):
    """Declarative base for all models."""


def create_engine(database_url: str | None = None, **kwargs) -> AsyncEngine:
    """Create an async engine for the given URL (defaults to settings)."""
    return create_async_engine(
        database_url or settings.database_url,
        echo=settings.debug,
        **kwargs,
    )


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = create_engine(pool_pre_ping=True)


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create tables if they do not exist."""
    # Import models so they register on Base.metadata
    from digest_api.db import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
