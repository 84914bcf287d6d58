"""
Database engines and sessions.

The API and DatabaseRouteStore use the async engine. The sync engine only
backs init_db() at startup; migrations go through alembic.
"""

from typing import AsyncGenerator

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from trilhos.config import settings


def _async_url(url: str) -> str:
    """Same database, async driver (aiosqlite / asyncpg)."""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    if url.startswith("postgresql+asyncpg"):
        return {
            "pool_size": 5,
            "max_overflow": 10,
            "pool_timeout": 30,
            "pool_recycle": 1800,
        }
    return {}


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

async_engine = create_async_engine(
    _async_url(settings.database_url),
    **_engine_options(_async_url(settings.database_url)),
)

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    async with AsyncSessionLocal() as session:
        yield session


def init_db() -> None:
    """Create missing tables for every registered model."""
    from trilhos.models.base import Base
    from trilhos.features.routes import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
