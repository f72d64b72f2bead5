"""
Database engine and sessions for the content table.

The engine is built on first use from Settings.POSTGRES_URL and the
`database` section of config/default.yaml, so importing the store never
opens a connection pool.

Usage:
    from app.db.base import get_session_maker

    async with get_session_maker()() as session:
        row = await session.get(Content, content_id)
"""

from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings, yaml_config


class Base(DeclarativeBase):
    pass


@lru_cache()
def get_engine() -> AsyncEngine:
    pool = yaml_config.get("database", {})
    return create_async_engine(
        settings.POSTGRES_URL,
        pool_size=pool.get("pool_size", 5),
        max_overflow=pool.get("max_overflow", 10),
        pool_timeout=pool.get("pool_timeout", 30),
        echo=settings.DEBUG,
    )


@lru_cache()
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), expire_on_commit=False)


async def init_db() -> None:
    """Create the content table if it does not exist yet."""
    from app.db import models  # noqa: F401  registers tables on Base.metadata

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
