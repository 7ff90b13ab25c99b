"""Read access to the tracker database.

The tracker owns the schema; search only selects from it, through the
searchable scopes, the permission lookup and the authenticated user lookup.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from .config import Settings, settings


def create_tracker_engine(config: Settings) -> AsyncEngine:
    """Small pool: reindex batches and permission lookups are short reads."""
    return create_async_engine(
        config.database_url,
        echo=config.sql_echo,
        pool_size=config.db_pool_size,
        max_overflow=config.db_max_overflow,
        pool_pre_ping=True,
    )


engine = create_tracker_engine(settings)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


class Base(DeclarativeBase):
    """Mapped tracker tables."""


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session for the request's lookups."""
    async with async_session_maker() as session:
        yield session
