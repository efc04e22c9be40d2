"""Database connection and session management."""

from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from editorial.config import get_settings


@lru_cache
def get_engine() -> AsyncEngine:
    """Async engine for the configured database (created on first use)."""
    settings = get_settings()
    url = settings.async_database_url

    engine_kwargs = {"echo": settings.debug, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        engine_kwargs.update(pool_size=20, max_overflow=40)

    return create_async_engine(url, **engine_kwargs)


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Async session factory bound to the default engine."""
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine | None = None):
    """Initialize database (create all tables). For development only."""
    from editorial.database.models import Base

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections. Call on application shutdown."""
    await get_engine().dispose()
