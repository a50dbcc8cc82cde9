"""Database engine and session factories.

The feed updater opens its own short transactions through
``async_session_maker``; API requests get one session each via ``get_db``.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from subfeed.config import Settings, get_settings


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Build the asyncpg engine described by the settings."""
    return create_async_engine(
        settings.database_url_async,
        echo=settings.database_echo,
        pool_pre_ping=True,
        pool_size=settings.database_pool_size,
        # Room for API requests while a feed update holds connections
        max_overflow=settings.database_pool_size,
        pool_recycle=1800,
    )


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine_from_settings(get_settings())
async_session_maker = create_session_maker(engine)


async def init_db() -> None:
    """Create missing tables. Migrations live in alembic/versions."""
    from subfeed.models.base import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db() -> None:
    """Close every pooled connection."""
    await engine.dispose()


async def ping_db(session_maker: async_sessionmaker[AsyncSession]) -> bool:
    """Whether the database answers a trivial query."""
    try:
        async with session_maker() as db:
            await db.execute(text("SELECT 1"))
    except Exception:
        return False
    return True


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting database session, committed on success."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
