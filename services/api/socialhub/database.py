"""
Async SQLAlchemy engine + session factory.

In deployment the service talks to a MySQL-protocol database through the
aiomysql driver; tests point `DATABASE_URL` at a SQLite file (aiosqlite).
The engine is created once at import and reused across all requests.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from socialhub.config import settings

logger = logging.getLogger(__name__)

_engine_options = {"echo": settings.database_echo}
if not settings.database_is_sqlite:
    _engine_options.update(pool_pre_ping=True, pool_size=20, max_overflow=10)

engine = create_async_engine(settings.database_url, **_engine_options)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def init_db() -> None:
    """Create all tables if they don't exist (idempotent)."""
    # Registers the mapped tables on Base.metadata
    import socialhub.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")


async def close_db() -> None:
    """Release pooled connections; the pool is rebuilt lazily on next use."""
    await engine.dispose()
