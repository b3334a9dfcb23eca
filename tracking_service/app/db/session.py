"""
Database session configuration.

Async SQLAlchemy engine and session factory for the position store and the
catalog mirror tables. PostgreSQL (asyncpg) in production; SQLite
(aiosqlite) works for local runs and tests.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from tracking_service.app.core.config import settings


def _engine_options(url: str) -> dict:
    options = {"echo": settings.db_echo, "future": True}
    # SQLite pools do not take sizing arguments
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
        options["pool_pre_ping"] = True
    return options


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """
    FastAPI dependency for database sessions.

    Yields an async database session and ensures it's properly closed.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
