"""
Database connection and session management using SQLAlchemy async mode.
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine
)
from sqlalchemy.orm import DeclarativeBase

from pharaohs.config import get_settings

settings = get_settings()
DATABASE_URL = settings.database_url

_engine_kwargs = {
    "echo": settings.sql_echo,  # Log SQL queries in debug mode
    "future": True,
    "pool_pre_ping": True,  # Verify connections before using them
}
if not DATABASE_URL.startswith("sqlite"):
    _engine_kwargs.update(pool_size=10, max_overflow=20)

# Create async engine
engine: AsyncEngine = create_async_engine(DATABASE_URL, **_engine_kwargs)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# Import models to register them with Base.metadata
# This must be after Base is defined to avoid circular imports
from pharaohs.database import models  # noqa: F401, E402


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function for FastAPI to get database session.

    Usage in FastAPI routes:
        async def my_route(session: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_database():
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        # checkfirst=True means it won't error if tables already exist
        def create_tables(sync_conn):
            Base.metadata.create_all(bind=sync_conn, checkfirst=True)
        await conn.run_sync(create_tables)
