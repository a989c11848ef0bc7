# src/libs/dlq-common/dlq_common/db.py
import os

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .config import POSTGRES_DB, POSTGRES_HOST, POSTGRES_PASSWORD, POSTGRES_PORT, POSTGRES_USER


def get_async_database_url() -> str:
    """
    The registry and replay audit database URL with the asyncpg driver.
    DATABASE_URL wins over the individual POSTGRES_* settings.
    """
    url = os.getenv("DATABASE_URL") or (
        f"postgresql+asyncpg://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}"
    )
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


async_engine = create_async_engine(get_async_database_url(), pool_pre_ping=True)

# Replay jobs are read back after each commit, so attributes must survive it.
AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


async def get_async_db_session() -> AsyncSession:
    """FastAPI dependency: one session per request, closed afterwards."""
    async with AsyncSessionLocal() as session:
        yield session


async def ping_database() -> None:
    async with async_engine.connect() as connection:
        await connection.execute(text("SELECT 1"))
