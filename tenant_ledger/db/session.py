from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from tenant_ledger.core.config import settings

Base = declarative_base()


def make_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Async engine for the ledger database (PostgreSQL via asyncpg in production).

    Server databases get pre-ping and recycling so idle connections closed by the
    database or network are replaced; SQLite URLs take the driver defaults.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo)
    return create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=settings.db_pool_recycle_seconds,
    )


engine = make_engine(settings.database_url, echo=settings.db_echo)

# expire_on_commit=False: services build responses and audit entries after commit.
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """One session per request. Services own commit and rollback."""
    async with AsyncSessionLocal() as session:
        yield session
