"""Async engine and session factory for the live ledger database.

Connection attempts and pool checkouts are bounded by short timeouts: when the
database is down, a request should fail quickly with an error that
translate_db_error() classifies as NETWORK_UNAVAILABLE, so the fallback policy
can serve it from the offline mirror instead of hanging.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import settings

engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=10,
    pool_pre_ping=True,
    pool_timeout=settings.DB_POOL_TIMEOUT_SECONDS,
    connect_args={"timeout": settings.DB_CONNECT_TIMEOUT_SECONDS},  # asyncpg connect timeout
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, shared by every store the request builds.

    Sessions are opened lazily, so an unreachable database surfaces on the
    first statement rather than here.
    """
    async with async_session_factory() as session:
        yield session
