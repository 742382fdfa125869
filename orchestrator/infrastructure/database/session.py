"""Async engine and session wiring for the job and device store.

SQLite (through aiosqlite) is the default backend and PostgreSQL (through
asyncpg) the production one. Classification callbacks for different jobs
arrive concurrently, so SQLite connections wait on the file lock rather
than failing with "database is locked".
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from orchestrator.config import get_settings

SQLITE_BUSY_TIMEOUT_SECONDS = 15

_ASYNC_DRIVERS = {
    "sqlite": "sqlite+aiosqlite",
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
}


def async_database_url(url: str) -> str:
    """Rewrite a plain database URL to its async driver; driver-qualified URLs pass through."""
    scheme, separator, rest = url.partition("://")
    if not separator:
        return url
    return f"{_ASYNC_DRIVERS.get(scheme, scheme)}://{rest}"


def build_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    async_url = async_database_url(url)
    options: dict[str, Any] = {"echo": echo}
    if async_url.startswith("sqlite+aiosqlite:"):
        options["connect_args"] = {"timeout": SQLITE_BUSY_TIMEOUT_SECONDS}
    else:
        # Server connections can be dropped while idle in the pool.
        options["pool_pre_ping"] = True
    return create_async_engine(async_url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


settings = get_settings()
engine = build_engine(settings.database_url, echo=settings.database_echo)
async_session_factory = build_session_factory(engine)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: commits when the endpoint returns, rolls back if it raises."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
