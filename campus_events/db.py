from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from campus_events.core.config import settings
from campus_events.models import Base


def create_engine(database_url: str | None = None, *, echo: bool | None = None) -> AsyncEngine:
    url = database_url or settings.database_url
    kwargs: dict = {"echo": settings.database_echo if echo is None else echo}
    if url.startswith("sqlite") and ":memory:" in url:
        # One shared connection so every session sees the same in-memory database
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_pre_ping"] = True
    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Rows leave the gateway detached, so nothing may be expired on commit
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
