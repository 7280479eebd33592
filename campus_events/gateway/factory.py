from __future__ import annotations

from redis.asyncio import Redis

from campus_events.core.config import settings
from campus_events.db import create_engine, create_session_factory
from campus_events.gateway.changefeed import ChangeFeed, InMemoryChangeFeed
from campus_events.gateway.redis_feed import RedisChangeFeed
from campus_events.gateway.sql import SqlGateway


def create_change_feed(backend: str | None = None) -> ChangeFeed:
    selected_backend = (backend or settings.change_feed_backend).strip().lower()
    if selected_backend == "memory":
        return InMemoryChangeFeed()
    if selected_backend == "redis":
        redis = Redis.from_url(settings.redis_url, decode_responses=True)
        return RedisChangeFeed(redis, channel_prefix=settings.change_feed_channel_prefix)
    raise ValueError(f"unsupported change feed backend: {selected_backend}")


def create_gateway(
    database_url: str | None = None,
    feed: ChangeFeed | None = None,
) -> SqlGateway:
    engine = create_engine(database_url)
    return SqlGateway(
        create_session_factory(engine),
        feed or create_change_feed(),
        engine=engine,
    )
