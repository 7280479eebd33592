from __future__ import annotations

import asyncio
import datetime as dt
import enum
import json
import uuid
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from campus_events.gateway.changefeed import ChangeEvent, ChangeKind, InMemoryChangeFeed
from campus_events.models import Base

logger = structlog.get_logger()


def _json_default(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (dt.date, dt.time)):
        return value.isoformat()
    raise TypeError(f"cannot encode {type(value).__name__}")


def encode_event(event: ChangeEvent) -> str:
    return json.dumps(
        {
            "table": event.table,
            "kind": event.kind.value,
            "new": event.new,
            "old": event.old,
        },
        default=_json_default,
    )


def _coerce(python_type: type | None, value: Any) -> Any:
    if value is None or python_type is None or not isinstance(value, str):
        return value
    if python_type is uuid.UUID:
        return uuid.UUID(value)
    if python_type is dt.datetime:
        return dt.datetime.fromisoformat(value)
    if python_type is dt.date:
        return dt.date.fromisoformat(value)
    if python_type is dt.time:
        return dt.time.fromisoformat(value)
    if isinstance(python_type, type) and issubclass(python_type, enum.Enum):
        return python_type(value)
    return value


def _column_types(table: str) -> dict[str, type | None]:
    for mapper in Base.registry.mappers:
        if mapper.local_table.name != table:
            continue
        types: dict[str, type | None] = {}
        for attr in mapper.column_attrs:
            try:
                types[attr.key] = attr.columns[0].type.python_type
            except NotImplementedError:
                types[attr.key] = None
        return types
    return {}


def _decode_row(types: dict[str, type | None], row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return {key: _coerce(types.get(key), value) for key, value in row.items()}


def decode_event(raw: str | bytes) -> ChangeEvent:
    """Rebuild a change event with column values restored to their Python types."""
    payload = json.loads(raw)
    table = payload["table"]
    types = _column_types(table)
    return ChangeEvent(
        table=table,
        kind=ChangeKind(payload["kind"]),
        new=_decode_row(types, payload.get("new")),
        old=_decode_row(types, payload.get("old")),
    )


class RedisChangeFeed(InMemoryChangeFeed):
    """Change feed shared between processes through Redis pub/sub.

    Publishing goes to ``<prefix>:<table>``; a listener task receives every
    table channel and fans the events out to local subscribers, including the
    ones in the publishing process.
    """

    def __init__(self, redis: Redis, channel_prefix: str = "changes") -> None:
        super().__init__()
        self._redis = redis
        self._prefix = channel_prefix
        self._pubsub = None
        self._listener: asyncio.Task | None = None

    def channel_for(self, table: str) -> str:
        return f"{self._prefix}:{table}"

    async def start(self) -> None:
        if self._listener is not None:
            return
        self._pubsub = self._redis.pubsub()
        await self._pubsub.psubscribe(f"{self._prefix}:*")
        self._listener = asyncio.create_task(self._listen())
        logger.info("change_feed_started", backend="redis", prefix=self._prefix)

    async def publish(self, event: ChangeEvent) -> None:
        try:
            await self._redis.publish(self.channel_for(event.table), encode_event(event))
        except RedisError:
            # The row is already committed; subscribers catch up on their next full read
            logger.warning("change_feed_publish_failed", table=event.table, kind=event.kind.value)

    async def _listen(self) -> None:
        try:
            async for message in self._pubsub.listen():
                if message.get("type") != "pmessage":
                    continue
                try:
                    event = decode_event(message["data"])
                except (ValueError, KeyError, TypeError):
                    logger.warning("change_feed_bad_message", channel=message.get("channel"))
                    continue
                await self._dispatch(event)
        except RedisError as exc:
            # Views in this process stop receiving remote changes until restart
            logger.warning("change_feed_listener_failed", error=exc.__class__.__name__)

    async def close(self) -> None:
        await super().close()
        try:
            if self._listener is not None:
                self._listener.cancel()
                try:
                    await self._listener
                except (asyncio.CancelledError, RedisError):
                    pass
                self._listener = None
        finally:
            if self._pubsub is not None:
                await self._pubsub.aclose()
                self._pubsub = None
            await self._redis.aclose()
