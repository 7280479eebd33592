"""Row-level change notifications.

Every committed write in the gateway publishes one ``ChangeEvent`` per
affected row. Subscribers register for a table, optionally narrowed by a
single-column equality filter, and receive inserts, updates and deletes until
they close their ``Subscription``.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger()


class ChangeKind(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeFilter:
    column: str
    value: Any

    @classmethod
    def parse(cls, expression: str) -> ChangeFilter:
        """Parse ``column=value`` or the ``column=eq.value`` form."""
        column, sep, value = expression.partition("=")
        if not sep or not column.strip():
            raise ValueError(f"invalid change filter: {expression!r}")
        value = value.strip()
        if value.startswith("eq."):
            value = value[3:]
        return cls(column=column.strip(), value=value)

    def matches(self, row: Mapping[str, Any] | None) -> bool:
        if not row or self.column not in row:
            return False
        candidate = row[self.column]
        if candidate is None:
            return self.value is None
        return _plain(candidate) == _plain(self.value)


def _plain(value: Any) -> str:
    if isinstance(value, enum.Enum):
        value = value.value
    return str(value)


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    kind: ChangeKind
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None

    @property
    def row(self) -> dict[str, Any] | None:
        return self.new if self.new is not None else self.old


ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]


class Subscription:
    def __init__(
        self,
        feed: ChangeFeed,
        table: str,
        handler: ChangeHandler,
        change_filter: ChangeFilter | None = None,
    ) -> None:
        self.table = table
        self.handler = handler
        self.filter = change_filter
        self._feed = feed
        self.active = True

    def matches(self, event: ChangeEvent) -> bool:
        if not self.active or event.table != self.table:
            return False
        if self.filter is None:
            return True
        return self.filter.matches(event.new) or self.filter.matches(event.old)

    def close(self) -> None:
        if not self.active:
            return
        self.active = False
        self._feed.unsubscribe(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ChangeFeed(ABC):
    @abstractmethod
    def subscribe(
        self,
        table: str,
        handler: ChangeHandler,
        change_filter: ChangeFilter | None = None,
    ) -> Subscription:
        """Deliver matching change events to handler until the subscription closes."""

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        """Stop delivering to subscription."""

    @abstractmethod
    async def publish(self, event: ChangeEvent) -> None:
        """Announce a committed row change."""

    async def start(self) -> None:
        return None

    async def close(self) -> None:
        return None


class InMemoryChangeFeed(ChangeFeed):
    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(
        self,
        table: str,
        handler: ChangeHandler,
        change_filter: ChangeFilter | None = None,
    ) -> Subscription:
        subscription = Subscription(self, table, handler, change_filter)
        self._subscriptions.append(subscription)
        logger.debug(
            "change_feed_subscribed",
            table=table,
            filter_column=change_filter.column if change_filter else None,
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.active = False
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def publish(self, event: ChangeEvent) -> None:
        await self._dispatch(event)

    async def _dispatch(self, event: ChangeEvent) -> None:
        # Handlers run in subscription order; one failing handler must not
        # starve the others or fail the write that produced the event.
        for subscription in list(self._subscriptions):
            if not subscription.matches(event):
                continue
            try:
                await subscription.handler(event)
            except Exception:
                logger.exception(
                    "change_handler_failed",
                    table=event.table,
                    kind=event.kind.value,
                )

    async def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.close()
