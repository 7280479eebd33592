"""Local mirrors of backend collections.

A view loads its collection once, subscribes to the matching table on the
change feed and keeps ``items`` current from then on. ``LiveView`` re-runs
the full load on every notification; ``DeltaView`` patches the snapshot from
the row carried by the notification instead. Neither enforces business rules:
they mirror whatever the backend holds.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

import structlog

from campus_events.gateway.base import DataGateway
from campus_events.gateway.changefeed import ChangeEvent, ChangeFilter, ChangeKind, Subscription
from campus_events.models import Base

logger = structlog.get_logger()

T = TypeVar("T")

Loader = Callable[[], Awaitable[list[T]]]
Listener = Callable[["LiveView[T]"], None]


class LiveView(Generic[T]):
    def __init__(
        self,
        gateway: DataGateway,
        table: str,
        loader: Loader,
        change_filter: ChangeFilter | None = None,
        *,
        name: str | None = None,
    ) -> None:
        self.table = table
        self.filter = change_filter
        self.name = name or table
        self.version = 0
        self._gateway = gateway
        self._loader = loader
        self._items: list[T] = []
        self._listeners: list[Listener] = []
        self._subscription: Subscription | None = None
        self._requested = 0
        self._applied = 0
        self._loading = 0

    @property
    def items(self) -> list[T]:
        return list(self._items)

    @property
    def active(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def start(self) -> LiveView[T]:
        if self._subscription is None:
            # Subscribe first so nothing committed during the initial load is missed
            self._subscription = self._gateway.subscribe(self.table, self._on_change, self.filter)
            await self.refresh()
        return self

    async def refresh(self) -> None:
        self._requested += 1
        ticket = self._requested
        self._loading += 1
        try:
            items = await self._loader()
        finally:
            self._loading -= 1
        if ticket < self._applied:
            # A later refresh already finished; its snapshot is newer
            return
        self._applied = ticket
        self._replace(items)

    async def _on_change(self, event: ChangeEvent) -> None:
        logger.debug("view_refetch", view=self.name, kind=event.kind.value)
        await self.refresh()

    def _replace(self, items: list[T]) -> None:
        self._items = list(items)
        self.version += 1
        for listener in list(self._listeners):
            listener(self)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    async def __aenter__(self) -> LiveView[T]:
        return await self.start()

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class DeltaView(LiveView[T]):
    """A view that applies each change event to its snapshot, keyed by ``key``."""

    def __init__(
        self,
        gateway: DataGateway,
        table: str,
        loader: Loader,
        model: type[Base],
        change_filter: ChangeFilter | None = None,
        *,
        key: str = "id",
        sort_key: Callable[[Any], Any] | None = None,
        reverse: bool = False,
        name: str | None = None,
    ) -> None:
        super().__init__(gateway, table, loader, change_filter, name=name)
        self._model = model
        self._key = key
        self._sort_key = sort_key
        self._reverse = reverse

    async def _on_change(self, event: ChangeEvent) -> None:
        row = event.row
        if self._loading or not row or self._key not in row:
            # A load in flight may have read before this change; only a newer load is safe
            await self.refresh()
            return

        identity = row[self._key]
        items = [item for item in self._items if getattr(item, self._key) != identity]

        keep = event.kind != ChangeKind.DELETE and event.new is not None
        if keep and self.filter is not None and not self.filter.matches(event.new):
            # The row was updated out of this view's scope
            keep = False
        if keep:
            items.append(self._model(**event.new))

        if self._sort_key is not None:
            items.sort(key=self._sort_key, reverse=self._reverse)
        self._replace(items)
