from __future__ import annotations

import uuid

import structlog

from campus_events.core.config import settings
from campus_events.gateway.base import DataGateway
from campus_events.gateway.changefeed import ChangeFilter
from campus_events.models import Event, Notification, Registration
from campus_events.realtime.views import DeltaView, LiveView

logger = structlog.get_logger()

REFETCH = "refetch"
DELTA = "delta"


def _event_order(event: Event):
    return (event.date, event.time)


def _registration_order(registration: Registration):
    return registration.timestamp


def _notification_order(notification: Notification):
    return notification.sent_at


class Reconciler:
    """Opens and tracks the views a client session is looking at.

    One view per scope: all events, one event's registrations, one user's
    registrations, one user's notifications. ``close`` tears every view down.
    """

    def __init__(self, gateway: DataGateway, mode: str | None = None) -> None:
        selected = (mode or settings.reconcile_mode).strip().lower()
        if selected not in {REFETCH, DELTA}:
            raise ValueError(f"unsupported reconcile mode: {selected}")
        self.mode = selected
        self._gateway = gateway
        self._views: list[LiveView] = []

    @property
    def views(self) -> list[LiveView]:
        return [view for view in self._views if view.active]

    async def _open(self, view: LiveView) -> LiveView:
        await view.start()
        self._views = [*self.views, view]
        logger.info("view_opened", view=view.name, mode=self.mode)
        return view

    async def events(self) -> LiveView[Event]:
        async def load() -> list[Event]:
            return await self._gateway.list_events()

        if self.mode == DELTA:
            view: LiveView[Event] = DeltaView(
                self._gateway,
                Event.__tablename__,
                load,
                Event,
                sort_key=_event_order,
                name="events",
            )
        else:
            view = LiveView(self._gateway, Event.__tablename__, load, name="events")
        return await self._open(view)

    async def event_registrations(self, event_id: uuid.UUID) -> LiveView[Registration]:
        async def load() -> list[Registration]:
            return await self._gateway.list_event_registrations(event_id)

        return await self._open(
            self._registration_view(load, ChangeFilter("event_id", event_id), f"registrations:event:{event_id}")
        )

    async def user_registrations(self, user_id: uuid.UUID) -> LiveView[Registration]:
        async def load() -> list[Registration]:
            rows = await self._gateway.list_user_registrations(user_id)
            return [registration for registration, _event in rows]

        return await self._open(
            self._registration_view(load, ChangeFilter("user_id", user_id), f"registrations:user:{user_id}")
        )

    async def user_events(self, user_id: uuid.UUID) -> LiveView[Event]:
        """Events the user is registered for; always re-fetched since rows need the join."""

        async def load() -> list[Event]:
            rows = await self._gateway.list_user_registrations(user_id)
            return sorted((event for _registration, event in rows), key=_event_order)

        view: LiveView[Event] = LiveView(
            self._gateway,
            Registration.__tablename__,
            load,
            ChangeFilter("user_id", user_id),
            name=f"events:user:{user_id}",
        )
        return await self._open(view)

    async def notifications(self, user_id: uuid.UUID) -> LiveView[Notification]:
        async def load() -> list[Notification]:
            return await self._gateway.list_notifications(user_id)

        change_filter = ChangeFilter("recipient_id", user_id)
        name = f"notifications:user:{user_id}"
        if self.mode == DELTA:
            view: LiveView[Notification] = DeltaView(
                self._gateway,
                Notification.__tablename__,
                load,
                Notification,
                change_filter,
                sort_key=_notification_order,
                reverse=True,
                name=name,
            )
        else:
            view = LiveView(self._gateway, Notification.__tablename__, load, change_filter, name=name)
        return await self._open(view)

    def _registration_view(self, load, change_filter: ChangeFilter, name: str) -> LiveView[Registration]:
        if self.mode == DELTA:
            return DeltaView(
                self._gateway,
                Registration.__tablename__,
                load,
                Registration,
                change_filter,
                sort_key=_registration_order,
                reverse=True,
                name=name,
            )
        return LiveView(self._gateway, Registration.__tablename__, load, change_filter, name=name)

    def close(self) -> None:
        for view in self._views:
            view.close()
        self._views.clear()

    async def __aenter__(self) -> Reconciler:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
