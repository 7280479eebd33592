from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import date
from typing import Any

from campus_events.gateway.changefeed import ChangeFilter, ChangeHandler, Subscription
from campus_events.models import Event, EventCategory, Notification, Registration, Society, User


class DataGateway(ABC):
    """Access to the backend store that owns events, registrations, users and notifications."""

    # Users

    @abstractmethod
    async def get_user(self, user_id: uuid.UUID) -> User | None:
        """Return the user or None."""

    @abstractmethod
    async def create_user(self, values: dict[str, Any]) -> User:
        """Insert a user row."""

    # Events

    @abstractmethod
    async def get_event(self, event_id: uuid.UUID) -> Event | None:
        """Return the event or None."""

    @abstractmethod
    async def list_events(
        self,
        *,
        society: Society | None = None,
        category: EventCategory | None = None,
        owner_id: uuid.UUID | None = None,
        search: str | None = None,
        on_or_after: date | None = None,
    ) -> list[Event]:
        """Return events ordered by date and start time."""

    @abstractmethod
    async def create_event(self, values: dict[str, Any]) -> Event:
        """Insert an event with an empty roster."""

    @abstractmethod
    async def update_event(self, event_id: uuid.UUID, values: dict[str, Any]) -> Event | None:
        """Apply values to the event; None if it does not exist."""

    @abstractmethod
    async def delete_event(self, event_id: uuid.UUID) -> bool:
        """Delete the event and its registrations; False if it did not exist."""

    @abstractmethod
    async def get_roster(self, event_id: uuid.UUID) -> list[str] | None:
        """Return the event's stored roster, or None if the event is gone."""

    @abstractmethod
    async def set_roster(self, event_id: uuid.UUID, roster: list[str]) -> bool:
        """Overwrite the event's roster; False if the event is gone."""

    # Registrations

    @abstractmethod
    async def get_registration(self, event_id: uuid.UUID, user_id: uuid.UUID) -> Registration | None:
        """Return the registration for the pair or None."""

    @abstractmethod
    async def insert_registration(self, event_id: uuid.UUID, user_id: uuid.UUID) -> Registration:
        """Insert a registration row; AlreadyRegisteredError on a duplicate pair."""

    @abstractmethod
    async def delete_registration(self, event_id: uuid.UUID, user_id: uuid.UUID) -> int:
        """Delete the registration for the pair and return the number of rows removed."""

    @abstractmethod
    async def update_registration(
        self, event_id: uuid.UUID, user_id: uuid.UUID, values: dict[str, Any]
    ) -> Registration | None:
        """Apply values to the registration; None if it does not exist."""

    @abstractmethod
    async def list_event_registrations(self, event_id: uuid.UUID) -> list[Registration]:
        """Registrations for one event, newest first."""

    @abstractmethod
    async def list_registrations_for_events(self, event_ids: list[uuid.UUID]) -> list[Registration]:
        """Registrations for any of the given events."""

    @abstractmethod
    async def list_user_registrations(self, user_id: uuid.UUID) -> list[tuple[Registration, Event]]:
        """The user's registrations joined to their events, newest first."""

    # Notifications

    @abstractmethod
    async def insert_notifications(self, rows: list[dict[str, Any]]) -> list[Notification]:
        """Insert notification rows in one write."""

    @abstractmethod
    async def get_notification(self, notification_id: uuid.UUID) -> Notification | None:
        """Return the notification or None."""

    @abstractmethod
    async def list_notifications(self, recipient_id: uuid.UUID, *, unread_only: bool = False) -> list[Notification]:
        """Notifications addressed to recipient, newest first."""

    @abstractmethod
    async def update_notification(
        self, notification_id: uuid.UUID, values: dict[str, Any]
    ) -> Notification | None:
        """Apply values to the notification; None if it does not exist."""

    # Change feed

    @abstractmethod
    def subscribe(
        self,
        table: str,
        handler: ChangeHandler,
        change_filter: ChangeFilter | None = None,
    ) -> Subscription:
        """Receive row changes for table until the subscription is closed."""

    async def close(self) -> None:
        return None
