from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from campus_events.api.v1.schemas.events import SchemaBase


class BroadcastIn(SchemaBase):
    title: str = Field(min_length=1, max_length=200)
    body: str = Field(min_length=1)


class NotificationOut(SchemaBase):
    id: UUID
    title: str
    body: str
    event_id: UUID | None = None
    recipient_id: UUID
    sender_id: UUID
    sent_at: datetime
    read: bool


class NotificationListOut(SchemaBase):
    items: list[NotificationOut]
    unread: int = Field(ge=0)


class BroadcastOut(SchemaBase):
    event_id: UUID
    recipients: int = Field(ge=0)
