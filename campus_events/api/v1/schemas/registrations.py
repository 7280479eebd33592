from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field

from campus_events.api.v1.schemas.events import EventOut, SchemaBase


class RegistrationState(str, Enum):
    REGISTERED = "registered"
    UNREGISTERED = "unregistered"


class RegistrationOut(SchemaBase):
    id: UUID
    user_id: UUID
    event_id: UUID
    timestamp: datetime
    attended: bool
    rating: int | None = None
    feedback: str | None = None
    feedback_at: datetime | None = None


class RegistrationStatusOut(SchemaBase):
    event_id: UUID
    user_id: UUID
    status: RegistrationState


class RegisteredEventOut(SchemaBase):
    registration: RegistrationOut
    event: EventOut


class FeedbackIn(SchemaBase):
    # Range is enforced by the feedback service so the error carries its code
    rating: int
    feedback: str | None = Field(default=None, max_length=2000)


class AttendanceIn(SchemaBase):
    attended: bool
