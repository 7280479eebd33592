from __future__ import annotations

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from campus_events.models import EventCategory, Society


class SchemaBase(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class StrippedTitleMixin(BaseModel):
    @field_validator("title", "venue", mode="after", check_fields=False)
    @classmethod
    def _strip_required_text(cls, value: str | None) -> str | None:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class EventCreate(StrippedTitleMixin, SchemaBase):
    title: str = Field(max_length=200)
    description: str = ""
    date: dt.date
    time: dt.time
    venue: str = Field(max_length=300)
    category: EventCategory
    capacity: int = Field(ge=1)
    cover_image_url: str | None = Field(default=None, max_length=500)


class EventUpdate(StrippedTitleMixin, SchemaBase):
    title: str | None = Field(default=None, max_length=200)
    description: str | None = None
    date: dt.date | None = None
    time: dt.time | None = None
    venue: str | None = Field(default=None, max_length=300)
    category: EventCategory | None = None
    capacity: int | None = Field(default=None, ge=1)
    cover_image_url: str | None = Field(default=None, max_length=500)


class EventOut(SchemaBase):
    id: UUID
    title: str
    description: str
    date: dt.date
    time: dt.time
    venue: str
    society: Society
    category: EventCategory
    capacity: int
    roster: list[str]
    registered_count: int
    owner_id: UUID
    cover_image_url: str | None = None
    created_at: dt.datetime
    updated_at: dt.datetime


class EventListOut(SchemaBase):
    items: list[EventOut]
    total: int = Field(ge=0)


class CapacityInfoOut(SchemaBase):
    capacity: int
    registered: int
    available: int
    percentage: int


class RosterOut(SchemaBase):
    event_id: UUID
    roster: list[str]
