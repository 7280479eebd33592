from __future__ import annotations

import uuid
from datetime import date

import structlog

from campus_events.api.v1.schemas.events import EventCreate, EventUpdate
from campus_events.gateway.base import DataGateway
from campus_events.models import Event, EventCategory, Registration, Society, User
from campus_events.services.error_codes import ErrorCode
from campus_events.services.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

logger = structlog.get_logger()


def _require_organizer(user: User) -> Society:
    if not user.is_organizer:
        raise PermissionDeniedError(
            ErrorCode.NOT_ORGANIZER.value, "only society organizers can manage events"
        )
    if user.society is None:
        raise PermissionDeniedError(
            ErrorCode.NOT_ORGANIZER.value, "organizer has no society assigned"
        )
    return user.society


def require_owner(user: User, event: Event) -> None:
    if event.owner_id != user.id:
        raise PermissionDeniedError(ErrorCode.NOT_EVENT_OWNER.value, "not the owner of this event")


async def get_event(gateway: DataGateway, event_id: uuid.UUID) -> Event:
    event = await gateway.get_event(event_id)
    if event is None:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
    return event


async def list_events(
    gateway: DataGateway,
    *,
    society: Society | None = None,
    category: EventCategory | None = None,
    search: str | None = None,
    upcoming_only: bool = False,
    today: date | None = None,
) -> list[Event]:
    on_or_after = (today or date.today()) if upcoming_only else None
    return await gateway.list_events(
        society=society,
        category=category,
        search=search,
        on_or_after=on_or_after,
    )


async def create_event(gateway: DataGateway, organizer: User, payload: EventCreate) -> Event:
    society = _require_organizer(organizer)
    if payload.capacity < 1:
        raise ValidationError(ErrorCode.INVALID_CAPACITY.value, "capacity must be positive")

    event = await gateway.create_event(
        {
            "title": payload.title,
            "description": payload.description,
            "date": payload.date,
            "time": payload.time,
            "venue": payload.venue,
            "society": society,
            "category": payload.category,
            "capacity": payload.capacity,
            "cover_image_url": payload.cover_image_url,
            "owner_id": organizer.id,
        }
    )
    logger.info("event_created", event_id=str(event.id), society=society.value)
    return event


async def update_event(
    gateway: DataGateway, organizer: User, event_id: uuid.UUID, patch: EventUpdate
) -> Event:
    event = await get_event(gateway, event_id)
    require_owner(organizer, event)

    # Required columns cannot be cleared; only the cover image may be set to null
    patch_data = {
        key: value
        for key, value in patch.model_dump(exclude_unset=True).items()
        if value is not None or key == "cover_image_url"
    }

    if "capacity" in patch_data:
        # Re-read so a registration that landed since the first read is counted
        roster = await gateway.get_roster(event.id) or []
        if patch_data["capacity"] < len(roster):
            raise ConflictError(
                ErrorCode.CAPACITY_BELOW_REGISTERED.value,
                "capacity cannot be below the current number of registrations",
            )

    if not patch_data:
        return event

    updated = await gateway.update_event(event.id, patch_data)
    if updated is None:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
    logger.info("event_updated", event_id=str(event.id), fields=sorted(patch_data))
    return updated


async def delete_event(gateway: DataGateway, organizer: User, event_id: uuid.UUID) -> None:
    event = await get_event(gateway, event_id)
    require_owner(organizer, event)

    if not await gateway.delete_event(event.id):
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
    logger.info("event_deleted", event_id=str(event.id))


async def user_registered_events(
    gateway: DataGateway, user_id: uuid.UUID
) -> list[tuple[Registration, Event]]:
    return await gateway.list_user_registrations(user_id)


async def event_registrations(
    gateway: DataGateway, organizer: User, event_id: uuid.UUID
) -> list[Registration]:
    event = await get_event(gateway, event_id)
    require_owner(organizer, event)
    return await gateway.list_event_registrations(event.id)
