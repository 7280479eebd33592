"""Registration rules and the two representations of who is registered.

The registrations table is the source of truth; ``Event.roster`` is a
denormalized copy kept next to the event. Registering and unregistering write
both, one after the other, without a transaction around them. If the roster
write fails the registration row stays and the failure is logged; the roster is
brought back in line by ``sync_roster`` or by anything that re-reads the
registrations.

Known limitations:

- Two clients can pass the capacity check for the last seat before either
  write lands, leaving the event over capacity.
- Schedule conflicts are exact ``(date, time)`` matches; overlapping events
  with different start times are not detected.
"""

from __future__ import annotations

import asyncio
import math
import uuid
from dataclasses import dataclass

import structlog

from campus_events.gateway.base import DataGateway
from campus_events.models import Event, Registration
from campus_events.services.error_codes import ErrorCode
from campus_events.services.exceptions import (
    AlreadyRegisteredError,
    BackendUnavailableError,
    CapacityExceededError,
    NotFoundError,
    ScheduleConflictError,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class CapacityInfo:
    capacity: int
    registered: int
    available: int
    percentage: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


async def _require_event(gateway: DataGateway, event_id: uuid.UUID) -> Event:
    event = await gateway.get_event(event_id)
    if event is None:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
    return event


async def _find_schedule_conflict(
    gateway: DataGateway, event: Event, user_id: uuid.UUID
) -> Event | None:
    for _registration, other in await gateway.list_user_registrations(user_id):
        if other.id == event.id:
            continue
        if other.date == event.date and other.time == event.time:
            return other
    return None


async def register(gateway: DataGateway, event_id: uuid.UUID, user_id: uuid.UUID) -> Registration:
    event = await _require_event(gateway, event_id)

    if len(event.roster or []) >= event.capacity:
        raise CapacityExceededError(message="event is full")

    if await gateway.get_registration(event.id, user_id) is not None:
        raise AlreadyRegisteredError(message="already registered for this event")

    conflict = await _find_schedule_conflict(gateway, event, user_id)
    if conflict is not None:
        raise ScheduleConflictError(
            message=f"already registered for '{conflict.title}' at the same date and time"
        )

    # Past this point both writes must land, even if the caller goes away
    return await asyncio.shield(_record_registration(gateway, event.id, user_id))


async def _record_registration(
    gateway: DataGateway, event_id: uuid.UUID, user_id: uuid.UUID
) -> Registration:
    registration = await gateway.insert_registration(event_id, user_id)
    logger.info("registration_created", event_id=str(event_id), user_id=str(user_id))

    try:
        roster = await gateway.get_roster(event_id)
        if roster is None:
            logger.warning("roster_event_missing", event_id=str(event_id), user_id=str(user_id))
            return registration
        member = str(user_id)
        if member not in roster:
            await gateway.set_roster(event_id, [*roster, member])
    except BackendUnavailableError:
        logger.warning(
            "roster_update_failed",
            event_id=str(event_id),
            user_id=str(user_id),
            action="register",
        )
        raise

    return registration


async def unregister(gateway: DataGateway, event_id: uuid.UUID, user_id: uuid.UUID) -> None:
    await asyncio.shield(_release_registration(gateway, event_id, user_id))


async def _release_registration(
    gateway: DataGateway, event_id: uuid.UUID, user_id: uuid.UUID
) -> None:
    removed = await gateway.delete_registration(event_id, user_id)
    if removed:
        logger.info("registration_deleted", event_id=str(event_id), user_id=str(user_id))
    else:
        logger.info("registration_not_found", event_id=str(event_id), user_id=str(user_id))

    try:
        roster = await gateway.get_roster(event_id)
        member = str(user_id)
        if roster is None or member not in roster:
            return
        await gateway.set_roster(event_id, [entry for entry in roster if entry != member])
    except BackendUnavailableError:
        logger.warning(
            "roster_update_failed",
            event_id=str(event_id),
            user_id=str(user_id),
            action="unregister",
        )
        raise


async def is_registered(gateway: DataGateway, event_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    return await gateway.get_registration(event_id, user_id) is not None


def capacity_info_for(event: Event) -> CapacityInfo:
    registered = len(event.roster or [])
    percentage = _round_half_up(100 * registered / event.capacity) if event.capacity else 0
    return CapacityInfo(
        capacity=event.capacity,
        registered=registered,
        available=event.capacity - registered,
        percentage=percentage,
    )


async def capacity_info(gateway: DataGateway, event_id: uuid.UUID) -> CapacityInfo:
    event = await _require_event(gateway, event_id)
    return capacity_info_for(event)


async def sync_roster(gateway: DataGateway, event_id: uuid.UUID) -> list[str]:
    """Rewrite the event roster from its registration rows and return it."""
    await _require_event(gateway, event_id)
    registrations = await gateway.list_event_registrations(event_id)
    # Oldest first, so the rebuilt roster keeps sign-up order
    ordered = sorted(registrations, key=lambda registration: registration.timestamp)
    roster = [str(registration.user_id) for registration in ordered]

    current = await gateway.get_roster(event_id)
    if current is not None and sorted(current) == sorted(roster):
        return current

    await gateway.set_roster(event_id, roster)
    logger.info(
        "roster_synced",
        event_id=str(event_id),
        previous=len(current or []),
        current=len(roster),
    )
    return roster
