from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Response

from campus_events.api.deps import CurrentUser, Gateway
from campus_events.api.v1.schemas import (
    AttendanceIn,
    BroadcastIn,
    BroadcastOut,
    CapacityInfoOut,
    EventCreate,
    EventListOut,
    EventOut,
    EventUpdate,
    FeedbackIn,
    FeedbackSentimentOut,
    RegistrationOut,
    RegistrationState,
    RegistrationStatusOut,
    RosterOut,
)
from campus_events.models import EventCategory, Society
from campus_events.services import events_service, feedback_service, notifications_service
from campus_events.services import registration_service

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=EventListOut)
async def list_events(
    gateway: Gateway,
    society: Society | None = None,
    category: EventCategory | None = None,
    q: str | None = None,
    upcoming: bool = False,
):
    events = await events_service.list_events(
        gateway,
        society=society,
        category=category,
        search=q,
        upcoming_only=upcoming,
    )
    return EventListOut(items=[EventOut.model_validate(event) for event in events], total=len(events))


@router.post("", response_model=EventOut, status_code=201)
async def create_event(payload: EventCreate, user: CurrentUser, gateway: Gateway):
    return await events_service.create_event(gateway, user, payload)


@router.get("/{event_id}", response_model=EventOut)
async def get_event(event_id: UUID, gateway: Gateway):
    return await events_service.get_event(gateway, event_id)


@router.patch("/{event_id}", response_model=EventOut)
async def update_event(event_id: UUID, patch: EventUpdate, user: CurrentUser, gateway: Gateway):
    return await events_service.update_event(gateway, user, event_id, patch)


@router.delete("/{event_id}", status_code=204)
async def delete_event(event_id: UUID, user: CurrentUser, gateway: Gateway):
    await events_service.delete_event(gateway, user, event_id)
    return Response(status_code=204)


@router.post("/{event_id}/registration", response_model=RegistrationOut, status_code=201)
async def register(event_id: UUID, user: CurrentUser, gateway: Gateway):
    return await registration_service.register(gateway, event_id, user.id)


@router.delete("/{event_id}/registration", response_model=RegistrationStatusOut)
async def unregister(event_id: UUID, user: CurrentUser, gateway: Gateway):
    await registration_service.unregister(gateway, event_id, user.id)
    return RegistrationStatusOut(
        event_id=event_id, user_id=user.id, status=RegistrationState.UNREGISTERED
    )


@router.get("/{event_id}/registration", response_model=RegistrationStatusOut)
async def registration_status(event_id: UUID, user: CurrentUser, gateway: Gateway):
    registered = await registration_service.is_registered(gateway, event_id, user.id)
    status = RegistrationState.REGISTERED if registered else RegistrationState.UNREGISTERED
    return RegistrationStatusOut(event_id=event_id, user_id=user.id, status=status)


@router.get("/{event_id}/capacity", response_model=CapacityInfoOut)
async def capacity(event_id: UUID, gateway: Gateway):
    return await registration_service.capacity_info(gateway, event_id)


@router.post("/{event_id}/roster/sync", response_model=RosterOut)
async def sync_roster(event_id: UUID, user: CurrentUser, gateway: Gateway):
    event = await events_service.get_event(gateway, event_id)
    events_service.require_owner(user, event)
    roster = await registration_service.sync_roster(gateway, event.id)
    return RosterOut(event_id=event.id, roster=roster)


@router.get("/{event_id}/registrations", response_model=list[RegistrationOut])
async def event_registrations(event_id: UUID, user: CurrentUser, gateway: Gateway):
    return await events_service.event_registrations(gateway, user, event_id)


@router.put("/{event_id}/attendance/{user_id}", response_model=RegistrationOut)
async def set_attendance(
    event_id: UUID, user_id: UUID, payload: AttendanceIn, user: CurrentUser, gateway: Gateway
):
    return await feedback_service.set_attendance(gateway, user, event_id, user_id, payload.attended)


@router.post("/{event_id}/feedback", response_model=RegistrationOut)
async def submit_feedback(event_id: UUID, payload: FeedbackIn, user: CurrentUser, gateway: Gateway):
    return await feedback_service.submit_feedback(
        gateway, event_id, user.id, payload.rating, payload.feedback
    )


@router.get("/{event_id}/feedback/sentiment", response_model=FeedbackSentimentOut)
async def feedback_sentiment(event_id: UUID, gateway: Gateway):
    return await feedback_service.feedback_sentiment(gateway, event_id)


@router.post("/{event_id}/notifications", response_model=BroadcastOut, status_code=201)
async def broadcast(event_id: UUID, payload: BroadcastIn, user: CurrentUser, gateway: Gateway):
    notifications = await notifications_service.broadcast(
        gateway, user, event_id, payload.title, payload.body
    )
    return BroadcastOut(event_id=event_id, recipients=len(notifications))
