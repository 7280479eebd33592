from uuid import UUID

from fastapi import APIRouter, Query
from pydantic import BaseModel

from campus_events.api.deps import CurrentUser, Gateway
from campus_events.api.v1.schemas import (
    EventOut,
    NotificationListOut,
    NotificationOut,
    RecommendationListOut,
    RecommendationOut,
    RegisteredEventOut,
    RegistrationOut,
)
from campus_events.models import Society, UserRole
from campus_events.services import events_service, notifications_service, recommendations_service

router = APIRouter(prefix="/me", tags=["me"])


class MeOut(BaseModel):
    user_id: str
    email: str
    name: str | None
    role: UserRole
    society: Society | None


@router.get("", response_model=MeOut)
async def me(user: CurrentUser):
    return MeOut(
        user_id=str(user.id),
        email=user.email,
        name=user.name,
        role=user.role,
        society=user.society,
    )


@router.get("/events", response_model=list[RegisteredEventOut])
async def my_events(user: CurrentUser, gateway: Gateway):
    rows = await events_service.user_registered_events(gateway, user.id)
    return [
        RegisteredEventOut(
            registration=RegistrationOut.model_validate(registration),
            event=EventOut.model_validate(event),
        )
        for registration, event in rows
    ]


@router.get("/recommendations", response_model=RecommendationListOut)
async def my_recommendations(
    user: CurrentUser,
    gateway: Gateway,
    limit: int | None = Query(default=None, ge=1, le=50),
):
    items = await recommendations_service.recommend_for_user(gateway, user.id, limit)
    return RecommendationListOut(items=[RecommendationOut.model_validate(item) for item in items])


@router.get("/notifications", response_model=NotificationListOut)
async def my_notifications(user: CurrentUser, gateway: Gateway, unread: bool = False):
    items = await notifications_service.list_notifications(gateway, user.id, unread_only=unread)
    return NotificationListOut(
        items=[NotificationOut.model_validate(item) for item in items],
        unread=sum(1 for item in items if not item.read),
    )


@router.post("/notifications/{notification_id}/read", response_model=NotificationOut)
async def mark_notification_read(notification_id: UUID, user: CurrentUser, gateway: Gateway):
    return await notifications_service.mark_read(gateway, user.id, notification_id)
