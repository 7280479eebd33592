from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog

from campus_events.gateway.base import DataGateway
from campus_events.models import Registration, User
from campus_events.services.error_codes import ErrorCode
from campus_events.services.events_service import get_event, require_owner
from campus_events.services.exceptions import NotFoundError, ValidationError
from campus_events.services.scoring import FeedbackSentiment, analyze_feedback

logger = structlog.get_logger()

MIN_RATING = 1
MAX_RATING = 5


def validate_rating(rating: object) -> int:
    # bool is an int subclass but never a rating
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(ErrorCode.INVALID_RATING.value, "rating must be a whole number")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            ErrorCode.INVALID_RATING.value,
            f"rating must be between {MIN_RATING} and {MAX_RATING}",
        )
    return rating


async def submit_feedback(
    gateway: DataGateway,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    rating: int,
    feedback: str | None = None,
) -> Registration:
    rating = validate_rating(rating)
    text = feedback.strip() if feedback else None

    registration = await gateway.update_registration(
        event_id,
        user_id,
        {
            "rating": rating,
            "feedback": text or None,
            "feedback_at": datetime.now(timezone.utc),
            "attended": True,
        },
    )
    if registration is None:
        raise NotFoundError(
            ErrorCode.REGISTRATION_NOT_FOUND.value, "not registered for this event"
        )
    logger.info("feedback_submitted", event_id=str(event_id), user_id=str(user_id), rating=rating)
    return registration


async def set_attendance(
    gateway: DataGateway,
    organizer: User,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    attended: bool,
) -> Registration:
    event = await get_event(gateway, event_id)
    require_owner(organizer, event)

    registration = await gateway.update_registration(event.id, user_id, {"attended": attended})
    if registration is None:
        raise NotFoundError(
            ErrorCode.REGISTRATION_NOT_FOUND.value, "user is not registered for this event"
        )
    return registration


async def feedback_sentiment(gateway: DataGateway, event_id: uuid.UUID) -> FeedbackSentiment:
    event = await get_event(gateway, event_id)
    registrations = await gateway.list_event_registrations(event.id)
    return analyze_feedback(registrations)
