from __future__ import annotations

import uuid
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, timedelta

from campus_events.core.config import settings
from campus_events.gateway.base import DataGateway
from campus_events.models import EventCategory, Registration, Society, User
from campus_events.services.error_codes import ErrorCode
from campus_events.services.exceptions import PermissionDeniedError
from campus_events.services.scoring import (
    FeedbackBreakdown,
    TrendDirection,
    feedback_breakdown,
    round_half_up,
    trend_direction,
)

TOP_N = 5


@dataclass(frozen=True)
class EventCount:
    event_id: uuid.UUID
    title: str
    count: int


@dataclass(frozen=True)
class CategoryCount:
    category: EventCategory
    count: int


@dataclass(frozen=True)
class RatedEvent:
    event_id: uuid.UUID
    title: str
    rating: float
    feedback_count: int


@dataclass(frozen=True)
class SocietyAnalytics:
    society: Society
    window_days: int
    registration_trend: list[int]
    trend: TrendDirection
    total_events: int
    total_registrations: int
    top_events: list[EventCount]
    category_distribution: list[CategoryCount]
    average_rating: float
    total_feedback: int
    attendance_rate: float
    top_rated_events: list[RatedEvent]
    feedback: FeedbackBreakdown


def authorize_viewer(user: User, society: Society) -> None:
    if not user.is_organizer or user.society != society:
        raise PermissionDeniedError(
            ErrorCode.NOT_ORGANIZER.value, "analytics are limited to the society's organizers"
        )


def daily_counts(registrations: list[Registration], days: int, today: date) -> list[int]:
    """Registrations per day for the ``days`` days ending today, oldest first."""
    start = today - timedelta(days=days - 1)
    counts = Counter(registration.timestamp.date() for registration in registrations)
    return [counts.get(start + timedelta(days=offset), 0) for offset in range(days)]


def _mean(values: list[int]) -> float:
    return sum(values) / len(values) if values else 0.0


async def society_analytics(
    gateway: DataGateway,
    society: Society,
    *,
    days: int | None = None,
    today: date | None = None,
) -> SocietyAnalytics:
    window = days or settings.analytics_window_days
    today = today or date.today()

    events = await gateway.list_events(society=society)
    registrations = await gateway.list_registrations_for_events([event.id for event in events])

    by_event: dict[uuid.UUID, list[Registration]] = defaultdict(list)
    for registration in registrations:
        by_event[registration.event_id].append(registration)

    trend_series = daily_counts(registrations, window, today)

    event_counts = [
        EventCount(event_id=event.id, title=event.title, count=len(by_event[event.id]))
        for event in events
    ]
    top_events = sorted(event_counts, key=lambda item: item.count, reverse=True)[:TOP_N]

    categories = Counter(event.category for event in events)
    category_distribution = [
        CategoryCount(category=category, count=count) for category, count in categories.most_common()
    ]

    ratings = [registration.rating for registration in registrations if registration.rating is not None]
    texts = [registration.feedback for registration in registrations if registration.feedback]
    attended = sum(1 for registration in registrations if registration.attended)
    attendance_rate = round_half_up(100 * attended / len(registrations)) if registrations else 0.0

    rated_events = []
    for event in events:
        event_ratings = [r.rating for r in by_event[event.id] if r.rating is not None]
        if not event_ratings:
            continue
        rated_events.append(
            RatedEvent(
                event_id=event.id,
                title=event.title,
                rating=round_half_up(_mean(event_ratings)),
                feedback_count=len(event_ratings),
            )
        )
    top_rated = sorted(rated_events, key=lambda item: item.rating, reverse=True)[:TOP_N]

    return SocietyAnalytics(
        society=society,
        window_days=window,
        registration_trend=trend_series,
        trend=trend_direction(trend_series),
        total_events=len(events),
        total_registrations=len(registrations),
        top_events=top_events,
        category_distribution=category_distribution,
        average_rating=round_half_up(_mean(ratings)),
        total_feedback=len(texts),
        attendance_rate=attendance_rate,
        top_rated_events=top_rated,
        feedback=feedback_breakdown(texts),
    )
