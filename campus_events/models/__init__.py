from campus_events.models.base import Base
from campus_events.models.event import Event, EventCategory
from campus_events.models.notification import Notification
from campus_events.models.registration import Registration
from campus_events.models.user import Society, User, UserRole

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Society",
    "Event",
    "EventCategory",
    "Registration",
    "Notification",
]
