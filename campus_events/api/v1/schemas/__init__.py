from campus_events.api.v1.schemas.analytics import (
    CategorySuggestionIn,
    CategorySuggestionOut,
    FeedbackSentimentOut,
    RecommendationListOut,
    RecommendationOut,
    SocietyAnalyticsOut,
    TrendIn,
    TrendOut,
)
from campus_events.api.v1.schemas.events import (
    CapacityInfoOut,
    EventCreate,
    EventListOut,
    EventOut,
    EventUpdate,
    RosterOut,
)
from campus_events.api.v1.schemas.notifications import (
    BroadcastIn,
    BroadcastOut,
    NotificationListOut,
    NotificationOut,
)
from campus_events.api.v1.schemas.registrations import (
    AttendanceIn,
    FeedbackIn,
    RegisteredEventOut,
    RegistrationOut,
    RegistrationState,
    RegistrationStatusOut,
)

__all__ = [
    "EventCreate",
    "EventUpdate",
    "EventOut",
    "EventListOut",
    "CapacityInfoOut",
    "RosterOut",
    "RegistrationOut",
    "RegistrationState",
    "RegistrationStatusOut",
    "RegisteredEventOut",
    "FeedbackIn",
    "AttendanceIn",
    "RecommendationOut",
    "RecommendationListOut",
    "FeedbackSentimentOut",
    "TrendIn",
    "TrendOut",
    "CategorySuggestionIn",
    "CategorySuggestionOut",
    "SocietyAnalyticsOut",
    "BroadcastIn",
    "BroadcastOut",
    "NotificationOut",
    "NotificationListOut",
]
