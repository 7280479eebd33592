from campus_events.services.registration_service import (
    capacity_info,
    is_registered,
    register,
    sync_roster,
    unregister,
)
from campus_events.services.scoring import (
    analyze_feedback,
    category_affinity,
    recommend,
    society_affinity,
    trend_direction,
)

__all__ = [
    "register",
    "unregister",
    "is_registered",
    "capacity_info",
    "sync_roster",
    "category_affinity",
    "society_affinity",
    "recommend",
    "analyze_feedback",
    "trend_direction",
]
