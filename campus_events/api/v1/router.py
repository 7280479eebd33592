from fastapi import APIRouter

from campus_events.api.v1.analytics import router as analytics_router
from campus_events.api.v1.events import router as events_router
from campus_events.api.v1.me import router as me_router

router = APIRouter()
router.include_router(events_router)
router.include_router(me_router)
router.include_router(analytics_router)
