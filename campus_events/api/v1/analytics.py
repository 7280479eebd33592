from fastapi import APIRouter, Query

from campus_events.api.deps import CurrentUser, Gateway
from campus_events.api.v1.schemas import (
    CategorySuggestionIn,
    CategorySuggestionOut,
    SocietyAnalyticsOut,
    TrendIn,
    TrendOut,
)
from campus_events.models import Society
from campus_events.services import analytics_service, scoring

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/societies/{society}", response_model=SocietyAnalyticsOut)
async def society_analytics(
    society: Society,
    user: CurrentUser,
    gateway: Gateway,
    days: int | None = Query(default=None, ge=1, le=365),
):
    analytics_service.authorize_viewer(user, society)
    return await analytics_service.society_analytics(gateway, society, days=days)


@router.post("/trend", response_model=TrendOut)
async def trend(payload: TrendIn):
    return TrendOut(direction=scoring.trend_direction(payload.series))


@router.post("/category-suggestion", response_model=CategorySuggestionOut)
async def category_suggestion(payload: CategorySuggestionIn):
    return CategorySuggestionOut(category=scoring.suggest_category(payload.title, payload.description))
