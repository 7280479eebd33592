from __future__ import annotations

from uuid import UUID

from pydantic import Field

from campus_events.api.v1.schemas.events import SchemaBase
from campus_events.models import EventCategory, Society
from campus_events.services.scoring import Sentiment, TrendDirection


class RecommendationOut(SchemaBase):
    event_id: UUID
    score: float
    reason: str


class RecommendationListOut(SchemaBase):
    items: list[RecommendationOut]


class FeedbackSentimentOut(SchemaBase):
    average_rating: float
    sentiment: Sentiment
    key_topics: list[str]
    summary: str
    suggestions: list[str]
    rating_count: int


class FeedbackBreakdownOut(SchemaBase):
    positive: int
    neutral: int
    negative: int
    summary: str


class TrendIn(SchemaBase):
    series: list[float]


class TrendOut(SchemaBase):
    direction: TrendDirection


class CategorySuggestionIn(SchemaBase):
    title: str
    description: str = ""


class CategorySuggestionOut(SchemaBase):
    category: EventCategory


class EventCountOut(SchemaBase):
    event_id: UUID
    title: str
    count: int


class CategoryCountOut(SchemaBase):
    category: EventCategory
    count: int


class RatedEventOut(SchemaBase):
    event_id: UUID
    title: str
    rating: float
    feedback_count: int


class SocietyAnalyticsOut(SchemaBase):
    society: Society
    window_days: int = Field(ge=1)
    registration_trend: list[int]
    trend: TrendDirection
    total_events: int
    total_registrations: int
    top_events: list[EventCountOut]
    category_distribution: list[CategoryCountOut]
    average_rating: float
    total_feedback: int
    attendance_rate: float
    top_rated_events: list[RatedEventOut]
    feedback: FeedbackBreakdownOut
