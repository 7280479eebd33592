"""Recommendation, sentiment and trend heuristics.

Everything here is a pure function of its arguments: no gateway access, no
clock reads unless ``now`` is omitted. The keyword matching is a fixed
vocabulary substring match, not language understanding.
"""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Protocol

from campus_events.models import EventCategory, Society

CATEGORY_WEIGHT = 0.4
SOCIETY_WEIGHT = 0.3
POPULARITY_WEIGHT = 0.2
NOVELTY_WEIGHT = 0.1

POPULAR_FILL_RANGE = (0.3, 0.8)
MIN_RECOMMENDATION_SCORE = 0.1

TREND_WINDOW = 3
TREND_THRESHOLD = 0.2

MAX_KEY_TOPICS = 5
MAX_SUGGESTIONS = 3

POSITIVE_TERMS = (
    "great",
    "excellent",
    "amazing",
    "good",
    "love",
    "awesome",
    "wonderful",
    "fantastic",
    "helpful",
    "informative",
    "engaging",
    "fun",
)
NEGATIVE_TERMS = (
    "bad",
    "poor",
    "terrible",
    "awful",
    "hate",
    "worst",
    "disappointing",
    "boring",
    "crowded",
    "late",
)
TOPIC_TERMS = (
    "speaker",
    "content",
    "venue",
    "organization",
    "timing",
    "schedule",
    "food",
    "sound",
    "networking",
    "hands-on",
)

# Checked in order; the first matching term for each suggestion wins
TOPIC_SUGGESTIONS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("venue", "crowded"), "Book a larger or more accessible venue"),
    (("timing", "schedule", "late"), "Keep sessions on schedule and share timings in advance"),
    (("sound",), "Test audio equipment before the event starts"),
    (("speaker", "content"), "Share speaker and content plans with attendees beforehand"),
    (("food",), "Review catering arrangements"),
    (("organization",), "Assign clear roles to volunteers on the day"),
    (("boring",), "Add interactive segments to keep attendees engaged"),
    (("networking", "hands-on"), "Keep the networking and hands-on segments, attendees value them"),
)

SENTIMENT_SUGGESTIONS = {
    "positive": "Run a similar event again",
    "neutral": "Ask attendees what would make the next event better",
    "negative": "Follow up with attendees to find out what went wrong",
}

CATEGORY_KEYWORDS: dict[EventCategory, tuple[str, ...]] = {
    EventCategory.TECHNICAL: (
        "workshop", "coding", "hackathon", "tech", "ai", "ml", "web", "app", "software", "programming",
    ),
    EventCategory.CULTURAL: ("music", "dance", "art", "cultural", "performance", "show", "concert"),
    EventCategory.SPORTS: (
        "sports", "cricket", "football", "basketball", "tournament", "match", "game", "athletics",
    ),
    EventCategory.WORKSHOP: ("workshop", "training", "seminar", "session", "tutorial", "learn"),
    EventCategory.COMPETITION: ("competition", "contest", "challenge", "hackathon", "quiz", "debate"),
}


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class ScoredEvent(Protocol):
    id: uuid.UUID
    category: EventCategory
    society: Society
    capacity: int
    roster: list[str]

    @property
    def starts_at(self) -> datetime: ...


class RatedRegistration(Protocol):
    rating: int | None
    feedback: str | None


@dataclass(frozen=True)
class Recommendation:
    event_id: uuid.UUID
    score: float
    reason: str


@dataclass(frozen=True)
class FeedbackSentiment:
    average_rating: float
    sentiment: Sentiment
    key_topics: list[str] = field(default_factory=list)
    summary: str = ""
    suggestions: list[str] = field(default_factory=list)
    rating_count: int = 0


@dataclass(frozen=True)
class FeedbackBreakdown:
    positive: int
    neutral: int
    negative: int
    summary: str


def round_half_up(value: float, places: int = 1) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _affinity(keys: Iterable[Any]) -> dict[Any, float]:
    counts = Counter(keys)
    total = sum(counts.values())
    if not total:
        return {}
    return {key: count / total for key, count in counts.items()}


def category_affinity(history: Iterable[ScoredEvent]) -> dict[EventCategory, float]:
    """Share of the user's past registrations in each category."""
    return _affinity(event.category for event in history)


def society_affinity(history: Iterable[ScoredEvent]) -> dict[Society, float]:
    """Share of the user's past registrations with each society."""
    return _affinity(event.society for event in history)


def _is_popular(event: ScoredEvent) -> bool:
    if not event.capacity:
        return False
    low, high = POPULAR_FILL_RANGE
    fill = len(event.roster or []) / event.capacity
    return low < fill < high


def recommend(
    user_id: uuid.UUID,
    candidates: Iterable[ScoredEvent],
    history: Sequence[ScoredEvent],
    limit: int,
    now: datetime | None = None,
) -> list[Recommendation]:
    """Rank upcoming events the user has not joined.

    score = 0.4 * category affinity + 0.3 * society affinity
            + 0.2 if the event is 30-80% full + 0.1 for a society the user never joined

    Scores of 0.1 or less are dropped.
    """
    if limit <= 0:
        return []
    now = now or datetime.now()
    member = str(user_id)
    joined = {event.id for event in history}
    categories = category_affinity(history)
    societies = society_affinity(history)

    scored: list[tuple[float, datetime, Recommendation]] = []
    for event in candidates:
        if event.id in joined or member in (event.roster or []):
            continue
        if event.starts_at < now:
            continue

        category_score = categories.get(event.category, 0.0)
        society_score = societies.get(event.society, 0.0)
        popular = _is_popular(event)
        novel = event.society not in societies

        score = CATEGORY_WEIGHT * category_score + SOCIETY_WEIGHT * society_score
        if popular:
            score += POPULARITY_WEIGHT
        if novel:
            score += NOVELTY_WEIGHT
        if score <= MIN_RECOMMENDATION_SCORE:
            continue

        reasons = []
        if category_score:
            reasons.append(f"Matches your interest in {event.category.value} events")
        if society_score:
            reasons.append(f"From {event.society.value}, a society you attend")
        if popular:
            reasons.append("Popular with other students")
        if novel:
            reasons.append(f"Discover {event.society.value}, a society you have not tried yet")

        recommendation = Recommendation(
            event_id=event.id,
            score=round(score, 4),
            reason="; ".join(reasons),
        )
        scored.append((score, event.starts_at, recommendation))

    scored.sort(key=lambda item: (-item[0], item[1]))
    return [recommendation for _score, _starts_at, recommendation in scored[:limit]]


def classify_rating(average: float) -> Sentiment:
    if average >= 4:
        return Sentiment.POSITIVE
    if average >= 3:
        return Sentiment.NEUTRAL
    return Sentiment.NEGATIVE


def extract_key_topics(text: str, limit: int = MAX_KEY_TOPICS) -> list[str]:
    lowered = text.lower()
    topics: list[str] = []
    for term in (*TOPIC_TERMS, *POSITIVE_TERMS, *NEGATIVE_TERMS):
        if term in lowered and term not in topics:
            topics.append(term)
        if len(topics) >= limit:
            break
    return topics


def _suggestions(text: str, sentiment: Sentiment) -> list[str]:
    lowered = text.lower()
    suggestions = [
        suggestion
        for terms, suggestion in TOPIC_SUGGESTIONS
        if any(term in lowered for term in terms)
    ]
    suggestions.append(SENTIMENT_SUGGESTIONS[sentiment.value])
    return suggestions[:MAX_SUGGESTIONS]


def analyze_feedback(registrations: Iterable[RatedRegistration]) -> FeedbackSentiment:
    ratings: list[int] = []
    texts: list[str] = []
    for registration in registrations:
        if registration.rating is not None:
            ratings.append(registration.rating)
        if registration.feedback and registration.feedback.strip():
            texts.append(registration.feedback.strip())

    if not ratings and not texts:
        return FeedbackSentiment(
            average_rating=0.0,
            sentiment=Sentiment.NEUTRAL,
            summary="No feedback available",
        )

    mean = sum(ratings) / len(ratings) if ratings else 0.0
    average = round_half_up(mean)
    if ratings:
        sentiment = classify_rating(mean)
    else:
        sentiment = _text_sentiment(texts)

    combined = " ".join(texts)
    key_topics = extract_key_topics(combined)

    if ratings:
        summary = (
            f"Average rating {average:.1f}/5 from {len(ratings)} "
            f"rating{'s' if len(ratings) != 1 else ''}; overall sentiment is {sentiment.value}"
        )
    else:
        summary = f"No ratings yet; written feedback reads {sentiment.value}"
    if key_topics:
        summary += f". Attendees mentioned: {', '.join(key_topics)}"

    return FeedbackSentiment(
        average_rating=average,
        sentiment=sentiment,
        key_topics=key_topics,
        summary=summary,
        suggestions=_suggestions(combined, sentiment),
        rating_count=len(ratings),
    )


def _classify_text(text: str) -> Sentiment:
    lowered = text.lower()
    has_positive = any(term in lowered for term in POSITIVE_TERMS)
    has_negative = any(term in lowered for term in NEGATIVE_TERMS)
    if has_positive and not has_negative:
        return Sentiment.POSITIVE
    if has_negative and not has_positive:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def _text_sentiment(texts: Sequence[str]) -> Sentiment:
    counts = Counter(_classify_text(text) for text in texts)
    if counts[Sentiment.POSITIVE] > counts[Sentiment.NEGATIVE]:
        return Sentiment.POSITIVE
    if counts[Sentiment.NEGATIVE] > counts[Sentiment.POSITIVE]:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def feedback_breakdown(texts: Sequence[str]) -> FeedbackBreakdown:
    """Percentages of positive, neutral and negative feedback texts."""
    if not texts:
        return FeedbackBreakdown(positive=0, neutral=0, negative=0, summary="No feedback available")

    counts = Counter(_classify_text(text) for text in texts)
    total = len(texts)

    def percent(sentiment: Sentiment) -> int:
        return int(round_half_up(100 * counts[sentiment] / total, 0))

    positive = percent(Sentiment.POSITIVE)
    return FeedbackBreakdown(
        positive=positive,
        neutral=percent(Sentiment.NEUTRAL),
        negative=percent(Sentiment.NEGATIVE),
        summary=f"{positive}% positive feedback",
    )


def trend_direction(series: Sequence[float]) -> TrendDirection:
    """Compare the mean of the last three points with the three before them."""
    if len(series) < TREND_WINDOW:
        return TrendDirection.STABLE

    recent = series[-TREND_WINDOW:]
    previous = series[-2 * TREND_WINDOW : -TREND_WINDOW]
    if not previous:
        return TrendDirection.STABLE

    recent_mean = sum(recent) / len(recent)
    previous_mean = sum(previous) / len(previous)
    if previous_mean == 0:
        return TrendDirection.INCREASING if recent_mean > 0 else TrendDirection.STABLE

    change = (recent_mean - previous_mean) / abs(previous_mean)
    if change > TREND_THRESHOLD:
        return TrendDirection.INCREASING
    if change < -TREND_THRESHOLD:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


def suggest_category(title: str, description: str) -> EventCategory:
    text = f"{title} {description}".lower()
    for category, terms in CATEGORY_KEYWORDS.items():
        if any(term in text for term in terms):
            return category
    return EventCategory.OTHER
