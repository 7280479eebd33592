from __future__ import annotations

import uuid
from datetime import date, datetime, time, timedelta
from types import SimpleNamespace

import pytest

from campus_events.models import Event, EventCategory, Society
from campus_events.services import scoring
from campus_events.services.scoring import Sentiment, TrendDirection

NOW = datetime(2026, 3, 2, 12, 0)


def _event(
    category: EventCategory = EventCategory.TECHNICAL,
    society: Society = Society.ACM,
    *,
    registered: int = 0,
    capacity: int = 10,
    days_ahead: int = 3,
    at: time = time(18, 0),
) -> Event:
    return Event(
        id=uuid.uuid4(),
        title=f"{society.value} {category.value}",
        description="",
        date=(NOW + timedelta(days=days_ahead)).date(),
        time=at,
        venue="Main Hall",
        society=society,
        category=category,
        capacity=capacity,
        roster=[str(uuid.uuid4()) for _ in range(registered)],
        owner_id=uuid.uuid4(),
    )


def _feedback(rating=None, text=None):
    return SimpleNamespace(rating=rating, feedback=text)


def test_affinity_of_empty_history_is_empty():
    assert scoring.category_affinity([]) == {}
    assert scoring.society_affinity([]) == {}


def test_affinity_is_share_of_history():
    history = [
        _event(EventCategory.TECHNICAL, Society.ACM),
        _event(EventCategory.TECHNICAL, Society.CLS),
        _event(EventCategory.SPORTS, Society.ACM),
        _event(EventCategory.CULTURAL, Society.ACM),
    ]

    assert scoring.category_affinity(history) == {
        EventCategory.TECHNICAL: 0.5,
        EventCategory.SPORTS: 0.25,
        EventCategory.CULTURAL: 0.25,
    }
    assert scoring.society_affinity(history) == {Society.ACM: 0.75, Society.CLS: 0.25}


def test_recommend_without_history_scores_only_popularity_and_novelty():
    popular = _event(registered=5)
    quiet = _event(registered=0)
    packed = _event(registered=9)

    results = scoring.recommend(uuid.uuid4(), [popular, quiet, packed], [], limit=5, now=NOW)

    # Novelty alone (0.1) is not enough to be recommended
    assert [r.event_id for r in results] == [popular.id]
    assert results[0].score == pytest.approx(0.3)
    assert all(r.score <= 0.3 + 1e-9 for r in results)


def test_recommend_ranks_by_affinity():
    history = [_event(EventCategory.TECHNICAL, Society.ACM), _event(EventCategory.TECHNICAL, Society.ACM)]
    matching = _event(EventCategory.TECHNICAL, Society.ACM)
    new_society = _event(EventCategory.CULTURAL, Society.CLS, registered=5)
    unrelated = _event(EventCategory.SPORTS, Society.CSS)

    results = scoring.recommend(uuid.uuid4(), [unrelated, new_society, matching], history, limit=5, now=NOW)

    assert [r.event_id for r in results] == [matching.id, new_society.id]
    assert results[0].score == pytest.approx(0.7)
    assert results[1].score == pytest.approx(0.3)
    assert "Technical" in results[0].reason
    assert "Popular" in results[1].reason
    assert "CLS" in results[1].reason


def test_recommend_skips_joined_and_past_events():
    user_id = uuid.uuid4()
    joined = _event(registered=5)
    history = [joined]
    on_roster = _event(registered=4)
    on_roster.roster.append(str(user_id))
    past = _event(registered=5, days_ahead=-1)
    upcoming = _event(registered=5)

    results = scoring.recommend(user_id, [joined, on_roster, past, upcoming], history, limit=5, now=NOW)

    assert [r.event_id for r in results] == [upcoming.id]


def test_recommend_breaks_ties_by_start_and_respects_limit():
    later = _event(registered=5, days_ahead=5)
    sooner = _event(registered=5, days_ahead=1)
    middle = _event(registered=5, days_ahead=3)

    results = scoring.recommend(uuid.uuid4(), [later, sooner, middle], [], limit=2, now=NOW)

    assert [r.event_id for r in results] == [sooner.id, middle.id]
    assert scoring.recommend(uuid.uuid4(), [later], [], limit=0, now=NOW) == []


def test_feedback_sentiment_for_high_ratings():
    result = scoring.analyze_feedback([_feedback(r) for r in (5, 5, 4, 5)])

    assert result.sentiment is Sentiment.POSITIVE
    assert result.average_rating == 4.8
    assert result.rating_count == 4


@pytest.mark.parametrize(
    ("ratings", "sentiment", "average"),
    [
        ((4, 4), Sentiment.POSITIVE, 4.0),
        ((3, 4), Sentiment.NEUTRAL, 3.5),
        ((3, 3, 3), Sentiment.NEUTRAL, 3.0),
        ((2, 3), Sentiment.NEGATIVE, 2.5),
        ((4, 5, 5), Sentiment.POSITIVE, 4.7),
    ],
)
def test_sentiment_thresholds(ratings, sentiment, average):
    result = scoring.analyze_feedback([_feedback(r) for r in ratings])
    assert result.sentiment is sentiment
    assert result.average_rating == average


def test_sentiment_uses_unrounded_mean():
    # 3.96 would display as 4.0 but is still below the positive threshold
    ratings = [4] * 24 + [3]
    result = scoring.analyze_feedback([_feedback(r) for r in ratings])

    assert result.average_rating == 4.0
    assert result.sentiment is Sentiment.NEUTRAL


def test_no_feedback_is_neutral_default():
    result = scoring.analyze_feedback([_feedback(), _feedback(text="   ")])

    assert result.sentiment is Sentiment.NEUTRAL
    assert result.average_rating == 0.0
    assert result.key_topics == []
    assert result.suggestions == []
    assert result.summary == "No feedback available"


def test_text_feedback_topics_and_suggestions():
    result = scoring.analyze_feedback(
        [
            _feedback(5, "Great speaker, really informative"),
            _feedback(4, "The venue was crowded"),
        ]
    )

    assert result.key_topics == ["speaker", "venue", "great", "informative", "crowded"]
    assert result.suggestions == [
        "Book a larger or more accessible venue",
        "Share speaker and content plans with attendees beforehand",
        "Run a similar event again",
    ]
    assert "speaker" in result.summary


def test_text_only_feedback_classifies_from_words():
    result = scoring.analyze_feedback([_feedback(text="boring talk"), _feedback(text="awful")])

    assert result.rating_count == 0
    assert result.sentiment is Sentiment.NEGATIVE
    assert result.suggestions == [
        "Add interactive segments to keep attendees engaged",
        "Follow up with attendees to find out what went wrong",
    ]


def test_key_topics_are_capped():
    text = "speaker content venue organization timing schedule food"
    assert scoring.extract_key_topics(text) == ["speaker", "content", "venue", "organization", "timing"]


@pytest.mark.parametrize(
    ("value", "expected"),
    [(4.75, 4.8), (2.25, 2.3), (4.74, 4.7), (0.05, 0.1)],
)
def test_round_half_up(value, expected):
    assert scoring.round_half_up(value) == expected


@pytest.mark.parametrize(
    ("series", "direction"),
    [
        ([1, 1, 1, 5, 6, 7], TrendDirection.INCREASING),
        ([7, 6, 5, 1, 1, 1], TrendDirection.DECREASING),
        ([3, 3, 3, 3, 3, 3], TrendDirection.STABLE),
        ([10, 10, 10, 11, 11, 11], TrendDirection.STABLE),
        ([0, 0, 0, 1, 0, 0], TrendDirection.INCREASING),
        ([0, 0, 0, 0, 0, 0], TrendDirection.STABLE),
        ([1, 2], TrendDirection.STABLE),
        ([1, 5, 9], TrendDirection.STABLE),
        ([0, 0, 0, 0, 9, 1, 1, 1], TrendDirection.DECREASING),
    ],
)
def test_trend_direction(series, direction):
    assert scoring.trend_direction(series) is direction


def test_feedback_breakdown_percentages():
    breakdown = scoring.feedback_breakdown(["great event", "boring talk", "it was ok"])

    assert (breakdown.positive, breakdown.neutral, breakdown.negative) == (33, 33, 33)
    assert breakdown.summary == "33% positive feedback"
    assert scoring.feedback_breakdown([]).summary == "No feedback available"


@pytest.mark.parametrize(
    ("title", "category"),
    [
        ("Hackathon weekend", EventCategory.TECHNICAL),
        ("Dance night", EventCategory.CULTURAL),
        ("Cricket match", EventCategory.SPORTS),
        ("Friday quiz", EventCategory.COMPETITION),
        ("Alumni dinner", EventCategory.OTHER),
    ],
)
def test_suggest_category(title, category):
    assert scoring.suggest_category(title, "") is category


def test_event_fill_ratio_and_start():
    event = _event(registered=3, capacity=12)

    assert event.fill_ratio == 0.25
    assert event.registered_count == 3
    assert event.starts_at == datetime.combine(date(2026, 3, 5), time(18, 0))
