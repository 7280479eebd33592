from __future__ import annotations

import uuid
from datetime import datetime

from campus_events.core.config import settings
from campus_events.gateway.base import DataGateway
from campus_events.services.scoring import Recommendation, recommend


async def recommend_for_user(
    gateway: DataGateway,
    user_id: uuid.UUID,
    limit: int | None = None,
    now: datetime | None = None,
) -> list[Recommendation]:
    now = now or datetime.now()
    history = [event for _registration, event in await gateway.list_user_registrations(user_id)]
    candidates = await gateway.list_events(on_or_after=now.date())
    return recommend(
        user_id,
        candidates,
        history,
        limit if limit is not None else settings.recommendation_limit,
        now=now,
    )
