from __future__ import annotations

import itertools
import os
from datetime import date, time, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

# Local dev auth and an in-process feed, set before the app reads its settings
os.environ.setdefault("ENV", "local")
os.environ.setdefault("AUTH_MODE", "dev")
os.environ.setdefault("CHANGE_FEED_BACKEND", "memory")
os.environ.setdefault("RECONCILE_MODE", "refetch")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from campus_events.api.deps import get_gateway  # noqa: E402
from campus_events.db import create_all, create_engine, create_session_factory  # noqa: E402
from campus_events.gateway.changefeed import InMemoryChangeFeed  # noqa: E402
from campus_events.gateway.sql import SqlGateway  # noqa: E402
from campus_events.main import app  # noqa: E402
from campus_events.models import EventCategory, Society, UserRole  # noqa: E402


@pytest.fixture
async def engine(tmp_path):
    # A file database so concurrent sessions get their own connections
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'campus.db'}")
    await create_all(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def feed() -> InMemoryChangeFeed:
    return InMemoryChangeFeed()


@pytest.fixture
def gateway(session_factory, feed) -> SqlGateway:
    return SqlGateway(session_factory, feed)


@pytest.fixture
def make_user(gateway):
    counter = itertools.count(1)

    async def _make(role: UserRole = UserRole.STUDENT, society: Society | None = None, **values):
        n = next(counter)
        payload = {
            "email": f"user{n}@example.com",
            "name": f"User {n}",
            "role": role,
            "society": society,
        }
        payload.update(values)
        return await gateway.create_user(payload)

    return _make


@pytest.fixture
async def organizer(make_user):
    return await make_user(UserRole.ORGANIZER, Society.ACM)


@pytest.fixture
async def student(make_user):
    return await make_user()


@pytest.fixture
def make_event(gateway, organizer):
    async def _make(**values):
        payload = {
            "title": "Intro to Python",
            "description": "Bring a laptop",
            "date": date.today() + timedelta(days=7),
            "time": time(18, 0),
            "venue": "Main Hall",
            "society": organizer.society,
            "category": EventCategory.TECHNICAL,
            "capacity": 50,
            "owner_id": organizer.id,
        }
        payload.update(values)
        return await gateway.create_event(payload)

    return _make


@pytest.fixture
async def client(gateway):
    app.dependency_overrides[get_gateway] = lambda: gateway
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
