from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from campus_events.models import Event
from campus_events.realtime import DeltaView, LiveView, Reconciler
from campus_events.services import registration_service


@pytest.fixture(params=["refetch", "delta"])
async def reconciler(request, gateway):
    async with Reconciler(gateway, mode=request.param) as reconciler:
        yield reconciler


async def test_events_view_follows_inserts_updates_and_deletes(reconciler, gateway, make_event):
    view = await reconciler.events()
    assert view.items == []

    event = await make_event(title="Robotics demo")
    assert [item.id for item in view.items] == [event.id]

    await gateway.update_event(event.id, {"title": "Robotics showcase"})
    assert view.items[0].title == "Robotics showcase"

    await gateway.delete_event(event.id)
    assert view.items == []


async def test_event_registrations_view_is_scoped_to_one_event(reconciler, gateway, make_event, student):
    watched = await make_event()
    other = await make_event(title="Other", date=watched.date + timedelta(days=1))
    view = await reconciler.event_registrations(watched.id)
    version = view.version

    await registration_service.register(gateway, other.id, student.id)
    assert view.version == version
    assert view.items == []

    await registration_service.register(gateway, watched.id, student.id)
    assert [item.user_id for item in view.items] == [student.id]

    await registration_service.unregister(gateway, watched.id, student.id)
    assert view.items == []


async def test_user_views_follow_own_registrations(reconciler, gateway, make_event, student):
    event = await make_event()
    registrations = await reconciler.user_registrations(student.id)
    events = await reconciler.user_events(student.id)

    await registration_service.register(gateway, event.id, student.id)

    assert [item.event_id for item in registrations.items] == [event.id]
    assert [item.id for item in events.items] == [event.id]


async def test_notifications_view_updates_read_flag(reconciler, gateway, organizer, student):
    view = await reconciler.notifications(student.id)
    [notification] = await gateway.insert_notifications(
        [
            {
                "title": "Room change",
                "body": "Moved to Lab 2",
                "recipient_id": student.id,
                "sender_id": organizer.id,
            }
        ]
    )
    assert [item.read for item in view.items] == [False]

    await gateway.update_notification(notification.id, {"read": True})
    assert [item.read for item in view.items] == [True]


async def test_closed_reconciler_stops_updates(gateway, feed, make_event):
    reconciler = Reconciler(gateway, mode="refetch")
    view = await reconciler.events()
    assert len(reconciler.views) == 1

    reconciler.close()
    await make_event()

    assert view.items == []
    assert not view.active
    assert reconciler.views == []
    assert feed.subscription_count == 0


async def test_listeners_see_each_new_snapshot(gateway, make_event):
    reconciler = Reconciler(gateway, mode="refetch")
    view = await reconciler.events()
    sizes: list[int] = []
    remove = view.add_listener(lambda v: sizes.append(len(v.items)))

    await make_event()
    await make_event(title="Second")
    remove()
    await make_event(title="Third")

    assert sizes == [1, 2]
    reconciler.close()


def test_unknown_mode_is_rejected(gateway):
    with pytest.raises(ValueError):
        Reconciler(gateway, mode="poll")


async def test_delta_during_initial_load_survives_the_load(gateway, make_event):
    gate = asyncio.Event()
    calls = 0

    async def loader():
        nonlocal calls
        calls += 1
        if calls == 1:
            # Snapshot read before the insert below commits
            await gate.wait()
            return []
        return await gateway.list_events()

    view = DeltaView(gateway, "events", loader, Event)
    starting = asyncio.create_task(view.start())
    await asyncio.sleep(0)

    event = await make_event(title="Late arrival")
    gate.set()
    await starting

    assert [item.id for item in view.items] == [event.id]
    view.close()


async def test_views_closed_individually_are_released(gateway):
    reconciler = Reconciler(gateway, mode="delta")
    first = await reconciler.events()
    first.close()

    second = await reconciler.events()

    assert reconciler._views == [second]
    reconciler.close()


async def test_stale_refresh_does_not_overwrite_newer_snapshot(gateway):
    gate = asyncio.Event()
    snapshots = iter([["initial"], ["stale"], ["fresh"]])

    async def loader():
        snapshot = next(snapshots)
        if snapshot == ["stale"]:
            await gate.wait()
        return snapshot

    view = LiveView(gateway, "events", loader)
    await view.start()
    slow = asyncio.create_task(view.refresh())
    await asyncio.sleep(0)

    await view.refresh()
    gate.set()
    await slow

    assert view.items == ["fresh"]
    view.close()
