from __future__ import annotations

import asyncio
import uuid
from datetime import time

import pytest

from campus_events.gateway.sql import SqlGateway
from campus_events.services import registration_service
from campus_events.services.error_codes import ErrorCode
from campus_events.services.exceptions import (
    AlreadyRegisteredError,
    BackendUnavailableError,
    CapacityExceededError,
    NotFoundError,
    ScheduleConflictError,
)


class RosterWriteFailsGateway(SqlGateway):
    async def set_roster(self, event_id, roster):
        raise BackendUnavailableError(message="roster write failed")


class LastSeatGateway(SqlGateway):
    """Holds each registration attempt after its capacity check until all attempts got there."""

    def __init__(self, *args, parties: int, **kwargs):
        super().__init__(*args, **kwargs)
        self._parties = parties
        self._arrived = 0
        self._released = asyncio.Event()

    async def get_registration(self, event_id, user_id):
        self._arrived += 1
        if self._arrived >= self._parties:
            self._released.set()
        await self._released.wait()
        return await super().get_registration(event_id, user_id)


class SlowWriteGateway(SqlGateway):
    """Pauses inside the first write of each operation and reports the roster write."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.write_started = asyncio.Event()
        self.roster_written = asyncio.Event()

    async def insert_registration(self, event_id, user_id):
        self.write_started.set()
        await asyncio.sleep(0.01)
        return await super().insert_registration(event_id, user_id)

    async def delete_registration(self, event_id, user_id):
        self.write_started.set()
        await asyncio.sleep(0.01)
        return await super().delete_registration(event_id, user_id)

    async def set_roster(self, event_id, roster):
        await super().set_roster(event_id, roster)
        self.roster_written.set()


async def test_register_then_unregister_restores_prior_state(gateway, make_event, student):
    event = await make_event()

    registration = await registration_service.register(gateway, event.id, student.id)
    assert registration.user_id == student.id
    assert await gateway.get_roster(event.id) == [str(student.id)]
    assert await registration_service.is_registered(gateway, event.id, student.id) is True

    await registration_service.unregister(gateway, event.id, student.id)

    assert await gateway.get_roster(event.id) == []
    assert await gateway.get_registration(event.id, student.id) is None
    assert await registration_service.is_registered(gateway, event.id, student.id) is False


async def test_second_registration_is_rejected_and_roster_unchanged(gateway, make_event, student):
    event = await make_event()
    await registration_service.register(gateway, event.id, student.id)

    with pytest.raises(AlreadyRegisteredError) as exc_info:
        await registration_service.register(gateway, event.id, student.id)

    assert exc_info.value.code == ErrorCode.ALREADY_REGISTERED.value
    assert await gateway.get_roster(event.id) == [str(student.id)]
    assert len(await gateway.list_event_registrations(event.id)) == 1


async def test_same_date_and_time_is_a_schedule_conflict(gateway, make_event, student):
    first = await make_event(title="Git basics")
    second = await make_event(title="Docker basics", venue="Lab 2")

    await registration_service.register(gateway, first.id, student.id)
    with pytest.raises(ScheduleConflictError) as exc_info:
        await registration_service.register(gateway, second.id, student.id)

    assert "Git basics" in exc_info.value.message
    assert await gateway.get_roster(second.id) == []


async def test_same_date_different_time_is_allowed(gateway, make_event, student):
    morning = await make_event(time=time(9, 0))
    evening = await make_event(time=time(18, 0))

    await registration_service.register(gateway, morning.id, student.id)
    await registration_service.register(gateway, evening.id, student.id)

    assert await registration_service.is_registered(gateway, morning.id, student.id)
    assert await registration_service.is_registered(gateway, evening.id, student.id)


async def test_full_event_rejects_registration(gateway, make_event, make_user):
    event = await make_event(capacity=1)
    first, second = await make_user(), await make_user()

    await registration_service.register(gateway, event.id, first.id)
    with pytest.raises(CapacityExceededError) as exc_info:
        await registration_service.register(gateway, event.id, second.id)

    assert exc_info.value.code == ErrorCode.EVENT_FULL.value
    assert await gateway.get_roster(event.id) == [str(first.id)]


async def test_capacity_is_checked_before_existing_registration(gateway, make_event, student):
    event = await make_event(capacity=1)
    await registration_service.register(gateway, event.id, student.id)

    with pytest.raises(CapacityExceededError):
        await registration_service.register(gateway, event.id, student.id)


async def test_register_unknown_event(gateway, student):
    with pytest.raises(NotFoundError) as exc_info:
        await registration_service.register(gateway, uuid.uuid4(), student.id)
    assert exc_info.value.code == ErrorCode.EVENT_NOT_FOUND.value


async def test_unregister_non_member_is_a_no_op(gateway, make_event, make_user):
    event = await make_event()
    member, outsider = await make_user(), await make_user()
    await registration_service.register(gateway, event.id, member.id)

    await registration_service.unregister(gateway, event.id, outsider.id)

    assert await gateway.get_roster(event.id) == [str(member.id)]


async def test_capacity_info_for_full_event(gateway, make_event):
    event = await make_event(capacity=50)
    await gateway.set_roster(event.id, [str(uuid.uuid4()) for _ in range(50)])

    info = await registration_service.capacity_info(gateway, event.id)

    assert info.capacity == 50
    assert info.registered == 50
    assert info.available == 0
    assert info.percentage == 100


@pytest.mark.parametrize(
    ("capacity", "registered", "percentage"),
    [(3, 1, 33), (8, 1, 13), (200, 1, 1), (10, 0, 0)],
)
async def test_capacity_percentage_rounds_half_up(gateway, make_event, capacity, registered, percentage):
    event = await make_event(capacity=capacity)
    await gateway.set_roster(event.id, [str(uuid.uuid4()) for _ in range(registered)])

    info = await registration_service.capacity_info(gateway, event.id)

    assert info.percentage == percentage
    assert info.available == capacity - registered


async def test_capacity_info_unknown_event(gateway):
    with pytest.raises(NotFoundError):
        await registration_service.capacity_info(gateway, uuid.uuid4())


async def test_failed_roster_write_keeps_registration_and_sync_heals(
    gateway, session_factory, feed, make_event, student
):
    event = await make_event()
    failing = RosterWriteFailsGateway(session_factory, feed)

    with pytest.raises(BackendUnavailableError):
        await registration_service.register(failing, event.id, student.id)

    # Partial state: the row landed, the roster did not
    assert await registration_service.is_registered(gateway, event.id, student.id)
    assert await gateway.get_roster(event.id) == []

    roster = await registration_service.sync_roster(gateway, event.id)

    assert roster == [str(student.id)]
    assert await gateway.get_roster(event.id) == [str(student.id)]


async def test_sync_roster_drops_members_without_registration(gateway, make_event, student):
    event = await make_event()
    await registration_service.register(gateway, event.id, student.id)
    ghost = str(uuid.uuid4())
    await gateway.set_roster(event.id, [str(student.id), ghost])

    roster = await registration_service.sync_roster(gateway, event.id)

    assert roster == [str(student.id)]


async def test_sync_roster_keeps_signup_order(gateway, make_event, make_user):
    event = await make_event()
    users = [await make_user() for _ in range(3)]
    for user in users:
        await registration_service.register(gateway, event.id, user.id)
    await gateway.set_roster(event.id, [])

    roster = await registration_service.sync_roster(gateway, event.id)

    assert roster == [str(user.id) for user in users]


async def test_concurrent_registrations_for_last_seat_overfill_the_event(
    gateway, session_factory, feed, make_event, make_user
):
    """Known race: both attempts pass the capacity check before either write lands.

    The event ends up with more registrations than seats; nothing rejects the
    second attempt. ``sync_roster`` restores the roster to the registration rows
    but cannot restore the capacity bound.
    """
    event = await make_event(capacity=2)
    first, second, third = await make_user(), await make_user(), await make_user()
    await registration_service.register(gateway, event.id, first.id)

    racing = LastSeatGateway(session_factory, feed, parties=2)
    results = await asyncio.gather(
        registration_service.register(racing, event.id, second.id),
        registration_service.register(racing, event.id, third.id),
        return_exceptions=True,
    )

    assert not [result for result in results if isinstance(result, Exception)]
    registrations = await gateway.list_event_registrations(event.id)
    assert len(registrations) == 3

    roster = await registration_service.sync_roster(gateway, event.id)
    assert sorted(roster) == sorted(str(user.id) for user in (first, second, third))

    info = await registration_service.capacity_info(gateway, event.id)
    assert info.registered == 3
    assert info.available == -1


async def test_cancelled_caller_does_not_interrupt_register(
    gateway, session_factory, feed, make_event, student
):
    event = await make_event()
    slow = SlowWriteGateway(session_factory, feed)

    task = asyncio.create_task(registration_service.register(slow, event.id, student.id))
    await slow.write_started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    await asyncio.wait_for(slow.roster_written.wait(), timeout=5)
    assert await gateway.get_registration(event.id, student.id) is not None
    assert await gateway.get_roster(event.id) == [str(student.id)]


async def test_cancelled_caller_does_not_interrupt_unregister(
    gateway, session_factory, feed, make_event, student
):
    event = await make_event()
    await registration_service.register(gateway, event.id, student.id)
    slow = SlowWriteGateway(session_factory, feed)

    task = asyncio.create_task(registration_service.unregister(slow, event.id, student.id))
    await slow.write_started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    await asyncio.wait_for(slow.roster_written.wait(), timeout=5)
    assert await gateway.get_registration(event.id, student.id) is None
    assert await gateway.get_roster(event.id) == []
