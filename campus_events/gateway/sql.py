from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from typing import Any

import structlog
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from campus_events.gateway.base import DataGateway
from campus_events.gateway.changefeed import (
    ChangeEvent,
    ChangeFeed,
    ChangeFilter,
    ChangeHandler,
    ChangeKind,
    Subscription,
)
from campus_events.models import Event, EventCategory, Notification, Registration, Society, User
from campus_events.services.error_codes import ErrorCode
from campus_events.services.exceptions import (
    AlreadyRegisteredError,
    BackendUnavailableError,
    ConflictError,
    NotFoundError,
)

logger = structlog.get_logger()


class SqlGateway(DataGateway):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        feed: ChangeFeed,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._feed = feed
        self._engine = engine

    @property
    def feed(self) -> ChangeFeed:
        return self._feed

    @property
    def engine(self) -> AsyncEngine | None:
        return self._engine

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except IntegrityError as exc:
            raise ConflictError(message="constraint violated") from exc
        except SQLAlchemyError as exc:
            logger.warning("backend_request_failed", error=exc.__class__.__name__)
            raise BackendUnavailableError(message="backend request failed") from exc

    async def _emit(
        self,
        table: str,
        kind: ChangeKind,
        new: dict[str, Any] | None = None,
        old: dict[str, Any] | None = None,
    ) -> None:
        await self._feed.publish(ChangeEvent(table=table, kind=kind, new=new, old=old))

    # Users

    async def get_user(self, user_id: uuid.UUID) -> User | None:
        async with self._session() as session:
            return await session.get(User, user_id)

    async def create_user(self, values: dict[str, Any]) -> User:
        user = User(**values)
        async with self._session() as session:
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError(ErrorCode.EMAIL_TAKEN.value, "email already exists") from exc
            await session.refresh(user)
        await self._emit(User.__tablename__, ChangeKind.INSERT, new=user.to_row())
        return user

    # Events

    async def get_event(self, event_id: uuid.UUID) -> Event | None:
        async with self._session() as session:
            return await session.get(Event, event_id)

    async def list_events(
        self,
        *,
        society: Society | None = None,
        category: EventCategory | None = None,
        owner_id: uuid.UUID | None = None,
        search: str | None = None,
        on_or_after: date | None = None,
    ) -> list[Event]:
        stmt = select(Event).order_by(Event.date, Event.time)
        if society is not None:
            stmt = stmt.where(Event.society == society)
        if category is not None:
            stmt = stmt.where(Event.category == category)
        if owner_id is not None:
            stmt = stmt.where(Event.owner_id == owner_id)
        if on_or_after is not None:
            stmt = stmt.where(Event.date >= on_or_after)
        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Event.title).like(pattern),
                    func.lower(Event.description).like(pattern),
                    func.lower(Event.venue).like(pattern),
                )
            )

        async with self._session() as session:
            return list((await session.scalars(stmt)).all())

    async def create_event(self, values: dict[str, Any]) -> Event:
        event = Event(**{**values, "roster": []})
        async with self._session() as session:
            session.add(event)
            await session.commit()
            await session.refresh(event)
        await self._emit(Event.__tablename__, ChangeKind.INSERT, new=event.to_row())
        return event

    async def update_event(self, event_id: uuid.UUID, values: dict[str, Any]) -> Event | None:
        async with self._session() as session:
            event = await session.get(Event, event_id)
            if event is None:
                return None
            old = event.to_row()
            for key, value in values.items():
                setattr(event, key, value)
            await session.commit()
            await session.refresh(event)
        await self._emit(Event.__tablename__, ChangeKind.UPDATE, new=event.to_row(), old=old)
        return event

    async def delete_event(self, event_id: uuid.UUID) -> bool:
        async with self._session() as session:
            event = await session.get(Event, event_id)
            if event is None:
                return False
            registrations = list(
                (await session.scalars(select(Registration).where(Registration.event_id == event_id))).all()
            )
            old_event = event.to_row()
            old_registrations = [registration.to_row() for registration in registrations]

            await session.execute(delete(Registration).where(Registration.event_id == event_id))
            await session.execute(
                update(Notification).where(Notification.event_id == event_id).values(event_id=None)
            )
            await session.delete(event)
            await session.commit()

        for row in old_registrations:
            await self._emit(Registration.__tablename__, ChangeKind.DELETE, old=row)
        await self._emit(Event.__tablename__, ChangeKind.DELETE, old=old_event)
        return True

    async def get_roster(self, event_id: uuid.UUID) -> list[str] | None:
        async with self._session() as session:
            roster = await session.scalar(select(Event.roster).where(Event.id == event_id))
        if roster is None:
            return None
        return list(roster)

    async def set_roster(self, event_id: uuid.UUID, roster: list[str]) -> bool:
        async with self._session() as session:
            event = await session.get(Event, event_id)
            if event is None:
                return False
            old = event.to_row()
            # A fresh list so the JSON column registers the change
            event.roster = list(roster)
            await session.commit()
            await session.refresh(event)
        await self._emit(Event.__tablename__, ChangeKind.UPDATE, new=event.to_row(), old=old)
        return True

    # Registrations

    async def get_registration(self, event_id: uuid.UUID, user_id: uuid.UUID) -> Registration | None:
        async with self._session() as session:
            return await session.scalar(
                select(Registration).where(
                    Registration.event_id == event_id,
                    Registration.user_id == user_id,
                )
            )

    async def insert_registration(self, event_id: uuid.UUID, user_id: uuid.UUID) -> Registration:
        registration = Registration(event_id=event_id, user_id=user_id, attended=False)
        async with self._session() as session:
            session.add(registration)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                if "unique" in str(exc.orig).lower():
                    raise AlreadyRegisteredError(message="already registered for this event") from exc
                raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found") from exc
            await session.refresh(registration)
        await self._emit(Registration.__tablename__, ChangeKind.INSERT, new=registration.to_row())
        return registration

    async def delete_registration(self, event_id: uuid.UUID, user_id: uuid.UUID) -> int:
        async with self._session() as session:
            registration = await session.scalar(
                select(Registration).where(
                    Registration.event_id == event_id,
                    Registration.user_id == user_id,
                )
            )
            if registration is None:
                return 0
            old = registration.to_row()
            await session.delete(registration)
            await session.commit()
        await self._emit(Registration.__tablename__, ChangeKind.DELETE, old=old)
        return 1

    async def update_registration(
        self, event_id: uuid.UUID, user_id: uuid.UUID, values: dict[str, Any]
    ) -> Registration | None:
        async with self._session() as session:
            registration = await session.scalar(
                select(Registration).where(
                    Registration.event_id == event_id,
                    Registration.user_id == user_id,
                )
            )
            if registration is None:
                return None
            old = registration.to_row()
            for key, value in values.items():
                setattr(registration, key, value)
            await session.commit()
            await session.refresh(registration)
        await self._emit(
            Registration.__tablename__, ChangeKind.UPDATE, new=registration.to_row(), old=old
        )
        return registration

    async def list_event_registrations(self, event_id: uuid.UUID) -> list[Registration]:
        stmt = (
            select(Registration)
            .where(Registration.event_id == event_id)
            .order_by(Registration.timestamp.desc())
        )
        async with self._session() as session:
            return list((await session.scalars(stmt)).all())

    async def list_registrations_for_events(self, event_ids: list[uuid.UUID]) -> list[Registration]:
        if not event_ids:
            return []
        stmt = select(Registration).where(Registration.event_id.in_(event_ids))
        async with self._session() as session:
            return list((await session.scalars(stmt)).all())

    async def list_user_registrations(self, user_id: uuid.UUID) -> list[tuple[Registration, Event]]:
        stmt = (
            select(Registration, Event)
            .join(Event, Event.id == Registration.event_id)
            .where(Registration.user_id == user_id)
            .order_by(Registration.timestamp.desc())
        )
        async with self._session() as session:
            rows = (await session.execute(stmt)).all()
        return [(registration, event) for registration, event in rows]

    # Notifications

    async def insert_notifications(self, rows: list[dict[str, Any]]) -> list[Notification]:
        if not rows:
            return []
        notifications = [Notification(**row) for row in rows]
        async with self._session() as session:
            session.add_all(notifications)
            await session.commit()
            for notification in notifications:
                await session.refresh(notification)
        for notification in notifications:
            await self._emit(Notification.__tablename__, ChangeKind.INSERT, new=notification.to_row())
        return notifications

    async def get_notification(self, notification_id: uuid.UUID) -> Notification | None:
        async with self._session() as session:
            return await session.get(Notification, notification_id)

    async def list_notifications(self, recipient_id: uuid.UUID, *, unread_only: bool = False) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.recipient_id == recipient_id)
            .order_by(Notification.sent_at.desc())
        )
        if unread_only:
            stmt = stmt.where(Notification.read.is_(False))
        async with self._session() as session:
            return list((await session.scalars(stmt)).all())

    async def update_notification(
        self, notification_id: uuid.UUID, values: dict[str, Any]
    ) -> Notification | None:
        async with self._session() as session:
            notification = await session.get(Notification, notification_id)
            if notification is None:
                return None
            old = notification.to_row()
            for key, value in values.items():
                setattr(notification, key, value)
            await session.commit()
            await session.refresh(notification)
        await self._emit(
            Notification.__tablename__, ChangeKind.UPDATE, new=notification.to_row(), old=old
        )
        return notification

    # Change feed

    def subscribe(
        self,
        table: str,
        handler: ChangeHandler,
        change_filter: ChangeFilter | None = None,
    ) -> Subscription:
        return self._feed.subscribe(table, handler, change_filter)

    async def close(self) -> None:
        await self._feed.close()
        if self._engine is not None:
            await self._engine.dispose()
