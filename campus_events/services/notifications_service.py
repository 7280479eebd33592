from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog

from campus_events.gateway.base import DataGateway
from campus_events.models import Notification, User
from campus_events.services.error_codes import ErrorCode
from campus_events.services.events_service import get_event, require_owner
from campus_events.services.exceptions import NotFoundError, PermissionDeniedError, ValidationError

logger = structlog.get_logger()


async def broadcast(
    gateway: DataGateway,
    sender: User,
    event_id: uuid.UUID,
    title: str,
    body: str,
) -> list[Notification]:
    """Store one notification per student registered for the event.

    Delivery to devices happens outside this service.
    """
    title, body = title.strip(), body.strip()
    if not title or not body:
        raise ValidationError(ErrorCode.INVALID_INPUT.value, "title and body are required")

    event = await get_event(gateway, event_id)
    require_owner(sender, event)

    registrations = await gateway.list_event_registrations(event.id)
    sent_at = datetime.now(timezone.utc)
    notifications = await gateway.insert_notifications(
        [
            {
                "title": title,
                "body": body,
                "event_id": event.id,
                "recipient_id": registration.user_id,
                "sender_id": sender.id,
                "sent_at": sent_at,
                "read": False,
            }
            for registration in registrations
        ]
    )
    logger.info("notification_broadcast", event_id=str(event.id), recipients=len(notifications))
    return notifications


async def list_notifications(
    gateway: DataGateway, user_id: uuid.UUID, *, unread_only: bool = False
) -> list[Notification]:
    return await gateway.list_notifications(user_id, unread_only=unread_only)


async def mark_read(gateway: DataGateway, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
    notification = await gateway.get_notification(notification_id)
    if notification is None:
        raise NotFoundError(ErrorCode.NOTIFICATION_NOT_FOUND.value, "notification not found")
    if notification.recipient_id != user_id:
        raise PermissionDeniedError(ErrorCode.NOT_RECIPIENT.value, "not the recipient of this notification")
    if notification.read:
        return notification

    updated = await gateway.update_notification(notification.id, {"read": True})
    if updated is None:
        raise NotFoundError(ErrorCode.NOTIFICATION_NOT_FOUND.value, "notification not found")
    return updated
