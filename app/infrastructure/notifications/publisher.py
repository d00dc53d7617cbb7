"""Push notification events to websocket subscribers."""

from __future__ import annotations

import logging
from typing import Any

from app.domain.entities import Notification

from .manager import NotificationConnectionManager

logger = logging.getLogger(__name__)

NOTIFICATION_EVENT = "notification"
UNREAD_COUNT_EVENT = "unread-count"
ALL_READ_EVENT = "all-read"


def _isoformat(value) -> str | None:
    return value.isoformat() if value else None


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    return {
        "id": notification.id,
        "userId": notification.user_id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "richMessage": notification.rich_message,
        "data": notification.data or {},
        "isActionable": notification.is_actionable,
        "actionUrl": notification.action_url,
        "ctaLabel": notification.cta_label,
        "secondaryUrl": notification.secondary_url,
        "secondaryLabel": notification.secondary_label,
        "imageUrl": notification.image_url,
        "thumbnailUrl": notification.thumbnail_url,
        "isRead": notification.is_read,
        "readAt": _isoformat(notification.read_at),
        "createdAt": _isoformat(notification.created_at),
        "expiresAt": _isoformat(notification.expires_at),
    }


class RealtimeBroadcaster:
    """Serialize notification events and send them to a user's open sockets."""

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager

    async def _send(self, user_id: str, event: str, data: dict[str, Any]) -> None:
        if not self._manager.is_connected(user_id):
            logger.debug("No open connection for user %s; %s event not pushed", user_id, event)
            return
        await self._manager.send_to_user(user_id, {"type": event, "data": data})

    async def push_notification(self, notification: Notification) -> None:
        await self._send(
            notification.user_id, NOTIFICATION_EVENT, serialize_notification(notification)
        )

    async def push_unread_count(self, user_id: str, count: int) -> None:
        await self._send(user_id, UNREAD_COUNT_EVENT, {"count": count})

    async def push_all_read(self, user_id: str) -> None:
        await self._send(user_id, ALL_READ_EVENT, {})


__all__ = [
    "ALL_READ_EVENT",
    "NOTIFICATION_EVENT",
    "RealtimeBroadcaster",
    "UNREAD_COUNT_EVENT",
    "serialize_notification",
]
