"""Realtime and persistence adapters for the notification engine."""

from .manager import NotificationConnectionManager, RealtimeSession, notification_manager
from .publisher import (
    RealtimeBroadcaster,
    serialize_notification,
)
from .store import SqlNotificationStore, SqlRecipientDirectory

__all__ = [
    "NotificationConnectionManager",
    "notification_manager",
    "RealtimeSession",
    "RealtimeBroadcaster",
    "serialize_notification",
    "SqlNotificationStore",
    "SqlRecipientDirectory",
]
