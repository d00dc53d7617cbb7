"""Domain entities exposed by the application."""

from .fanout import (
    MODERATION_ROLES,
    DispatchContext,
    FanoutEvent,
    ForumMember,
    NotificationPayload,
    NotificationTemplate,
    RecipientRole,
)
from .family import Family
from .notification import (
    Channel,
    Notification,
    NotificationContent,
    NotificationFilters,
    NotificationType,
    Page,
    Pagination,
    type_key,
)
from .notification_preferences import NotificationPreferences, PreferencesUpdate
from .user import User

__all__ = [
    "Channel",
    "DispatchContext",
    "Family",
    "FanoutEvent",
    "ForumMember",
    "MODERATION_ROLES",
    "Notification",
    "NotificationContent",
    "NotificationFilters",
    "NotificationPayload",
    "NotificationPreferences",
    "NotificationTemplate",
    "NotificationType",
    "Page",
    "Pagination",
    "PreferencesUpdate",
    "RecipientRole",
    "User",
    "type_key",
]
