"""Repository implementations for infrastructure layer."""

from .user_repository import UserRepository
from .notification_repository import NotificationRepository
from .notification_preferences_repository import NotificationPreferencesRepository

__all__ = [
    "UserRepository",
    "NotificationRepository",
    "NotificationPreferencesRepository",
]
