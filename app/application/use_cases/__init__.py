"""Aggregate application use cases."""

from .notifications import NotificationDispatcher, update_preferences

__all__ = [
    "NotificationDispatcher",
    "update_preferences",
]
