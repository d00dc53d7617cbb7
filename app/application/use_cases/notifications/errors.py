"""Errors raised by the notification use cases."""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for notification engine errors."""


class ValidationError(NotificationError):
    """The request is malformed; nothing was changed."""


class NotFoundError(NotificationError):
    """The user or notification does not exist (or is not visible to the caller)."""


class StoreError(NotificationError):
    """The notification store failed to persist or read data."""


class DeliveryChannelError(NotificationError):
    """A delivery channel (broadcast or email) failed for one notification."""

    def __init__(self, channel: str, reason: str) -> None:
        super().__init__(f"{channel} delivery failed: {reason}")
        self.channel = channel
        self.reason = reason


__all__ = [
    "DeliveryChannelError",
    "NotFoundError",
    "NotificationError",
    "StoreError",
    "ValidationError",
]
