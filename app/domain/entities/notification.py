"""Domain entities describing user notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Sequence, TypeVar

T = TypeVar("T")


class NotificationType(str, Enum):
    """Well-known notification categories.

    ``Notification.type`` is stored as a plain string so that new categories
    can be introduced by callers without a schema change.
    """

    MESSAGE = "MESSAGE"
    CARE_UPDATE = "CARE_UPDATE"
    SYSTEM_ANNOUNCEMENT = "SYSTEM_ANNOUNCEMENT"
    FAMILY_ACTIVITY = "FAMILY_ACTIVITY"
    EMERGENCY_ALERT = "EMERGENCY_ALERT"


def type_key(notification_type: "str | NotificationType") -> str:
    """Return the stored string form of a notification type."""

    if isinstance(notification_type, Enum):
        return str(notification_type.value)
    return str(notification_type)


class Channel(str, Enum):
    """Delivery mechanisms for a notification."""

    IN_APP = "in_app"
    EMAIL = "email"


@dataclass
class NotificationContent:
    """Caller supplied content of a notification before it is persisted."""

    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    rich_message: str | None = None
    is_actionable: bool = False
    action_url: str | None = None
    cta_label: str | None = None
    secondary_url: str | None = None
    secondary_label: str | None = None
    image_url: str | None = None
    thumbnail_url: str | None = None
    expires_at: datetime | None = None


@dataclass
class Notification:
    """Information message delivered to a specific user."""

    id: str | None
    user_id: str
    type: str
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    rich_message: str | None = None
    is_actionable: bool = False
    action_url: str | None = None
    cta_label: str | None = None
    secondary_url: str | None = None
    secondary_label: str | None = None
    image_url: str | None = None
    thumbnail_url: str | None = None
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None

    @classmethod
    def from_content(
        cls, *, user_id: str, notification_type: str, content: NotificationContent
    ) -> "Notification":
        """Build an unsaved notification for ``user_id`` from ``content``."""

        return cls(
            id=None,
            user_id=user_id,
            type=type_key(notification_type),
            title=content.title,
            message=content.message,
            data=dict(content.data or {}),
            rich_message=content.rich_message,
            is_actionable=content.is_actionable,
            action_url=content.action_url,
            cta_label=content.cta_label,
            secondary_url=content.secondary_url,
            secondary_label=content.secondary_label,
            image_url=content.image_url,
            thumbnail_url=content.thumbnail_url,
            expires_at=content.expires_at,
        )

    def is_visible_at(self, moment: datetime) -> bool:
        """Return ``True`` while the notification has not expired."""

        return self.expires_at is None or self.expires_at > moment


@dataclass(frozen=True)
class NotificationFilters:
    """Optional filters applied when listing a user's notifications."""

    is_read: bool | None = None
    type: str | None = None


@dataclass(frozen=True)
class Pagination:
    """1-based page request."""

    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (max(self.page, 1) - 1) * self.limit


@dataclass
class Page(Generic[T]):
    """A slice of results together with paging metadata."""

    items: Sequence[T]
    total: int
    page: int
    limit: int

    @property
    def has_next_page(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1


__all__ = [
    "Channel",
    "Notification",
    "NotificationContent",
    "NotificationFilters",
    "NotificationType",
    "Page",
    "Pagination",
    "type_key",
]
