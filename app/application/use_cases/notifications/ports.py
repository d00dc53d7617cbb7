"""Interfaces of the collaborators the notification engine depends on."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Protocol, Sequence

from app.domain.entities import (
    Family,
    ForumMember,
    Notification,
    NotificationFilters,
    NotificationPreferences,
    Page,
    Pagination,
    User,
)


class NotificationStore(Protocol):
    """Persistence of notifications and preferences.

    Implementations raise :class:`StoreError` when the backing storage fails.
    Only notifications whose ``expires_at`` is unset or in the future are
    returned by the read methods.
    """

    async def create(self, notification: Notification) -> Notification: ...

    async def get(self, notification_id: str) -> Notification | None: ...

    async def list_for_user(
        self, user_id: str, filters: NotificationFilters, pagination: Pagination
    ) -> Page[Notification]: ...

    async def list_unread_for_user(
        self, user_id: str, *, limit: int
    ) -> Sequence[Notification]: ...

    async def mark_read(self, notification_id: str) -> Notification | None: ...

    async def mark_all_read(self, user_id: str) -> int: ...

    async def mark_read_by_ids(self, user_id: str, ids: Iterable[str]) -> int: ...

    async def count_unread(self, user_id: str) -> int: ...

    async def delete(self, notification_id: str) -> bool: ...

    async def delete_expired(self) -> int: ...

    async def delete_old_read(self, older_than: datetime) -> int: ...

    async def get_preferences(self, user_id: str) -> NotificationPreferences | None: ...

    async def upsert_preferences(
        self, user_id: str, changes: dict[str, Any]
    ) -> NotificationPreferences: ...


class Broadcaster(Protocol):
    """Real-time push to a user's connected sessions."""

    async def push_unread_count(self, user_id: str, count: int) -> None: ...

    async def push_notification(self, notification: Notification) -> None: ...

    async def push_all_read(self, user_id: str) -> None: ...


@dataclass
class EmailSendResult:
    """Outcome reported by an :class:`EmailSender`."""

    success: bool
    message_id: str | None = None
    error: str | None = None


class EmailSender(Protocol):
    """Outbound transactional email transport."""

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        metadata: dict[str, Any] | None = None,
    ) -> EmailSendResult: ...


class RecipientDirectory(Protocol):
    """Resolve user ids into deliverable recipients."""

    async def get_recipient(self, user_id: str) -> User | None: ...


class FamilyDirectory(Protocol):
    """Resolve a family and its current members."""

    async def get_family(self, family_id: str) -> Family | None: ...


class FanoutLookups(Protocol):
    """Forum lookups used to derive the recipients of a forum event."""

    async def post_author(self, post_id: str) -> str | None: ...

    async def reply_author(self, reply_id: str) -> str | None: ...

    async def thread_participants(self, post_id: str) -> Iterable[str]: ...

    async def forum_members(self, forum_id: str) -> Iterable[ForumMember]: ...


@dataclass
class StaticFanoutLookups:
    """In-memory :class:`FanoutLookups` for callers that already hold the data."""

    post_authors: dict[str, str] = field(default_factory=dict)
    reply_authors: dict[str, str] = field(default_factory=dict)
    participants: dict[str, list[str]] = field(default_factory=dict)
    members: dict[str, list[ForumMember]] = field(default_factory=dict)

    async def post_author(self, post_id: str) -> str | None:
        return self.post_authors.get(post_id)

    async def reply_author(self, reply_id: str) -> str | None:
        return self.reply_authors.get(reply_id)

    async def thread_participants(self, post_id: str) -> Iterable[str]:
        return list(self.participants.get(post_id, []))

    async def forum_members(self, forum_id: str) -> Iterable[ForumMember]:
        return list(self.members.get(forum_id, []))


@dataclass
class StaticFamilyDirectory:
    """In-memory :class:`FamilyDirectory` keyed by family id."""

    families: dict[str, Family] = field(default_factory=dict)

    async def get_family(self, family_id: str) -> Family | None:
        return self.families.get(family_id)


__all__ = [
    "Broadcaster",
    "EmailSendResult",
    "EmailSender",
    "FamilyDirectory",
    "FanoutLookups",
    "NotificationStore",
    "RecipientDirectory",
    "StaticFamilyDirectory",
    "StaticFanoutLookups",
]
