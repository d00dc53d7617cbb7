"""In-memory collaborators used by the notification engine tests."""

from __future__ import annotations

import itertools
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Iterable

import anyio

from app.application.use_cases.notifications import EmailSendResult, StoreError
from app.domain.entities import (
    Notification,
    NotificationFilters,
    NotificationPreferences,
    Page,
    Pagination,
    User,
    type_key,
)
from app.utils import utc_now


class InMemoryNotificationStore:
    """Dict backed store that records which operations were called."""

    def __init__(self, *, fail_create_for: Iterable[str] = ()) -> None:
        self.notifications: dict[str, Notification] = {}
        self.preferences: dict[str, NotificationPreferences] = {}
        self.calls: list[str] = []
        self.fail_create_for = set(fail_create_for)
        self.create_delays: dict[str, float] = {}
        self._ids = itertools.count(1)
        self._sequence: dict[str, int] = {}

    def _visible(self, notification: Notification) -> bool:
        return notification.is_visible_at(utc_now())

    def _sorted(self, notifications: Iterable[Notification]) -> list[Notification]:
        return sorted(
            notifications,
            key=lambda item: (item.created_at, self._sequence[item.id]),
            reverse=True,
        )

    def _for_user(self, user_id: str) -> list[Notification]:
        return [
            notification
            for notification in self.notifications.values()
            if notification.user_id == user_id and self._visible(notification)
        ]

    async def create(self, notification: Notification) -> Notification:
        self.calls.append("create")
        delay = self.create_delays.get(notification.user_id)
        if delay:
            await anyio.sleep(delay)
        if notification.user_id in self.fail_create_for:
            raise StoreError("database unavailable")
        sequence = next(self._ids)
        saved = replace(
            notification,
            id=f"n{sequence}",
            data=dict(notification.data),
            created_at=notification.created_at or utc_now(),
        )
        self._sequence[saved.id] = sequence
        self.notifications[saved.id] = saved
        return replace(saved)

    async def get(self, notification_id: str) -> Notification | None:
        self.calls.append("get")
        notification = self.notifications.get(notification_id)
        if notification is None or not self._visible(notification):
            return None
        return replace(notification)

    async def list_for_user(
        self, user_id: str, filters: NotificationFilters, pagination: Pagination
    ) -> Page[Notification]:
        self.calls.append("list_for_user")
        items = self._for_user(user_id)
        if filters.is_read is not None:
            items = [item for item in items if item.is_read is filters.is_read]
        if filters.type:
            items = [item for item in items if item.type == type_key(filters.type)]
        ordered = self._sorted(items)
        window = ordered[pagination.offset : pagination.offset + pagination.limit]
        return Page(
            items=[replace(item) for item in window],
            total=len(ordered),
            page=pagination.page,
            limit=pagination.limit,
        )

    async def list_unread_for_user(self, user_id: str, *, limit: int) -> list[Notification]:
        self.calls.append("list_unread_for_user")
        unread = [item for item in self._for_user(user_id) if not item.is_read]
        return [replace(item) for item in self._sorted(unread)[:limit]]

    def _mark(self, notification: Notification) -> bool:
        if notification.is_read:
            return False
        notification.is_read = True
        notification.read_at = utc_now()
        return True

    async def mark_read(self, notification_id: str) -> Notification | None:
        self.calls.append("mark_read")
        notification = self.notifications.get(notification_id)
        if notification is None:
            return None
        self._mark(notification)
        return replace(notification)

    async def mark_all_read(self, user_id: str) -> int:
        self.calls.append("mark_all_read")
        return sum(self._mark(item) for item in self._for_user(user_id))

    async def mark_read_by_ids(self, user_id: str, ids: Iterable[str]) -> int:
        self.calls.append("mark_read_by_ids")
        marked = 0
        for notification_id in ids:
            notification = self.notifications.get(notification_id)
            if notification is not None and notification.user_id == user_id:
                marked += self._mark(notification)
        return marked

    async def count_unread(self, user_id: str) -> int:
        self.calls.append("count_unread")
        return sum(1 for item in self._for_user(user_id) if not item.is_read)

    async def delete(self, notification_id: str) -> bool:
        self.calls.append("delete")
        return self.notifications.pop(notification_id, None) is not None

    async def delete_expired(self) -> int:
        self.calls.append("delete_expired")
        expired = [key for key, item in self.notifications.items() if not self._visible(item)]
        for key in expired:
            del self.notifications[key]
        return len(expired)

    async def delete_old_read(self, older_than: datetime) -> int:
        self.calls.append("delete_old_read")
        stale = [
            key
            for key, item in self.notifications.items()
            if item.is_read and item.read_at is not None and item.read_at < older_than
        ]
        for key in stale:
            del self.notifications[key]
        return len(stale)

    async def get_preferences(self, user_id: str) -> NotificationPreferences | None:
        self.calls.append("get_preferences")
        stored = self.preferences.get(user_id)
        return replace(stored) if stored else None

    async def upsert_preferences(
        self, user_id: str, changes: dict[str, Any]
    ) -> NotificationPreferences:
        self.calls.append("upsert_preferences")
        current = self.preferences.get(user_id) or NotificationPreferences.defaults_for(user_id)
        updated = replace(current, **changes, persisted=True, updated_at=utc_now())
        self.preferences[user_id] = updated
        return replace(updated)

    def seed(self, user_id: str, *, data: dict | None = None, is_read: bool = False,
             expires_in: timedelta | None = None, type: str = "MESSAGE") -> Notification:
        """Insert a notification directly, bypassing the call log."""

        sequence = next(self._ids)
        notification = Notification(
            id=f"n{sequence}",
            user_id=user_id,
            type=type,
            title=f"Notification {sequence}",
            message="Seeded",
            data=dict(data or {}),
            is_read=is_read,
            read_at=utc_now() if is_read else None,
            created_at=utc_now(),
            expires_at=utc_now() + expires_in if expires_in is not None else None,
        )
        self._sequence[notification.id] = sequence
        self.notifications[notification.id] = notification
        return notification


class RecordingBroadcaster:
    """Broadcaster that keeps every pushed event."""

    def __init__(self, *, fail: bool = False) -> None:
        self.events: list[tuple[str, str, Any]] = []
        self.fail = fail

    async def push_unread_count(self, user_id: str, count: int) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.events.append(("unread-count", user_id, count))

    async def push_notification(self, notification: Notification) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.events.append(("notification", notification.user_id, notification.id))

    async def push_all_read(self, user_id: str) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.events.append(("all-read", user_id, None))

    def of_kind(self, kind: str) -> list[tuple[str, str, Any]]:
        return [event for event in self.events if event[0] == kind]


class RecordingEmailSender:
    """Email sender returning a configurable result after an optional delay."""

    def __init__(
        self,
        result: EmailSendResult | None = None,
        *,
        delay: float = 0,
        error: Exception | None = None,
    ) -> None:
        self.result = result or EmailSendResult(success=True, message_id="msg-1")
        self.delay = delay
        self.error = error
        self.sent: list[dict[str, Any]] = []

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        metadata: dict[str, Any] | None = None,
    ) -> EmailSendResult:
        if self.delay:
            await anyio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.sent.append({"to": to, "subject": subject, "body": body, "metadata": metadata})
        return self.result


class FakeDirectory:
    """Recipient directory over a fixed set of users."""

    def __init__(self, *users: User) -> None:
        self.users = {user.id: user for user in users}

    async def get_recipient(self, user_id: str) -> User | None:
        return self.users.get(user_id)

    @classmethod
    def for_ids(cls, *user_ids: str) -> "FakeDirectory":
        return cls(
            *(
                User(id=user_id, email=f"{user_id}@example.com", first_name=user_id.title())
                for user_id in user_ids
            )
        )
