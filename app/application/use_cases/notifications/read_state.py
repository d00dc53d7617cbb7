"""Read-state transitions of a user's inbox and the matching count pushes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Final, Iterable

from app.domain.entities import Notification, NotificationFilters, Page, Pagination

from .errors import NotFoundError, ValidationError
from .ports import Broadcaster, NotificationStore

logger = logging.getLogger(__name__)

ALLOWED_SOURCE_FIELDS: Final[tuple[str, ...]] = (
    "conversationId",
    "postId",
    "forumId",
    "resourceId",
    "alertId",
    "announcementId",
)

MAX_PAGE_SIZE = 100


def invalid_source_field_message() -> str:
    return f"sourceField must be one of: {', '.join(ALLOWED_SOURCE_FIELDS)}"


def matches_source(notification: Notification, source_field: str, source_value: str) -> bool:
    """Return ``True`` when ``data[source_field]`` equals ``source_value``.

    Strings and numbers are compared by their string form; booleans, nested
    values and missing keys never match.
    """

    candidate: Any = (notification.data or {}).get(source_field)
    if candidate is None or isinstance(candidate, (bool, dict, list)):
        return False
    return str(candidate) == source_value


async def _push_unread_count(
    store: NotificationStore, broadcaster: Broadcaster, user_id: str
) -> int:
    count = await store.count_unread(user_id)
    try:
        await broadcaster.push_unread_count(user_id, count)
    except Exception:
        logger.warning("Failed to push unread count to user %s", user_id, exc_info=True)
    return count


@dataclass(frozen=True)
class SourceReadResult:
    marked_count: int

    @property
    def message(self) -> str:
        if self.marked_count == 0:
            return "No matching unread notifications found"
        return f"Marked {self.marked_count} notification(s) as read"


class SourceReadReconciler:
    """Mark every unread notification that references a source entity as read.

    Used when the user opens a conversation, post or alert so the matching
    inbox entries clear in one batch.
    """

    def __init__(
        self,
        store: NotificationStore,
        broadcaster: Broadcaster,
        *,
        scan_limit: int = 1000,
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._scan_limit = scan_limit

    async def mark_read_by_source(
        self, user_id: str, source_field: str, source_value: Any
    ) -> SourceReadResult:
        if source_field not in ALLOWED_SOURCE_FIELDS:
            raise ValidationError(invalid_source_field_message())
        value = source_value.strip() if isinstance(source_value, str) else ""
        if not value:
            raise ValidationError("sourceValue must be a non-empty string")

        unread = await self._store.list_unread_for_user(user_id, limit=self._scan_limit)
        matching = [
            notification.id
            for notification in unread
            if notification.id and matches_source(notification, source_field, value)
        ]
        if not matching:
            return SourceReadResult(marked_count=0)

        marked = await self._store.mark_read_by_ids(user_id, matching)
        if marked:
            await _push_unread_count(self._store, self._broadcaster, user_id)
        logger.info(
            "Marked %s notification(s) read for user %s by %s=%s",
            marked,
            user_id,
            source_field,
            value,
        )
        return SourceReadResult(marked_count=marked)


@dataclass
class NotificationListing:
    page: Page[Notification]
    unread_count: int


def _validate_pagination(pagination: Pagination) -> None:
    if pagination.page < 1:
        raise ValidationError("page must be greater than or equal to 1")
    if not 1 <= pagination.limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")


async def list_notifications(
    store: NotificationStore,
    user_id: str,
    filters: NotificationFilters | None = None,
    pagination: Pagination | None = None,
) -> NotificationListing:
    """Return a page of visible notifications, newest first, with the unread count."""

    pagination = pagination or Pagination()
    _validate_pagination(pagination)
    page = await store.list_for_user(user_id, filters or NotificationFilters(), pagination)
    unread = await store.count_unread(user_id)
    return NotificationListing(page=page, unread_count=unread)


async def get_notification(
    store: NotificationStore, user_id: str, notification_id: str
) -> Notification:
    notification = await store.get(notification_id)
    if notification is None or notification.user_id != user_id:
        raise NotFoundError("Notification not found")
    return notification


async def mark_notification_read(
    store: NotificationStore,
    broadcaster: Broadcaster,
    user_id: str,
    notification_id: str,
) -> Notification:
    await get_notification(store, user_id, notification_id)
    updated = await store.mark_read(notification_id)
    if updated is None:
        raise NotFoundError("Notification not found")
    await _push_unread_count(store, broadcaster, user_id)
    return updated


async def mark_all_notifications_read(
    store: NotificationStore, broadcaster: Broadcaster, user_id: str
) -> int:
    marked = await store.mark_all_read(user_id)
    try:
        await broadcaster.push_all_read(user_id)
        await broadcaster.push_unread_count(user_id, 0)
    except Exception:
        logger.warning("Failed to push all-read event to user %s", user_id, exc_info=True)
    logger.info("Marked %s notification(s) read for user %s", marked, user_id)
    return marked


async def acknowledge_notifications(
    store: NotificationStore,
    broadcaster: Broadcaster,
    user_id: str,
    notification_ids: Iterable[Any],
) -> int:
    """Mark the given ids read for ``user_id``; ids owned by others are ignored."""

    ids = [str(item) for item in notification_ids if isinstance(item, (str, int)) and str(item)]
    if not ids:
        return 0
    marked = await store.mark_read_by_ids(user_id, ids)
    if marked:
        await _push_unread_count(store, broadcaster, user_id)
    return marked


async def delete_notification(
    store: NotificationStore,
    broadcaster: Broadcaster,
    user_id: str,
    notification_id: str,
) -> None:
    await get_notification(store, user_id, notification_id)
    if not await store.delete(notification_id):
        raise NotFoundError("Notification not found")
    await _push_unread_count(store, broadcaster, user_id)


__all__ = [
    "ALLOWED_SOURCE_FIELDS",
    "NotificationListing",
    "SourceReadReconciler",
    "SourceReadResult",
    "acknowledge_notifications",
    "delete_notification",
    "get_notification",
    "invalid_source_field_message",
    "list_notifications",
    "mark_all_notifications_read",
    "mark_notification_read",
    "matches_source",
]
