"""Async adapters exposing the SQLAlchemy repositories to the notification engine."""

from __future__ import annotations

import logging
from datetime import datetime
from functools import partial
from typing import Any, Callable, Iterable, Sequence, TypeVar

from anyio import to_thread
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.application.use_cases.notifications.errors import StoreError
from app.domain.entities import (
    Notification,
    NotificationFilters,
    NotificationPreferences,
    Page,
    Pagination,
    User,
)
from app.infrastructure.repositories import (
    NotificationPreferencesRepository,
    NotificationRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _ThreadedSessionRunner:
    """Run blocking repository calls on a worker thread, one session per call."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    async def _run(self, operation: Callable[[Session], T]) -> T:
        return await to_thread.run_sync(partial(self._run_sync, operation))

    def _run_sync(self, operation: Callable[[Session], T]) -> T:
        session = self._session_factory()
        try:
            return operation(session)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Notification store operation failed: %s", exc)
            raise StoreError(str(exc)) from exc
        finally:
            session.close()


class SqlNotificationStore(_ThreadedSessionRunner):
    """:class:`NotificationStore` backed by the SQLAlchemy repositories."""

    async def create(self, notification: Notification) -> Notification:
        return await self._run(lambda session: NotificationRepository(session).create(notification))

    async def get(self, notification_id: str) -> Notification | None:
        return await self._run(lambda session: NotificationRepository(session).get(notification_id))

    async def list_for_user(
        self, user_id: str, filters: NotificationFilters, pagination: Pagination
    ) -> Page[Notification]:
        return await self._run(
            lambda session: NotificationRepository(session).list_for_user(
                user_id, filters, pagination
            )
        )

    async def list_unread_for_user(
        self, user_id: str, *, limit: int
    ) -> Sequence[Notification]:
        return await self._run(
            lambda session: NotificationRepository(session).list_unread_for_user(
                user_id, limit=limit
            )
        )

    async def mark_read(self, notification_id: str) -> Notification | None:
        return await self._run(lambda session: NotificationRepository(session).mark_read(notification_id))

    async def mark_all_read(self, user_id: str) -> int:
        return await self._run(lambda session: NotificationRepository(session).mark_all_read(user_id))

    async def mark_read_by_ids(self, user_id: str, ids: Iterable[str]) -> int:
        id_list = list(ids)
        return await self._run(
            lambda session: NotificationRepository(session).mark_read_by_ids(user_id, id_list)
        )

    async def count_unread(self, user_id: str) -> int:
        return await self._run(lambda session: NotificationRepository(session).count_unread(user_id))

    async def delete(self, notification_id: str) -> bool:
        return await self._run(lambda session: NotificationRepository(session).delete(notification_id))

    async def delete_expired(self) -> int:
        return await self._run(lambda session: NotificationRepository(session).delete_expired())

    async def delete_old_read(self, older_than: datetime) -> int:
        return await self._run(
            lambda session: NotificationRepository(session).delete_old_read(older_than)
        )

    async def get_preferences(self, user_id: str) -> NotificationPreferences | None:
        return await self._run(
            lambda session: NotificationPreferencesRepository(session).get(user_id)
        )

    async def upsert_preferences(
        self, user_id: str, changes: dict[str, Any]
    ) -> NotificationPreferences:
        return await self._run(
            lambda session: NotificationPreferencesRepository(session).upsert(user_id, changes)
        )


class SqlRecipientDirectory(_ThreadedSessionRunner):
    """:class:`RecipientDirectory` backed by the ``user`` table."""

    async def get_recipient(self, user_id: str) -> User | None:
        user = await self._run(lambda session: UserRepository(session).get(user_id))
        if user is None or not user.is_active:
            return None
        return user


__all__ = ["SqlNotificationStore", "SqlRecipientDirectory"]
