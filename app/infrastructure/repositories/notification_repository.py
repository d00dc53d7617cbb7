"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Iterable

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from app.domain.entities import (
    Notification,
    NotificationFilters,
    Page,
    Pagination,
    type_key,
)
from app.infrastructure.models import NotificationModel
from app.utils import ensure_naive_utc, ensure_utc, utc_now


class NotificationRepository:
    """Provide CRUD and read-state operations for :class:`Notification` objects.

    Read methods only return notifications that have not expired yet.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, notification_id: str, *, now: datetime | None = None) -> Notification | None:
        model = self._visible(now).filter(NotificationModel.id == notification_id).first()
        return self._to_entity(model) if model else None

    def list_for_user(
        self,
        user_id: str,
        filters: NotificationFilters,
        pagination: Pagination,
        *,
        now: datetime | None = None,
    ) -> Page[Notification]:
        query = self._visible(now).filter(NotificationModel.user_id == user_id)
        if filters.is_read is not None:
            query = query.filter(NotificationModel.is_read.is_(filters.is_read))
        if filters.type:
            query = query.filter(NotificationModel.type == type_key(filters.type))

        total = query.count()
        models = (
            query.order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
            .offset(pagination.offset)
            .limit(pagination.limit)
            .all()
        )
        return Page(
            items=[self._to_entity(model) for model in models],
            total=total,
            page=pagination.page,
            limit=pagination.limit,
        )

    def list_unread_for_user(
        self, user_id: str, *, limit: int | None = 50, now: datetime | None = None
    ) -> Sequence[Notification]:
        query = (
            self._visible(now)
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.is_read.is_(False))
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def count_unread(self, user_id: str, *, now: datetime | None = None) -> int:
        return (
            self._visible(now)
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.is_read.is_(False))
            .count()
        )

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_read(self, notification_id: str) -> Notification | None:
        self.session.query(NotificationModel).filter(
            NotificationModel.id == notification_id,
            NotificationModel.is_read.is_(False),
        ).update(self._read_values(), synchronize_session=False)
        self.session.commit()
        model = self.session.get(NotificationModel, notification_id)
        if model is None:
            return None
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_all_read(self, user_id: str) -> int:
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.user_id == user_id,
                NotificationModel.is_read.is_(False),
            )
            .update(self._read_values(), synchronize_session=False)
        )
        self.session.commit()
        return updated

    def mark_read_by_ids(self, user_id: str, notification_ids: Iterable[str]) -> int:
        ids = [notification_id for notification_id in notification_ids if notification_id]
        if not ids:
            return 0
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id.in_(ids),
                NotificationModel.user_id == user_id,
                NotificationModel.is_read.is_(False),
            )
            .update(self._read_values(), synchronize_session=False)
        )
        self.session.commit()
        return updated

    def delete(self, notification_id: str) -> bool:
        deleted = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id == notification_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted > 0

    def delete_expired(self, *, now: datetime | None = None) -> int:
        moment = ensure_naive_utc(now or utc_now())
        deleted = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.expires_at.is_not(None))
            .filter(NotificationModel.expires_at <= moment)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def delete_old_read(self, older_than: datetime) -> int:
        deleted = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.is_read.is_(True))
            .filter(NotificationModel.read_at.is_not(None))
            .filter(NotificationModel.read_at < ensure_naive_utc(older_than))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def _visible(self, now: datetime | None) -> Query:
        moment = ensure_naive_utc(now or utc_now())
        return self.session.query(NotificationModel).filter(
            or_(
                NotificationModel.expires_at.is_(None),
                NotificationModel.expires_at > moment,
            )
        )

    @staticmethod
    def _read_values() -> dict:
        return {
            NotificationModel.is_read: True,
            NotificationModel.read_at: ensure_naive_utc(utc_now()),
        }

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        if notification.id:
            model.id = notification.id
        model.user_id = notification.user_id
        model.type = type_key(notification.type)
        model.title = notification.title
        model.message = notification.message
        model.rich_message = notification.rich_message
        model.data = dict(notification.data or {})
        model.is_actionable = notification.is_actionable
        model.action_url = notification.action_url
        model.cta_label = notification.cta_label
        model.secondary_url = notification.secondary_url
        model.secondary_label = notification.secondary_label
        model.image_url = notification.image_url
        model.thumbnail_url = notification.thumbnail_url
        model.is_read = notification.is_read
        model.read_at = ensure_naive_utc(notification.read_at)
        model.created_at = ensure_naive_utc(notification.created_at or utc_now())
        model.expires_at = ensure_naive_utc(notification.expires_at)

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type=model.type,
            title=model.title,
            message=model.message,
            data=model.data or {},
            rich_message=model.rich_message,
            is_actionable=model.is_actionable,
            action_url=model.action_url,
            cta_label=model.cta_label,
            secondary_url=model.secondary_url,
            secondary_label=model.secondary_label,
            image_url=model.image_url,
            thumbnail_url=model.thumbnail_url,
            is_read=model.is_read,
            read_at=ensure_utc(model.read_at),
            created_at=ensure_utc(model.created_at),
            expires_at=ensure_utc(model.expires_at),
        )


__all__ = ["NotificationRepository"]
