"""Persistence helpers for notification preferences."""

from __future__ import annotations

import logging
from dataclasses import fields
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.domain.entities import NotificationPreferences
from app.infrastructure.models import NotificationPreferencesModel
from app.utils import ensure_naive_utc, ensure_utc, utc_now

logger = logging.getLogger(__name__)

_STORED_FIELDS = tuple(
    item.name
    for item in fields(NotificationPreferences)
    if item.name not in {"user_id", "created_at", "updated_at", "persisted"}
)


class NotificationPreferencesRepository:
    """Read and upsert the single preferences row of a user."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: str) -> NotificationPreferences | None:
        model = self.session.get(NotificationPreferencesModel, user_id)
        return self._to_entity(model) if model else None

    def upsert(self, user_id: str, changes: dict[str, Any]) -> NotificationPreferences:
        """Apply ``changes`` to the stored row, creating it from the defaults.

        When another writer creates the row between the lookup and the insert,
        the insert is rolled back and ``changes`` are applied to their row.
        """

        now = ensure_naive_utc(utc_now())
        model = self._load(user_id)
        if model is None:
            try:
                model = self._insert_defaults(user_id, now)
            except IntegrityError:
                self.session.rollback()
                model = self._load(user_id)
                if model is None:
                    raise
                logger.info("Preferences for user %s were created concurrently", user_id)

        for name, value in changes.items():
            if name in _STORED_FIELDS:
                setattr(model, name, value)
        model.updated_at = now

        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def _load(self, user_id: str) -> NotificationPreferencesModel | None:
        return self.session.get(NotificationPreferencesModel, user_id, populate_existing=True)

    def _insert_defaults(self, user_id: str, now: datetime) -> NotificationPreferencesModel:
        defaults = NotificationPreferences.defaults_for(user_id)
        model = NotificationPreferencesModel(user_id=user_id, created_at=now)
        for name in _STORED_FIELDS:
            setattr(model, name, getattr(defaults, name))
        self.session.add(model)
        self.session.flush()
        return model

    @staticmethod
    def _to_entity(model: NotificationPreferencesModel) -> NotificationPreferences:
        values = {name: getattr(model, name) for name in _STORED_FIELDS}
        return NotificationPreferences(
            user_id=model.user_id,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
            persisted=True,
            **values,
        )


__all__ = ["NotificationPreferencesRepository"]
