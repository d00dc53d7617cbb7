"""Loading and updating a user's notification preferences."""

from __future__ import annotations

from dataclasses import replace

from app.domain.entities import NotificationPreferences, PreferencesUpdate

from .errors import ValidationError
from .ports import NotificationStore

QUIET_HOURS_PAIR_REQUIRED = (
    "Quiet hours start and end times are required when quiet hours are enabled"
)


class PreferenceResolver:
    """Read preferences with defaults and write partial updates."""

    def __init__(self, store: NotificationStore) -> None:
        self._store = store

    async def get(self, user_id: str) -> NotificationPreferences:
        """Return the stored preferences or an unsaved default record."""

        stored = await self._store.get_preferences(user_id)
        if stored is None:
            return NotificationPreferences.defaults_for(user_id)
        return stored

    async def upsert(
        self, user_id: str, update: PreferencesUpdate
    ) -> NotificationPreferences:
        """Merge the supplied fields into the stored (or default) preferences."""

        return await self._store.upsert_preferences(user_id, update.changes())


def merge_preferences(
    current: NotificationPreferences, update: PreferencesUpdate
) -> NotificationPreferences:
    """Return ``current`` with the supplied fields of ``update`` applied."""

    return replace(current, **update.changes())


def validate_quiet_hours(preferences: NotificationPreferences) -> None:
    """Reject an enabled quiet-hours window that lacks a start or an end."""

    if preferences.quiet_hours_enabled and not (
        preferences.quiet_hours_start and preferences.quiet_hours_end
    ):
        raise ValidationError(QUIET_HOURS_PAIR_REQUIRED)


async def update_preferences(
    resolver: PreferenceResolver, user_id: str, update: PreferencesUpdate
) -> NotificationPreferences:
    """Validate the merged state of ``update`` and persist it."""

    current = await resolver.get(user_id)
    validate_quiet_hours(merge_preferences(current, update))
    return await resolver.upsert(user_id, update)


__all__ = [
    "PreferenceResolver",
    "QUIET_HOURS_PAIR_REQUIRED",
    "merge_preferences",
    "update_preferences",
    "validate_quiet_hours",
]
