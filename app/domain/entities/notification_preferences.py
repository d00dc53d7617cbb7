"""Domain entity holding a user's notification delivery preferences."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from typing import Any


@dataclass
class NotificationPreferences:
    """Per-user channel switches, per-type overrides and quiet hours."""

    user_id: str
    email_enabled: bool = True
    email_messages: bool = True
    email_care_updates: bool = True
    email_announcements: bool = True
    email_family_activity: bool = False
    email_emergency_alerts: bool = True
    in_app_enabled: bool = True
    in_app_messages: bool = True
    in_app_care_updates: bool = True
    in_app_announcements: bool = True
    in_app_family_activity: bool = True
    in_app_emergency_alerts: bool = True
    quiet_hours_enabled: bool = False
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
    timezone: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    persisted: bool = False

    @classmethod
    def defaults_for(cls, user_id: str) -> "NotificationPreferences":
        """Return the baked-in defaults for a user without stored preferences."""

        return cls(user_id=user_id)


@dataclass
class PreferencesUpdate:
    """Partial preferences update. ``None`` means "leave unchanged"."""

    email_enabled: bool | None = None
    email_messages: bool | None = None
    email_care_updates: bool | None = None
    email_announcements: bool | None = None
    email_family_activity: bool | None = None
    email_emergency_alerts: bool | None = None
    in_app_enabled: bool | None = None
    in_app_messages: bool | None = None
    in_app_care_updates: bool | None = None
    in_app_announcements: bool | None = None
    in_app_family_activity: bool | None = None
    in_app_emergency_alerts: bool | None = None
    quiet_hours_enabled: bool | None = None
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
    timezone: str | None = None

    def changes(self) -> dict[str, Any]:
        """Return only the fields that were supplied."""

        return {key: value for key, value in asdict(self).items() if value is not None}

    @classmethod
    def from_mapping(cls, values: dict[str, Any]) -> "PreferencesUpdate":
        allowed = {item.name for item in fields(cls)}
        return cls(**{key: value for key, value in values.items() if key in allowed})


__all__ = [
    "NotificationPreferences",
    "PreferencesUpdate",
]
