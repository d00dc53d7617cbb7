"""Per-channel allow/suppress decisions for a single notification."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Final

from app.domain.entities import (
    Channel,
    NotificationPreferences,
    NotificationType,
    type_key,
)

from .preferences import PreferenceResolver
from .quiet_hours import QuietHoursCalculator

logger = logging.getLogger(__name__)

PreferenceFlag = Callable[[NotificationPreferences], bool]

TYPE_PREFERENCE_FLAGS: Final[dict[tuple[Channel, str], PreferenceFlag]] = {
    (Channel.EMAIL, NotificationType.MESSAGE.value): lambda p: p.email_messages,
    (Channel.EMAIL, NotificationType.CARE_UPDATE.value): lambda p: p.email_care_updates,
    (Channel.EMAIL, NotificationType.SYSTEM_ANNOUNCEMENT.value): lambda p: p.email_announcements,
    (Channel.EMAIL, NotificationType.FAMILY_ACTIVITY.value): lambda p: p.email_family_activity,
    (Channel.EMAIL, NotificationType.EMERGENCY_ALERT.value): lambda p: p.email_emergency_alerts,
    (Channel.IN_APP, NotificationType.MESSAGE.value): lambda p: p.in_app_messages,
    (Channel.IN_APP, NotificationType.CARE_UPDATE.value): lambda p: p.in_app_care_updates,
    (Channel.IN_APP, NotificationType.SYSTEM_ANNOUNCEMENT.value): lambda p: p.in_app_announcements,
    (Channel.IN_APP, NotificationType.FAMILY_ACTIVITY.value): lambda p: p.in_app_family_activity,
    (Channel.IN_APP, NotificationType.EMERGENCY_ALERT.value): lambda p: p.in_app_emergency_alerts,
}

CHANNEL_SWITCHES: Final[dict[Channel, PreferenceFlag]] = {
    Channel.EMAIL: lambda p: p.email_enabled,
    Channel.IN_APP: lambda p: p.in_app_enabled,
}

# Quiet hours mute email only; the in-app inbox and badge keep updating.
QUIET_HOURS_CHANNELS: Final[frozenset[Channel]] = frozenset({Channel.EMAIL})


class DecisionReason(str, Enum):
    ALLOWED = "allowed"
    CHANNEL_DISABLED = "channel_disabled"
    TYPE_DISABLED = "type_disabled"
    QUIET_HOURS = "quiet_hours"


def evaluate(
    preferences: NotificationPreferences,
    notification_type: str,
    channel: Channel,
    *,
    quiet_hours: QuietHoursCalculator,
    now: datetime | None = None,
) -> DecisionReason:
    """Return why ``notification_type`` is (or is not) deliverable on ``channel``."""

    if not CHANNEL_SWITCHES[channel](preferences):
        return DecisionReason.CHANNEL_DISABLED

    if channel in QUIET_HOURS_CHANNELS and quiet_hours.is_quiet(preferences, now):
        return DecisionReason.QUIET_HOURS

    flag = TYPE_PREFERENCE_FLAGS.get((channel, type_key(notification_type)))
    if flag is not None and not flag(preferences):
        return DecisionReason.TYPE_DISABLED

    return DecisionReason.ALLOWED


class DeliveryDecisionEngine:
    """Combine stored preferences and quiet hours into a delivery decision.

    Types without an entry in :data:`TYPE_PREFERENCE_FLAGS` are allowed as
    long as the channel itself is enabled.
    """

    def __init__(
        self,
        preferences: PreferenceResolver,
        quiet_hours: QuietHoursCalculator | None = None,
    ) -> None:
        self._preferences = preferences
        self._quiet_hours = quiet_hours or QuietHoursCalculator()

    async def decide(
        self,
        user_id: str,
        notification_type: str,
        channel: Channel,
        *,
        now: datetime | None = None,
    ) -> DecisionReason:
        preferences = await self._preferences.get(user_id)
        reason = evaluate(
            preferences,
            notification_type,
            channel,
            quiet_hours=self._quiet_hours,
            now=now,
        )
        if reason is not DecisionReason.ALLOWED:
            logger.info(
                "Suppressed %s delivery of %s for user %s (%s)",
                channel.value,
                notification_type,
                user_id,
                reason.value,
            )
        return reason

    async def should_deliver(
        self,
        user_id: str,
        notification_type: str,
        channel: Channel,
        *,
        now: datetime | None = None,
    ) -> bool:
        reason = await self.decide(user_id, notification_type, channel, now=now)
        return reason is DecisionReason.ALLOWED


__all__ = [
    "CHANNEL_SWITCHES",
    "DecisionReason",
    "DeliveryDecisionEngine",
    "QUIET_HOURS_CHANNELS",
    "TYPE_PREFERENCE_FLAGS",
    "evaluate",
]
