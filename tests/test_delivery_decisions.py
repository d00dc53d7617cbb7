"""Tests for the per-channel delivery decisions."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from fakes import InMemoryNotificationStore

from app.application.use_cases.notifications import (
    DecisionReason,
    DeliveryDecisionEngine,
    PreferenceResolver,
)
from app.application.use_cases.notifications.delivery import TYPE_PREFERENCE_FLAGS
from app.domain.entities import Channel, NotificationPreferences, NotificationType

pytestmark = pytest.mark.anyio

NIGHT = datetime(2024, 1, 15, 23, 30, tzinfo=timezone.utc)
NOON = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def _engine(**preferences) -> DeliveryDecisionEngine:
    store = InMemoryNotificationStore()
    if preferences:
        store.preferences["u1"] = NotificationPreferences(user_id="u1", persisted=True, **preferences)
    return DeliveryDecisionEngine(PreferenceResolver(store))


@pytest.mark.parametrize("notification_type", [item.value for item in NotificationType])
async def test_email_master_switch_blocks_every_type(notification_type):
    engine = _engine(email_enabled=False)

    assert await engine.should_deliver("u1", notification_type, Channel.EMAIL, now=NOON) is False
    assert await engine.decide("u1", notification_type, Channel.EMAIL, now=NOON) is DecisionReason.CHANNEL_DISABLED


async def test_in_app_master_switch_blocks_in_app_only():
    engine = _engine(in_app_enabled=False)

    assert await engine.should_deliver("u1", "MESSAGE", Channel.IN_APP) is False
    assert await engine.should_deliver("u1", "MESSAGE", Channel.EMAIL, now=NOON) is True


async def test_unknown_type_fails_open():
    engine = _engine(email_enabled=True, in_app_enabled=True)

    assert await engine.should_deliver("u1", "FORUM_DIGEST", Channel.EMAIL, now=NOON) is True
    assert await engine.should_deliver("u1", "FORUM_DIGEST", Channel.IN_APP) is True


async def test_type_flag_suppresses_matching_channel():
    engine = _engine(email_care_updates=False)

    assert await engine.decide("u1", "CARE_UPDATE", Channel.EMAIL, now=NOON) is DecisionReason.TYPE_DISABLED
    assert await engine.should_deliver("u1", "CARE_UPDATE", Channel.IN_APP) is True


async def test_defaults_disable_family_activity_email():
    engine = _engine()

    assert await engine.should_deliver("u1", "FAMILY_ACTIVITY", Channel.EMAIL, now=NOON) is False
    assert await engine.should_deliver("u1", "FAMILY_ACTIVITY", Channel.IN_APP) is True


async def test_quiet_hours_gate_email_but_not_in_app():
    engine = _engine(quiet_hours_enabled=True, quiet_hours_start="22:00", quiet_hours_end="06:00")

    assert await engine.decide("u1", "EMERGENCY_ALERT", Channel.EMAIL, now=NIGHT) is DecisionReason.QUIET_HOURS
    assert await engine.should_deliver("u1", "EMERGENCY_ALERT", Channel.IN_APP, now=NIGHT) is True
    assert await engine.should_deliver("u1", "EMERGENCY_ALERT", Channel.EMAIL, now=NOON) is True


def test_type_flag_table_covers_every_known_type_and_channel():
    expected = {(channel, item.value) for channel in Channel for item in NotificationType}

    assert set(TYPE_PREFERENCE_FLAGS) == expected
