"""Tests for reading and updating notification preferences."""

from __future__ import annotations

import pytest

from fakes import InMemoryNotificationStore

from app.application.use_cases.notifications import (
    PreferenceResolver,
    ValidationError,
    update_preferences,
)
from app.domain.entities import PreferencesUpdate

pytestmark = pytest.mark.anyio


async def test_missing_preferences_resolve_to_unsaved_defaults():
    store = InMemoryNotificationStore()

    preferences = await PreferenceResolver(store).get("u1")

    assert preferences.persisted is False
    assert preferences.email_enabled is True
    assert preferences.email_family_activity is False
    assert preferences.in_app_family_activity is True
    assert preferences.quiet_hours_enabled is False
    assert preferences.timezone is None
    assert "upsert_preferences" not in store.calls


async def test_upsert_only_changes_supplied_fields():
    store = InMemoryNotificationStore()
    resolver = PreferenceResolver(store)
    await resolver.upsert("u1", PreferencesUpdate(email_messages=False, timezone="Europe/London"))

    updated = await resolver.upsert("u1", PreferencesUpdate(in_app_enabled=False))

    assert updated.persisted is True
    assert updated.email_messages is False
    assert updated.timezone == "Europe/London"
    assert updated.in_app_enabled is False
    assert updated.email_enabled is True


async def test_enabling_quiet_hours_without_bounds_is_rejected():
    store = InMemoryNotificationStore()

    with pytest.raises(ValidationError):
        await update_preferences(
            PreferenceResolver(store), "u1", PreferencesUpdate(quiet_hours_enabled=True)
        )

    assert "upsert_preferences" not in store.calls
    assert store.preferences == {}


async def test_enabling_quiet_hours_with_bounds_is_saved():
    store = InMemoryNotificationStore()

    saved = await update_preferences(
        PreferenceResolver(store),
        "u1",
        PreferencesUpdate(quiet_hours_enabled=True, quiet_hours_start="22:00", quiet_hours_end="06:00"),
    )

    assert saved.quiet_hours_enabled is True
    assert (saved.quiet_hours_start, saved.quiet_hours_end) == ("22:00", "06:00")


async def test_bounds_already_stored_satisfy_the_quiet_hours_check():
    store = InMemoryNotificationStore()
    resolver = PreferenceResolver(store)
    await resolver.upsert("u1", PreferencesUpdate(quiet_hours_start="22:00", quiet_hours_end="06:00"))

    saved = await update_preferences(resolver, "u1", PreferencesUpdate(quiet_hours_enabled=True))

    assert saved.quiet_hours_enabled is True


def test_from_mapping_ignores_unknown_keys():
    update = PreferencesUpdate.from_mapping({"email_enabled": False, "password": "x"})

    assert update.changes() == {"email_enabled": False}
