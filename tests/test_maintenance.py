"""Tests for the notification purge sweeps and the purge script."""

from __future__ import annotations

from datetime import timedelta

import pytest

from fakes import InMemoryNotificationStore

from app.application.use_cases.notifications import ValidationError, purge_expired, purge_old_read
from app.utils import utc_now
from scripts.purge_notifications import parse_args, run_purge

pytestmark = pytest.mark.anyio


async def test_purge_expired_removes_only_past_expiry():
    store = InMemoryNotificationStore()
    expired = store.seed("u1", expires_in=timedelta(minutes=-1))
    active = store.seed("u1", expires_in=timedelta(days=1))
    permanent = store.seed("u1")

    removed = await purge_expired(store)

    assert removed == 1
    assert expired.id not in store.notifications
    assert {active.id, permanent.id} <= set(store.notifications)


async def test_purge_old_read_uses_read_time_cutoff():
    store = InMemoryNotificationStore()
    old = store.seed("u1", is_read=True)
    old.read_at = utc_now() - timedelta(days=45)
    recent = store.seed("u1", is_read=True)
    unread = store.seed("u1")

    removed = await purge_old_read(store, 30)

    assert removed == 1
    assert old.id not in store.notifications
    assert {recent.id, unread.id} <= set(store.notifications)


async def test_purge_old_read_rejects_negative_retention():
    store = InMemoryNotificationStore()

    with pytest.raises(ValidationError):
        await purge_old_read(store, -1)

    assert store.calls == []


async def test_run_purge_honours_skip_flags():
    store = InMemoryNotificationStore()
    store.seed("u1", expires_in=timedelta(minutes=-1))

    removed = await run_purge(store, expired=False, old_read=True, retention_days=7)

    assert removed == {"expired": 0, "old_read": 0}
    assert store.calls == ["delete_old_read"]


def test_parse_args_defaults_and_flags():
    defaults = parse_args([])
    custom = parse_args(["--skip-expired", "--retention-days", "14"])

    assert (defaults.skip_expired, defaults.skip_read, defaults.retention_days) == (False, False, None)
    assert (custom.skip_expired, custom.retention_days) == (True, 14)
