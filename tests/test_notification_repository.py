"""Integration tests for the SQLAlchemy backed notification store."""

from __future__ import annotations

import threading
from datetime import timedelta

import anyio
import pytest

from fakes import RecordingBroadcaster

from app.application.use_cases.notifications import SourceReadReconciler, mark_notification_read
from app.domain.entities import (
    Notification,
    NotificationContent,
    NotificationFilters,
    Pagination,
    User,
)
from app.infrastructure.database import Base, build_engine, build_session_factory, initialize_database
from app.infrastructure.notifications import SqlNotificationStore, SqlRecipientDirectory
from app.infrastructure.repositories import NotificationPreferencesRepository, UserRepository
from app.utils import utc_now

pytestmark = pytest.mark.anyio


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    initialize_database(bind=engine)
    factory = build_session_factory(engine)
    with factory() as session:
        users = UserRepository(session)
        users.create(User(id="u1", email="ada@example.com", first_name="Ada"))
        users.create(User(id="u2", email="grace@example.com", first_name="Grace"))
        users.create(User(id="u3", email="old@example.com", is_active=False))
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory) -> SqlNotificationStore:
    return SqlNotificationStore(session_factory)


def _notification(user_id: str = "u1", **content) -> Notification:
    values = {"title": "Visit booked", "message": "Tuesday at 10am"}
    values.update(content)
    return Notification.from_content(
        user_id=user_id, notification_type="CARE_UPDATE", content=NotificationContent(**values)
    )


async def test_create_assigns_id_and_round_trips_data(store):
    saved = await store.create(_notification(data={"resourceId": "R1", "count": 2}))

    assert saved.id
    assert saved.created_at is not None and saved.created_at.tzinfo is not None
    fetched = await store.get(saved.id)
    assert fetched.data == {"resourceId": "R1", "count": 2}
    assert fetched.is_read is False


async def test_expired_notifications_are_invisible_until_purged(store):
    expired = await store.create(_notification(expires_at=utc_now() - timedelta(minutes=1)))
    active = await store.create(_notification(expires_at=utc_now() + timedelta(days=1)))

    assert await store.get(expired.id) is None
    assert await store.count_unread("u1") == 1
    page = await store.list_for_user("u1", NotificationFilters(), Pagination())
    assert [item.id for item in page.items] == [active.id]

    assert await store.delete_expired() == 1
    assert await store.get(active.id) is not None


async def test_list_for_user_filters_and_paginates(store):
    for index in range(3):
        await store.create(_notification(title=f"Update {index}"))
    await store.create(_notification("u2"))

    page = await store.list_for_user("u1", NotificationFilters(is_read=False), Pagination(page=2, limit=2))

    assert page.total == 3
    assert len(page.items) == 1
    assert page.has_prev_page is True
    assert page.has_next_page is False


async def test_mark_read_preserves_the_first_read_time(store):
    saved = await store.create(_notification())

    first = await store.mark_read(saved.id)
    second = await store.mark_read(saved.id)

    assert first.is_read is True
    assert first.read_at is not None
    assert second.read_at == first.read_at
    assert await store.mark_read("missing") is None


async def test_bulk_read_updates_only_owned_unread_rows(store):
    own = [await store.create(_notification()) for _ in range(2)]
    foreign = await store.create(_notification("u2"))

    marked = await store.mark_read_by_ids("u1", [own[0].id, foreign.id])

    assert marked == 1
    assert await store.mark_read_by_ids("u1", [own[0].id]) == 0
    assert await store.mark_all_read("u1") == 1
    assert await store.count_unread("u1") == 0
    assert await store.count_unread("u2") == 1


async def test_delete_old_read_uses_cutoff(store):
    saved = await store.create(_notification())
    await store.mark_read(saved.id)

    assert await store.delete_old_read(utc_now() - timedelta(days=1)) == 0
    assert await store.delete_old_read(utc_now() + timedelta(seconds=1)) == 1
    assert await store.delete(saved.id) is False


async def test_preferences_upsert_creates_then_merges(store):
    assert await store.get_preferences("u1") is None

    created = await store.upsert_preferences("u1", {"email_messages": False})
    updated = await store.upsert_preferences("u1", {"quiet_hours_start": "22:00"})

    assert created.persisted is True
    assert created.email_family_activity is False
    assert updated.email_messages is False
    assert updated.quiet_hours_start == "22:00"


async def test_directory_hides_inactive_and_unknown_users(session_factory):
    directory = SqlRecipientDirectory(session_factory)

    assert (await directory.get_recipient("u1")).display_name == "Ada"
    assert await directory.get_recipient("u3") is None
    assert await directory.get_recipient("nobody") is None


def test_first_preference_upserts_from_two_threads_both_apply(tmp_path, monkeypatch):
    engine = build_engine(f"sqlite:///{tmp_path / 'preferences.db'}")
    initialize_database(bind=engine)
    factory = build_session_factory(engine)
    with factory() as session:
        UserRepository(session).create(User(id="u1", email="ada@example.com"))

    original_load = NotificationPreferencesRepository._load
    lookups = threading.local()
    both_looked_up = threading.Barrier(2, timeout=5)
    first_done = threading.Event()

    def load_in_lockstep(self, user_id):
        model = original_load(self, user_id)
        if not getattr(lookups, "seen", False):
            lookups.seen = True
            both_looked_up.wait()
            if threading.current_thread().name == "second":
                first_done.wait(timeout=5)
        return model

    monkeypatch.setattr(NotificationPreferencesRepository, "_load", load_in_lockstep)
    errors: list[Exception] = []

    def upsert(changes):
        try:
            with factory() as session:
                NotificationPreferencesRepository(session).upsert("u1", changes)
        except Exception as exc:
            errors.append(exc)
        finally:
            if threading.current_thread().name == "first":
                first_done.set()

    threads = [
        threading.Thread(target=upsert, args=({"email_messages": False},), name="first"),
        threading.Thread(target=upsert, args=({"in_app_messages": False},), name="second"),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    try:
        assert errors == []
        with factory() as session:
            stored = NotificationPreferencesRepository(session).get("u1")
        assert stored.email_messages is False
        assert stored.in_app_messages is False
    finally:
        engine.dispose()


class _ScanPausingStore(SqlNotificationStore):
    """Holds the unread scan open until another reader has marked a row."""

    def __init__(self, session_factory) -> None:
        super().__init__(session_factory)
        self.scanned = anyio.Event()
        self.resume = anyio.Event()

    async def list_unread_for_user(self, user_id, *, limit):
        unread = await super().list_unread_for_user(user_id, limit=limit)
        self.scanned.set()
        await self.resume.wait()
        return unread


async def test_source_and_single_reads_converge_without_resetting_read_at(session_factory):
    store = _ScanPausingStore(session_factory)
    broadcaster = RecordingBroadcaster()
    matching = [await store.create(_notification(data={"resourceId": "R1"})) for _ in range(3)]
    other = await store.create(_notification(data={"resourceId": "R2"}))
    reconciler = SourceReadReconciler(store, broadcaster)
    outcome = {}

    async def read_by_source():
        outcome["source"] = await reconciler.mark_read_by_source("u1", "resourceId", "R1")

    async def read_single():
        await store.scanned.wait()
        outcome["single"] = await mark_notification_read(store, broadcaster, "u1", matching[0].id)
        store.resume.set()

    async with anyio.create_task_group() as task_group:
        task_group.start_soon(read_by_source)
        task_group.start_soon(read_single)

    assert outcome["source"].marked_count == 2
    first_read_at = outcome["single"].read_at
    assert first_read_at is not None
    stored = [await store.get(item.id) for item in matching]
    assert all(item.is_read for item in stored)
    assert stored[0].read_at == first_read_at
    assert (await store.get(other.id)).is_read is False
    assert await store.count_unread("u1") == 1
    assert broadcaster.of_kind("unread-count")[-1] == ("unread-count", "u1", 1)
