"""Utility script to purge expired and old read notifications."""

from __future__ import annotations

import argparse
import logging

import anyio

from app.application.use_cases.notifications import (
    NotificationStore,
    StoreError,
    ValidationError,
    purge_expired,
    purge_old_read,
)
from app.config import get_settings
from app.infrastructure.database import SessionLocal, initialize_database
from app.infrastructure.notifications import SqlNotificationStore

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments for the purge run."""

    parser = argparse.ArgumentParser(
        description="Delete expired notifications and read notifications past retention.",
    )
    parser.add_argument(
        "--skip-expired",
        action="store_true",
        help="Do not delete notifications whose expiry date has passed.",
    )
    parser.add_argument(
        "--skip-read",
        action="store_true",
        help="Do not delete old read notifications.",
    )
    parser.add_argument(
        "--retention-days",
        type=int,
        default=None,
        help="Days to keep read notifications (default: READ_NOTIFICATION_RETENTION_DAYS).",
    )
    return parser.parse_args(argv)


async def run_purge(
    store: NotificationStore,
    *,
    expired: bool = True,
    old_read: bool = True,
    retention_days: int = 30,
) -> dict[str, int]:
    """Run the selected sweeps and return how many rows each removed."""

    removed = {"expired": 0, "old_read": 0}
    if expired:
        removed["expired"] = await purge_expired(store)
    if old_read:
        removed["old_read"] = await purge_old_read(store, retention_days)
    return removed


def main(argv: list[str] | None = None) -> None:
    """Purge notifications using the provided command line arguments."""

    args = parse_args(argv)
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    retention_days = (
        args.retention_days
        if args.retention_days is not None
        else settings.read_notification_retention_days
    )

    initialize_database()
    store = SqlNotificationStore(SessionLocal)
    try:
        removed = anyio.run(
            lambda: run_purge(
                store,
                expired=not args.skip_expired,
                old_read=not args.skip_read,
                retention_days=retention_days,
            )
        )
    except (StoreError, ValidationError) as exc:
        raise SystemExit(f"Could not purge notifications: {exc}") from exc

    print(
        "Purge complete:\n"
        f"  Expired removed: {removed['expired']}\n"
        f"  Old read removed: {removed['old_read']}"
    )


if __name__ == "__main__":
    main()
