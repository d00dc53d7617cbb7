"""Housekeeping sweeps over stored notifications."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from app.utils import ensure_utc, utc_now

from .errors import ValidationError
from .ports import NotificationStore

logger = logging.getLogger(__name__)


async def purge_expired(store: NotificationStore) -> int:
    """Delete notifications whose ``expires_at`` has passed."""

    removed = await store.delete_expired()
    logger.info("Purged %s expired notification(s)", removed)
    return removed


async def purge_old_read(
    store: NotificationStore,
    retention_days: int,
    *,
    now: datetime | None = None,
) -> int:
    """Delete read notifications read more than ``retention_days`` ago."""

    if retention_days < 0:
        raise ValidationError("retention_days must not be negative")

    cutoff = ensure_utc(now or utc_now()) - timedelta(days=retention_days)
    removed = await store.delete_old_read(cutoff)
    logger.info(
        "Purged %s read notification(s) older than %s", removed, cutoff.isoformat()
    )
    return removed


__all__ = ["purge_expired", "purge_old_read"]
