"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Final

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_OFFSET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:UTC|GMT)(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$",
    re.IGNORECASE,
)


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(tz=timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalize ``value`` to an aware UTC datetime.

    Naive values are assumed to already be expressed in UTC, which is how the
    persistence layer stores them.
    """

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ensure_naive_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` converted to UTC but without ``tzinfo``.

    SQLite and SQL Server ``DATETIME`` columns do not keep offsets. This helper
    lets the domain layer work with aware datetimes while the database stores
    the UTC (naive) representation.
    """

    normalized = ensure_utc(value)
    if normalized is None:
        return None
    return normalized.replace(tzinfo=None)


def resolve_timezone(tz_name: str | None, default: tzinfo = timezone.utc) -> tzinfo:
    """Resolve ``tz_name`` into a ``tzinfo`` instance, falling back to ``default``.

    Accepts IANA names (``Europe/London``) and fixed offsets such as
    ``UTC+05:30``. Unknown or malformed names never raise.
    """

    name = (tz_name or "").strip()
    if not name:
        return default

    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        match = _OFFSET_PATTERN.match(name)
        if match:
            sign = -1 if match.group("sign") == "-" else 1
            hours = int(match.group("hours"))
            minutes = int(match.group("minutes") or 0)
            if hours <= 23 and minutes <= 59:
                offset = timedelta(hours=hours, minutes=minutes)
                return timezone(sign * offset)
    return default
