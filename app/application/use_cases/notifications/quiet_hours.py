"""Timezone-aware quiet hours evaluation."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Final

from app.domain.entities import NotificationPreferences
from app.utils import resolve_timezone, utc_now

_CLOCK_PATTERN: Final[re.Pattern[str]] = re.compile(r"^(?P<hour>\d{1,2}):(?P<minute>\d{2})$")


def parse_clock(value: str | None) -> int | None:
    """Return minutes after midnight for an ``HH:MM`` string, or ``None``."""

    if not value:
        return None
    match = _CLOCK_PATTERN.match(value.strip())
    if not match:
        return None
    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    if hour > 23 or minute > 59:
        return None
    return hour * 60 + minute


class QuietHoursCalculator:
    """Decide whether a moment falls inside a user's quiet window.

    Both boundaries are inclusive. A window whose start is later than its end
    wraps around midnight (``22:00``-``06:00``). Disabled, incomplete or
    malformed windows are never quiet; an unknown timezone is treated as UTC.
    """

    def is_quiet(
        self, preferences: NotificationPreferences, now: datetime | None = None
    ) -> bool:
        if not preferences.quiet_hours_enabled:
            return False

        start = parse_clock(preferences.quiet_hours_start)
        end = parse_clock(preferences.quiet_hours_end)
        if start is None or end is None:
            return False

        moment = now or utc_now()
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        local = moment.astimezone(resolve_timezone(preferences.timezone))
        current = local.hour * 60 + local.minute

        if start <= end:
            return start <= current <= end
        return current >= start or current <= end


__all__ = ["QuietHoursCalculator", "parse_clock"]
