"""Utility helpers for reusable functionality."""

from .datetime import (
    ensure_naive_utc,
    ensure_utc,
    resolve_timezone,
    utc_now,
)

__all__ = [
    "ensure_naive_utc",
    "ensure_utc",
    "resolve_timezone",
    "utc_now",
]
