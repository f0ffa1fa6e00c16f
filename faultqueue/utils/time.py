"""Clock helpers shared by the reconciler and the store."""

from __future__ import annotations

from datetime import UTC, datetime
import time as _time

__all__ = ["now_utc", "utcnow_naive", "monotonic_ms"]


def now_utc() -> datetime:
    """Return the current UTC time with timezone information."""

    return datetime.now(UTC)


def utcnow_naive() -> datetime:
    """Return the current UTC time without tzinfo, as stored in the database."""

    return now_utc().replace(tzinfo=None)


def monotonic_ms() -> int:
    return _time.monotonic_ns() // 1_000_000
