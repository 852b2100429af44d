"""
Clock and timestamp utilities.

Memory timestamps are integer wall-clock milliseconds. Services receive a
Clock so tests can move time without sleeping.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone

# UTC timezone constant
UTC = timezone.utc

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


class Clock(ABC):
    """Source of the current time in epoch milliseconds."""

    @abstractmethod
    def now_ms(self) -> int:
        pass


class SystemClock(Clock):
    """Clock backed by the system wall clock."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    Used by tests and by offline tooling that replays conversations.
    """

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self._now = start_ms

    def now_ms(self) -> int:
        return self._now

    def advance(self, ms: int) -> int:
        self._now += ms
        return self._now

    def advance_minutes(self, minutes: float) -> int:
        return self.advance(int(minutes * MINUTE_MS))

    def set(self, now_ms: int) -> None:
        self._now = now_ms


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Returns:
        datetime: Current UTC time with tzinfo set to UTC
    """
    return datetime.now(UTC)


def ms_to_datetime(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to a UTC datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC)


def ms_to_iso(timestamp_ms: int) -> str:
    """Convert epoch milliseconds to an ISO 8601 UTC string."""
    return ms_to_datetime(timestamp_ms).isoformat()


def format_time_ago(timestamp_ms: int, now_ms: int) -> str:
    """
    Format a timestamp as a short relative label.

    Examples:
        >>> format_time_ago(now - 30_000, now)
        'just now'
        >>> format_time_ago(now - 5 * 60_000, now)
        '5m ago'
        >>> format_time_ago(now - 3 * 3_600_000, now)
        '3h ago'
    """
    diff_ms = now_ms - timestamp_ms
    diff_minutes = diff_ms // MINUTE_MS
    diff_hours = diff_ms // HOUR_MS
    diff_days = diff_ms // DAY_MS

    if diff_minutes < 1:
        return "just now"
    if diff_minutes < 60:
        return f"{diff_minutes}m ago"
    if diff_hours < 24:
        return f"{diff_hours}h ago"
    if diff_days < 7:
        return f"{diff_days}d ago"
    return ms_to_datetime(timestamp_ms).strftime("%Y-%m-%d")
