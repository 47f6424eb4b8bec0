"""
Clock abstraction.

Cache expiry and the normalizer's timestamp fallback read time through a
ClockProtocol so tests can move time deterministically. UTC only.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional
import threading


class ClockProtocol(ABC):
    """Source of the current UTC time."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def format_iso(self, dt: Optional[datetime] = None) -> str:
        """Current (or given) time in the canonical TxItem timestamp format."""
        return to_iso8601(dt or self.now())


class SystemClock(ClockProtocol):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class MockClock(ClockProtocol):
    """
    Manually driven clock for cache TTL and timestamp fallback tests.

    Usage:
        clock = MockClock(datetime(2024, 6, 1, tzinfo=timezone.utc))
        clock.advance(60)  # first-page cache entries are now expired
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        start = initial_time or datetime.now(timezone.utc)
        self._time = start if start.tzinfo else start.replace(tzinfo=timezone.utc)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._time

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """Move forward; kwargs go to timedelta (minutes=, hours=...)."""
        with self._lock:
            self._time += timedelta(seconds=seconds, **kwargs)


# ============================================================
# ISO-8601 HELPERS
# ============================================================

def to_iso8601(dt: datetime) -> str:
    """
    Format as UTC with millisecond precision and a Z suffix.

    2024-03-01T12:00:05.120Z - fixed width, so strings sort chronologically.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return f"{dt.strftime('%Y-%m-%dT%H:%M:%S')}.{dt.microsecond // 1000:03d}Z"


def from_iso8601(iso_string: str) -> datetime:
    """Parse a block timestamp (trailing Z allowed) to an aware UTC datetime."""
    value = iso_string.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
