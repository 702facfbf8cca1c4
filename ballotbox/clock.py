from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

# Anything returning a timezone-aware "now" can act as a clock
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class FrozenClock:
    """Manually advanced clock for tests and replays."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = ensure_aware(start) if start else utcnow()

    def __call__(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> datetime:
        self._now = self._now + delta
        return self._now

    def set(self, value: datetime) -> None:
        self._now = ensure_aware(value)
