from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """A clock that only moves when told to.

    Used by tests and replays so growth ticks can be driven without real delays.
    """

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._lock = threading.RLock()
        self._now = start or datetime(2024, 3, 21, 6, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, when: datetime) -> None:
        with self._lock:
            self._now = when

    def advance(self, hours: float = 0.0, **kwargs: float) -> datetime:
        """Move the clock forward; accepts the same keywords as ``timedelta``."""
        with self._lock:
            self._now = self._now + timedelta(hours=hours, **kwargs)
            logger.debug("ManualClock advanced to %s", self._now.isoformat())
            return self._now


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600.0


def millis(when: datetime) -> int:
    """Millisecond timestamp used to stamp generated ids."""
    return int(round(when.timestamp() * 1000))


__all__ = ["Clock", "SystemClock", "ManualClock", "hours_between", "millis"]
