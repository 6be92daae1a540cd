"""Clock sources for cooldown and history windows.

Injected everywhere time matters so tests can move time forward
instead of sleeping.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional


class ClockSource(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time as a naive UTC datetime."""


class SystemClock(ClockSource):
    def now(self) -> datetime:
        return datetime.utcnow()


class ManualClock(ClockSource):
    """Clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2025, 1, 15, 12, 0, 0)

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> datetime:
        self._now = self._now + delta
        return self._now

    def set(self, when: datetime) -> None:
        self._now = when
