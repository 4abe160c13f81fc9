"""
Module: tribunal/context.py
Description: Caller identity and trusted time for a single operation

The hosting environment authenticates the caller and supplies the time;
both are passed explicitly into every controller operation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


@dataclass(frozen=True)
class CallContext:
    """Authenticated caller and the trusted time at call entry (normalized to UTC)."""
    caller: int
    now: datetime

    def __post_init__(self):
        object.__setattr__(self, "now", ensure_utc(self.now))


class TimeSource(ABC):
    """Trusted current time."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def context_for(self, caller: int) -> CallContext:
        return CallContext(caller=caller, now=self.now())


class SystemClock(TimeSource):
    """Wall-clock UTC time truncated to whole seconds."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(microsecond=0)


class FixedClock(TimeSource):
    """Deterministic clock for tests and replays."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2025, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = moment

    def advance(self, **kwargs) -> datetime:
        """Move forward by a timedelta built from kwargs (days=, seconds=, ...)."""
        self._now = self._now + timedelta(**kwargs)
        return self._now


def ensure_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC so comparisons never mix naive and aware."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
