"""Time sources for expiry decisions.

The storage engine never reads the clock; only
:class:`~typedcache.cache.TypedCache` does, when it stamps new entries and
decides whether a stored one has expired.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Source of the current time in milliseconds since the Unix epoch."""

    @abstractmethod
    def now_epoch_ms(self) -> int:
        """Return the current time in epoch milliseconds."""


class SystemClock(Clock):
    """Wall-clock time."""

    def now_epoch_ms(self) -> int:
        return time.time_ns() // 1_000_000


class ManualClock(Clock):
    """A clock that only moves when told to.

    Args:
        start_epoch_ms: Initial reading.

    Example::

        clock = ManualClock(1_000)
        clock.advance(500)
        clock.now_epoch_ms()  # 1500
    """

    def __init__(self, start_epoch_ms: int = 0) -> None:
        self._now = start_epoch_ms

    def now_epoch_ms(self) -> int:
        return self._now

    def set(self, epoch_ms: int) -> None:
        self._now = epoch_ms

    def advance(self, ms: int) -> None:
        self._now += ms
