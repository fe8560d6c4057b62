"""Expiry policies for new cache entries."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional

from typedcache.clock import Clock


class TtlPolicy(ABC):
    """Decide when a freshly written entry expires."""

    @abstractmethod
    def compute_expires_at_epoch_ms(self, ttl: Optional[timedelta], clock: Clock) -> Optional[int]:
        """Return the expiry timestamp for an entry written now, or ``None`` for never.

        Args:
            ttl: The time-to-live requested by the caller, if any.
            clock: The cache's clock.
        """


class DefaultTtlPolicy(TtlPolicy):
    """Use the caller's TTL, else a default, else never expire.

    Args:
        default_ttl: TTL applied when the caller passes none.
    """

    def __init__(self, default_ttl: Optional[timedelta] = None) -> None:
        self._default_ttl = default_ttl

    @property
    def default_ttl(self) -> Optional[timedelta]:
        return self._default_ttl

    def compute_expires_at_epoch_ms(self, ttl: Optional[timedelta], clock: Clock) -> Optional[int]:
        effective = ttl if ttl is not None else self._default_ttl
        if effective is None:
            return None
        return clock.now_epoch_ms() + int(effective.total_seconds() * 1000)
