"""Fixed-window rate limiting for project key issuance.

Built on the ``limits`` package (the engine under slowapi): each
FixedWindowLimiter pairs one ``RateLimitItem`` with a
``FixedWindowRateLimiter`` over its own ``MemoryStorage``, keyed by principal
id.

  - first attempt in a window   → counter created with ``expiry = now + window``;
                                  the call is allowed
  - counter at ``max_count``    → denied until the expiry passes; denials do
                                  not move the expiry
  - ``max_count <= 0``          → always denied, nothing is stored

MemoryStorage increments under a per-key lock, so concurrent callers never
both take the last slot, and it evicts expired counters on its own timer.

Key issuance uses two independent instances (burst and daily) and a request
must pass both; see KeyIssuanceLimits.

State is process-local: it is lost on restart and not shared between
replicas. Running N replicas multiplies the effective limits by N.
"""

from __future__ import annotations

import math
from typing import Optional

from limits import (
    RateLimitItem,
    RateLimitItemPerDay,
    RateLimitItemPerHour,
    RateLimitItemPerMinute,
    RateLimitItemPerSecond,
)
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from app.config import RateLimitConfig
from app.utils.logger import get_logger

logger = get_logger(__name__)

_GRANULARITIES: tuple[tuple[int, type[RateLimitItem]], ...] = (
    (86400, RateLimitItemPerDay),
    (3600, RateLimitItemPerHour),
    (60, RateLimitItemPerMinute),
)


def window_item(max_count: int, window_s: float) -> RateLimitItem:
    """Express "``max_count`` per ``window_s`` seconds" as a ``limits`` item.

    Whole days, hours and minutes keep their natural granularity
    (``3 per 1 minute``); anything else is counted in seconds, rounded up.

        >>> str(window_item(3, 60.0))
        '3 per 1 minute'
    """
    for seconds, item_cls in _GRANULARITIES:
        if window_s >= seconds and window_s % seconds == 0:
            return item_cls(max_count, int(window_s // seconds))
    return RateLimitItemPerSecond(max_count, max(1, math.ceil(window_s)))


class FixedWindowLimiter:
    """Per-principal fixed-window counter for one limit.

    Args:
        name:      Label used in log events ("burst", "daily").
        max_count: Attempts allowed per window.
        window_s:  Window length in seconds.
    """

    def __init__(self, name: str, max_count: int, window_s: float) -> None:
        self.name = name
        self.item: Optional[RateLimitItem] = (
            window_item(max_count, window_s) if max_count > 0 else None
        )
        self._strategy = FixedWindowRateLimiter(MemoryStorage())

    def allow(self, principal_id: str) -> bool:
        """Record one attempt for ``principal_id`` and report whether it may proceed."""
        if self.item is None:
            return False
        return self._strategy.hit(self.item, self.name, principal_id)


class KeyIssuanceLimits:
    """The burst + daily limiter pair guarding project key creation.

    Burst is checked first so the log shows the tighter window as the reason;
    a burst denial does not consume daily quota.
    """

    def __init__(self, config: RateLimitConfig) -> None:
        self.config = config
        self.burst = FixedWindowLimiter("burst", config.burst_max, config.burst_window_s)
        self.daily = FixedWindowLimiter("daily", config.daily_max, config.daily_window_s)

    def allow_burst(self, principal_id: str) -> bool:
        allowed = self.burst.allow(principal_id)
        if not allowed:
            logger.info("key_issuance_rate_limited", window="burst", user_id=principal_id)
        return allowed

    def allow_daily(self, principal_id: str) -> bool:
        allowed = self.daily.allow(principal_id)
        if not allowed:
            logger.info("key_issuance_rate_limited", window="daily", user_id=principal_id)
        return allowed
