"""Per-client fixed-window rate limiting (in process)."""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

RATE_LIMIT_MESSAGE = "Muitas requisições. Por favor, tente novamente mais tarde."

# Expired windows are purged once the table grows past this
_PURGE_THRESHOLD = 5000


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


class FixedWindowRateLimiter:
    """Counts requests per key in fixed windows.

    Args:
        max_requests: Requests allowed per key per window.
        window_seconds: Window length.
        clock: Monotonic time source (tests).
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        # key -> (window_expires_at, count)
        self._windows: dict[str, tuple[float, int]] = {}

    def hit(self, key: str) -> RateDecision:
        now = self._clock()
        self._purge(now)

        expires_at, count = self._windows.get(key, (0.0, 0))
        if expires_at <= now:
            expires_at, count = now + self._window_seconds, 0

        count += 1
        self._windows[key] = (expires_at, count)

        if count > self._max_requests:
            return RateDecision(
                allowed=False,
                remaining=0,
                retry_after=max(1, math.ceil(expires_at - now)),
            )
        return RateDecision(allowed=True, remaining=self._max_requests - count)

    def _purge(self, now: float) -> None:
        if len(self._windows) < _PURGE_THRESHOLD:
            return
        expired = [key for key, (expires_at, _) in self._windows.items() if expires_at <= now]
        for key in expired:
            self._windows.pop(key, None)
