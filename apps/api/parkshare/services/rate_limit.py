"""In-memory sliding-window rate limiter for booking mutations."""
from __future__ import annotations

import time
from collections import deque
from typing import Callable, Deque, Dict

from fastapi import HTTPException, status

from ..core.config import settings


class RateLimiter:
    """Count hits per key over a sliding window, evicting idle keys."""

    def __init__(
        self,
        *,
        max_hits: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_hits = max_hits
        self._window = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}

    def hit(self, key: str) -> bool:
        """Record a hit and return False when the key is over its limit."""

        now = self._clock()
        self._evict_expired(now)
        hits = self._hits.setdefault(key, deque())
        if len(hits) >= self._max_hits:
            return False
        hits.append(now)
        return True

    def retry_after(self, key: str) -> int:
        hits = self._hits.get(key)
        if not hits:
            return 0
        return max(1, int(hits[0] + self._window - self._clock()))

    def reset(self) -> None:
        self._hits.clear()

    def _evict_expired(self, now: float) -> None:
        cutoff = now - self._window
        for key in list(self._hits):
            hits = self._hits[key]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if not hits:
                self._hits.pop(key, None)


booking_limiter = RateLimiter(
    max_hits=settings.booking_rate_limit,
    window_seconds=settings.booking_rate_window_seconds,
)


def enforce_booking_limit(user_id: str) -> None:
    """Raise 429 when the caller has made too many booking requests."""

    if not booking_limiter.hit(user_id):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many booking requests, try again later",
            headers={"Retry-After": str(booking_limiter.retry_after(user_id))},
        )
