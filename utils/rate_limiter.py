# utils/rate_limiter.py - In-memory per-client rate limiter
"""
Per-client fixed windows: a short burst ceiling per minute and a larger daily
ceiling. State lives in process memory, so every worker process keeps its own
counters. Production use: replace the store with Redis or similar.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request

from config import (
    RATE_LIMIT_PER_MINUTE,
    RATE_LIMIT_PER_DAY,
    RATE_LIMIT_MINUTE_SECONDS,
    RATE_LIMIT_DAY_SECONDS,
    RATE_LIMIT_MAX_CLIENTS,
)


@dataclass
class RateLimitCounter:
    minute_count: int
    minute_window_end: float
    day_count: int
    day_window_end: float


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    # Check for forwarded IP (behind proxy)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


class RateLimiter:
    """Minute and day counters keyed by client id."""

    def __init__(
        self,
        per_minute: int = RATE_LIMIT_PER_MINUTE,
        per_day: int = RATE_LIMIT_PER_DAY,
        minute_seconds: float = RATE_LIMIT_MINUTE_SECONDS,
        day_seconds: float = RATE_LIMIT_DAY_SECONDS,
        max_clients: int = RATE_LIMIT_MAX_CLIENTS,
        clock: Callable[[], float] = time.time,
    ):
        self.per_minute = per_minute
        self.per_day = per_day
        self.minute_seconds = minute_seconds
        self.day_seconds = day_seconds
        self.max_clients = max_clients
        self._clock = clock
        self._store: Dict[str, RateLimitCounter] = {}
        self._lock = threading.Lock()

    def is_limited(self, client_id: str, now: Optional[float] = None) -> bool:
        """
        Record a request for client_id and report whether it must be refused.

        A refused request is not counted. The day window is checked before the
        minute window; each window restarts on its own once it has elapsed.
        """
        if now is None:
            now = self._clock()

        with self._lock:
            counter = self._store.get(client_id)

            if counter is None:
                if len(self._store) >= self.max_clients:
                    self._purge_stale(now)
                self._store[client_id] = RateLimitCounter(
                    minute_count=1,
                    minute_window_end=now + self.minute_seconds,
                    day_count=1,
                    day_window_end=now + self.day_seconds,
                )
                return False

            if now > counter.day_window_end:
                counter.day_count = 0
                counter.day_window_end = now + self.day_seconds
            elif counter.day_count >= self.per_day:
                return True

            if now > counter.minute_window_end:
                counter.minute_count = 0
                counter.minute_window_end = now + self.minute_seconds
            elif counter.minute_count >= self.per_minute:
                return True

            counter.minute_count += 1
            counter.day_count += 1
            return False

    def _purge_stale(self, now: float) -> None:
        # Both windows elapsed: the record would restart from scratch anyway
        stale = [
            client_id
            for client_id, counter in self._store.items()
            if now > counter.day_window_end and now > counter.minute_window_end
        ]
        for client_id in stale:
            del self._store[client_id]

    def reset(self, client_id: str) -> None:
        """Reset rate limit for a specific client (for testing)."""
        with self._lock:
            self._store.pop(client_id, None)

    @property
    def tracked_clients(self) -> int:
        return len(self._store)
