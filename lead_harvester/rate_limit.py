"""Fixed pauses and minimum-interval limiting for outbound requests."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

Sleeper = Callable[[float], None]


@dataclass
class DelayPolicy:
    """Pause for a fixed number of seconds after each request."""

    delay_seconds: float = 0.0

    def pause(self, sleep: Sleeper = time.sleep) -> None:
        if self.delay_seconds > 0:
            sleep(self.delay_seconds)


class RateLimiter:
    """Token bucket style rate limiter enforcing minimum interval between calls."""

    def __init__(
        self,
        calls_per_minute: Optional[float],
        *,
        sleep: Sleeper = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._interval = 60.0 / float(calls_per_minute) if calls_per_minute else 0.0
        self._sleep = sleep
        self._monotonic = monotonic
        self._lock = threading.Lock()
        self._next_available = 0.0

    @property
    def interval(self) -> float:
        return self._interval

    def acquire(self) -> None:
        if self._interval <= 0:
            return
        with self._lock:
            now = self._monotonic()
            if now < self._next_available:
                self._sleep(self._next_available - now)
                now = self._monotonic()
            self._next_available = now + self._interval


__all__ = ["DelayPolicy", "RateLimiter", "Sleeper"]
