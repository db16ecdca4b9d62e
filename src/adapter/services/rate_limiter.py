"""Rate Limiter Implementations

Token buckets for the provider's per-minute, per-hour and per-day send
ceilings. Instances are injected per dispatcher process.
"""

import logging
import threading
import time
from typing import Callable, List, Optional
from src.app.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class TokenBucketRateLimiter(RateLimiter):
    """
    Token bucket holding `capacity` tokens, refilled continuously so the
    bucket goes from empty to full in `period_seconds`
    """

    def __init__(self, capacity: int, period_seconds: float, clock: Optional[Clock] = None, name: str = ""):
        if capacity <= 0 or period_seconds <= 0:
            raise ValueError("capacity and period_seconds must be positive")
        self.capacity = capacity
        self.period_seconds = period_seconds
        self.clock = clock or time.monotonic
        self.name = name or f"{capacity}/{period_seconds:g}s"
        self._tokens = float(capacity)
        self._updated_at = self.clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self.clock()
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.capacity / self.period_seconds)
        self._updated_at = now

    def available(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens

    def can_acquire(self, tokens: int = 1) -> bool:
        return self.available() >= tokens

    def try_acquire(self, tokens: int = 1) -> bool:
        with self._lock:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                return True
            return False


class CompositeRateLimiter(RateLimiter):
    """
    Grants only when every limiter can grant; tokens are taken from all of
    them or from none.
    """

    def __init__(self, limiters: List[TokenBucketRateLimiter]):
        self.limiters = limiters
        self._lock = threading.Lock()

    def try_acquire(self, tokens: int = 1) -> bool:
        with self._lock:
            exhausted = [limiter.name for limiter in self.limiters if not limiter.can_acquire(tokens)]
            if exhausted:
                logger.warning(f"Rate limit exhausted: {', '.join(exhausted)}")
                return False
            for limiter in self.limiters:
                limiter.try_acquire(tokens)
            return True


def create_rate_limiter(
    per_minute: int = 60,
    per_hour: int = 1000,
    per_day: int = 5000,
    clock: Optional[Clock] = None,
) -> RateLimiter:
    """
    Factory function for the provider send limiter

    A ceiling of 0 disables that window.
    """
    windows = [("minute", per_minute, 60), ("hour", per_hour, 3600), ("day", per_day, 86400)]
    limiters = [
        TokenBucketRateLimiter(capacity, period, clock=clock, name=f"{capacity}/{window}")
        for window, capacity, period in windows
        if capacity > 0
    ]
    return CompositeRateLimiter(limiters)
