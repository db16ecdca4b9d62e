"""Unit tests for the token bucket rate limiters"""

import pytest

from src.adapter.services.rate_limiter import (
    CompositeRateLimiter,
    TokenBucketRateLimiter,
    create_rate_limiter,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestTokenBucketRateLimiter:

    def test_grants_up_to_capacity(self):
        limiter = TokenBucketRateLimiter(3, 60, clock=FakeClock())

        assert [limiter.try_acquire() for _ in range(4)] == [True, True, True, False]

    def test_refills_over_time(self):
        clock = FakeClock()
        limiter = TokenBucketRateLimiter(60, 60, clock=clock)
        for _ in range(60):
            limiter.try_acquire()

        assert limiter.try_acquire() is False
        clock.advance(1)
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is False

    def test_never_exceeds_capacity(self):
        clock = FakeClock()
        limiter = TokenBucketRateLimiter(5, 60, clock=clock)

        clock.advance(3600)

        assert limiter.available() == 5

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            TokenBucketRateLimiter(0, 60)


class TestCompositeRateLimiter:

    def test_all_windows_must_grant(self):
        clock = FakeClock()
        minute = TokenBucketRateLimiter(10, 60, clock=clock, name="10/minute")
        hour = TokenBucketRateLimiter(2, 3600, clock=clock, name="2/hour")
        limiter = CompositeRateLimiter([minute, hour])

        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is False

    def test_denied_request_takes_no_tokens(self):
        clock = FakeClock()
        minute = TokenBucketRateLimiter(10, 60, clock=clock)
        hour = TokenBucketRateLimiter(1, 3600, clock=clock)
        limiter = CompositeRateLimiter([minute, hour])

        limiter.try_acquire()
        limiter.try_acquire()

        assert minute.available() == pytest.approx(9)


def test_factory_skips_disabled_windows():
    limiter = create_rate_limiter(per_minute=2, per_hour=0, per_day=0, clock=FakeClock())

    assert len(limiter.limiters) == 1
    assert [limiter.try_acquire() for _ in range(3)] == [True, True, False]
