"""Tests for call spacing."""

import pytest

from fo_engine.llm.backends import CallableBackend
from fo_engine.llm.rate_limit import MinIntervalRateLimiter, RateLimitedBackend


class FakeTime:
    """Clock that only advances when something sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def clock(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def test_first_call_does_not_wait():
    fake = FakeTime()
    limiter = MinIntervalRateLimiter(2.0, clock=fake.clock, sleep=fake.sleep)
    assert limiter.acquire() == 0.0
    assert fake.sleeps == []


def test_back_to_back_calls_are_spaced():
    fake = FakeTime()
    limiter = MinIntervalRateLimiter(2.0, clock=fake.clock, sleep=fake.sleep)
    limiter.acquire()
    limiter.acquire()
    limiter.acquire()
    assert fake.sleeps == [pytest.approx(2.0), pytest.approx(2.0)]
    assert fake.now == pytest.approx(4.0)


def test_elapsed_time_counts_toward_interval():
    fake = FakeTime()
    limiter = MinIntervalRateLimiter(2.0, clock=fake.clock, sleep=fake.sleep)
    limiter.acquire()
    fake.now += 1.5
    assert limiter.acquire() == pytest.approx(0.5)


def test_zero_interval_never_waits():
    fake = FakeTime()
    limiter = MinIntervalRateLimiter(0, clock=fake.clock, sleep=fake.sleep)
    for _ in range(3):
        assert limiter.acquire() == 0.0
    assert fake.sleeps == []


def test_negative_interval_rejected():
    with pytest.raises(ValueError):
        MinIntervalRateLimiter(-1)


def test_rate_limited_backend_delegates():
    fake = FakeTime()
    limiter = MinIntervalRateLimiter(1.0, clock=fake.clock, sleep=fake.sleep)
    backend = RateLimitedBackend(CallableBackend(lambda prompt: prompt.upper(), name="echo"), limiter)

    assert backend.complete("hi") == "HI"
    assert backend.complete("again") == "AGAIN"
    assert backend.name == "echo"
    assert fake.sleeps == [pytest.approx(1.0)]
