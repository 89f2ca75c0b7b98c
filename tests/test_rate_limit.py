from typing import List

from lead_harvester.rate_limit import DelayPolicy, RateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def test_delay_policy_sleeps_fixed_amount() -> None:
    sleeps: List[float] = []

    DelayPolicy(1.5).pause(sleeps.append)
    DelayPolicy(0).pause(sleeps.append)

    assert sleeps == [1.5]


def test_rate_limiter_enforces_minimum_interval() -> None:
    clock = FakeClock()
    limiter = RateLimiter(60, sleep=clock.sleep, monotonic=clock.monotonic)

    limiter.acquire()
    clock.now += 0.25
    limiter.acquire()
    clock.now += 5
    limiter.acquire()

    assert limiter.interval == 1.0
    assert clock.sleeps == [0.75]


def test_rate_limiter_without_limit_never_sleeps() -> None:
    clock = FakeClock()
    limiter = RateLimiter(None, sleep=clock.sleep, monotonic=clock.monotonic)

    for _ in range(3):
        limiter.acquire()

    assert clock.sleeps == []
