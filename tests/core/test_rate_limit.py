from __future__ import annotations

import pytest

from taskboard_api.core.rate_limit import FixedWindowRateLimiter, retry_after_seconds


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_sixth_attempt_in_window_is_rejected() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(limit=5, window_seconds=60, clock=clock)

    decisions = [limiter.check("10.0.0.1") for _ in range(6)]

    assert [d.allowed for d in decisions] == [True] * 5 + [False]
    assert decisions[4].remaining == 0
    assert retry_after_seconds(decisions[5]) == 60


def test_window_reopens_after_expiry() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    assert limiter.check("a").allowed
    clock.now += 30
    blocked = limiter.check("a")
    assert not blocked.allowed
    assert retry_after_seconds(blocked) == 30

    clock.now += 30
    assert limiter.check("a").allowed


def test_keys_are_independent() -> None:
    limiter = FixedWindowRateLimiter(limit=1, window_seconds=60, clock=FakeClock())

    assert limiter.check("a").allowed
    assert limiter.check("b").allowed
    assert not limiter.check("a").allowed


def test_expired_windows_are_evicted() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(limit=3, window_seconds=10, clock=clock)
    for key in ("a", "b", "c"):
        limiter.check(key)
    assert len(limiter) == 3

    clock.now += 11
    limiter.check("d")

    assert len(limiter) == 1


def test_reset_clears_state() -> None:
    limiter = FixedWindowRateLimiter(limit=1, window_seconds=60, clock=FakeClock())
    limiter.check("a")
    limiter.reset("a")

    assert limiter.check("a").allowed


@pytest.mark.parametrize(("limit", "window"), [(0, 60), (1, 0)])
def test_invalid_configuration(limit: int, window: float) -> None:
    with pytest.raises(ValueError):
        FixedWindowRateLimiter(limit=limit, window_seconds=window)
