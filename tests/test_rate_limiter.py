import pytest

from fleetplan.services.ratelimit import RateLimiter


class FakeClock:
    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now


def test_allows_exactly_max_requests_per_window():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=3, window_ms=1000, clock=clock)

    results = [limiter.check_limit("dispatcher-1") for _ in range(3)]
    assert all(result.allowed for result in results)
    assert [result.remaining for result in results] == [2, 1, 0]

    rejected = limiter.check_limit("dispatcher-1")
    assert not rejected.allowed
    assert rejected.remaining == 0
    assert rejected.reset_in_ms == 1000


def test_rejected_calls_are_not_counted_and_window_resets():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=2, window_ms=1000, clock=clock)
    limiter.check_limit("a")
    limiter.check_limit("a")

    clock.now = 400
    assert not limiter.check_limit("a").allowed
    assert limiter.check_limit("a").reset_in_ms == 600

    clock.now = 1000
    fresh = limiter.check_limit("a")
    assert fresh.allowed
    assert fresh.remaining == 1
    assert limiter.check_limit("a").allowed
    assert not limiter.check_limit("a").allowed


def test_callers_are_counted_independently():
    limiter = RateLimiter(max_requests=1, window_ms=1000, clock=FakeClock())

    assert limiter.check_limit("a").allowed
    assert not limiter.check_limit("a").allowed
    assert limiter.check_limit("b").allowed


@pytest.mark.parametrize("caller_id", [None, ""])
def test_anonymous_callers_are_not_throttled(caller_id):
    limiter = RateLimiter(max_requests=1, window_ms=1000, clock=FakeClock())

    for _ in range(5):
        result = limiter.check_limit(caller_id)
        assert result.allowed
        assert result.remaining == 1
    assert len(limiter) == 0


def test_expired_windows_are_purged_periodically():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=5, window_ms=100, clock=clock, cleanup_every=3)
    limiter.check_limit("old-1")
    limiter.check_limit("old-2")
    assert len(limiter) == 2

    clock.now = 500
    limiter.check_limit("new")

    assert len(limiter) == 1


def test_rejects_invalid_limits():
    with pytest.raises(ValueError):
        RateLimiter(max_requests=0, window_ms=1000)
    with pytest.raises(ValueError):
        RateLimiter(max_requests=1, window_ms=0)
