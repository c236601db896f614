"""Fixed-window per-user rate limiting."""

import pytest

from clearlens.api_exceptions import RateLimitError
from clearlens.rate_limiter import RateLimiter

from conftest import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(limit=30, window_seconds=60, clock=clock)


def test_thirtieth_request_passes_thirty_first_fails(limiter):
    for _ in range(30):
        limiter.check_rate_limit("u1")
    with pytest.raises(RateLimitError) as exc_info:
        limiter.check_rate_limit("u1")
    assert exc_info.value.status_code == 429
    assert exc_info.value.headers() == {"Retry-After": "60"}


def test_keys_are_independent(limiter):
    for _ in range(30):
        limiter.check_rate_limit("u1")
    limiter.check_rate_limit("u2")
    assert limiter.entries["u2"].count == 1


def test_window_resets_count_to_one(limiter, clock):
    for _ in range(31):
        limiter.hit("u1")
    clock.advance(60)
    assert limiter.hit("u1") == (True, 0)
    assert limiter.entries["u1"].count == 1


def test_retry_after_counts_down(limiter, clock):
    for _ in range(30):
        limiter.hit("u1")
    clock.advance(45.5)
    assert limiter.hit("u1") == (False, 15)


def test_expired_entries_are_swept(limiter, clock):
    limiter.hit("stale")
    clock.advance(30)
    limiter.hit("fresh")
    clock.advance(31)
    limiter.hit("other")
    assert "stale" not in limiter.entries
    assert "fresh" in limiter.entries
