"""Tests for the sliding-window rate limiter."""

import pytest
from shared.errors import StorageUnavailable
from shared.ratelimit import (
    PROFILES,
    RateLimitResult,
    SlidingWindowRateLimiter,
    get_rate_limiter,
    set_rate_limiter,
)
from shared.store.memory_adapter import MemoryStore
from shared.store.null_adapter import NullStore


class DownStore(MemoryStore):
    def slide_window(self, *args, **kwargs):
        raise StorageUnavailable(cause=TimeoutError("timed out"))


@pytest.fixture()
def limiter(memory_store, clock):
    return SlidingWindowRateLimiter(memory_store, name="test", window_ms=60_000, max_requests=3, clock=clock)


class TestAdmission:
    def test_admits_up_to_max_then_denies(self, limiter):
        results = [limiter.is_allowed("1.2.3.4") for _ in range(4)]

        assert [r.allowed for r in results] == [True, True, True, False]
        assert [r.remaining for r in results] == [2, 1, 0, 0]
        assert all(r.total == 3 for r in results)

    def test_identifiers_are_independent(self, limiter):
        for _ in range(3):
            limiter.is_allowed("a")
        assert limiter.is_allowed("a").allowed is False
        assert limiter.is_allowed("b").allowed is True

    def test_window_slides(self, limiter, clock):
        for _ in range(3):
            limiter.is_allowed("a")
            clock.advance(10)
        assert limiter.is_allowed("a").allowed is False

        # The first request (t=0) leaves the window at t=60
        clock.advance(31)
        assert limiter.is_allowed("a").allowed is True
        assert limiter.is_allowed("a").allowed is False

    def test_denials_are_not_recorded(self, limiter, clock):
        for _ in range(10):
            limiter.is_allowed("a")
        clock.advance(61)
        assert limiter.is_allowed("a").remaining == 2

    def test_reset_time_is_one_window_ahead(self, limiter, clock):
        result = limiter.is_allowed("a")
        assert result.reset_time == int(clock() * 1000) + 60_000

    def test_invalid_configuration(self, memory_store):
        with pytest.raises(ValueError):
            SlidingWindowRateLimiter(memory_store, name="x", window_ms=0, max_requests=1)
        with pytest.raises(ValueError):
            SlidingWindowRateLimiter(memory_store, name="x", window_ms=1000, max_requests=0)


class TestProfiles:
    def test_profiles_do_not_share_counters(self, memory_store, clock):
        auth = SlidingWindowRateLimiter.for_profile("auth", memory_store, clock=clock)
        api = SlidingWindowRateLimiter.for_profile("api", memory_store, clock=clock)

        for _ in range(PROFILES["auth"].max_requests):
            assert auth.is_allowed("ip").allowed
        assert auth.is_allowed("ip").allowed is False
        assert api.is_allowed("ip").allowed is True

    def test_documented_budgets(self):
        assert PROFILES["api"].max_requests == 1000
        assert PROFILES["auth"].max_requests == 10
        assert PROFILES["auth"].window_ms == 15 * 60 * 1000

    def test_get_rate_limiter_is_singleton_per_profile(self, memory_store):
        assert get_rate_limiter("api") is get_rate_limiter("api")
        assert get_rate_limiter("api") is not get_rate_limiter("auth")
        assert get_rate_limiter("search").store is memory_store

    def test_unknown_profile(self):
        with pytest.raises(ValueError):
            get_rate_limiter("bulk")

    def test_set_rate_limiter_overrides_profile(self, memory_store):
        custom = SlidingWindowRateLimiter(memory_store, name="api", window_ms=1000, max_requests=1)
        set_rate_limiter(custom)
        assert get_rate_limiter("api") is custom


class TestFailOpen:
    def test_store_failure_admits_request(self, clock):
        limiter = SlidingWindowRateLimiter(DownStore(), name="t", window_ms=1000, max_requests=5, clock=clock)

        result = limiter.is_allowed("a")
        assert result.allowed is True
        assert result.remaining == 4

    def test_disabled_store_admits_everything(self):
        limiter = SlidingWindowRateLimiter(NullStore(), name="t", window_ms=1000, max_requests=1)
        assert all(limiter.is_allowed("a").allowed for _ in range(20))


class TestResult:
    def test_headers(self):
        result = RateLimitResult(allowed=True, remaining=7, reset_time=1234, total=10, window_ms=60_000)
        assert result.headers() == {
            "X-RateLimit-Limit": "10",
            "X-RateLimit-Remaining": "7",
            "X-RateLimit-Reset": "1234",
        }

    def test_retry_after_rounds_up_to_seconds(self):
        assert RateLimitResult(False, 0, 0, 1, window_ms=1500).retry_after == 2
        assert RateLimitResult(False, 0, 0, 1, window_ms=60_000).retry_after == 60
