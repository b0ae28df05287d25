# Tests for the login rate limiter.
# Created: 2026-10-19

from types import SimpleNamespace

import pytest

from storefront.security.rate_limiter import RateLimiter, RateLimitInfo, client_key


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestRateLimiter:
    def test_allows_within_capacity(self):
        rl = RateLimiter(rate=10.0, capacity=5)
        for _ in range(5):
            assert rl.allow("client1") is True

    def test_rejects_over_capacity(self):
        rl = RateLimiter(rate=10.0, capacity=3)
        for _ in range(3):
            rl.allow("client1")
        assert rl.allow("client1") is False

    def test_refills_over_time(self):
        clock = FakeClock()
        rl = RateLimiter(rate=1.0, capacity=1, clock=clock)
        assert rl.allow("a") is True
        assert rl.allow("a") is False
        clock.now += 1.0
        assert rl.allow("a") is True

    def test_zero_rate_never_refills(self):
        clock = FakeClock()
        rl = RateLimiter(rate=0, capacity=1, clock=clock)
        assert rl.allow("a") is True
        clock.now += 3600
        info = rl.check("a")
        assert info.allowed is False
        assert info.reset_after == 1.0

    def test_per_ip_isolation(self):
        rl = RateLimiter(rate=10.0, capacity=1)
        assert rl.allow("ip1") is True
        assert rl.allow("ip1") is False
        # Different IP still has tokens
        assert rl.allow("ip2") is True

    def test_check_returns_info(self):
        info = RateLimiter(rate=10.0, capacity=5).check("test-client")
        assert isinstance(info, RateLimitInfo)
        assert info.allowed is True
        assert info.limit == 5
        assert info.remaining == 4

    def test_cleanup_removes_stale(self):
        clock = FakeClock()
        rl = RateLimiter(rate=10.0, capacity=5, clock=clock)
        rl.allow("old")
        clock.now += 7200
        rl.allow("recent")
        assert rl.cleanup(max_age=3600) == 1
        assert rl.allow("recent") is True

    def test_cleanup_keeps_active(self):
        rl = RateLimiter(rate=10.0, capacity=5)
        rl.allow("active")
        assert rl.cleanup(max_age=3600) == 0

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            RateLimiter(rate=1.0, capacity=0)


class TestRateLimitInfo:
    def test_headers_format(self):
        h = RateLimitInfo(allowed=True, limit=60, remaining=59, reset_after=1.5).headers()
        assert h["X-RateLimit-Limit"] == "60"
        assert h["X-RateLimit-Remaining"] == "59"
        assert h["X-RateLimit-Reset"] == "2"  # ceil(1.5)
        assert "Retry-After" not in h

    def test_headers_denied_format(self):
        h = RateLimitInfo(allowed=False, limit=60, remaining=0, reset_after=3.7).headers()
        assert h["Retry-After"] == "4"

    def test_retry_after_at_least_one(self):
        h = RateLimitInfo(allowed=False, limit=1, remaining=0, reset_after=0.01).headers()
        assert h["Retry-After"] == "1"


def test_client_key():
    assert client_key(SimpleNamespace(client=SimpleNamespace(host="10.0.0.1"))) == "10.0.0.1"
    assert client_key(SimpleNamespace(client=None)) == "unknown"
