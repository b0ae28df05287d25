"""Token-bucket rate limiting for the login endpoint.

One bucket per client key (the peer IP address). Buckets refill
continuously at ``rate`` tokens per second up to ``capacity``.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable

from starlette.requests import Request

__all__ = ["RateLimiter", "RateLimitInfo", "client_key"]


class _Bucket:
    __slots__ = ("tokens", "updated")

    def __init__(self, tokens: float, updated: float):
        self.tokens = tokens
        self.updated = updated


class RateLimitInfo:
    """Outcome of one ``check()``."""

    __slots__ = ("allowed", "limit", "remaining", "reset_after")

    def __init__(self, allowed: bool, limit: int, remaining: int, reset_after: float):
        self.allowed = allowed
        self.limit = limit
        self.remaining = remaining
        self.reset_after = reset_after

    def headers(self) -> dict[str, str]:
        h = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_after)),
        }
        if not self.allowed:
            h["Retry-After"] = str(max(1, math.ceil(self.reset_after)))
        return h


class RateLimiter:
    """Per-key token bucket.

    Parameters
    ----------
    rate : float
        Tokens restored per second. Zero disables refilling.
    capacity : int
        Burst size.
    """

    def __init__(self, rate: float, capacity: int, clock: Callable[[], float] = time.monotonic):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}

    def allow(self, key: str) -> bool:
        return self.check(key).allowed

    def check(self, key: str) -> RateLimitInfo:
        """Consume one token for *key* if available."""
        now = self._clock()
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = self._buckets[key] = _Bucket(float(self.capacity), now)
        else:
            bucket.tokens = min(self.capacity, bucket.tokens + (now - bucket.updated) * self.rate)
            bucket.updated = now

        if bucket.tokens < 1.0:
            wait = (1.0 - bucket.tokens) / self.rate if self.rate > 0 else float(self.capacity)
            return RateLimitInfo(False, self.capacity, 0, wait)

        bucket.tokens -= 1.0
        full_in = (self.capacity - bucket.tokens) / self.rate if self.rate > 0 else 0.0
        return RateLimitInfo(True, self.capacity, int(bucket.tokens), full_in)

    def cleanup(self, max_age: float = 3600.0) -> int:
        """Drop buckets idle for longer than *max_age* seconds."""
        now = self._clock()
        stale = [k for k, b in self._buckets.items() if now - b.updated > max_age]
        for k in stale:
            del self._buckets[k]
        return len(stale)


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"
