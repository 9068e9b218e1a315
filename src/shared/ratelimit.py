"""Sliding-window rate limiter.

Each identifier (usually the client IP) owns an ordered log of request
timestamps in the shared store. An admission attempt prunes timestamps older
than the window, counts what is left and appends the current request only
when the count is under the limit; the store runs the three steps as one
atomic batch so concurrent requests cannot both take the last slot.

Named profiles (api, auth, search, admin, upload) are independent limiters
with their own window and budget; their counters never mix.

If the store is unreachable the limiter fails open: availability of the
storefront outweighs strict abuse prevention. The degraded decision is
logged on every occurrence.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

import structlog

from shared.errors import StorageUnavailable
from shared.store import get_store
from shared.store.port import EphemeralStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: int  # epoch milliseconds
    total: int
    window_ms: int = 0

    @property
    def retry_after(self) -> int:
        """Seconds a rejected client should wait before retrying."""
        return -(-self.window_ms // 1000)

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.total),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_time),
        }


@dataclass(frozen=True)
class RateLimitProfile:
    window_ms: int
    max_requests: int
    message: str = "Too many requests, please try again later"


PROFILES: dict[str, RateLimitProfile] = {
    # General API traffic
    "api": RateLimitProfile(window_ms=15 * 60 * 1000, max_requests=1000),
    # Login / registration / cart merge at login
    "auth": RateLimitProfile(window_ms=15 * 60 * 1000, max_requests=10),
    "search": RateLimitProfile(window_ms=60 * 1000, max_requests=60),
    "admin": RateLimitProfile(window_ms=60 * 1000, max_requests=200),
    "upload": RateLimitProfile(window_ms=60 * 60 * 1000, max_requests=50),
}


class SlidingWindowRateLimiter:
    """Per-identifier admission control over a moving time window."""

    def __init__(
        self,
        store: EphemeralStore,
        name: str,
        window_ms: int,
        max_requests: int,
        message: str = "Too many requests, please try again later",
        key_prefix: str = "rate_limit",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if window_ms <= 0 or max_requests <= 0:
            raise ValueError("window_ms and max_requests must be positive")
        self.store = store
        self.name = name
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.message = message
        self.key_prefix = key_prefix
        self._clock = clock

    @classmethod
    def for_profile(cls, name: str, store: EphemeralStore, **kwargs) -> "SlidingWindowRateLimiter":
        profile = PROFILES[name]
        return cls(
            store,
            name=name,
            window_ms=profile.window_ms,
            max_requests=profile.max_requests,
            message=profile.message,
            **kwargs,
        )

    def _key(self, identifier: str) -> str:
        return f"{self.key_prefix}:{self.name}:{identifier}"

    def is_allowed(self, identifier: str) -> RateLimitResult:
        now_ms = int(self._clock() * 1000)
        reset_time = now_ms + self.window_ms
        key = self._key(identifier)

        try:
            window = self.store.slide_window(
                key,
                now_ms=now_ms,
                window_ms=self.window_ms,
                limit=self.max_requests,
                member=f"{now_ms}-{uuid4().hex[:12]}",
            )
        except StorageUnavailable as exc:
            logger.warning(
                "Rate limiter store unavailable, failing open",
                limiter=self.name,
                key=key,
                error=str(exc.cause or exc),
            )
            return RateLimitResult(
                allowed=True,
                remaining=self.max_requests - 1,
                reset_time=reset_time,
                total=self.max_requests,
                window_ms=self.window_ms,
            )

        if not window.admitted:
            logger.warning(
                "Rate limit exceeded",
                limiter=self.name,
                identifier=identifier,
                count=window.count,
            )
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_time=reset_time,
                total=self.max_requests,
                window_ms=self.window_ms,
            )

        return RateLimitResult(
            allowed=True,
            remaining=max(0, self.max_requests - window.count - 1),
            reset_time=reset_time,
            total=self.max_requests,
            window_ms=self.window_ms,
        )


# ---------------------------------------------------------------------------
# Process-wide limiters, one per profile
# ---------------------------------------------------------------------------
_limiters: dict[str, SlidingWindowRateLimiter] = {}


def get_rate_limiter(name: str) -> SlidingWindowRateLimiter:
    """Return the limiter for a named profile (singleton per profile)."""
    if name not in PROFILES:
        raise ValueError(f"Unknown rate limit profile: {name}")
    if name not in _limiters:
        _limiters[name] = SlidingWindowRateLimiter.for_profile(name, get_store())
    return _limiters[name]


def set_rate_limiter(limiter: SlidingWindowRateLimiter) -> None:
    """Override the limiter for ``limiter.name`` (useful for tests)."""
    _limiters[limiter.name] = limiter


def reset_rate_limiters() -> None:
    """Drop every limiter singleton."""
    _limiters.clear()
