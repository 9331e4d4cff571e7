"""
Per-client Rate Limiter for the gateway routes.

Hey future me - this is the INBOUND limiter: it protects us (and our Spotify quota)
from a single client hammering /recent or /now-playing in a tight loop.

ALGORITHM: Fixed Window
- Each client identity gets a bucket {count, reset_at}
- First request (or first after reset_at) opens a new window with count=1
- Every further request in the window increments count
- count > capacity → reject with Retry-After until reset_at

WHY FIXED WINDOW (and not the token bucket we'd use for outbound calls)?
- Clients poll on a timer; a hard "80 per minute" is easy to reason about
- Retry-After is exact: seconds until the window resets

THREAD-SAFETY:
- One process-wide dict, one threading.Lock around check-and-increment
- admit() is sync and O(1), so holding the lock never blocks the event loop noticeably
- Works the same under uvicorn workers with threads, not just asyncio

KNOWN LIMITATION: state lives in this process only. Two instances = two budgets.
Callers without X-Forwarded-For or a peer address share the "unknown" bucket.

USAGE:
    limiter = FixedWindowRateLimiter(RateLimiterConfig(window_seconds=60, capacity=80))
    decision = limiter.admit(client_identity(request))
    if not decision.allowed:
        raise RateLimitExceededError(decision.retry_after_seconds)
"""

import logging
import math
import threading

from collections.abc import Callable
from dataclasses import dataclass, field

from starlette.requests import HTTPConnection

from tracklog.domain.clock import epoch_ms

logger = logging.getLogger(__name__)

UNKNOWN_IDENTITY = "unknown"


@dataclass(frozen=True)
class RateLimiterConfig:
    """Configuration for the fixed-window limiter.

    max_buckets is a housekeeping threshold, not a limit on clients: once the map
    grows past it, expired buckets are swept on the next admit().
    """

    window_seconds: int = 60
    capacity: int = 80
    max_buckets: int = 10_000

    @property
    def window_ms(self) -> int:
        return self.window_seconds * 1000


@dataclass
class RateBucket:
    """Request count for one identity in its current window."""

    count: int
    reset_at: int  # epoch ms

    def is_expired(self, now_ms: int) -> bool:
        return now_ms >= self.reset_at


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of admit(). retry_after_seconds is 0 when allowed."""

    allowed: bool
    retry_after_seconds: int = 0


@dataclass
class FixedWindowRateLimiter:
    """Fixed-window admission control keyed by client identity.

    Attributes:
        config: Window length and capacity
        clock: Epoch-milliseconds source (injectable for tests)
        _buckets: identity → bucket, exactly one per identity
        _lock: Guards every read-modify-write of _buckets
    """

    config: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    clock: Callable[[], int] = epoch_ms

    _buckets: dict[str, RateBucket] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def admit(self, identity: str) -> RateLimitDecision:
        """Count one request for ``identity`` and decide whether to let it through."""
        now = self.clock()

        with self._lock:
            bucket = self._buckets.get(identity)

            # Expired buckets are REPLACED, never incremented - that's the window reset.
            if bucket is None or bucket.is_expired(now):
                if bucket is None and len(self._buckets) >= self.config.max_buckets:
                    self._sweep_expired(now)
                self._buckets[identity] = RateBucket(count=1, reset_at=now + self.config.window_ms)
                return RateLimitDecision(allowed=True)

            bucket.count += 1
            if bucket.count <= self.config.capacity:
                return RateLimitDecision(allowed=True)

            retry_after = max(1, math.ceil((bucket.reset_at - now) / 1000))

        logger.warning(
            "RateLimiter: rejected %s (limit %d per %ds, retry after %ds)",
            identity,
            self.config.capacity,
            self.config.window_seconds,
            retry_after,
        )
        return RateLimitDecision(allowed=False, retry_after_seconds=retry_after)

    def _sweep_expired(self, now: int) -> None:
        """Drop buckets whose window is over. Caller holds the lock."""
        expired = [key for key, bucket in self._buckets.items() if bucket.is_expired(now)]
        for key in expired:
            del self._buckets[key]
        logger.debug(
            "RateLimiter: swept %d expired buckets, %d active",
            len(expired),
            len(self._buckets),
        )

    def reset(self) -> None:
        """Forget all buckets."""
        with self._lock:
            self._buckets.clear()

    @property
    def bucket_count(self) -> int:
        """Number of tracked identities (for debugging)."""
        with self._lock:
            return len(self._buckets)


# Hey future me - X-Forwarded-For is "client, proxy1, proxy2". The FIRST entry is the original
# client as reported by our reverse proxy. Yes, a client can spoof it when we're NOT behind a
# proxy - deploy behind one that overwrites the header.
def client_identity(connection: HTTPConnection) -> str:
    """Derive the rate-limit identity for a request.

    Order: first non-empty X-Forwarded-For entry, transport peer address, "unknown".
    """
    forwarded = connection.headers.get("x-forwarded-for", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    if connection.client and connection.client.host:
        return connection.client.host
    return UNKNOWN_IDENTITY


__all__ = [
    "FixedWindowRateLimiter",
    "RateBucket",
    "RateLimitDecision",
    "RateLimiterConfig",
    "UNKNOWN_IDENTITY",
    "client_identity",
]
