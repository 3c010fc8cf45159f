"""
Sliding-window submission gate.

Keeps per-key hit timestamps in memory for the lifetime of the process and
checks each submission against a short burst window and a long window.
One limiter instance is built at startup and injected into request handlers.

Dependencies: collections, threading
System role: Rate limiting for job submissions
"""

from collections import deque
from dataclasses import dataclass
import logging
import threading
import time
from typing import Callable, Iterable

from backend.core.exceptions import BurstLimitExceeded, RateLimitExceeded

logger = logging.getLogger(__name__)

BURST = "burst"
LONG = "window"


@dataclass(frozen=True)
class RateLimitDecision:
    """
    Outcome of a rate limit check.

    Attributes:
        allowed: Whether the submission may proceed
        reason: None when allowed, otherwise "burst" or "window"
        key: Limiter key that caused the denial
        retry_after: Seconds until the offending window frees a slot
    """

    allowed: bool
    reason: str | None = None
    key: str | None = None
    retry_after: float = 0.0

    def raise_if_denied(self) -> None:
        """Raise the matching exception for a denied decision."""
        if self.allowed:
            return
        if self.reason == BURST:
            raise BurstLimitExceeded(self.retry_after, self.key)
        raise RateLimitExceeded(self.retry_after, self.key)


class SlidingWindowRateLimiter:
    """
    Two-tier sliding-window limiter over arbitrary string keys.

    A check passes only if every key is under both the burst limit and the
    long-window limit. Hits are recorded on all keys only when the check
    passes, so denied requests do not extend a caller's lockout.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        burst_limit: int,
        burst_window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval_seconds: float | None = None,
    ) -> None:
        """
        Initialize limiter.

        Args:
            limit: Hits allowed per long window
            window_seconds: Long window length
            burst_limit: Hits allowed per burst window
            burst_window_seconds: Burst window length
            clock: Monotonic time source (injectable for tests)
            sweep_interval_seconds: Minimum time between sweeps that drop
                keys with no hits left in the long window (defaults to the
                burst window)
        """
        if limit < 1 or burst_limit < 1:
            raise ValueError("Rate limits must allow at least one request")
        if window_seconds <= 0 or burst_window_seconds <= 0:
            raise ValueError("Rate limit windows must be positive")

        self.limit = limit
        self.window_seconds = window_seconds
        self.burst_limit = burst_limit
        self.burst_window_seconds = burst_window_seconds
        self._clock = clock
        self._sweep_interval = sweep_interval_seconds or burst_window_seconds
        self._last_sweep = clock()
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, key: str, now: float) -> deque[float]:
        # Only the long window needs pruning; it contains the burst window.
        bucket = self._hits.get(key)
        if bucket is None:
            return deque()
        while bucket and now - bucket[0] >= self.window_seconds:
            bucket.popleft()
        if not bucket:
            del self._hits[key]
        return bucket

    def _sweep(self, now: float) -> int:
        self._last_sweep = now
        stale = [
            key
            for key, bucket in self._hits.items()
            if not bucket or now - bucket[-1] >= self.window_seconds
        ]
        for key in stale:
            del self._hits[key]
        return len(stale)

    def sweep(self) -> int:
        """
        Drop every key whose newest hit has left the long window.

        Returns:
            int: Number of keys removed
        """
        with self._lock:
            removed = self._sweep(self._clock())
        if removed:
            logger.debug("Swept idle rate limit keys", extra={"removed": removed})
        return removed

    def _burst_count(self, bucket: deque[float], now: float) -> tuple[int, float | None]:
        count = 0
        oldest = None
        for stamp in reversed(bucket):
            if now - stamp >= self.burst_window_seconds:
                break
            count += 1
            oldest = stamp
        return count, oldest

    def check(self, keys: Iterable[str]) -> RateLimitDecision:
        """
        Check and, when allowed, record one hit for every key.

        Burst windows are evaluated for all keys before long windows so a
        caller hammering the service is told to slow down rather than
        wait out the full window.

        Args:
            keys: Limiter keys for this submission (e.g. ip and user keys)

        Returns:
            RateLimitDecision: Allowed, or the first violated key and window
        """
        keys = list(dict.fromkeys(keys))
        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep(now)
            buckets = {key: self._prune(key, now) for key in keys}

            for key, bucket in buckets.items():
                count, oldest = self._burst_count(bucket, now)
                if count >= self.burst_limit:
                    retry_after = self.burst_window_seconds - (now - oldest)
                    return RateLimitDecision(False, BURST, key, max(retry_after, 0.0))

            for key, bucket in buckets.items():
                if len(bucket) >= self.limit:
                    retry_after = self.window_seconds - (now - bucket[0])
                    return RateLimitDecision(False, LONG, key, max(retry_after, 0.0))

            for key in keys:
                self._hits.setdefault(key, deque()).append(now)

        return RateLimitDecision(True)

    def remaining(self, key: str) -> int:
        """Hits left in the long window for ``key``."""
        with self._lock:
            bucket = self._prune(key, self._clock())
            return max(self.limit - len(bucket), 0)

    def reset(self) -> None:
        """Forget all recorded hits."""
        with self._lock:
            self._hits.clear()

    @property
    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)


class RateLimitGate:
    """
    Submission policy on top of the limiter.

    Every submission is counted against the caller's IP address and, for
    authenticated principals, against their user id.
    """

    def __init__(self, limiter: SlidingWindowRateLimiter) -> None:
        self.limiter = limiter

    @staticmethod
    def keys_for(principal_id: str | None, ip_address: str) -> list[str]:
        """
        Build limiter keys for a submission.

        Args:
            principal_id: Authenticated user id, None for guests
            ip_address: Client address

        Returns:
            list[str]: ip key first, then the user key when present
        """
        keys = [f"ip:{ip_address or 'unknown'}"]
        if principal_id:
            keys.append(f"user:{principal_id}")
        return keys

    def check(self, principal_id: str | None, ip_address: str) -> RateLimitDecision:
        """Evaluate the policy for one submission without raising."""
        return self.limiter.check(self.keys_for(principal_id, ip_address))

    def enforce(self, principal_id: str | None, ip_address: str) -> None:
        """
        Evaluate the policy and raise on denial.

        Raises:
            BurstLimitExceeded: Short window exhausted
            RateLimitExceeded: Long window exhausted
        """
        decision = self.check(principal_id, ip_address)
        if not decision.allowed:
            logger.warning(
                "Submission throttled",
                extra={
                    "reason": decision.reason,
                    "key": decision.key,
                    "retry_after": round(decision.retry_after, 2),
                },
            )
        decision.raise_if_denied()
