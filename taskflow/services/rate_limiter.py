"""
Per-principal admission control for the AI endpoint.

Each key gets a token bucket that refills in whole intervals: every elapsed
interval adds ``refill_tokens`` at once, capped at ``capacity``. Buckets are
created on first use and kept for the life of the registry.
"""
from typing import Callable, Dict, Optional
import threading
import time

from ..core.errors import RateLimitedError
from ..utils.logging import get_logger

logger = get_logger(__name__)

ANONYMOUS_KEY = "anonymous"

Clock = Callable[[], float]


class TokenBucket:
    """Interval-refill token bucket; safe to share between threads."""

    def __init__(
        self,
        capacity: int,
        refill_tokens: int,
        interval: float,
        clock: Clock = time.monotonic
    ) -> None:
        if capacity <= 0 or refill_tokens <= 0 or interval <= 0:
            raise ValueError("capacity, refill_tokens and interval must be positive")
        self.capacity = capacity
        self.refill_tokens = refill_tokens
        self.interval = interval
        self._clock = clock
        self._tokens = capacity
        self._last_refill = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._clock()
        intervals = int((now - self._last_refill) // self.interval)
        if intervals > 0:
            self._tokens = min(self.capacity, self._tokens + intervals * self.refill_tokens)
            self._last_refill += intervals * self.interval

    def try_consume(self, tokens: int = 1) -> bool:
        with self._lock:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                return True
            return False

    @property
    def available_tokens(self) -> int:
        with self._lock:
            self._refill()
            return self._tokens


class BucketRegistry:
    """Owns the buckets, one per principal key."""

    def __init__(
        self,
        capacity: int = 10,
        refill_tokens: int = 10,
        interval: float = 60.0,
        clock: Clock = time.monotonic
    ) -> None:
        self.capacity = capacity
        self.refill_tokens = refill_tokens
        self.interval = interval
        self._clock = clock
        self._buckets: Dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> TokenBucket:
        bucket = self._buckets.get(key)
        if bucket is not None:
            return bucket
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(self.capacity, self.refill_tokens, self.interval, self._clock)
                self._buckets[key] = bucket
            return bucket

    def __len__(self) -> int:
        return len(self._buckets)


class RateGuard:
    def __init__(self, registry: BucketRegistry) -> None:
        self.registry = registry

    @staticmethod
    def key_for(principal_key: Optional[str]) -> str:
        return principal_key or ANONYMOUS_KEY

    def admit(self, principal_key: Optional[str]) -> bool:
        """Consume one token for the key; False when its bucket is empty."""
        key = self.key_for(principal_key)
        return self.registry.get(key).try_consume(1)

    def check(self, principal_key: Optional[str]) -> None:
        """Like ``admit`` but raises RateLimitedError on deny."""
        if not self.admit(principal_key):
            key = self.key_for(principal_key)
            logger.warning(f"Rate limit exceeded for user: {key}")
            raise RateLimitedError(key)
