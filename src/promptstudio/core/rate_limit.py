"""Rate limiting for generation calls."""

import threading
import time
from typing import Optional

from promptstudio.core.logging import get_logger

logger = get_logger("promptstudio.rate_limit")


class TokenBucket:
    """
    Token bucket rate limiter.

    Allows a certain number of requests per time period, with tokens refilling
    at a constant rate.
    """

    def __init__(self, rate: float, capacity: float):
        """
        Initialize token bucket.

        Args:
            rate: Tokens (requests) per second to refill
            capacity: Maximum number of tokens in bucket
        """
        self.rate = rate
        self.capacity = capacity
        self.tokens = capacity
        self.last_update = time.monotonic()
        self.lock = threading.Lock()

    def acquire(self, tokens: float = 1.0) -> bool:
        """Try to take tokens from the bucket without waiting."""
        with self.lock:
            now = time.monotonic()
            elapsed = now - self.last_update
            self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
            self.last_update = now

            if self.tokens >= tokens:
                self.tokens -= tokens
                return True
            return False

    def wait(self, tokens: float = 1.0) -> float:
        """
        Wait until tokens are available, then take them.

        Returns:
            Number of seconds waited
        """
        start_time = time.monotonic()

        while not self.acquire(tokens):
            with self.lock:
                needed = tokens - self.tokens
                wait_time = needed / self.rate if self.rate > 0 else 1.0
            time.sleep(min(wait_time + 0.05, 1.0))

        elapsed = time.monotonic() - start_time
        if elapsed > 0.01:
            logger.debug(
                f"Rate limit wait: {elapsed:.2f}s",
                context={"tokens": tokens, "wait_time": elapsed},
            )
        return elapsed


class RateLimiter:
    """Rate limiter holding one token bucket per key (one key per model profile)."""

    def __init__(self, requests_per_minute: float = 30.0, burst: Optional[float] = None):
        """
        Initialize rate limiter.

        Args:
            requests_per_minute: Limit applied to every key
            burst: Bucket capacity (defaults to a fifth of a minute's worth, at least 1)
        """
        self.default_rate = requests_per_minute / 60.0
        self.default_capacity = burst if burst is not None else max(1.0, requests_per_minute / 5.0)
        self.buckets: dict[str, TokenBucket] = {}
        self.lock = threading.Lock()

    def _bucket(self, key: str) -> TokenBucket:
        with self.lock:
            if key not in self.buckets:
                self.buckets[key] = TokenBucket(self.default_rate, self.default_capacity)
            return self.buckets[key]

    def acquire(self, key: str, wait: bool = True) -> bool:
        """
        Take one request slot for a key.

        Args:
            key: Limit key
            wait: If True, block until a slot is free

        Returns:
            True if a slot was taken
        """
        bucket = self._bucket(key)
        if wait:
            bucket.wait()
            return True
        return bucket.acquire()
