"""Token bucket rate limiter for name-data provider calls.

Each provider gets one limiter with a per-minute request bucket and,
for providers with a daily quota (genderize.io, Behind the Name), a
per-day request bucket.

Usage:
    limiter = RateLimiter.for_provider("genderize", tier=1)
    await limiter.acquire()
    ...
    limiter.update_from_headers(response.headers)
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Mapping

from .errors import ProviderError
from .rate_limits import get_limits

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86_400.0


@dataclass
class TokenBucket:
    """Token bucket for rate limiting.

    Tokens refill continuously at `refill_rate` per second,
    up to `capacity`. Each acquire() consumes tokens.
    """

    capacity: float
    refill_rate: float  # tokens per second
    tokens: float = field(init=False)
    last_refill: float = field(init=False)

    def __post_init__(self):
        self.tokens = self.capacity
        self.last_refill = time.monotonic()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def try_acquire(self, amount: float = 1.0) -> float:
        """Try to acquire tokens.

        Returns:
            0.0 if acquired, or positive float = seconds to wait
        """
        self._refill()
        if self.tokens >= amount:
            self.tokens -= amount
            return 0.0
        deficit = amount - self.tokens
        return deficit / self.refill_rate if self.refill_rate > 0 else 60.0

    def release(self, amount: float = 1.0) -> None:
        """Give back tokens taken by a try_acquire() that is being rolled back."""
        self.tokens = min(self.capacity, self.tokens + amount)

    def drain(self, hold_for: float = 0.0) -> None:
        """Empty the bucket and keep it empty for `hold_for` seconds."""
        self._refill()
        self.tokens = -hold_for * self.refill_rate


class RateLimiter:
    """Per-provider request limiter (RPM bucket plus optional RPD bucket)."""

    def __init__(
        self,
        rpm: int,
        rpd: int = 0,
        provider: str = "",
        max_wait: float = 30.0,
    ):
        """Initialize rate limiter with explicit limits.

        Args:
            rpm: Requests per minute limit
            rpd: Requests per day limit (0 = no daily quota)
            provider: Provider name (for logging and errors)
            max_wait: Longest total wait acquire() accepts before giving up
        """
        self.provider = provider
        self.rpm = rpm
        self.rpd = rpd
        self.max_wait = max_wait

        self.rpm_bucket = TokenBucket(capacity=float(rpm), refill_rate=rpm / 60.0)
        self.rpd_bucket = (
            TokenBucket(capacity=float(rpd), refill_rate=rpd / _SECONDS_PER_DAY)
            if rpd > 0
            else None
        )

        self.total_acquired = 0
        self.total_wait_time = 0.0

        logger.info(
            f"[RATE_LIMIT] Initialized for {provider}: RPM={rpm}"
            + (f", RPD={rpd}" if rpd else "")
        )

    def _try_all(self) -> float:
        """Acquire one request from every bucket, or roll back and return the wait."""
        rpm_wait = self.rpm_bucket.try_acquire(1.0)
        rpd_wait = self.rpd_bucket.try_acquire(1.0) if self.rpd_bucket else 0.0

        if rpm_wait == 0.0 and rpd_wait == 0.0:
            return 0.0

        if rpm_wait == 0.0:
            self.rpm_bucket.release(1.0)
        if self.rpd_bucket and rpd_wait == 0.0:
            self.rpd_bucket.release(1.0)
        return max(rpm_wait, rpd_wait)

    async def acquire(self) -> float:
        """Wait until a request slot is available, then consume it.

        Returns:
            Actual wait time in seconds (0 if no wait needed)

        Raises:
            ProviderError: If the required wait exceeds max_wait (e.g. daily
                quota exhausted). The aggregator degrades that part.
        """
        total_wait = 0.0
        while True:
            wait_time = self._try_all()
            if wait_time == 0.0:
                self.total_acquired += 1
                self.total_wait_time += total_wait
                return total_wait

            if total_wait + wait_time > self.max_wait:
                raise ProviderError(
                    self.provider,
                    f"rate limit requires waiting {wait_time:.0f}s "
                    f"(max {self.max_wait:.0f}s)",
                )

            # Cap single wait to 5 seconds to stay responsive to cancellation
            wait_time = min(wait_time, 5.0)
            total_wait += wait_time
            if total_wait > 0.5:
                logger.debug(
                    f"[RATE_LIMIT] {self.provider} waiting {wait_time:.1f}s "
                    f"(total_wait={total_wait:.1f}s)"
                )
            await asyncio.sleep(wait_time)

    def update_from_headers(self, headers: Mapping[str, str] | None) -> None:
        """Adjust buckets based on provider response headers.

        Understands `retry-after` and genderize-style
        `x-rate-limit-remaining` headers.
        """
        if not headers:
            return

        retry_after = headers.get("retry-after")
        if retry_after:
            try:
                wait = float(retry_after)
            except ValueError:
                wait = None
            if wait is not None:
                logger.warning(
                    f"[RATE_LIMIT] {self.provider} server requested retry-after={wait}s"
                )
                self.rpm_bucket.drain(hold_for=max(0.0, wait))

        remaining = headers.get("x-rate-limit-remaining")
        if remaining is not None and self.rpd_bucket is not None:
            try:
                left = float(remaining)
            except ValueError:
                return
            self.rpd_bucket._refill()
            self.rpd_bucket.tokens = min(self.rpd_bucket.tokens, max(0.0, left))
            if left <= 0:
                logger.warning(f"[RATE_LIMIT] {self.provider} daily quota exhausted")

    @classmethod
    def for_provider(
        cls,
        provider: str,
        tier: int | None = None,
        rpm_override: int | None = None,
        max_wait: float = 30.0,
    ) -> "RateLimiter":
        """Factory with sensible defaults per provider.

        Args:
            provider: Provider name ('genderize', 'behindthename', 'openai', ...)
            tier: Tier number (None = Tier 1)
            rpm_override: Override RPM limit
            max_wait: Longest total wait acquire() accepts

        Returns:
            Configured RateLimiter instance
        """
        limits = get_limits(provider, tier)
        return cls(
            rpm=rpm_override or limits.get("rpm", 60),
            rpd=limits.get("rpd", 0),
            provider=provider,
            max_wait=max_wait,
        )

    def stats(self) -> dict:
        """Return rate limiter statistics."""
        result = {
            "provider": self.provider,
            "rpm_limit": self.rpm,
            "total_acquired": self.total_acquired,
            "total_wait_time_seconds": round(self.total_wait_time, 2),
        }
        if self.rpd_bucket is not None:
            result["rpd_limit"] = self.rpd
        return result
