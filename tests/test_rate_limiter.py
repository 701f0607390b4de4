"""Tests for the token bucket rate limiter."""

import asyncio
from unittest.mock import patch

import pytest

from namesake.core.errors import ProviderError
from namesake.core.rate_limiter import TokenBucket, RateLimiter
from namesake.core.rate_limits import get_limits


class TestTokenBucket:
    """Tests for the TokenBucket primitive."""

    def test_initial_capacity(self):
        bucket = TokenBucket(capacity=100.0, refill_rate=10.0)
        assert bucket.tokens == 100.0

    def test_acquire_within_capacity(self):
        bucket = TokenBucket(capacity=100.0, refill_rate=10.0)
        wait = bucket.try_acquire(50.0)
        assert wait == 0.0
        assert bucket.tokens == pytest.approx(50.0, abs=1.0)

    def test_acquire_exceeds_capacity(self):
        bucket = TokenBucket(capacity=100.0, refill_rate=10.0)
        # Drain the bucket
        bucket.try_acquire(100.0)
        wait = bucket.try_acquire(50.0)
        assert wait > 0.0

    def test_refill_over_time(self):
        """Tokens refill based on elapsed time."""
        start = 1000.0

        with patch("time.monotonic", return_value=start):
            bucket = TokenBucket(capacity=100.0, refill_rate=10.0)
            bucket.try_acquire(100.0)  # drain

        # Advance 5 seconds → refill 50 tokens
        with patch("time.monotonic", return_value=start + 5.0):
            wait = bucket.try_acquire(50.0)
            assert wait == 0.0

    def test_refill_capped_at_capacity(self):
        """Refill never exceeds capacity."""
        start = 1000.0

        with patch("time.monotonic", return_value=start):
            bucket = TokenBucket(capacity=100.0, refill_rate=10.0)

        # Advance a long time
        with patch("time.monotonic", return_value=start + 1000.0):
            bucket._refill()
            assert bucket.tokens == 100.0

    def test_release_and_drain(self):
        bucket = TokenBucket(capacity=10.0, refill_rate=0.0)
        bucket.try_acquire(4.0)
        bucket.release(2.0)
        assert bucket.tokens == pytest.approx(8.0)
        bucket.drain()
        assert bucket.tokens == 0.0

    def test_drain_with_hold_delays_next_token(self):
        bucket = TokenBucket(capacity=10.0, refill_rate=2.0)
        bucket.drain(hold_for=3.0)
        assert bucket.try_acquire(1.0) == pytest.approx(3.5, abs=0.05)


class TestRateLimiter:
    """Tests for the per-provider RateLimiter."""

    def test_stats(self):
        limiter = RateLimiter(rpm=100, provider="genderize")
        stats = limiter.stats()
        assert stats["provider"] == "genderize"
        assert stats["rpm_limit"] == 100
        assert stats["total_acquired"] == 0
        assert "rpd_limit" not in stats

    def test_stats_with_daily_quota(self):
        limiter = RateLimiter(rpm=60, rpd=100, provider="genderize")
        assert limiter.stats()["rpd_limit"] == 100

    def test_for_provider_genderize(self):
        limiter = RateLimiter.for_provider("genderize", tier=1)
        assert limiter.rpm == 60
        assert limiter.rpd == 100

    def test_for_provider_tier(self):
        limiter = RateLimiter.for_provider("genderize", tier=2)
        assert limiter.rpd == 100_000

    def test_for_provider_unknown(self):
        limiter = RateLimiter.for_provider("unknown_provider")
        # Should use conservative defaults
        assert limiter.rpm == 60
        assert limiter.rpd_bucket is None

    def test_rpm_override(self):
        limiter = RateLimiter.for_provider("openai", tier=1, rpm_override=999)
        assert limiter.rpm == 999

    def test_acquire_immediate(self):
        limiter = RateLimiter(rpm=60, provider="test")
        waited = asyncio.run(limiter.acquire())
        assert waited == 0.0
        assert limiter.total_acquired == 1

    def test_acquire_waits_when_drained(self):
        limiter = RateLimiter(rpm=6000, provider="test")
        limiter.rpm_bucket.drain()
        waited = asyncio.run(limiter.acquire())
        assert waited > 0.0
        assert limiter.total_acquired == 1

    def test_exhausted_daily_quota_raises_provider_error(self):
        limiter = RateLimiter(rpm=60, rpd=1, provider="genderize", max_wait=1.0)
        asyncio.run(limiter.acquire())
        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(limiter.acquire())
        assert exc_info.value.provider == "genderize"

    def test_failed_acquire_does_not_consume_rpm(self):
        limiter = RateLimiter(rpm=60, rpd=1, provider="genderize", max_wait=1.0)
        asyncio.run(limiter.acquire())
        before = limiter.rpm_bucket.tokens
        with pytest.raises(ProviderError):
            asyncio.run(limiter.acquire())
        assert limiter.rpm_bucket.tokens == pytest.approx(before, abs=0.1)


class TestUpdateFromHeaders:
    def test_retry_after_drains_rpm(self):
        limiter = RateLimiter(rpm=60, provider="test")
        limiter.update_from_headers({"retry-after": "2"})
        assert limiter.rpm_bucket.tokens < 1.0

    def test_retry_after_holds_rpm_bucket_for_full_wait(self):
        limiter = RateLimiter(rpm=600, provider="test", max_wait=5.0)
        limiter.update_from_headers({"retry-after": "30"})
        assert limiter.rpm_bucket.try_acquire(1.0) >= 30.0
        with pytest.raises(ProviderError):
            asyncio.run(limiter.acquire())

    def test_remaining_clamps_daily_bucket(self):
        limiter = RateLimiter(rpm=60, rpd=100, provider="genderize")
        limiter.update_from_headers({"x-rate-limit-remaining": "3"})
        assert limiter.rpd_bucket.tokens <= 3.0

    def test_ignores_garbage(self):
        limiter = RateLimiter(rpm=60, rpd=100, provider="genderize")
        limiter.update_from_headers({"retry-after": "soon", "x-rate-limit-remaining": "?"})
        limiter.update_from_headers(None)
        assert limiter.rpm_bucket.tokens == pytest.approx(60.0, abs=1.0)


class TestRateLimits:
    def test_tier_fallback(self):
        assert get_limits("behindthename", tier=9) == {"rpm": 120, "rpd": 4_000}

    def test_none_tier_is_tier_one(self):
        assert get_limits("anthropic") == {"rpm": 50}
