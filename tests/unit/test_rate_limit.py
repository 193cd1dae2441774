"""Tests for retry rate limiters."""

from __future__ import annotations

from rest_dynamic_operator.controller.ratelimit import (
    BucketRateLimiter,
    ItemExponentialFailureRateLimiter,
    MaxOfRateLimiter,
    default_controller_rate_limiter,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestItemExponentialFailureRateLimiter:
    """Test cases for per-item exponential backoff."""

    def test_backoff_doubles(self):
        limiter = ItemExponentialFailureRateLimiter(base_delay=3.0, max_delay=180.0)
        assert [limiter.when("a") for _ in range(4)] == [3.0, 6.0, 12.0, 24.0]
        assert limiter.num_requeues("a") == 4

    def test_backoff_capped(self):
        limiter = ItemExponentialFailureRateLimiter(base_delay=3.0, max_delay=180.0)
        delays = [limiter.when("a") for _ in range(10)]
        assert delays[-1] == 180.0

    def test_large_exponent_capped(self):
        limiter = ItemExponentialFailureRateLimiter(base_delay=1.0, max_delay=5.0)
        for _ in range(100):
            delay = limiter.when("a")
        assert delay == 5.0

    def test_items_are_independent(self):
        limiter = ItemExponentialFailureRateLimiter(base_delay=1.0, max_delay=60.0)
        limiter.when("a")
        limiter.when("a")
        assert limiter.when("b") == 1.0

    def test_forget_resets(self):
        limiter = ItemExponentialFailureRateLimiter(base_delay=1.0, max_delay=60.0)
        limiter.when("a")
        limiter.forget("a")
        assert limiter.num_requeues("a") == 0
        assert limiter.when("a") == 1.0


class TestBucketRateLimiter:
    """Test cases for the shared token bucket."""

    def test_burst_then_wait(self):
        clock = FakeClock()
        limiter = BucketRateLimiter(qps=1.0, burst=2, clock=clock)

        assert limiter.when("a") == 0.0
        assert limiter.when("b") == 0.0
        assert limiter.when("c") == 1.0
        assert limiter.when("d") == 2.0

    def test_refill(self):
        clock = FakeClock()
        limiter = BucketRateLimiter(qps=1.0, burst=2, clock=clock)
        for item in "abcd":
            limiter.when(item)

        clock.now += 10.0

        assert limiter.when("e") == 0.0

    def test_no_requeue_tracking(self):
        limiter = BucketRateLimiter()
        limiter.when("a")
        assert limiter.num_requeues("a") == 0


class TestMaxOfRateLimiter:
    """Test cases for combined limiters."""

    def test_longest_delay_wins(self):
        clock = FakeClock()
        limiter = MaxOfRateLimiter(
            ItemExponentialFailureRateLimiter(base_delay=0.5, max_delay=10.0),
            BucketRateLimiter(qps=1.0, burst=1, clock=clock),
        )
        assert limiter.when("a") == 0.5
        # Bucket is empty now and asks for a full second
        assert limiter.when("b") == 1.0

    def test_forget_all(self):
        limiter = default_controller_rate_limiter()
        limiter.when("a")
        assert limiter.num_requeues("a") == 1
        limiter.forget("a")
        assert limiter.num_requeues("a") == 0

    def test_default_first_delay(self):
        assert default_controller_rate_limiter().when("a") == 3.0
