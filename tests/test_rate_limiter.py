# ABOUTME: Tests for the RateLimiter service.
# ABOUTME: Covers sliding-window counting, burst detection, pruning, and retry-after calculation.

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from spark_guard.config import Settings
from spark_guard.rate_limit import BurstDetected, RateLimiter, RateLimitExceeded
from spark_guard.rate_limit.service import ManualClock


@pytest.fixture
def rate_limiter(settings: Settings, clock: ManualClock) -> RateLimiter:
    """Create a RateLimiter with default limits and a fake clock."""
    return RateLimiter(settings, clock=clock)


@pytest.fixture
def small_window_limiter(clock: ManualClock) -> RateLimiter:
    """Create a RateLimiter with a cap of 5 and burst detection effectively off."""
    settings = Settings(max_sparks_per_window=5, burst_threshold=1000)
    return RateLimiter(settings, clock=clock)


class TestAttemptsInWindow:
    """Tests for attempts_in_window and remaining_in_window."""

    def test_no_attempts_for_unknown_user(self, rate_limiter: RateLimiter) -> None:
        """Unknown users have no attempts and a full quota."""
        assert rate_limiter.attempts_in_window("alice") == 0
        assert rate_limiter.remaining_in_window("alice") == 60

    def test_counts_recorded_attempts(self, rate_limiter: RateLimiter) -> None:
        """Each recorded attempt reduces the remaining quota by one."""
        for _ in range(3):
            rate_limiter.record_attempt("alice")

        assert rate_limiter.attempts_in_window("alice") == 3
        assert rate_limiter.remaining_in_window("alice") == 57

    def test_users_are_tracked_separately(self, rate_limiter: RateLimiter) -> None:
        """Attempts by one user don't affect another."""
        rate_limiter.record_attempt("alice")
        rate_limiter.record_attempt("alice")
        rate_limiter.record_attempt("bob")

        assert rate_limiter.attempts_in_window("alice") == 2
        assert rate_limiter.attempts_in_window("bob") == 1

    def test_attempt_exactly_at_cutoff_is_excluded(
        self, rate_limiter: RateLimiter, clock: ManualClock
    ) -> None:
        """An attempt exactly one window old no longer counts."""
        rate_limiter.record_attempt("alice")
        clock.advance(60)

        assert rate_limiter.attempts_in_window("alice") == 0

    def test_attempt_just_inside_window_counts(
        self, rate_limiter: RateLimiter, clock: ManualClock
    ) -> None:
        """An attempt younger than the window still counts."""
        rate_limiter.record_attempt("alice")
        clock.advance(59.9)

        assert rate_limiter.attempts_in_window("alice") == 1

    def test_remaining_never_negative(self, small_window_limiter: RateLimiter) -> None:
        """Remaining is clamped at zero even when more attempts were recorded."""
        for _ in range(8):
            small_window_limiter.record_attempt("alice")

        assert small_window_limiter.remaining_in_window("alice") == 0


class TestIsRateLimited:
    """Tests for the sliding-window cap."""

    def test_not_limited_below_cap(self, small_window_limiter: RateLimiter) -> None:
        """Four attempts with a cap of five is not limited."""
        for _ in range(4):
            small_window_limiter.record_attempt("alice")

        assert small_window_limiter.is_rate_limited("alice") is False

    def test_limited_at_cap(self, small_window_limiter: RateLimiter) -> None:
        """Reaching the cap limits the user."""
        for _ in range(5):
            small_window_limiter.record_attempt("alice")

        assert small_window_limiter.is_rate_limited("alice") is True

    def test_limit_lifts_after_window(
        self, small_window_limiter: RateLimiter, clock: ManualClock
    ) -> None:
        """Once the window has passed the user may spark again."""
        for _ in range(5):
            small_window_limiter.record_attempt("alice")

        clock.advance(59)
        assert small_window_limiter.is_rate_limited("alice") is True

        clock.advance(1)
        assert small_window_limiter.is_rate_limited("alice") is False


class TestBurstDetection:
    """Tests for the short burst window."""

    def test_no_burst_below_threshold(self, rate_limiter: RateLimiter) -> None:
        """Nine quick attempts are not a burst."""
        for _ in range(9):
            rate_limiter.record_attempt("alice")

        assert rate_limiter.is_burst_detected("alice") is False

    def test_burst_at_threshold(self, rate_limiter: RateLimiter) -> None:
        """Ten attempts inside ten seconds is a burst."""
        for _ in range(10):
            rate_limiter.record_attempt("alice")

        assert rate_limiter.is_burst_detected("alice") is True

    def test_spread_out_attempts_are_not_a_burst(
        self, rate_limiter: RateLimiter, clock: ManualClock
    ) -> None:
        """Attempts spaced over more than the burst window don't trigger it."""
        for _ in range(10):
            rate_limiter.record_attempt("alice")
            clock.advance(1.1)

        assert rate_limiter.is_burst_detected("alice") is False

    def test_burst_check_does_not_record(self, rate_limiter: RateLimiter) -> None:
        """Checking for a burst leaves the attempt log untouched."""
        rate_limiter.is_burst_detected("alice")
        rate_limiter.is_burst_detected("alice")

        assert rate_limiter.attempts_in_window("alice") == 0


class TestRecordAttemptPruning:
    """Tests for retention-based pruning."""

    def test_old_attempts_are_pruned_on_record(
        self, rate_limiter: RateLimiter, clock: ManualClock
    ) -> None:
        """Attempts older than the retention window are dropped on the next record."""
        rate_limiter.record_attempt("alice")
        clock.advance(121)
        rate_limiter.record_attempt("alice")

        assert len(rate_limiter._attempts["alice"]) == 1

    def test_attempts_within_retention_are_kept(
        self, rate_limiter: RateLimiter, clock: ManualClock
    ) -> None:
        """Attempts older than the window but inside retention are kept in memory."""
        rate_limiter.record_attempt("alice")
        clock.advance(90)
        rate_limiter.record_attempt("alice")

        assert len(rate_limiter._attempts["alice"]) == 2
        assert rate_limiter.attempts_in_window("alice") == 1

    def test_last_attempt_time(self, rate_limiter: RateLimiter, clock: ManualClock) -> None:
        """last_attempt_time returns the newest timestamp."""
        assert rate_limiter.last_attempt_time("alice") is None

        rate_limiter.record_attempt("alice")
        clock.advance(5)
        rate_limiter.record_attempt("alice")

        assert rate_limiter.last_attempt_time("alice") == clock.now

    def test_retention_covers_twice_a_long_window(self, clock: ManualClock) -> None:
        """A window longer than the configured retention stretches retention to match."""
        settings = Settings(
            rate_limit_window_seconds=300,
            max_sparks_per_window=5,
            burst_threshold=1000,
            retention_seconds=120,
        )
        limiter = RateLimiter(settings, clock=clock)

        assert limiter.retention.total_seconds() == 600

    def test_long_window_keeps_attempts_past_configured_retention(
        self, clock: ManualClock
    ) -> None:
        """Attempts still inside a 300s window survive a record made 125s later."""
        settings = Settings(
            rate_limit_window_seconds=300, max_sparks_per_window=5, burst_threshold=1000
        )
        limiter = RateLimiter(settings, clock=clock)
        for _ in range(4):
            limiter.record_attempt("alice")
        clock.advance(125)
        limiter.record_attempt("alice")
        clock.advance(1)

        assert limiter.attempts_in_window("alice") == 5
        assert limiter.is_rate_limited("alice") is True

    def test_record_forgets_idle_users(
        self, rate_limiter: RateLimiter, clock: ManualClock
    ) -> None:
        """A user with nothing left inside retention is dropped when anyone records."""
        rate_limiter.record_attempt("alice")
        clock.advance(121)

        rate_limiter.record_attempt("bob")

        assert rate_limiter.tracked_users() == ["bob"]

    def test_prune_forgets_idle_users(self, rate_limiter: RateLimiter, clock: ManualClock) -> None:
        """prune drops expired users and reports how many were removed."""
        rate_limiter.record_attempt("alice")
        clock.advance(60)
        rate_limiter.record_attempt("bob")
        clock.advance(61)

        assert rate_limiter.prune() == 1
        assert rate_limiter.tracked_users() == ["bob"]
        assert rate_limiter.prune() == 0


class TestRetryAfterSeconds:
    """Tests for retry_after_seconds."""

    def test_zero_when_not_limited(self, small_window_limiter: RateLimiter) -> None:
        """Users under the cap can retry immediately."""
        small_window_limiter.record_attempt("alice")

        assert small_window_limiter.retry_after_seconds("alice") == 0

    def test_waits_for_oldest_attempt_to_expire(
        self, small_window_limiter: RateLimiter, clock: ManualClock
    ) -> None:
        """The wait is the time until the oldest counted attempt leaves the window."""
        for _ in range(5):
            small_window_limiter.record_attempt("alice")
            clock.advance(2)

        # Oldest attempt is 10s old, so it expires in 50s
        assert small_window_limiter.retry_after_seconds("alice") == 50


class TestCheck:
    """Tests for the combined check method."""

    def test_passes_for_fresh_user(self, rate_limiter: RateLimiter) -> None:
        """A user with no attempts passes the check."""
        rate_limiter.check("alice")

    def test_raises_burst_before_rate_limit(self, clock: ManualClock) -> None:
        """Burst detection wins when both limits are reached."""
        limiter = RateLimiter(Settings(max_sparks_per_window=3, burst_threshold=3), clock=clock)
        for _ in range(3):
            limiter.record_attempt("alice")

        with pytest.raises(BurstDetected):
            limiter.check("alice")

    def test_raises_rate_limit_exceeded(
        self, small_window_limiter: RateLimiter, clock: ManualClock
    ) -> None:
        """RateLimitExceeded carries the retry delay."""
        for _ in range(5):
            small_window_limiter.record_attempt("alice")
        clock.advance(20)

        with pytest.raises(RateLimitExceeded) as exc_info:
            small_window_limiter.check("alice")

        assert exc_info.value.retry_after_seconds == 40


class TestAcquire:
    """Tests for the combined check-and-record step."""

    def test_acquire_records_attempt(self, rate_limiter: RateLimiter) -> None:
        """A successful acquire uses one attempt."""
        rate_limiter.acquire("alice")

        assert rate_limiter.attempts_in_window("alice") == 1

    def test_rejected_acquire_records_nothing(self, small_window_limiter: RateLimiter) -> None:
        """An acquire over the cap raises and leaves the log unchanged."""
        for _ in range(5):
            small_window_limiter.acquire("alice")

        with pytest.raises(RateLimitExceeded):
            small_window_limiter.acquire("alice")

        assert small_window_limiter.attempts_in_window("alice") == 5

    def test_acquire_raises_burst(self, rate_limiter: RateLimiter) -> None:
        """The eleventh instant acquire is a burst."""
        for _ in range(10):
            rate_limiter.acquire("alice")

        with pytest.raises(BurstDetected):
            rate_limiter.acquire("alice")

    def test_concurrent_acquires_respect_cap(self, small_window_limiter: RateLimiter) -> None:
        """Threads racing for the last slots can't push a user past the cap."""
        barrier = threading.Barrier(20)

        def attempt() -> bool:
            barrier.wait()
            try:
                small_window_limiter.acquire("alice")
            except RateLimitExceeded:
                return False
            return True

        with ThreadPoolExecutor(max_workers=20) as pool:
            outcomes = list(pool.map(lambda _: attempt(), range(20)))

        assert outcomes.count(True) == 5
        assert small_window_limiter.attempts_in_window("alice") == 5


class TestClearing:
    """Tests for clear_user and reset."""

    def test_clear_user_only_affects_that_user(self, rate_limiter: RateLimiter) -> None:
        """clear_user forgets a single user's attempts."""
        rate_limiter.record_attempt("alice")
        rate_limiter.record_attempt("bob")

        rate_limiter.clear_user("alice")

        assert rate_limiter.attempts_in_window("alice") == 0
        assert rate_limiter.attempts_in_window("bob") == 1

    def test_reset_forgets_everyone(self, rate_limiter: RateLimiter) -> None:
        """reset drops every user's attempt log."""
        rate_limiter.record_attempt("alice")
        rate_limiter.record_attempt("bob")

        rate_limiter.reset()

        assert rate_limiter.tracked_users() == []
