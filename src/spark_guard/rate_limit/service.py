# ABOUTME: In-memory sliding-window rate limiter with burst detection for spark reactions.
# ABOUTME: Tracks per-user attempt timestamps and prunes them after a retention window.

import math
import threading
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog

from spark_guard.config import Settings
from spark_guard.rate_limit.exceptions import BurstDetected, RateLimitExceeded

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(UTC)


class ManualClock:
    """Clock that only moves when advanced. Used for simulations and tests."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RateLimiter:
    """Service that throttles spark attempts per user.

    Two windows are enforced independently: a sustained window (60 attempts
    per 60 seconds by default) and a shorter burst window (10 attempts per
    10 seconds) that catches rapid automated taps. Timestamps are kept in
    memory only and are appended in chronological order, so pruning only
    ever removes a prefix of each user's log.
    """

    def __init__(self, settings: Settings, clock: Clock = utc_now) -> None:
        """Initialize the rate limiter.

        Args:
            settings: Application settings containing window lengths and caps.
            clock: Callable returning the current aware datetime.
        """
        self._settings = settings
        self._clock = clock
        self._window = timedelta(seconds=settings.rate_limit_window_seconds)
        self._burst_window = timedelta(seconds=settings.burst_window_seconds)
        # Never prune timestamps that either window can still see
        self._retention = timedelta(
            seconds=max(
                settings.retention_seconds,
                2 * settings.rate_limit_window_seconds,
                settings.burst_window_seconds,
            )
        )
        self._attempts: dict[str, deque[datetime]] = {}
        self._lock = threading.Lock()

    @property
    def retention(self) -> timedelta:
        """How long attempt timestamps are kept before being pruned."""
        return self._retention

    @property
    def max_attempts(self) -> int:
        """Maximum attempts allowed per user within the sliding window."""
        return self._settings.max_sparks_per_window

    def _count_since(self, user_id: str, cutoff: datetime) -> int:
        timestamps = self._attempts.get(user_id)
        if not timestamps:
            return 0
        return sum(1 for ts in timestamps if ts > cutoff)

    def attempts_in_window(self, user_id: str) -> int:
        """Count attempts recorded for a user within the sliding window.

        Args:
            user_id: The user to count attempts for.

        Returns:
            Number of attempts newer than the window cutoff.
        """
        with self._lock:
            return self._count_since(user_id, self._clock() - self._window)

    def is_rate_limited(self, user_id: str) -> bool:
        """Check if a user has reached the sliding-window cap.

        Args:
            user_id: The user to check.

        Returns:
            True if the user has at least max_sparks_per_window attempts in the window.
        """
        return self.attempts_in_window(user_id) >= self.max_attempts

    def is_burst_detected(self, user_id: str) -> bool:
        """Check if a user's recent attempts look like a burst.

        Args:
            user_id: The user to check.

        Returns:
            True if the attempts within the burst window reached the burst threshold.
        """
        with self._lock:
            burst_count = self._count_since(user_id, self._clock() - self._burst_window)

        if burst_count >= self._settings.burst_threshold:
            logger.warning(
                "burst_detected",
                user_id=user_id,
                attempts=burst_count,
                window_seconds=self._settings.burst_window_seconds,
            )
            return True
        return False

    def remaining_in_window(self, user_id: str) -> int:
        """Get the number of attempts a user has left in the current window.

        Args:
            user_id: The user to check.

        Returns:
            Remaining attempts, clamped to [0, max_sparks_per_window].
        """
        remaining = self.max_attempts - self.attempts_in_window(user_id)
        return max(0, min(remaining, self.max_attempts))

    def record_attempt(self, user_id: str) -> None:
        """Record an attempt for a user and drop timestamps past the retention window.

        Call this before issuing the remote request so that taps made while a
        request is in flight are still counted.

        Args:
            user_id: The user making the attempt.
        """
        now = self._clock()
        with self._lock:
            self._record_locked(user_id, now)

    def _record_locked(self, user_id: str, now: datetime) -> None:
        self._attempts.setdefault(user_id, deque()).append(now)
        self._prune_locked(now)

    def _prune_locked(self, now: datetime) -> int:
        cutoff = now - self._retention
        dropped = []
        for user_id, timestamps in self._attempts.items():
            while timestamps and timestamps[0] < cutoff:
                timestamps.popleft()
            if not timestamps:
                dropped.append(user_id)
        for user_id in dropped:
            del self._attempts[user_id]
        return len(dropped)

    def prune(self) -> int:
        """Drop expired timestamps for every user and forget users left with none.

        Returns:
            Number of users removed from memory.
        """
        with self._lock:
            removed = self._prune_locked(self._clock())
        if removed:
            logger.debug("rate_limit_users_pruned", count=removed)
        return removed

    def last_attempt_time(self, user_id: str) -> datetime | None:
        """Get the timestamp of the most recent attempt, or None if there is none."""
        with self._lock:
            timestamps = self._attempts.get(user_id)
            return timestamps[-1] if timestamps else None

    def retry_after_seconds(self, user_id: str) -> int:
        """Calculate seconds until the user gets at least one attempt back.

        Returns:
            Seconds until the oldest in-window attempt expires, or 0 if not limited.
        """
        now = self._clock()
        with self._lock:
            return self._retry_after_locked(user_id, now)

    def _retry_after_locked(self, user_id: str, now: datetime) -> int:
        cutoff = now - self._window
        in_window = [ts for ts in self._attempts.get(user_id, ()) if ts > cutoff]
        if len(in_window) < self.max_attempts:
            return 0
        # Attempts needed to drop out before the count falls under the cap
        pivot = in_window[len(in_window) - self.max_attempts]
        return max(0, math.ceil((pivot + self._window - now).total_seconds()))

    def _check_locked(self, user_id: str, now: datetime) -> None:
        burst_count = self._count_since(user_id, now - self._burst_window)
        if burst_count >= self._settings.burst_threshold:
            logger.warning(
                "burst_detected",
                user_id=user_id,
                attempts=burst_count,
                window_seconds=self._settings.burst_window_seconds,
            )
            raise BurstDetected()

        if self._count_since(user_id, now - self._window) >= self.max_attempts:
            raise RateLimitExceeded(
                f"Limit of {self.max_attempts} sparks per "
                f"{self._settings.rate_limit_window_seconds}s reached.",
                retry_after_seconds=self._retry_after_locked(user_id, now),
            )

    def check(self, user_id: str) -> None:
        """Raise if the user may not make another attempt right now.

        Burst detection is checked first and does not consume quota.

        Args:
            user_id: The user about to make an attempt.

        Raises:
            BurstDetected: If the burst threshold has been reached.
            RateLimitExceeded: If the sliding-window cap has been reached.
        """
        now = self._clock()
        with self._lock:
            self._check_locked(user_id, now)

    def acquire(self, user_id: str) -> None:
        """Check both limits and record the attempt as one step.

        Concurrent callers can't both pass the check on the last free slot.
        A rejected attempt is not recorded.

        Args:
            user_id: The user making the attempt.

        Raises:
            BurstDetected: If the burst threshold has been reached.
            RateLimitExceeded: If the sliding-window cap has been reached.
        """
        now = self._clock()
        with self._lock:
            self._check_locked(user_id, now)
            self._record_locked(user_id, now)

    def clear_user(self, user_id: str) -> None:
        """Forget all attempts recorded for a single user."""
        with self._lock:
            self._attempts.pop(user_id, None)

    def reset(self) -> None:
        """Forget all recorded attempts for every user."""
        with self._lock:
            self._attempts.clear()
        logger.debug("rate_limit_data_cleared")

    def tracked_users(self) -> list[str]:
        """List users that currently have attempts in memory."""
        with self._lock:
            return list(self._attempts)
