# ABOUTME: Exception classes for rate limiting functionality.
# ABOUTME: Raised by RateLimiter.check when a user exceeds the window cap or trips burst detection.

from spark_guard.errors import SparkGuardError


class RateLimitExceeded(SparkGuardError):
    """Exception raised when a user has used up the sliding-window quota.

    Attributes:
        retry_after_seconds: Seconds until the oldest counted attempt leaves the window.
    """

    def __init__(
        self,
        message: str = "Too many sparks. Please slow down.",
        retry_after_seconds: int = 60,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the error.
            retry_after_seconds: Seconds until another attempt will be allowed.
        """
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class BurstDetected(SparkGuardError):
    """Exception raised when attempts arrive faster than the burst threshold allows."""

    def __init__(self, message: str = "Unusual activity detected. Please wait a moment.") -> None:
        super().__init__(message)
