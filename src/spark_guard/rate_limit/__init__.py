# ABOUTME: Rate limiting package for throttling spark reactions per user.
# ABOUTME: Exports the in-memory RateLimiter, its exceptions, and the Rich status display.

from spark_guard.rate_limit.display import RateLimitDisplay
from spark_guard.rate_limit.exceptions import BurstDetected, RateLimitExceeded
from spark_guard.rate_limit.service import ManualClock, RateLimiter

__all__ = ["ManualClock", "RateLimiter", "RateLimitExceeded", "BurstDetected", "RateLimitDisplay"]
