# ABOUTME: Custom exceptions for remote spark mutations.
# ABOUTME: Provides specific error types for auth failures, server throttling, and general errors.

from spark_guard.errors import SparkGuardError


class RemoteError(SparkGuardError):
    """Base exception for all backend call failures."""

    pass


class RemoteAuthError(RemoteError):
    """Exception raised when the backend rejects the credentials or session."""

    pass


class RemoteRateLimitError(RemoteError):
    """Exception raised when the backend throttles the client."""

    pass
