# ABOUTME: Idempotency package for suppressing duplicate spark submissions.
# ABOUTME: Exports the in-memory IdempotencyCache keyed by user and target.

from spark_guard.idempotency.cache import IdempotencyCache

__all__ = ["IdempotencyCache"]
