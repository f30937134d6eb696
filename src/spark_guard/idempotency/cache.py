# ABOUTME: In-memory membership set of (user, target) pairs already acted on.
# ABOUTME: Entries never expire by time; they are removed only on reversal or an explicit clear.

import threading

import structlog

logger = structlog.get_logger(__name__)


class IdempotencyCache:
    """Affirmative-only cache of performed actions.

    A hit means the action has definitely been performed (or accepted
    optimistically) in this process. A miss says nothing: the remote store
    has to be consulted when a caller needs certainty.
    """

    def __init__(self) -> None:
        self._entries: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    def is_cached(self, user_id: str, target_id: str) -> bool:
        with self._lock:
            return (user_id, target_id) in self._entries

    def mark_cached(self, user_id: str, target_id: str) -> None:
        with self._lock:
            self._entries.add((user_id, target_id))

    def claim(self, user_id: str, target_id: str) -> bool:
        """Mark a pair unless it is already cached.

        Returns:
            True if this call added the entry, False if it was already there.
        """
        with self._lock:
            if (user_id, target_id) in self._entries:
                return False
            self._entries.add((user_id, target_id))
            return True

    def clear_cached(self, user_id: str, target_id: str) -> None:
        with self._lock:
            self._entries.discard((user_id, target_id))

    def clear_all(self) -> None:
        """Drop every entry. Called on logout and between tests."""
        with self._lock:
            self._entries.clear()
        logger.debug("idempotency_cache_cleared")

    def targets_for(self, user_id: str) -> list[str]:
        """List the targets cached for a user, sorted for stable output."""
        with self._lock:
            return sorted(target for user, target in self._entries if user == user_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
