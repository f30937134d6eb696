# ABOUTME: SQLModel for actions waiting in the offline retry queue.
# ABOUTME: Persists queued sparks so they survive restarts until they sync or exhaust retries.

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlmodel import JSON, Column, Field, SQLModel


class OfflineActionType(str, Enum):
    """Types of actions that can be queued for later sync."""

    SPARK_POST = "spark_post"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class OfflineAction(SQLModel, table=True):
    """A single action queued for sync with the backend."""

    __tablename__ = "offline_actions"

    id: str = Field(primary_key=True)
    action_type: OfflineActionType
    payload: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=_utcnow, index=True)
    retry_count: int = 0
    next_retry_at: datetime | None = None
    last_error: str | None = None

    @classmethod
    def for_spark(cls, post_id: str, user_id: str, now: datetime | None = None) -> "OfflineAction":
        """Build a queued spark action for a post.

        Args:
            post_id: The post being sparked.
            user_id: The user sparking the post.
            now: Creation time. Defaults to the current UTC time.

        Returns:
            An unsaved OfflineAction with an id of the form spark_<post>_<epoch millis>.
        """
        created_at = now if now is not None else _utcnow()
        millis = int(created_at.timestamp() * 1000)
        return cls(
            id=f"spark_{post_id}_{millis}",
            action_type=OfflineActionType.SPARK_POST,
            payload={"post_id": post_id, "user_id": user_id},
            created_at=created_at,
        )

    def is_ready_to_retry(self, now: datetime | None = None) -> bool:
        """Check whether the action's backoff delay has elapsed."""
        if self.next_retry_at is None:
            return True
        current = now if now is not None else _utcnow()
        return current >= _as_utc(self.next_retry_at)

    def time_until_retry(self, now: datetime | None = None) -> float | None:
        """Seconds until the next retry, or None if it can run now."""
        if self.next_retry_at is None:
            return None
        current = now if now is not None else _utcnow()
        remaining = (_as_utc(self.next_retry_at) - current).total_seconds()
        return remaining if remaining > 0 else None


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on round-trip
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
