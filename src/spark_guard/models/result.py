# ABOUTME: Result variant returned by every spark and unspark operation.
# ABOUTME: Exactly one status is set per result and only its own payload field is populated.

from enum import Enum
from typing import Self

from pydantic import BaseModel, ConfigDict, model_validator


class SparkStatus(str, Enum):
    """Outcome of a spark attempt."""

    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    ALREADY_PERFORMED = "already_performed"
    BURST_DETECTED = "burst_detected"
    QUEUED = "queued"
    FAILURE = "failure"


class SparkResult(BaseModel):
    """Closed result variant for spark operations.

    Build instances through the classmethod constructors; the validator
    rejects combinations such as a queued result that also carries a
    failure reason.
    """

    model_config = ConfigDict(frozen=True)

    status: SparkStatus
    remaining_in_window: int | None = None
    is_online: bool | None = None
    reason: str | None = None

    @model_validator(mode="after")
    def _check_payload(self) -> Self:
        has_remaining = self.remaining_in_window is not None
        has_online = self.is_online is not None
        has_reason = self.reason is not None

        expected = {
            SparkStatus.SUCCESS: (True, False, False),
            SparkStatus.RATE_LIMITED: (True, False, False),
            SparkStatus.ALREADY_PERFORMED: (False, False, False),
            SparkStatus.BURST_DETECTED: (False, False, False),
            SparkStatus.QUEUED: (False, True, False),
            SparkStatus.FAILURE: (False, False, True),
        }[self.status]
        if (has_remaining, has_online, has_reason) != expected:
            raise ValueError(f"invalid payload for {self.status.value} result")
        if self.status is SparkStatus.RATE_LIMITED and self.remaining_in_window != 0:
            raise ValueError("rate_limited results always have zero remaining")
        return self

    @classmethod
    def success(cls, remaining_in_window: int) -> "SparkResult":
        return cls(status=SparkStatus.SUCCESS, remaining_in_window=remaining_in_window)

    @classmethod
    def rate_limited(cls) -> "SparkResult":
        return cls(status=SparkStatus.RATE_LIMITED, remaining_in_window=0)

    @classmethod
    def already_performed(cls) -> "SparkResult":
        return cls(status=SparkStatus.ALREADY_PERFORMED)

    @classmethod
    def burst_detected(cls) -> "SparkResult":
        return cls(status=SparkStatus.BURST_DETECTED)

    @classmethod
    def queued(cls, is_online: bool) -> "SparkResult":
        return cls(status=SparkStatus.QUEUED, is_online=is_online)

    @classmethod
    def failure(cls, reason: str) -> "SparkResult":
        return cls(status=SparkStatus.FAILURE, reason=reason)

    @property
    def is_done(self) -> bool:
        """True when the spark is recorded or was already recorded."""
        return self.status in (SparkStatus.SUCCESS, SparkStatus.ALREADY_PERFORMED)

    @property
    def is_queued(self) -> bool:
        return self.status is SparkStatus.QUEUED

    @property
    def is_throttled(self) -> bool:
        """True for client-side policy rejections (rate limit or burst)."""
        return self.status in (SparkStatus.RATE_LIMITED, SparkStatus.BURST_DETECTED)
