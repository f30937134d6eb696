# ABOUTME: Unit tests for SparkResult and OfflineAction models.
# ABOUTME: Covers result payload validation, convenience properties, and queued action helpers.

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from spark_guard.models import OfflineAction, OfflineActionType, SparkResult, SparkStatus


class TestSparkResultConstructors:
    """Tests for the SparkResult classmethod constructors."""

    def test_success_carries_remaining(self) -> None:
        """success() stores the remaining quota."""
        result = SparkResult.success(59)

        assert result.status == SparkStatus.SUCCESS
        assert result.remaining_in_window == 59
        assert result.is_online is None
        assert result.reason is None

    def test_rate_limited_has_zero_remaining(self) -> None:
        """rate_limited() always reports zero remaining."""
        result = SparkResult.rate_limited()

        assert result.status == SparkStatus.RATE_LIMITED
        assert result.remaining_in_window == 0

    def test_queued_carries_online_flag(self) -> None:
        """queued() records whether the client was online."""
        assert SparkResult.queued(is_online=False).is_online is False
        assert SparkResult.queued(is_online=True).is_online is True

    def test_failure_carries_reason(self) -> None:
        """failure() stores the reason text."""
        result = SparkResult.failure("Not authenticated")

        assert result.status == SparkStatus.FAILURE
        assert result.reason == "Not authenticated"

    def test_payloadless_statuses(self) -> None:
        """already_performed() and burst_detected() carry no payload."""
        for result in (SparkResult.already_performed(), SparkResult.burst_detected()):
            assert result.remaining_in_window is None
            assert result.is_online is None
            assert result.reason is None


class TestSparkResultValidation:
    """Tests for rejected payload combinations."""

    def test_queued_with_reason_rejected(self) -> None:
        """A queued result cannot carry a failure reason."""
        with pytest.raises(ValidationError):
            SparkResult(status=SparkStatus.QUEUED, is_online=True, reason="boom")

    def test_success_without_remaining_rejected(self) -> None:
        """A success result must include the remaining quota."""
        with pytest.raises(ValidationError):
            SparkResult(status=SparkStatus.SUCCESS)

    def test_rate_limited_with_nonzero_remaining_rejected(self) -> None:
        """A rate-limited result with quota left is contradictory."""
        with pytest.raises(ValidationError):
            SparkResult(status=SparkStatus.RATE_LIMITED, remaining_in_window=3)

    def test_results_are_frozen(self) -> None:
        """Results cannot be mutated after creation."""
        result = SparkResult.success(10)

        with pytest.raises(ValidationError):
            result.remaining_in_window = 5


class TestSparkResultProperties:
    """Tests for the convenience properties."""

    def test_is_done(self) -> None:
        """Success and already-performed both count as done."""
        assert SparkResult.success(1).is_done is True
        assert SparkResult.already_performed().is_done is True
        assert SparkResult.queued(is_online=False).is_done is False

    def test_is_throttled(self) -> None:
        """Rate limit and burst are throttling outcomes."""
        assert SparkResult.rate_limited().is_throttled is True
        assert SparkResult.burst_detected().is_throttled is True
        assert SparkResult.failure("x").is_throttled is False

    def test_is_queued(self) -> None:
        """Only queued results report is_queued."""
        assert SparkResult.queued(is_online=True).is_queued is True
        assert SparkResult.success(1).is_queued is False


class TestOfflineAction:
    """Tests for the OfflineAction model."""

    def test_for_spark_builds_id_and_payload(self) -> None:
        """for_spark derives the id from the post and creation time."""
        created = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)
        action = OfflineAction.for_spark("p1", "alice", now=created)

        assert action.id == f"spark_p1_{int(created.timestamp() * 1000)}"
        assert action.action_type == OfflineActionType.SPARK_POST
        assert action.payload == {"post_id": "p1", "user_id": "alice"}
        assert action.created_at == created
        assert action.retry_count == 0

    def test_ready_when_no_retry_scheduled(self) -> None:
        """An action without next_retry_at can run immediately."""
        action = OfflineAction.for_spark("p1", "alice")

        assert action.is_ready_to_retry() is True
        assert action.time_until_retry() is None

    def test_not_ready_before_next_retry(self) -> None:
        """An action waits until next_retry_at."""
        now = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)
        action = OfflineAction.for_spark("p1", "alice", now=now)
        action.next_retry_at = now + timedelta(seconds=8)

        assert action.is_ready_to_retry(now) is False
        assert action.time_until_retry(now) == 8.0
        assert action.is_ready_to_retry(now + timedelta(seconds=8)) is True

    def test_naive_next_retry_treated_as_utc(self) -> None:
        """Naive timestamps loaded from SQLite are read as UTC."""
        now = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)
        action = OfflineAction.for_spark("p1", "alice", now=now)
        action.next_retry_at = datetime(2026, 3, 1, 12, 0, 5)

        assert action.is_ready_to_retry(now) is False
        assert action.is_ready_to_retry(now + timedelta(seconds=5)) is True
