# ABOUTME: Coordinates IdempotencyCache, RateLimiter, the remote client, and the offline queue.
# ABOUTME: Turns every spark attempt into exactly one SparkResult and never raises backend errors.

from collections.abc import Callable

import structlog

from spark_guard.connectivity import ConnectivityOracle
from spark_guard.idempotency import IdempotencyCache
from spark_guard.models import OfflineAction, SparkResult
from spark_guard.offline.queue import OfflineQueueAdapter
from spark_guard.optimistic import apply_optimistic
from spark_guard.rate_limit.exceptions import BurstDetected, RateLimitExceeded
from spark_guard.rate_limit.service import Clock, RateLimiter, utc_now
from spark_guard.remote.client import RemoteMutationClient

logger = structlog.get_logger(__name__)

NOT_AUTHENTICATED = "Not authenticated"
NOT_SPARKED = "Post not sparked"


class SparkOrchestrator:
    """Coordinates guarded spark operations between services.

    Handles the full spark flow:
    - Rejecting duplicate sparks from the idempotency cache
    - Burst detection and sliding-window rate limiting
    - Recording the attempt and caching the spark before any I/O
    - Handing the action to the offline queue when offline or on failure
    - Issuing the insert and counter RPC against the backend
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        cache: IdempotencyCache,
        remote: RemoteMutationClient,
        queue: OfflineQueueAdapter,
        connectivity: ConnectivityOracle,
        current_user: Callable[[], str | None],
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            rate_limiter: Rate limiter tracking per-user attempts.
            cache: Idempotency cache of (user, post) pairs already sparked.
            remote: Client issuing backend mutations.
            queue: Offline queue receiving actions that could not be delivered.
            connectivity: Oracle for the current online state.
            current_user: Callable returning the signed-in user id, or None.
            clock: Callable returning the current aware datetime.
        """
        self._rate_limiter = rate_limiter
        self._cache = cache
        self._remote = remote
        self._queue = queue
        self._connectivity = connectivity
        self._current_user = current_user
        self._clock = clock

    def _hand_off(self, post_id: str, user_id: str) -> None:
        action = OfflineAction.for_spark(post_id, user_id, now=self._clock())
        try:
            self._queue.enqueue(action)
        except Exception:
            # The spark stays committed client-side even if the queue write fails
            logger.exception("offline_hand_off_failed", action_id=action.id, post_id=post_id)

    def _cancel_queued(self, post_id: str, user_id: str) -> bool:
        try:
            return self._queue.cancel_for(post_id, user_id) > 0
        except Exception:
            # Unreadable queue: fall through to the remote reversal
            logger.exception("offline_cancel_failed", post_id=post_id, user_id=user_id)
            return False

    def spark_post(self, post_id: str) -> SparkResult:
        """Spark a post with idempotency, burst, rate-limit, and offline protection.

        Args:
            post_id: The post to spark.

        Returns:
            SparkResult describing the outcome; backend errors become QUEUED.
        """
        user_id = self._current_user()
        if user_id is None:
            return SparkResult.failure(NOT_AUTHENTICATED)

        # Bookkeeping happens before any I/O so double taps in flight are blocked.
        # claim and acquire each hold one lock, so racing taps can't overrun either guard.
        if not self._cache.claim(user_id, post_id):
            logger.debug("spark_already_cached", user_id=user_id, post_id=post_id)
            return SparkResult.already_performed()

        try:
            self._rate_limiter.acquire(user_id)
        except BurstDetected:
            self._cache.clear_cached(user_id, post_id)
            logger.debug("spark_blocked_burst", user_id=user_id, post_id=post_id)
            return SparkResult.burst_detected()
        except RateLimitExceeded as e:
            self._cache.clear_cached(user_id, post_id)
            logger.debug(
                "spark_rate_limited",
                user_id=user_id,
                retry_after_seconds=e.retry_after_seconds,
            )
            return SparkResult.rate_limited()

        if not self._connectivity.is_online:
            self._hand_off(post_id, user_id)
            logger.info("spark_queued_offline", user_id=user_id, post_id=post_id)
            return SparkResult.queued(is_online=False)

        try:
            self._remote.insert_reaction(post_id, user_id)
            self._remote.increment_spark_count(post_id)
        except Exception as e:
            self._hand_off(post_id, user_id)
            logger.info(
                "spark_queued_after_failure", user_id=user_id, post_id=post_id, error=str(e)
            )
            return SparkResult.queued(is_online=True)

        logger.info("spark_recorded", user_id=user_id, post_id=post_id)
        return SparkResult.success(self._rate_limiter.remaining_in_window(user_id))

    def toggle_spark_once(self, post_id: str) -> SparkResult:
        """Spark a post after confirming with the backend that it isn't sparked yet.

        A cache miss is verified upstream when online. If the verification
        itself fails the spark proceeds, since the backend's unique
        constraint still prevents a duplicate row.

        Args:
            post_id: The post to spark.

        Returns:
            SparkResult describing the outcome.
        """
        user_id = self._current_user()
        if user_id is None:
            return SparkResult.failure(NOT_AUTHENTICATED)

        if self._cache.is_cached(user_id, post_id):
            return SparkResult.already_performed()

        if self._connectivity.is_online:
            try:
                exists = self._remote.has_reaction(post_id, user_id)
            except Exception as e:
                logger.warning("spark_verification_failed", post_id=post_id, error=str(e))
            else:
                if exists:
                    self._cache.mark_cached(user_id, post_id)
                    return SparkResult.already_performed()

        return self.spark_post(post_id)

    def unspark_post(self, post_id: str) -> SparkResult:
        """Remove the current user's spark from a post.

        Reversal does not refund rate-limit quota. A spark still waiting in
        the offline queue is cancelled there instead of being deleted
        remotely, so a later sync can't bring it back.

        Args:
            post_id: The post to unspark.

        Returns:
            SUCCESS with the remaining quota, or FAILURE if the post wasn't
            sparked, the user isn't signed in, or the backend call failed.
        """
        user_id = self._current_user()
        if user_id is None:
            return SparkResult.failure(NOT_AUTHENTICATED)

        if not self._cache.is_cached(user_id, post_id):
            logger.debug("unspark_not_sparked", user_id=user_id, post_id=post_id)
            return SparkResult.failure(NOT_SPARKED)

        if self._cancel_queued(post_id, user_id):
            # The spark never reached the backend, so there is nothing to delete
            self._cache.clear_cached(user_id, post_id)
            logger.info("unspark_cancelled_queued", user_id=user_id, post_id=post_id)
            return SparkResult.success(self._rate_limiter.remaining_in_window(user_id))

        def set_sparked(sparked: bool) -> None:
            if sparked:
                self._cache.mark_cached(user_id, post_id)
            else:
                self._cache.clear_cached(user_id, post_id)

        def remove_remotely(_: bool) -> None:
            self._remote.delete_reaction(post_id, user_id)
            self._remote.decrement_spark_count(post_id)

        outcome = apply_optimistic(
            getter=lambda: self._cache.is_cached(user_id, post_id),
            setter=set_sparked,
            new_value=False,
            remote_call=remove_remotely,
            name="unspark",
        )
        if not outcome.committed:
            logger.error(
                "unspark_failed", user_id=user_id, post_id=post_id, error=str(outcome.error)
            )
            return SparkResult.failure(str(outcome.error))

        logger.info("unspark_recorded", user_id=user_id, post_id=post_id)
        return SparkResult.success(self._rate_limiter.remaining_in_window(user_id))

    def remaining_in_window(self) -> int | None:
        """Get the signed-in user's remaining sparks, or None when signed out."""
        user_id = self._current_user()
        if user_id is None:
            return None
        return self._rate_limiter.remaining_in_window(user_id)
