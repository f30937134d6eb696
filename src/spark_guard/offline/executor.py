# ABOUTME: Replays queued spark actions against the remote backend during a queue sync.
# ABOUTME: Skips the insert when the reaction already exists so replays stay idempotent.

import structlog

from spark_guard.models import OfflineAction, OfflineActionType
from spark_guard.remote.client import RemoteMutationClient

logger = structlog.get_logger(__name__)


class SparkActionExecutor:
    """Callable used by OfflineActionQueue.sync to deliver queued sparks."""

    def __init__(self, remote: RemoteMutationClient) -> None:
        self._remote = remote

    def __call__(self, action: OfflineAction) -> bool:
        """Deliver a single queued action.

        Args:
            action: The queued action to replay.

        Returns:
            True if the action was delivered or was already applied, False if
            the payload cannot be delivered.

        Raises:
            RemoteError: If a backend call fails; the queue schedules a retry.
        """
        if action.action_type != OfflineActionType.SPARK_POST:
            logger.warning("unsupported_offline_action", action_id=action.id)
            return False

        post_id = action.payload.get("post_id")
        user_id = action.payload.get("user_id")
        if not post_id or not user_id:
            logger.warning("offline_action_missing_payload", action_id=action.id)
            return False

        if self._remote.has_reaction(post_id, user_id):
            logger.debug("offline_spark_already_applied", action_id=action.id)
            return True

        self._remote.insert_reaction(post_id, user_id)
        self._remote.increment_spark_count(post_id)
        return True
