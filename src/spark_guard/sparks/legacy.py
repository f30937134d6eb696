# ABOUTME: Deprecated boolean like/unlike API kept for older callers.
# ABOUTME: Warns on every call and redirects to SparkOrchestrator; scheduled for removal.

import warnings

from spark_guard.sparks.orchestrator import SparkOrchestrator


class LegacySparkFacade:
    """Boolean like/unlike API from before SparkResult existed.

    New code should call SparkOrchestrator directly.
    """

    def __init__(self, orchestrator: SparkOrchestrator) -> None:
        self._orchestrator = orchestrator

    def like_post(self, post_id: str) -> bool:
        """Spark a post. Returns True if the spark is done or will sync."""
        warnings.warn(
            "like_post() is deprecated; use SparkOrchestrator.toggle_spark_once()",
            DeprecationWarning,
            stacklevel=2,
        )
        result = self._orchestrator.toggle_spark_once(post_id)
        return result.is_done or result.is_queued

    def unlike_post(self, post_id: str) -> bool:
        """Remove a spark. Returns True if the spark was removed."""
        warnings.warn(
            "unlike_post() is deprecated; use SparkOrchestrator.unspark_post()",
            DeprecationWarning,
            stacklevel=2,
        )
        return self._orchestrator.unspark_post(post_id).is_done
