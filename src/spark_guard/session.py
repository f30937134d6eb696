# ABOUTME: Composition root owning the spark services for one signed-in user session.
# ABOUTME: Clears rate-limit and idempotency state on logout and syncs the queue on reconnect.

import structlog

from spark_guard.config import Settings
from spark_guard.connectivity import ConnectivityMonitor
from spark_guard.idempotency import IdempotencyCache
from spark_guard.offline.executor import SparkActionExecutor
from spark_guard.offline.queue import OfflineActionQueue, SyncReport
from spark_guard.rate_limit.service import Clock, RateLimiter, utc_now
from spark_guard.remote.client import RemoteMutationClient
from spark_guard.sparks.orchestrator import SparkOrchestrator

logger = structlog.get_logger(__name__)


class SparkSession:
    """Builds and owns the limiter, cache, and orchestrator for a session.

    Replaces process-wide singletons: each session gets its own state, and
    logout() wipes it so nothing leaks into the next account.
    """

    def __init__(
        self,
        settings: Settings,
        remote: RemoteMutationClient,
        queue: OfflineActionQueue,
        connectivity: ConnectivityMonitor,
        user_id: str | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the session.

        Args:
            settings: Application settings.
            remote: Backend client shared by the orchestrator and queue replays.
            queue: Offline queue for undelivered actions.
            connectivity: Connectivity monitor; reconnects trigger a queue sync.
            user_id: Initially signed-in user, if any.
            clock: Callable returning the current aware datetime.
        """
        self.settings = settings
        self.remote = remote
        self.queue = queue
        self.connectivity = connectivity
        self.rate_limiter = RateLimiter(settings, clock=clock)
        self.cache = IdempotencyCache()
        self._user_id = user_id
        self._executor = SparkActionExecutor(remote)
        self.orchestrator = SparkOrchestrator(
            rate_limiter=self.rate_limiter,
            cache=self.cache,
            remote=remote,
            queue=queue,
            connectivity=connectivity,
            current_user=lambda: self._user_id,
            clock=clock,
        )
        connectivity.add_reconnect_listener(self._on_reconnect)

    @property
    def user_id(self) -> str | None:
        return self._user_id

    def login(self, user_id: str) -> None:
        """Sign a user in, clearing state left by any previous user."""
        if self._user_id is not None and self._user_id != user_id:
            self.reset()
        self._user_id = user_id
        logger.info("session_login", user_id=user_id)

    def logout(self) -> None:
        """Sign out and drop all in-memory spark state."""
        logger.info("session_logout", user_id=self._user_id)
        self._user_id = None
        self.reset()

    def reset(self) -> None:
        """Clear the rate-limit log and the idempotency cache."""
        self.rate_limiter.reset()
        self.cache.clear_all()

    def sync_queue(self, force: bool = False) -> SyncReport:
        """Replay queued actions now.

        Args:
            force: Ignore backoff timers.

        Returns:
            SyncReport from the queue.
        """
        if force:
            return self.queue.force_sync(self._executor)
        return self.queue.sync(self._executor)

    def _on_reconnect(self) -> None:
        self.sync_queue()

    def dispose(self) -> None:
        """Release the session: stop listening for reconnects and clear state."""
        self.connectivity.remove_reconnect_listener(self._on_reconnect)
        self.reset()
