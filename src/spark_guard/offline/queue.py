# ABOUTME: SQLite-backed offline action queue with exponential backoff retries.
# ABOUTME: Stores actions with SQLModel and replays them through an executor when online.

import random
from collections.abc import Callable, Generator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel
from sqlmodel import Session, SQLModel, create_engine, select

from spark_guard.config import Settings
from spark_guard.connectivity import ConnectivityOracle
from spark_guard.errors import SparkGuardError
from spark_guard.models import OfflineAction, OfflineActionType
from spark_guard.offline.backoff import calculate_backoff_delay
from spark_guard.rate_limit.service import Clock, utc_now

logger = structlog.get_logger(__name__)

ActionExecutor = Callable[[OfflineAction], bool]


class OfflineQueueError(SparkGuardError):
    """Exception raised when the queue cannot store or load actions."""

    pass


class OfflineQueueAdapter(Protocol):
    """Hand-off point used by the orchestrator."""

    def enqueue(self, action: OfflineAction) -> OfflineAction: ...

    def cancel_for(self, post_id: str, user_id: str) -> int: ...


class SyncStatus(str, Enum):
    """Sync state exposed to status listeners."""

    IDLE = "idle"
    SYNCING = "syncing"
    RETRYING = "retrying"
    FAILED = "failed"


class SyncReport(BaseModel):
    """Counts produced by a single sync run."""

    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    dropped: int = 0


class OfflineActionQueue:
    """Durable queue of actions waiting for the backend.

    Actions are replayed in creation order. Each failure pushes the action's
    next attempt out with exponential backoff; after queue_max_retries
    failures the action is dropped.
    """

    def __init__(
        self,
        db_path: Path,
        settings: Settings,
        connectivity: ConnectivityOracle | None = None,
        clock: Clock = utc_now,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the queue.

        Args:
            db_path: Path to the SQLite database file.
            settings: Application settings containing retry configuration.
            connectivity: Oracle consulted before syncing. Treated as online when None.
            clock: Callable returning the current aware datetime.
            rng: Random source for backoff jitter.
        """
        self.db_path = db_path
        self._settings = settings
        self._connectivity = connectivity
        self._clock = clock
        self._rng = rng if rng is not None else random.Random()
        self._engine = create_engine(f"sqlite:///{self.db_path}", echo=False)
        self._status = SyncStatus.IDLE
        self._is_syncing = False
        self._queue_listeners: list[Callable[[], None]] = []
        self._status_listeners: list[Callable[[SyncStatus], None]] = []

    def init_db(self) -> None:
        """Create the queue table and parent directories."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        SQLModel.metadata.create_all(self._engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session as a context manager.

        Yields:
            SQLModel Session for queue operations.
        """
        with Session(self._engine) as session:
            yield session

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def pending_count(self) -> int:
        return len(self.pending_actions())

    @property
    def has_pending_actions(self) -> bool:
        return self.pending_count > 0

    @property
    def ready_to_retry_count(self) -> int:
        now = self._clock()
        return sum(1 for action in self.pending_actions() if action.is_ready_to_retry(now))

    def add_queue_listener(self, callback: Callable[[], None]) -> None:
        self._queue_listeners.append(callback)

    def remove_queue_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._queue_listeners:
            self._queue_listeners.remove(callback)

    def add_status_listener(self, callback: Callable[[SyncStatus], None]) -> None:
        self._status_listeners.append(callback)

    def remove_status_listener(self, callback: Callable[[SyncStatus], None]) -> None:
        if callback in self._status_listeners:
            self._status_listeners.remove(callback)

    def _notify_queue_changed(self) -> None:
        for listener in list(self._queue_listeners):
            try:
                listener()
            except Exception:
                logger.exception("queue_listener_failed")

    def _update_status(self, status: SyncStatus) -> None:
        if self._status == status:
            return
        self._status = status
        for listener in list(self._status_listeners):
            try:
                listener(status)
            except Exception:
                logger.exception("status_listener_failed", status=status.value)

    def _save(self, action: OfflineAction) -> OfflineAction:
        try:
            with self.get_session() as session:
                merged = session.merge(action)
                session.commit()
                session.refresh(merged)
                return merged
        except Exception as e:
            raise OfflineQueueError(f"Could not store offline action {action.id}: {e}") from e

    def enqueue(self, action: OfflineAction) -> OfflineAction:
        """Store an action for later sync.

        Args:
            action: The action to store. An existing action with the same id is replaced.

        Returns:
            The stored action.

        Raises:
            OfflineQueueError: If the action cannot be written.
        """
        stored = self._save(action)
        logger.info(
            "offline_action_queued",
            action_id=stored.id,
            action_type=stored.action_type.value,
        )
        self._notify_queue_changed()
        return stored

    def dequeue(self, action_id: str) -> None:
        """Remove an action after it synced or was cancelled.

        Raises:
            OfflineQueueError: If the action cannot be deleted.
        """
        try:
            with self.get_session() as session:
                action = session.get(OfflineAction, action_id)
                if action is None:
                    return
                session.delete(action)
                session.commit()
        except Exception as e:
            raise OfflineQueueError(f"Could not remove offline action {action_id}: {e}") from e
        logger.debug("offline_action_dequeued", action_id=action_id)
        self._notify_queue_changed()

    def cancel_action(self, action_id: str) -> bool:
        """Cancel a pending action.

        Returns:
            True if the action was pending and has been removed, False otherwise.
        """
        if self.get_action(action_id) is None:
            return False
        self.dequeue(action_id)
        logger.info("offline_action_cancelled", action_id=action_id)
        return True

    def cancel_for(self, post_id: str, user_id: str) -> int:
        """Cancel every pending spark a user queued for a post.

        Args:
            post_id: The post the queued sparks target.
            user_id: The user who queued them.

        Returns:
            Number of actions removed.

        Raises:
            OfflineQueueError: If an action cannot be removed.
        """
        matching = [
            action
            for action in self.pending_actions()
            if action.action_type == OfflineActionType.SPARK_POST
            and action.payload.get("post_id") == post_id
            and action.payload.get("user_id") == user_id
        ]
        for action in matching:
            self.dequeue(action.id)
        if matching:
            logger.info(
                "offline_sparks_cancelled", post_id=post_id, user_id=user_id, count=len(matching)
            )
        return len(matching)

    def get_action(self, action_id: str) -> OfflineAction | None:
        with self.get_session() as session:
            return session.get(OfflineAction, action_id)

    def pending_actions(self) -> list[OfflineAction]:
        """Get all pending actions, oldest first.

        Returns:
            List of OfflineAction objects ordered by creation time.
        """
        with self.get_session() as session:
            statement = select(OfflineAction).order_by(OfflineAction.created_at)
            return list(session.exec(statement).all())

    def _handle_failure(self, action: OfflineAction, error: str, report: SyncReport) -> None:
        action.retry_count += 1
        action.last_error = error

        if action.retry_count >= self._settings.queue_max_retries:
            logger.warning(
                "offline_action_dropped",
                action_id=action.id,
                retries=action.retry_count,
                max_retries=self._settings.queue_max_retries,
                error=error,
            )
            self.dequeue(action.id)
            report.dropped += 1
            return

        delay = calculate_backoff_delay(
            action.retry_count,
            self._settings.queue_base_delay_seconds,
            self._settings.queue_max_delay_seconds,
            self._settings.queue_jitter_factor,
            rng=self._rng,
        )
        action.next_retry_at = self._clock() + delay
        self._save(action)
        logger.debug(
            "offline_action_retry_scheduled",
            action_id=action.id,
            retry=action.retry_count,
            delay_seconds=round(delay.total_seconds(), 2),
        )
        report.failed += 1
        self._notify_queue_changed()

    def _sync_one(
        self, action: OfflineAction, executor: ActionExecutor, report: SyncReport
    ) -> None:
        try:
            delivered = executor(action)
        except Exception as e:
            logger.error("offline_action_failed", action_id=action.id, error=str(e))
            delivered, error = False, str(e)
        else:
            error = "Action returned false"

        try:
            if delivered:
                self.dequeue(action.id)
                report.succeeded += 1
            else:
                self._handle_failure(action, error, report)
        except OfflineQueueError as e:
            # The action stays in the store as it was and is picked up next sync
            logger.error("offline_action_update_failed", action_id=action.id, error=str(e))
            report.failed += 1

    def sync(self, executor: ActionExecutor) -> SyncReport:
        """Replay every pending action whose backoff delay has elapsed.

        Does nothing while offline or while another sync is running.

        Args:
            executor: Callable delivering one action; returns True on success.

        Returns:
            A SyncReport with per-outcome counts.
        """
        report = SyncReport()
        if self._is_syncing:
            return report
        if self._connectivity is not None and not self._connectivity.is_online:
            logger.debug("offline_sync_skipped_offline")
            return report

        actions = self.pending_actions()
        if not actions:
            self._update_status(SyncStatus.IDLE)
            return report

        self._is_syncing = True
        self._update_status(SyncStatus.SYNCING)
        logger.info("offline_sync_started", pending=len(actions))
        try:
            now = self._clock()
            for action in actions:
                if not action.is_ready_to_retry(now):
                    report.skipped += 1
                    continue
                self._sync_one(action, executor, report)

            remaining = self.pending_actions()
            if report.failed or any(action.retry_count > 0 for action in remaining):
                self._update_status(SyncStatus.RETRYING)
            elif report.dropped:
                self._update_status(SyncStatus.FAILED)
            else:
                self._update_status(SyncStatus.IDLE)
        except Exception:
            self._update_status(SyncStatus.FAILED)
            raise
        finally:
            self._is_syncing = False

        logger.info(
            "offline_sync_complete",
            succeeded=report.succeeded,
            failed=report.failed,
            skipped=report.skipped,
            dropped=report.dropped,
        )
        return report

    def retry_action(self, action_id: str) -> bool:
        """Clear the backoff delay of a single action so the next sync runs it.

        Returns:
            True if the action exists, False otherwise.
        """
        action = self.get_action(action_id)
        if action is None:
            return False
        action.next_retry_at = None
        self._save(action)
        return True

    def force_sync(self, executor: ActionExecutor) -> SyncReport:
        """Ignore backoff timers and replay every pending action now."""
        if self._connectivity is not None and not self._connectivity.is_online:
            return SyncReport()
        for action in self.pending_actions():
            if action.next_retry_at is not None:
                action.next_retry_at = None
                self._save(action)
        return self.sync(executor)

    def clear_all(self) -> int:
        """Delete every pending action.

        Returns:
            Number of actions removed.
        """
        with self.get_session() as session:
            actions = session.exec(select(OfflineAction)).all()
            for action in actions:
                session.delete(action)
            session.commit()
            count = len(actions)
        self._update_status(SyncStatus.IDLE)
        self._notify_queue_changed()
        logger.info("offline_queue_cleared", removed=count)
        return count

