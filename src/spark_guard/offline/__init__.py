# ABOUTME: Offline package for durable retry of spark actions.
# ABOUTME: Exports the SQLite-backed queue, its adapter protocol, and the replay executor.

from spark_guard.offline.backoff import calculate_backoff_delay
from spark_guard.offline.executor import SparkActionExecutor
from spark_guard.offline.queue import (
    OfflineActionQueue,
    OfflineQueueAdapter,
    OfflineQueueError,
    SyncReport,
    SyncStatus,
)

__all__ = [
    "OfflineActionQueue",
    "OfflineQueueAdapter",
    "OfflineQueueError",
    "SparkActionExecutor",
    "SyncReport",
    "SyncStatus",
    "calculate_backoff_delay",
]
