# ABOUTME: Shared pytest fixtures for spark-guard tests.
# ABOUTME: Provides a manual clock, test settings, a temporary offline queue, and a mock backend.

from datetime import UTC, datetime
from pathlib import Path
from unittest import mock

import pytest

from spark_guard.config import Settings
from spark_guard.connectivity import ConnectivityMonitor
from spark_guard.offline.queue import OfflineActionQueue
from spark_guard.rate_limit.service import ManualClock
from spark_guard.remote.client import SupabaseSparkClient


@pytest.fixture
def clock() -> ManualClock:
    """Create a ManualClock pinned to a fixed UTC instant."""
    return ManualClock(datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary queue database path."""
    return tmp_path / "queue.db"


@pytest.fixture
def settings(temp_db_path: Path) -> Settings:
    """Create Settings with default limits and no retry jitter."""
    return Settings(db_path=temp_db_path, queue_jitter_factor=0.0)


@pytest.fixture
def connectivity() -> ConnectivityMonitor:
    """Create a connectivity monitor that starts online."""
    return ConnectivityMonitor(online=True)


@pytest.fixture
def offline_queue(
    temp_db_path: Path,
    settings: Settings,
    connectivity: ConnectivityMonitor,
    clock: ManualClock,
) -> OfflineActionQueue:
    """Create an OfflineActionQueue backed by a temporary SQLite file."""
    queue = OfflineActionQueue(temp_db_path, settings, connectivity=connectivity, clock=clock)
    queue.init_db()
    return queue


@pytest.fixture
def mock_remote() -> mock.Mock:
    """Create a mock backend client where nothing has been sparked yet."""
    remote = mock.Mock(spec=SupabaseSparkClient)
    remote.has_reaction.return_value = False
    return remote
