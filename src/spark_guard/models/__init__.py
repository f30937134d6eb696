# ABOUTME: Models package for spark-guard data structures.
# ABOUTME: Exports the SparkResult variant and the persisted OfflineAction SQLModel.

from spark_guard.models.offline_action import OfflineAction, OfflineActionType
from spark_guard.models.result import SparkResult, SparkStatus

__all__ = ["OfflineAction", "OfflineActionType", "SparkResult", "SparkStatus"]
