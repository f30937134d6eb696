# ABOUTME: Sparks package coordinating guarded spark and unspark operations.
# ABOUTME: Exports SparkOrchestrator and the deprecated LegacySparkFacade.

from spark_guard.sparks.legacy import LegacySparkFacade
from spark_guard.sparks.orchestrator import SparkOrchestrator

__all__ = ["SparkOrchestrator", "LegacySparkFacade"]
