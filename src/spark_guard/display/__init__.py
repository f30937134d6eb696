# ABOUTME: Display module for Rich terminal output formatting.
# ABOUTME: Exports renderers for spark results, the offline queue, sync reports, and errors.

from spark_guard.display.errors import display_error
from spark_guard.display.queue import QueueTable, render_sync_report
from spark_guard.display.results import ResultTable, render_result

__all__ = [
    "QueueTable",
    "ResultTable",
    "display_error",
    "render_result",
    "render_sync_report",
]
