# ABOUTME: Error panel for the CLI, rendered with Rich.
# ABOUTME: Adds a next-step hint for backend, queue, and throttling errors; optional traceback.

import traceback

from rich.panel import Panel
from rich.text import Text

from spark_guard.offline.queue import OfflineQueueError
from spark_guard.rate_limit.exceptions import BurstDetected, RateLimitExceeded
from spark_guard.remote.exceptions import RemoteAuthError, RemoteError, RemoteRateLimitError

# Most specific first
ERROR_HINTS: list[tuple[type[Exception], str]] = [
    (RemoteAuthError, "Check SPARK_GUARD_SUPABASE_KEY and that the session is still valid."),
    (RemoteRateLimitError, "The backend is throttling requests; wait before syncing again."),
    (RemoteError, "Sparks made now are queued; run `spark-guard sync` once back online."),
    (OfflineQueueError, "Check that SPARK_GUARD_DB_PATH is writable."),
    (RateLimitExceeded, "Wait for the window to slide before sparking again."),
    (BurstDetected, "Slow down; sparks resume after a few seconds."),
]


def _hint_for(error: Exception) -> str | None:
    for error_type, hint in ERROR_HINTS:
        if isinstance(error, error_type):
            return hint
    return None


def display_error(error: Exception, verbose: bool = False) -> Panel:
    """Format an error as a Rich Panel.

    Args:
        error: The exception to display.
        verbose: If True, include full traceback information.

    Returns:
        A Rich Panel with the error type, message, and a hint when one is known.
    """
    content = Text()
    content.append(f"{type(error).__name__}: ", style="bold red")
    content.append(str(error), style="red")

    hint = _hint_for(error)
    if hint:
        content.append(f"\n\n{hint}", style="dim")

    if verbose:
        tb_text = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        content.append("\n\nTraceback:\n", style="dim")
        content.append(tb_text, style="dim")

    border = "yellow" if isinstance(error, RateLimitExceeded | BurstDetected) else "red"
    return Panel(content, title="Error", border_style=border, padding=(1, 2))
