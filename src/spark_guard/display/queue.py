# ABOUTME: Rich rendering of the offline action queue and sync reports.
# ABOUTME: Provides QueueTable for pending actions and a summary panel for sync runs.

from datetime import UTC, datetime

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from spark_guard.models import OfflineAction
from spark_guard.offline.queue import SyncReport, SyncStatus

STATUS_COLORS: dict[SyncStatus, str] = {
    SyncStatus.IDLE: "green",
    SyncStatus.SYNCING: "cyan",
    SyncStatus.RETRYING: "yellow",
    SyncStatus.FAILED: "red",
}


def _format_time(value: datetime | None) -> str:
    if value is None:
        return ""
    # Handle timezone-naive timestamps from SQLite
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")


class QueueTable:
    """Renders pending OfflineAction rows as a Rich table."""

    MAX_ERROR_LENGTH = 40

    def _truncate(self, text: str | None, max_length: int) -> str:
        if text is None:
            return ""
        if len(text) <= max_length:
            return text
        return text[: max_length - 3] + "..."

    def render(self, actions: list[OfflineAction], title: str | None = "Offline Queue") -> Table:
        """Render pending actions, oldest first.

        Args:
            actions: Pending actions to display.
            title: Optional table title.

        Returns:
            Rich Table with one row per action.
        """
        table = Table(title=title, show_lines=False)
        table.add_column("#", style="dim", width=4)
        table.add_column("Action", style="cyan", no_wrap=True)
        table.add_column("Post", style="magenta")
        table.add_column("User", style="green")
        table.add_column("Created", style="dim")
        table.add_column("Retries", style="yellow", width=7)
        table.add_column("Next Retry", style="dim")
        table.add_column("Last Error", style="red", max_width=self.MAX_ERROR_LENGTH)

        for idx, action in enumerate(actions, 1):
            table.add_row(
                str(idx),
                action.action_type.value,
                str(action.payload.get("post_id", "")),
                str(action.payload.get("user_id", "")),
                _format_time(action.created_at),
                str(action.retry_count),
                _format_time(action.next_retry_at),
                self._truncate(action.last_error, self.MAX_ERROR_LENGTH),
            )
        return table


def render_sync_report(report: SyncReport, status: SyncStatus, pending: int) -> Panel:
    """Summarize a sync run as a Rich Panel.

    Args:
        report: Counts from the sync run.
        status: Queue status after the run.
        pending: Actions still waiting after the run.

    Returns:
        Rich Panel with the counts and the resulting status.
    """
    color = STATUS_COLORS[status]
    content = Text()
    content.append("Delivered: ", style="dim")
    content.append(f"{report.succeeded}\n", style="green")
    content.append("Failed: ", style="dim")
    content.append(f"{report.failed}\n", style="yellow" if report.failed else "dim")
    content.append("Waiting on backoff: ", style="dim")
    content.append(f"{report.skipped}\n")
    content.append("Dropped: ", style="dim")
    content.append(f"{report.dropped}\n", style="red" if report.dropped else "dim")
    content.append("Still pending: ", style="dim")
    content.append(f"{pending}\n", style="cyan")
    content.append("Status: ", style="dim")
    content.append(status.value, style=f"bold {color}")

    return Panel(content, title="Sync Summary", border_style=color, padding=(1, 2))
