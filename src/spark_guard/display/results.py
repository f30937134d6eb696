# ABOUTME: Rich rendering of SparkResult values for the CLI.
# ABOUTME: Done and already-done render alike; queued reads "will sync", throttled "slow down".

from rich.table import Table
from rich.text import Text

from spark_guard.models import SparkResult, SparkStatus

# (label, style) per status; throttling is yellow rather than error red
STATUS_STYLES: dict[SparkStatus, tuple[str, str]] = {
    SparkStatus.SUCCESS: ("Sparked", "green"),
    SparkStatus.ALREADY_PERFORMED: ("Sparked", "green"),
    SparkStatus.QUEUED: ("Will sync", "cyan"),
    SparkStatus.RATE_LIMITED: ("Slow down", "yellow"),
    SparkStatus.BURST_DETECTED: ("Slow down", "yellow"),
    SparkStatus.FAILURE: ("Failed", "red"),
}


def _detail(result: SparkResult) -> str:
    if result.status is SparkStatus.SUCCESS:
        return f"{result.remaining_in_window} left in window"
    if result.status is SparkStatus.ALREADY_PERFORMED:
        return "already sparked"
    if result.status is SparkStatus.QUEUED:
        return "queued (online, delivery failed)" if result.is_online else "queued (offline)"
    if result.status is SparkStatus.RATE_LIMITED:
        return "too many sparks this minute"
    if result.status is SparkStatus.BURST_DETECTED:
        return "unusual activity, wait a moment"
    return result.reason or ""


def render_result(result: SparkResult, post_id: str) -> Text:
    """Render a single spark result as one line of styled text.

    Args:
        result: The result to render.
        post_id: The post the result belongs to.

    Returns:
        Rich Text such as "Sparked p1 (59 left in window)".
    """
    label, style = STATUS_STYLES[result.status]
    text = Text()
    text.append(label, style=f"bold {style}")
    text.append(f" {post_id}", style="cyan")
    detail = _detail(result)
    if detail:
        text.append(f" ({detail})", style="dim")
    return text


class ResultTable:
    """Renders a sequence of (post_id, result) pairs as a Rich table."""

    def render(self, rows: list[tuple[str, SparkResult]], title: str | None = None) -> Table:
        """Render spark results with row numbers.

        Args:
            rows: Pairs of post id and its result, in call order.
            title: Optional table title.

        Returns:
            Rich Table with one row per call.
        """
        table = Table(title=title, show_lines=False)
        table.add_column("#", style="dim", width=4)
        table.add_column("Post", style="cyan", no_wrap=True)
        table.add_column("Outcome")
        table.add_column("Status", style="dim")
        table.add_column("Detail", style="dim")

        for idx, (post_id, result) in enumerate(rows, 1):
            label, style = STATUS_STYLES[result.status]
            table.add_row(
                str(idx),
                post_id,
                f"[{style}]{label}[/{style}]",
                result.status.value,
                _detail(result),
            )
        return table
