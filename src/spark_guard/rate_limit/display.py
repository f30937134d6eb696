# ABOUTME: Display helper for rate limiter status using Rich formatting.
# ABOUTME: Renders a user's window usage, burst state, and retry delay as dictionaries and panels.

from typing import Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from spark_guard.rate_limit.service import RateLimiter


class RateLimitDisplay:
    """Display helper for a single user's rate limit status."""

    WARNING_THRESHOLD = 5

    def __init__(self, rate_limiter: RateLimiter, user_id: str) -> None:
        """Initialize the display helper.

        Args:
            rate_limiter: The RateLimiter instance to read status from.
            user_id: The user whose status is shown.
        """
        self._rate_limiter = rate_limiter
        self._user_id = user_id

    def get_status_dict(self) -> dict[str, Any]:
        """Get the current rate limit status as a dictionary.

        Returns:
            Dictionary containing:
                - user_id: The user being displayed
                - attempts_used: Attempts counted in the current window
                - max_attempts: Cap for the window
                - remaining: Attempts left in the window
                - retry_after_seconds: Seconds until an attempt frees up (0 if not limited)
                - burst_detected: True if the burst threshold is currently reached
                - last_attempt_time: Datetime of the latest attempt (or None)
                - is_warning: True if remaining attempts are below the warning threshold
        """
        limiter = self._rate_limiter
        remaining = limiter.remaining_in_window(self._user_id)
        return {
            "user_id": self._user_id,
            "attempts_used": limiter.attempts_in_window(self._user_id),
            "max_attempts": limiter.max_attempts,
            "remaining": remaining,
            "retry_after_seconds": limiter.retry_after_seconds(self._user_id),
            "burst_detected": limiter.is_burst_detected(self._user_id),
            "last_attempt_time": limiter.last_attempt_time(self._user_id),
            "is_warning": remaining < self.WARNING_THRESHOLD,
        }

    def render_status(self) -> Panel:
        """Render the rate limit status as a Rich Panel.

        Returns:
            A Rich Panel containing the formatted status information.
        """
        status = self.get_status_dict()

        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Label", style="dim")
        table.add_column("Value")

        used_color = "yellow" if status["is_warning"] else "green"
        table.add_row(
            "Sparks in Window:",
            Text(f"{status['attempts_used']} / {status['max_attempts']}", style=used_color),
        )
        table.add_row("Remaining:", Text(str(status["remaining"]), style=used_color))

        if status["retry_after_seconds"]:
            table.add_row(
                "Retry In:", Text(f"{status['retry_after_seconds']}s", style="cyan")
            )

        burst_text = Text("yes", style="yellow bold") if status["burst_detected"] else Text("no")
        table.add_row("Burst:", burst_text)

        if status["last_attempt_time"]:
            last_str = status["last_attempt_time"].strftime("%H:%M:%S UTC")
        else:
            last_str = "No recent sparks"
        table.add_row("Last Spark:", Text(last_str, style="dim"))

        title = f"Rate Limit Status ({status['user_id']})"
        if status["remaining"] == 0:
            title = "Slow Down: Limit Reached"
        elif status["is_warning"]:
            title = f"Slow Down ({status['remaining']} left)"

        return Panel(
            table,
            title=title,
            border_style="yellow" if status["is_warning"] else "green",
            padding=(1, 2),
        )
