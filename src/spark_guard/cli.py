# ABOUTME: Operator CLI for spark-guard using Typer.
# ABOUTME: Provides spark, unspark, queue inspection, sync, and a rate-limit simulation.

import tempfile
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from spark_guard.config import Settings, ensure_data_dir, get_settings
from spark_guard.connectivity import ConnectivityMonitor
from spark_guard.display import (
    QueueTable,
    ResultTable,
    display_error,
    render_result,
    render_sync_report,
)
from spark_guard.logs import configure_logging
from spark_guard.models import SparkResult, SparkStatus
from spark_guard.offline.queue import OfflineActionQueue
from spark_guard.rate_limit.display import RateLimitDisplay
from spark_guard.rate_limit.service import ManualClock, utc_now
from spark_guard.remote.client import (
    RemoteMutationClient,
    SupabaseSparkClient,
    UnconfiguredRemoteClient,
)
from spark_guard.remote.exceptions import RemoteAuthError, RemoteError
from spark_guard.session import SparkSession

app = typer.Typer(
    name="spark-guard",
    help="Rate-limited, idempotent spark reactions with an offline retry queue.",
    add_completion=False,
)

console = Console()

UserOption = Annotated[
    str,
    typer.Option("--user", "-u", help="User id performing the action."),
]


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log debug events to stderr.")
    ] = False,
) -> None:
    """spark-guard command line tool.

    Spark posts through the guarded orchestrator, inspect and sync the
    offline queue, and simulate rate limiting.
    """
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)
    if ctx.invoked_subcommand is None:
        console.print("[dim]Use --help to see available commands.[/dim]")


def _is_configured(settings: Settings) -> bool:
    return bool(settings.supabase_url and settings.supabase_key)


def _build_remote(settings: Settings) -> RemoteMutationClient:
    if not _is_configured(settings):
        return UnconfiguredRemoteClient()
    try:
        return SupabaseSparkClient(settings.supabase_url or "", settings.supabase_key or "")
    except RemoteError as e:
        console.print(display_error(e))
        raise typer.Exit(code=1) from None


def _open_queue(settings: Settings, connectivity: ConnectivityMonitor) -> OfflineActionQueue:
    ensure_data_dir()
    queue = OfflineActionQueue(settings.db_path, settings, connectivity=connectivity)
    queue.init_db()
    return queue


def _build_session(user: str | None, offline: bool = False) -> SparkSession:
    """Assemble a session from settings. No backend configured means offline."""
    settings = get_settings()
    connectivity = ConnectivityMonitor(online=_is_configured(settings) and not offline)
    remote = _build_remote(settings)
    queue = _open_queue(settings, connectivity)
    return SparkSession(settings, remote, queue, connectivity, user_id=user)


@app.command()
def spark(
    post_id: Annotated[str, typer.Argument(help="Post to spark.")],
    user: UserOption,
    offline: Annotated[
        bool, typer.Option("--offline", help="Skip the backend and queue the spark.")
    ] = False,
) -> None:
    """Spark a post.

    The backend is checked for an existing spark first; undeliverable
    sparks are stored in the offline queue.
    """
    session = _build_session(user, offline=offline)
    if not session.connectivity.is_online and not offline:
        console.print("[dim]No backend configured; the spark will be queued.[/dim]")

    result = session.orchestrator.toggle_spark_once(post_id)
    console.print(render_result(result, post_id))
    session.dispose()
    if result.status is SparkStatus.FAILURE:
        raise typer.Exit(code=1)


@app.command()
def unspark(
    post_id: Annotated[str, typer.Argument(help="Post to remove the spark from.")],
    user: UserOption,
) -> None:
    """Remove a spark from a post."""
    session = _build_session(user)
    if not session.connectivity.is_online:
        console.print("[red]Error: unspark needs a configured backend.[/red]")
        raise typer.Exit(code=1)

    # Cache is per-process, so confirm the spark with the backend first
    try:
        if session.remote.has_reaction(post_id, user):
            session.cache.mark_cached(user, post_id)
    except RemoteAuthError as e:
        console.print(display_error(e))
        raise typer.Exit(code=1) from None
    except RemoteError as e:
        console.print(display_error(e))
        console.print("[dim]Check your connection and try again.[/dim]")
        raise typer.Exit(code=1) from None

    result = session.orchestrator.unspark_post(post_id)
    session.dispose()
    if result.is_done:
        console.print(f"[green]Spark removed from[/green] [cyan]{post_id}[/cyan]")
        return
    console.print(render_result(result, post_id))
    raise typer.Exit(code=1)


@app.command()
def queue() -> None:
    """List actions waiting in the offline queue."""
    settings = get_settings()
    offline_queue = _open_queue(settings, ConnectivityMonitor(online=_is_configured(settings)))
    actions = offline_queue.pending_actions()
    if not actions:
        console.print("[green]Offline queue is empty.[/green]")
        return
    console.print(QueueTable().render(actions))
    console.print(
        f"[dim]{len(actions)} pending, "
        f"{offline_queue.ready_to_retry_count} ready to retry now.[/dim]"
    )


@app.command()
def sync(
    force: Annotated[
        bool, typer.Option("--force", help="Ignore backoff timers and retry everything now.")
    ] = False,
) -> None:
    """Deliver queued actions to the backend."""
    settings = get_settings()
    if not _is_configured(settings):
        console.print(f"[red]Error: {UnconfiguredRemoteClient.MESSAGE}[/red]")
        raise typer.Exit(code=1)

    session = _build_session(None)
    report = session.sync_queue(force=force)
    console.print(
        render_sync_report(report, session.queue.status, session.queue.pending_count)
    )
    session.dispose()


@app.command("clear-queue")
def clear_queue(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
) -> None:
    """Delete every pending action from the offline queue."""
    settings = get_settings()
    offline_queue = _open_queue(settings, ConnectivityMonitor(online=False))
    pending = offline_queue.pending_count
    if pending == 0:
        console.print("[green]Offline queue is already empty.[/green]")
        return
    if not yes and not typer.confirm(f"Delete {pending} pending action(s)?"):
        console.print("[yellow]Aborted.[/yellow]")
        raise typer.Exit(code=1)
    removed = offline_queue.clear_all()
    console.print(f"[green]Removed {removed} action(s).[/green]")


@app.command()
def simulate(
    user: UserOption = "demo-user",
    count: Annotated[int, typer.Option("--count", "-n", help="Sparks to attempt.", min=1)] = 12,
    interval: Annotated[
        float, typer.Option("--interval", help="Simulated seconds between taps.", min=0)
    ] = 0.5,
) -> None:
    """Simulate rapid sparks on distinct posts and show how they are throttled.

    Runs offline against a throwaway queue with a simulated clock, so no
    backend or real waiting is involved.
    """
    settings = get_settings()
    clock = ManualClock(utc_now())
    connectivity = ConnectivityMonitor(online=False)

    with tempfile.TemporaryDirectory() as tmpdir:
        offline_queue = OfflineActionQueue(
            Path(tmpdir) / "simulation.db", settings, connectivity=connectivity, clock=clock
        )
        offline_queue.init_db()
        session = SparkSession(
            settings,
            UnconfiguredRemoteClient(),
            offline_queue,
            connectivity,
            user_id=user,
            clock=clock,
        )

        rows: list[tuple[str, SparkResult]] = []
        for idx in range(1, count + 1):
            post_id = f"post-{idx}"
            rows.append((post_id, session.orchestrator.spark_post(post_id)))
            clock.advance(interval)

        console.print(ResultTable().render(rows, title=f"Simulated sparks for {user}"))
        console.print(RateLimitDisplay(session.rate_limiter, user).render_status())
        console.print(f"[dim]{offline_queue.pending_count} spark(s) queued for sync.[/dim]")
        session.dispose()


if __name__ == "__main__":
    app()
