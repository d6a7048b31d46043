"""Command-line interface for followdiff."""

import asyncio
import signal
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.table import Table

from followdiff import FollowerTracker, TrackerConfig, __version__
from followdiff.config import LogFormat
from followdiff.core.diff import filter_followers
from followdiff.core.exporter import load_export, save_export
from followdiff.core.orchestrator import SCAN_ERROR
from followdiff.exceptions import SnapshotNotFoundError, SnapshotValidationError
from followdiff.models.diff import DiffResult
from followdiff.models.follower import FollowerRecord

app = typer.Typer(
    name="followdiff",
    help="Follower list snapshots and diffs",
    add_completion=False,
)
console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"followdiff version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """followdiff - follower list snapshots and diffs."""
    pass


def _format_ts(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M")


@app.command()
def scan(
    usernames: list[str] = typer.Argument(..., help="Profiles to scan, one after another"),
    storage_state: Optional[Path] = typer.Option(
        None, "--storage-state", "-s", help="Saved browser session (Playwright storage state JSON)"
    ),
    headless: bool = typer.Option(
        True, "--headless/--no-headless", help="Run browser in headless mode"
    ),
    pictures: bool = typer.Option(
        True, "--pictures/--no-pictures", help="Inline profile pictures into the snapshot"
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress progress output"
    ),
):
    """Scan follower lists and save a snapshot per profile. Ctrl+C stops and keeps what was found."""
    config = TrackerConfig(
        headless=headless,
        inline_pictures=pictures,
        storage_state_path=str(storage_state) if storage_state else None,
        log_format=LogFormat.CONSOLE if not quiet else LogFormat.JSON,
    )

    async def run():
        async with FollowerTracker(config) as tracker:
            failures: list[str] = []

            def on_event(event: dict) -> None:
                if event["type"] == SCAN_ERROR:
                    failures.append(event["error"])
                    console.print(f"[red]✗[/red] {event['error']}")
                elif not quiet:
                    _print_event(event)

            tracker.subscribe(on_event)
            remove_handler = _cancel_on_interrupt(tracker)
            try:
                completed = await tracker.scan_many(usernames)
            finally:
                remove_handler()

            for done in completed:
                tag = "[yellow](cancelled)[/yellow] " if done.result.cancelled else ""
                console.print(
                    f"\n[green]✓[/green] {tag}@{done.snapshot.scanned_user or '?'}: "
                    f"saved snapshot {done.snapshot.timestamp} "
                    f"with [bold]{done.snapshot.count:,}[/bold] followers "
                    f"({done.total_snapshots} stored)"
                )
            if failures:
                raise typer.Exit(1)

    asyncio.run(run())


def _cancel_on_interrupt(tracker: FollowerTracker) -> Callable[[], None]:
    """
    Route the first Ctrl+C to tracker.cancel_scan() so partial results are saved.

    A second Ctrl+C aborts as usual. Returns a function that removes the handler.
    """
    loop = asyncio.get_running_loop()

    def on_interrupt() -> None:
        loop.remove_signal_handler(signal.SIGINT)
        console.print("\n[yellow]Stopping, saving what was collected (Ctrl+C again to abort)[/yellow]")
        tracker.cancel_scan()

    try:
        loop.add_signal_handler(signal.SIGINT, on_interrupt)
    except (NotImplementedError, RuntimeError):
        # No loop signal support (Windows, or not the main thread)
        return lambda: None
    return lambda: loop.remove_signal_handler(signal.SIGINT)


@app.command()
def snapshots():
    """List stored snapshots, newest first."""

    async def run():
        async with FollowerTracker(TrackerConfig()) as tracker:
            stored = await tracker.list_snapshots()

        if not stored:
            console.print("No snapshots stored")
            return

        table = Table(title="Snapshots")
        table.add_column("Timestamp", style="dim")
        table.add_column("Captured")
        table.add_column("Profile")
        table.add_column("Followers", justify="right")
        for s in stored:
            table.add_row(str(s.timestamp), _format_ts(s.timestamp), s.scanned_user or "-", f"{s.count:,}")
        console.print(table)

    asyncio.run(run())


@app.command()
def show(
    timestamp: int = typer.Argument(..., help="Snapshot timestamp"),
    query: Optional[str] = typer.Option(None, "--filter", "-f", help="Only show matching accounts"),
):
    """Show the followers in one snapshot."""

    async def run():
        async with FollowerTracker(TrackerConfig()) as tracker:
            try:
                snapshot = await tracker.get_snapshot(timestamp)
            except SnapshotNotFoundError as e:
                console.print(f"[red]{e}[/red]")
                raise typer.Exit(1)

        followers = filter_followers(snapshot.followers, query or "")
        console.print(f"[bold]{snapshot.scanned_user or 'snapshot'}[/bold] · {_format_ts(snapshot.timestamp)}")
        _print_followers(followers)
        console.print(f"[dim]{len(followers)} of {snapshot.count} shown[/dim]")

    asyncio.run(run())


@app.command()
def diff(
    older: Optional[int] = typer.Argument(None, help="Older snapshot timestamp"),
    newer: Optional[int] = typer.Argument(None, help="Newer snapshot timestamp"),
):
    """Compare two snapshots (defaults to the two most recent)."""

    async def run():
        async with FollowerTracker(TrackerConfig()) as tracker:
            older_ts, newer_ts = older, newer
            if older_ts is None or newer_ts is None:
                stored = await tracker.list_snapshots()
                if len(stored) < 2:
                    console.print("[red]Need at least two snapshots to compare[/red]")
                    raise typer.Exit(1)
                newer_ts, older_ts = stored[0].timestamp, stored[1].timestamp
            try:
                result = await tracker.diff(older_ts, newer_ts)
            except SnapshotNotFoundError as e:
                console.print(f"[red]{e}[/red]")
                raise typer.Exit(1)

        _print_diff(result)

    asyncio.run(run())


@app.command()
def delete(timestamp: int = typer.Argument(..., help="Snapshot timestamp")):
    """Delete a stored snapshot."""

    async def run():
        async with FollowerTracker(TrackerConfig()) as tracker:
            try:
                remaining = await tracker.delete_snapshot(timestamp)
            except SnapshotNotFoundError as e:
                console.print(f"[red]{e}[/red]")
                raise typer.Exit(1)
        console.print(f"[green]✓[/green] Deleted {timestamp} ({len(remaining)} left)")

    asyncio.run(run())


@app.command(name="export")
def export_cmd(
    path: Path = typer.Argument(..., help="Output file or directory"),
    strip_images: bool = typer.Option(
        False, "--strip-images", help="Leave profile pictures out of the file"
    ),
):
    """Export all snapshots to a JSON file."""

    async def run():
        async with FollowerTracker(TrackerConfig()) as tracker:
            stored = await tracker.list_snapshots()

        if not stored:
            console.print("[red]No snapshots to export.[/red]")
            raise typer.Exit(1)
        saved = save_export(stored, path, strip_images=strip_images)
        console.print(f"[green]✓[/green] Exported {len(stored)} snapshot(s) to {saved}")

    asyncio.run(run())


@app.command(name="import")
def import_cmd(path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Export file")):
    """Import snapshots from an export file."""

    async def run():
        async with FollowerTracker(TrackerConfig()) as tracker:
            try:
                result = await tracker.import_data(load_export(path))
            except SnapshotValidationError as e:
                console.print(f"[red]✗[/red] {e.reason}")
                raise typer.Exit(1)

        parts = []
        if result.added:
            parts.append(f"{result.added} imported")
        if result.skipped:
            parts.append(f"{result.skipped} duplicate skipped")
        console.print(f"[green]✓[/green] {', '.join(parts)}.")

    asyncio.run(run())


def _print_event(event: dict) -> None:
    """Print scan progress pushed by the tracker."""
    if event["type"] == "SCAN_FOLLOWERS_PROGRESS":
        console.print(f"[dim]{event['status']}[/dim]")


def _print_followers(followers: list[FollowerRecord]) -> None:
    for f in followers:
        name = f" [dim]{f.full_name}[/dim]" if f.full_name else ""
        console.print(f"  @{f.username}{name}")


def _print_diff(result: DiffResult) -> None:
    """Print a diff summary followed by the changed accounts."""
    table = Table(show_header=False)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Older", f"{_format_ts(result.older_date)} ({result.older_count:,})")
    table.add_row("Newer", f"{_format_ts(result.newer_date)} ({result.newer_count:,})")
    table.add_row("Unfollowed", f"[red]{len(result.unfollowed):,}[/red]")
    table.add_row("New", f"[green]{len(result.new_followers):,}[/green]")
    table.add_row("Unchanged", f"{result.unchanged_count:,}")
    console.print(table)

    if result.unfollowed:
        console.print("\n[bold red]Unfollowed[/bold red]")
        _print_followers(result.unfollowed)
    if result.new_followers:
        console.print("\n[bold green]New followers[/bold green]")
        _print_followers(result.new_followers)


if __name__ == "__main__":
    app()
