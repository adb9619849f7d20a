"""Console rendering and progress helpers for the uploader CLI."""
from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import OutcomeKind, RunSummary
from .orchestrator.progress import ProgressSnapshot, ProgressTracker

console = Console()

STATUS_REFRESH_SECONDS = 0.5

_OUTCOME_STYLES = {
    OutcomeKind.SUCCESS: "green",
    OutcomeKind.SKIPPED: "white",
    OutcomeKind.CORRUPT: "red",
    OutcomeKind.FAILED: "red",
}


def _format_elapsed(seconds: float) -> str:
    seconds = int(max(seconds, 0))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]catalog-uploader[/bold green]",
        subtitle="[dim]media catalog upload[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_status(snapshot: ProgressSnapshot, now: Optional[float] = None) -> Group:
    """Build the live status view from a tracker snapshot."""
    now = time.monotonic() if now is None else now

    header = Text(f"Files in index: {snapshot.retrieved_from_index}", style="bold")

    uploading = Table(title="Currently uploading", title_justify="left", show_header=False, box=None)
    uploading.add_column(style="cyan", no_wrap=True)
    uploading.add_column()
    for path, started_at in reversed(snapshot.in_flight):
        uploading.add_row(_format_elapsed(now - started_at), str(path))

    counters = Text(
        f"Uploaded files: {snapshot.uploaded}, Corrupt files: {snapshot.corrupt}, "
        f"Failed files: {snapshot.failed}, Skipped files: {snapshot.skipped}, "
        f"Remaining files: {snapshot.remaining}"
    )

    recent = Table(title="Latest processed files", title_justify="left", show_header=False, box=None)
    recent.add_column(no_wrap=True)
    recent.add_column()
    for outcome, path in reversed(snapshot.recent):
        style = _OUTCOME_STYLES[outcome.kind]
        label = outcome.label
        if outcome.kind is OutcomeKind.FAILED:
            label = f"FAILED - {label}"
        recent.add_row(Text(label, style=style), str(path))

    problems = Table(title="Corrupt and failed files", title_justify="left", show_header=False, box=None)
    problems.add_column(style="red", no_wrap=True)
    problems.add_column()
    for path in reversed(snapshot.corrupt_files):
        problems.add_row("CORRUPTED", str(path))
    for path, status_code in reversed(snapshot.failed_files):
        problems.add_row(str(status_code) if status_code is not None else "NO RESPONSE", str(path))

    return Group(header, uploading, counters, recent, problems)


class RunStatusDisplay:
    """
    Live status view polling a ProgressTracker.

    The snapshot is taken under the tracker's lock; rendering happens after
    it is released.
    """

    def __init__(self, tracker: ProgressTracker, refresh_seconds: float = STATUS_REFRESH_SECONDS):
        self._tracker = tracker
        self._refresh_seconds = refresh_seconds
        self._live: Optional[Live] = None
        self._task: Optional[asyncio.Task] = None

    async def _refresh(self) -> None:
        snapshot = await self._tracker.snapshot()
        if self._live is not None:
            self._live.update(render_status(snapshot))

    async def _loop(self) -> None:
        while True:
            await self._refresh()
            await asyncio.sleep(self._refresh_seconds)

    def start(self) -> None:
        if self._task is not None:
            return
        self._live = Live(console=console, refresh_per_second=4, vertical_overflow="visible")
        self._live.start()
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._live is not None:
            await self._refresh()
            self._live.stop()
            self._live = None


def render_run_summary(summary: RunSummary) -> None:
    """Print the final line of a run."""
    style = "green" if summary.all_success else "red"
    console.print(
        f"[bold {style}]Finished[/bold {style}] total={summary.total_files} "
        f"uploaded={summary.uploaded} skipped={summary.skipped} "
        f"corrupt={summary.corrupt} failed={summary.failed} "
        f"prioritized={summary.priority_files}"
    )
    for path, error in summary.scan_errors:
        console.print(f"[yellow]Unreadable directory:[/yellow] {Path(path)} ({error})")
