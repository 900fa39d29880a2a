"""Console rendering and progress helpers for the autoreadme CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.status import Status
from rich.table import Table

from .utils.events import PipelineEvent

console = Console(stderr=True)


def _human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def render_configuration_summary(config: Dict[str, Any], out: Optional[Console] = None) -> None:
    """Render startup configuration summary."""
    out = out or console
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    out.print(Panel(
        table,
        title="[bold green]autoreadme[/bold green]",
        subtitle="[dim]README generator[/dim]",
        border_style="blue",
    ))


class PipelineProgressDisplay:
    """
    Event-based console display for README generation.

    A spinner shows the current phase; upload outcomes and poll status
    changes are printed as timeline lines above it.
    """

    def __init__(self, out: Optional[Console] = None):
        self._console = out or console
        self._status: Optional[Status] = None
        self._last_run_status: Optional[str] = None
        self._counts = {"uploaded": 0, "failed": 0, "total": 0}

    def _emit_timeline(self, status: str, kind: str, name: str, detail: Optional[str] = None) -> None:
        stamp = time.strftime("%H:%M:%S")
        palette = {"DONE": "green", "FAIL": "red", "RUN": "cyan", "INFO": "blue"}
        color = palette.get(status, "white")
        suffix = f" {detail}" if detail else ""
        self._console.print(
            f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {kind}: {name}{suffix}"
        )

    def start(self, message: str = "Loading configuration file") -> None:
        if self._status is None:
            self._status = self._console.status(message, spinner="dots")
            self._status.start()

    def stop(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def _update(self, message: str) -> None:
        self.start(message)
        self._status.update(message)

    def on_phase_start(self, progress: Any) -> None:
        if progress.phase == "uploading":
            self._counts["total"] = progress.total
        self._update(progress.message or "working...")

    def on_upload_complete(self, name: str, file_id: str) -> None:
        self._counts["uploaded"] += 1
        self._emit_timeline("DONE", "upload", name, f"[dim]{file_id}[/dim]")
        self._update(self._upload_message())

    def on_upload_fail(self, failure: Any) -> None:
        self._counts["failed"] += 1
        self._emit_timeline("FAIL", "upload", failure.name, f"cause={failure.message}")
        self._update(self._upload_message())

    def on_delete_fail(self, failure: Any) -> None:
        self._emit_timeline("FAIL", "delete", failure.name, f"cause={failure.message}")

    def on_poll(self, run: Any, attempt: int) -> None:
        if run.status != self._last_run_status:
            self._last_run_status = run.status
            self._emit_timeline("RUN", "run", run.id, f"status={run.status}")
        self._update(f"Waiting for assistant run ({run.status}, poll #{attempt})")

    def _upload_message(self) -> str:
        done = self._counts["uploaded"] + self._counts["failed"]
        return (
            f"Uploading files {done}/{self._counts['total']} "
            f"(uploaded={self._counts['uploaded']} failed={self._counts['failed']})"
        )

    def attach(self, orchestrator: Any) -> None:
        """Subscribe this display to an orchestrator's events."""
        orchestrator.on(PipelineEvent.PHASE_START, self.on_phase_start)
        orchestrator.on(PipelineEvent.UPLOAD_COMPLETE, self.on_upload_complete)
        orchestrator.on(PipelineEvent.UPLOAD_FAIL, self.on_upload_fail)
        orchestrator.on(PipelineEvent.DELETE_FAIL, self.on_delete_fail)
        orchestrator.on(PipelineEvent.POLL, self.on_poll)

    def on_finish(self, result: Any) -> None:
        self.stop()
        size = _human_size(result.output_path.stat().st_size) if result.output_path.exists() else "-"
        self._console.print(
            f"[bold]Finished[/bold] files={result.file_count} batches={result.batch_count} "
            f"output={result.output_path} ({size})"
        )

    def on_error(self, error: Exception) -> None:
        self.stop()
        self._emit_timeline("FAIL", "process", "readme generation", f"cause={error}")
