"""Rich terminal renderer for the render progress monitor.

Turns ``MonitorSnapshot`` into Rich renderables, with colour-coded
transcript lines and an optional continuous ``Rich.Live`` mode.

Line colours
------------
- blue      : progress bars
- red       : errors
- green     : completion
- yellow    : warnings and retries
- magenta   : engine-tagged lines (``[manim]``, ``[p5]``)
- dim       : everything else
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.markup import escape
from rich.text import Text

from renderwatch.models.job import JobStatus, RenderEngine
from renderwatch.models.lines import Classification, LogLine

if TYPE_CHECKING:
    from renderwatch.core.controller import MonitorController
    from renderwatch.models.job import JobOutcome
    from renderwatch.monitor.projection import MonitorSnapshot


# ---------------------------------------------------------------------------
# Style mappings
# ---------------------------------------------------------------------------

_STATUS_STYLES: dict[JobStatus, str] = {
    JobStatus.CONNECTING: "dim",
    JobStatus.PROCESSING: "bold blue",
    JobStatus.COMPLETED: "bold green",
    JobStatus.ERROR: "bold red",
}

_CLASSIFICATION_STYLES: dict[Classification, str] = {
    Classification.PROGRESS: "blue",
    Classification.ERROR: "bold red",
    Classification.COMPLETION: "green",
    Classification.NEUTRAL: "dim",
}

_ENGINE_NAMES: dict[RenderEngine, str] = {
    RenderEngine.P5: "P5.js",
    RenderEngine.MANIM: "Manim",
}

_WARNING_MARKERS = ("warning", "retry")
_ENGINE_MARKERS = ("[manim]", "[p5]")


def format_elapsed(seconds: float) -> str:
    """Format elapsed seconds as ``m:ss``."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"


def status_label(status: JobStatus, elapsed_seconds: float) -> str:
    """Human-readable status line."""
    if status == JobStatus.CONNECTING:
        return "Connecting..."
    if status == JobStatus.PROCESSING:
        return f"Processing • {format_elapsed(elapsed_seconds)}"
    if status == JobStatus.COMPLETED:
        return "Completed"
    return "Error occurred"


def line_style(line: LogLine) -> str:
    """Display style for one transcript line."""
    if line.classification != Classification.NEUTRAL:
        return _CLASSIFICATION_STYLES[line.classification]
    lowered = line.text.lower()
    if any(marker in lowered for marker in _WARNING_MARKERS):
        return "yellow"
    if any(marker in lowered for marker in _ENGINE_MARKERS):
        return "magenta"
    return _CLASSIFICATION_STYLES[Classification.NEUTRAL]


class MonitorRenderer:
    """Renders ``MonitorSnapshot`` as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    max_lines:
        Transcript lines shown in the panel.
    """

    def __init__(self, console: Console | None = None, *, max_lines: int = 30) -> None:
        self.console = console or Console()
        self.max_lines = max_lines

    # ------------------------------------------------------------------
    # Single snapshot render
    # ------------------------------------------------------------------

    def render_snapshot(self, snapshot: MonitorSnapshot) -> Panel:
        """Render a MonitorSnapshot as a Rich Panel.

        Returns a Rich renderable that can be printed or used in Rich.Live.
        """
        style = _STATUS_STYLES.get(snapshot.status, "")
        header = Text.assemble(
            ("● ", style),
            (status_label(snapshot.status, snapshot.elapsed_seconds), style),
        )

        parts: list[object] = [header, Text(""), self._build_transcript(snapshot)]

        if snapshot.error:
            parts.append(Text(""))
            parts.append(
                Panel(
                    Text(snapshot.error, style="red"),
                    title="[bold red]Error Details[/bold red]",
                    border_style="red",
                )
            )
        elif snapshot.artifact:
            parts.append(Text(""))
            parts.append(Text.assemble(("Artifact: ", "bold green"), snapshot.artifact))

        engine = _ENGINE_NAMES.get(snapshot.engine, snapshot.engine.value)
        return Panel(
            Group(*parts),
            title=f"[bold]Generating video with {engine}[/bold]",
            subtitle=f"Job {escape(snapshot.job_id)}",
            border_style=_STATUS_STYLES.get(snapshot.status, "blue").replace("bold ", ""),
            padding=(1, 2),
        )

    def _build_transcript(self, snapshot: MonitorSnapshot) -> Table | Text:
        """Build the colour-coded transcript table."""
        if not snapshot.lines:
            return Text("Connecting to render process...", style="dim italic")

        table = Table(
            show_header=False,
            box=None,
            expand=True,
            pad_edge=False,
        )
        table.add_column("Time", style="dim", width=8, no_wrap=True)
        table.add_column("Line", overflow="fold")

        lines = snapshot.lines[-self.max_lines:]
        hidden = snapshot.total_lines - len(lines)
        if hidden > 0:
            table.add_row("", Text(f"... {hidden} earlier lines", style="dim"))
        for line in lines:
            table.add_row(
                line.received_at.astimezone().strftime("%H:%M:%S"),
                Text(line.text, style=line_style(line)),
            )
        return table

    # ------------------------------------------------------------------
    # Continuous live rendering
    # ------------------------------------------------------------------

    async def render_live(
        self,
        controller: MonitorController,
        *,
        refresh_hz: float = 4.0,
    ) -> JobOutcome | None:
        """Run *controller* while redrawing its snapshot in Rich Live mode.

        The panel is refreshed on every recorded line and every elapsed
        tick; the final frame shows the terminal state.
        """
        with Live(
            self.render_snapshot(controller.snapshot()),
            console=self.console,
            refresh_per_second=refresh_hz,
            transient=False,
        ) as live:

            def redraw() -> None:
                live.update(self.render_snapshot(controller.snapshot()))

            controller.add_observer(redraw)
            try:
                return await controller.run()
            finally:
                redraw()

    # ------------------------------------------------------------------
    # Standalone print
    # ------------------------------------------------------------------

    def print_snapshot(self, snapshot: MonitorSnapshot) -> None:
        """Print a single snapshot to the console."""
        self.console.print(self.render_snapshot(snapshot))

    def print_outcome(self, outcome: JobOutcome) -> None:
        """Print the terminal result line."""
        if outcome.succeeded:
            self.console.print(
                Text.assemble(
                    (
                        f"Render {outcome.job_id} completed in "
                        f"{format_elapsed(outcome.elapsed_seconds)}: ",
                        "green",
                    ),
                    outcome.artifact or "",
                )
            )
        else:
            self.console.print(
                Text.assemble(
                    (f"Render {outcome.job_id} failed: ", "bold red"),
                    outcome.error or "",
                )
            )
