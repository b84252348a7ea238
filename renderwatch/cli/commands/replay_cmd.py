"""``renderwatch replay FILE`` — feed a saved transcript through the monitor.

Useful for checking how the classifier and job machine decide on a log
captured from a real render.  Exits 0 when the replay completes, 1 on error.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from renderwatch.bridge.channels import IterableChannel
from renderwatch.cli.commands import load_rules_or_exit
from renderwatch.config import config
from renderwatch.core.controller import MonitorController
from renderwatch.models.job import RenderEngine
from renderwatch.monitor.renderer import MonitorRenderer

console = Console()


def replay_cmd(
    path: Path = typer.Argument(
        ...,
        help="Transcript file: one raw line per line, render_result JSON allowed.",
    ),
    artifact: str = typer.Option(
        None,
        "--artifact",
        "-a",
        help="Artifact reference to report if the transcript completes.",
    ),
    engine: RenderEngine = typer.Option(
        config.default_engine,
        "--engine",
        "-e",
        help="Animation backend, for display.",
    ),
    tail: int = typer.Option(
        config.transcript_tail,
        "--tail",
        "-n",
        help="Transcript lines to show.",
    ),
) -> None:
    """Replay a transcript file and show the resulting job state."""
    if not path.exists():
        console.print(f"[bold red]Transcript not found:[/bold red] {escape(str(path))}")
        raise typer.Exit(code=1)

    # No need to hold the final frame when nothing is drawing live.
    settings = config.model_copy(update={"grace_delay_seconds": 0.0})
    rules = load_rules_or_exit(console, settings)
    controller = MonitorController(
        path.stem,
        IterableChannel.from_file(path),
        artifact=artifact,
        engine=engine,
        settings=settings,
        rules=rules,
    )
    outcome = asyncio.run(controller.run())

    renderer = MonitorRenderer(console=console, max_lines=tail)
    renderer.print_snapshot(controller.snapshot(tail=tail))
    if outcome is None:
        raise typer.Exit(code=1)

    for transition in controller.machine.history:
        line = f" line {transition.line_seq}" if transition.line_seq is not None else ""
        console.print(
            f"[dim]{transition.from_status.value} -> {transition.to_status.value} "
            f"({transition.reason}){line}[/dim]"
        )
    renderer.print_outcome(outcome)
    raise typer.Exit(code=0 if outcome.succeeded else 1)
