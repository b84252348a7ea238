"""``renderwatch watch -- CMD ...`` — run a render command and monitor it live.

The command's combined stdout/stderr is classified line by line; a
structured ``render_result`` line, if the process prints one, decides the
outcome authoritatively.  Exits 0 when the job completes, 1 on error.
"""

from __future__ import annotations

import asyncio
import uuid

import typer
from rich.console import Console
from rich.markup import escape

from renderwatch.bridge.channels import SubprocessChannel
from renderwatch.cli.commands import load_rules_or_exit
from renderwatch.config import config
from renderwatch.core.controller import MonitorController
from renderwatch.models.job import RenderEngine
from renderwatch.monitor.renderer import MonitorRenderer

console = Console()


def watch_cmd(
    command: list[str] = typer.Argument(
        ...,
        help="Render command and its arguments (put them after --).",
    ),
    artifact: str = typer.Option(
        None,
        "--artifact",
        "-a",
        help="Artifact path the render is expected to produce.",
    ),
    engine: RenderEngine = typer.Option(
        config.default_engine,
        "--engine",
        "-e",
        help="Animation backend, for display.",
    ),
    job_id: str = typer.Option(
        None,
        "--job-id",
        help="Job identifier (generated if omitted).",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Skip the live panel and print only the result.",
    ),
) -> None:
    """Run a render command under the progress monitor."""
    job_id = job_id or f"rw-{uuid.uuid4().hex[:12]}"
    rules = load_rules_or_exit(console, config)
    channel = SubprocessChannel(command)
    controller = MonitorController(
        job_id, channel, artifact=artifact, engine=engine, settings=config, rules=rules
    )
    renderer = MonitorRenderer(console=console)

    try:
        if quiet:
            outcome = asyncio.run(controller.run())
        else:
            outcome = asyncio.run(renderer.render_live(controller))
    except KeyboardInterrupt:
        console.print(f"[yellow]Stopped watching {escape(job_id)}; render process terminated.[/yellow]")
        raise typer.Exit(code=130)

    if outcome is None:
        raise typer.Exit(code=1)
    renderer.print_outcome(outcome)
    raise typer.Exit(code=0 if outcome.succeeded else 1)
