"""Main Typer application — imports and registers all CLI commands.

Entry point: ``renderwatch`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer

from renderwatch.cli.commands.classify_cmd import classify_cmd
from renderwatch.cli.commands.replay_cmd import replay_cmd
from renderwatch.cli.commands.watch_cmd import watch_cmd
from renderwatch.config import config

app = typer.Typer(
    name="renderwatch",
    help="renderwatch: lifecycle monitor for external animation render jobs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log at DEBUG level."
    ),
) -> None:
    """Configure logging for every subcommand."""
    logging.basicConfig(
        level=logging.DEBUG if verbose or config.debug else config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
app.command(name="watch", help="Run a render command under the live monitor.")(watch_cmd)
app.command(name="replay", help="Replay a saved render transcript.")(replay_cmd)
app.command(name="classify", help="Classify render output lines.")(classify_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
