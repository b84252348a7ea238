"""Subcommand implementations for the renderwatch CLI."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from renderwatch.config import WatchConfig
from renderwatch.core.classifier import RuleSet


def load_rules_or_exit(
    console: Console,
    settings: WatchConfig,
    rules_path: Path | None = None,
) -> RuleSet:
    """Load classifier rules, or report the problem and exit with code 1."""
    try:
        if rules_path is not None:
            return RuleSet.from_json_file(rules_path)
        return settings.load_rules()
    except (OSError, ValueError) as exc:
        console.print(f"[bold red]Cannot load rules:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)
