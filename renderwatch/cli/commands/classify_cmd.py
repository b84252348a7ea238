"""``renderwatch classify LINE ...`` — show how lines would be classified."""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from renderwatch.cli.commands import load_rules_or_exit
from renderwatch.config import config
from renderwatch.core.classifier import match_rule
from renderwatch.models.lines import Classification, LogLine
from renderwatch.monitor.renderer import line_style

console = Console()


def classify_cmd(
    lines: list[str] = typer.Argument(
        None,
        help="Lines to classify.  Reads stdin when omitted.",
    ),
    rules_path: Path = typer.Option(
        None,
        "--rules",
        "-r",
        help="JSON rule file (defaults to RENDERWATCH_RULES_PATH or built-ins).",
    ),
) -> None:
    """Classify render output lines and name the deciding rule."""
    rules = load_rules_or_exit(console, config, rules_path)

    texts = lines or [raw.rstrip("\r\n") for raw in sys.stdin]

    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("#", style="dim", width=4, justify="right")
    table.add_column("Line")
    table.add_column("Classification", width=12)
    table.add_column("Rule", style="dim", width=20)

    for seq, text in enumerate(texts, start=1):
        rule = match_rule(text, rules)
        tag = rule.tag if rule else Classification.NEUTRAL
        style = line_style(LogLine(text=text, seq=seq, classification=tag))
        table.add_row(
            str(seq),
            Text(text),
            Text(tag.value, style=style),
            Text(rule.name if rule else "-"),
        )

    console.print(table)
