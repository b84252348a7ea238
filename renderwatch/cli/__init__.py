"""renderwatch CLI — Typer-based command-line interface.

Provides the ``renderwatch`` command with subcommands for watching a live
render process, replaying a saved transcript, and classifying lines.

All output uses Rich for formatted terminal display.
"""
