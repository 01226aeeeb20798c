"""Status message helpers for the imggen CLI.

Usage:
    from imggen.cli import ui

    ui.success("2 images saved to renders")
    ui.error("Batch failed", detail="batch stopped at item 2: ...")
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

from imggen.cli.console import get_console, get_stderr_console

MARK_SUCCESS = "✓"  # Checkmark
MARK_ERROR = "✗"  # Cross
MARK_WARNING = "!"
MARK_LINE = "│"  # Vertical line


def success(text: str, *, console: Console | None = None) -> None:
    c = console or get_console()
    c.print(f"[green]{MARK_SUCCESS}[/] {escape(text)}")


def error(
    text: str, *, detail: str | None = None, console: Console | None = None
) -> None:
    """Display an error message with cross symbol on stderr.

    Args:
        text: The error message to display.
        detail: Optional detail text shown on a separate line.
        console: Optional console for output (defaults to the stderr console).
    """
    c = console or get_stderr_console()
    c.print(f"[red]{MARK_ERROR}[/] {escape(text)}")
    if detail:
        c.print(f"  [dim]{MARK_LINE} {escape(detail)}[/]")


def warning(text: str, *, console: Console | None = None) -> None:
    c = console or get_stderr_console()
    c.print(f"[yellow]{MARK_WARNING}[/] {escape(text)}")

