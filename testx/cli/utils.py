# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""CLI utility functions for output formatting and user interaction.

Provides standardized functions for:
- Progress indicators
- Diagnostic printing
- User messaging (success, warning, tips)
"""

from contextlib import contextmanager
from typing import Iterable, Iterator

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn

from testx.diagnostics import Diagnostic, format_diagnostics

console = Console()
err_console = Console(stderr=True)


@contextmanager
def progress_spinner(description: str, transient: bool = True, no_progress: bool = False) -> Iterator[TaskID | None]:
    """Display a progress spinner during long-running operations.

    Args:
        description: Text to display next to the spinner
        transient: If True, spinner disappears after completion
        no_progress: If True, disable spinner and yield None

    Yields:
        TaskID for progress updates, or None in quiet mode
    """
    if no_progress:
        yield None
        return

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=err_console,
        transient=transient
    ) as progress:
        task = progress.add_task(description, total=None)
        try:
            yield task
        finally:
            progress.update(task, completed=True)


def print_diagnostics(diagnostics: Iterable[Diagnostic]) -> None:
    """Print diagnostics verbatim (no markup, no highlighting)."""
    text = format_diagnostics(diagnostics)
    if text:
        err_console.print(text, markup=False, highlight=False, soft_wrap=True)


def format_status(status: str, is_success: bool) -> str:
    """Format status with color (green=success, red=failure)."""
    color = "green" if is_success else "red"
    return f"[{color}]{status}[/{color}]"


def success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def warning(message: str, details: list[str] | None = None) -> None:
    """Print a warning message with optional detail bullets."""
    err_console.print(f"[yellow]Warning:[/yellow] {message}")
    if details:
        for detail in details:
            err_console.print(f"  • {detail}")


def tip(message: str) -> None:
    err_console.print(f"\n[yellow]Tip:[/yellow] {message}")
