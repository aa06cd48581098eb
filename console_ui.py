#!/usr/bin/env python3
"""
Console UI Module using Rich

Styled messages, panels, key/value tables and an activity spinner for the
Megethos command line, plus the logging setup that routes diagnostics to
stderr through Rich.
"""

import logging
from contextlib import nullcontext
from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr via Rich; DEBUG when verbose, WARNING otherwise"""
    handler = RichHandler(console=Console(stderr=True), show_path=verbose, rich_tracebacks=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


class ConsoleUI:
    """Console UI handler using Rich"""

    def __init__(self, force_terminal: Optional[bool] = None, quiet: bool = False, width: Optional[int] = None):
        """Initialize console

        Args:
            force_terminal: Force (or suppress) terminal control codes
            quiet: Suppress the progress spinner
            width: Fixed console width, mostly useful for tests
        """
        self.console = Console(force_terminal=force_terminal, highlight=False, width=width)
        self.quiet = quiet

    def print_success(self, message: str):
        """Print success message in green"""
        self.console.print(message, style="green")

    def print_error(self, message: str):
        """Print error message in red"""
        self.console.print(message, style="red bold")

    def print_warning(self, message: str):
        """Print warning message in yellow"""
        self.console.print(message, style="yellow")

    def print_info(self, message: str):
        """Print info message in cyan"""
        self.console.print(message, style="cyan")

    def print_plain(self, message: str):
        self.console.print(message, style="white")

    def print_header(self, title: str, subtitle: Optional[str] = None):
        """Print a header with optional subtitle"""
        if subtitle:
            header_text = f"[bold]{title}[/bold]\n[dim]{subtitle}[/dim]"
        else:
            header_text = f"[bold]{title}[/bold]"

        self.console.print(Panel(header_text, box=box.ROUNDED, padding=(0, 1)))

    def show_configuration(self, config: dict[str, Any]):
        """Display settings as a right-aligned key/value table"""
        table = Table(show_header=False, box=box.SIMPLE)
        table.add_column("Setting", style="cyan dim", min_width=20, justify="right")
        table.add_column("Value", style="cyan", min_width=30)

        for key, value in config.items():
            if isinstance(value, (list, tuple, set, frozenset)):
                value = ", ".join(str(v) for v in value) or "-"
            elif value is None:
                value = "-"
            table.add_row(key, str(value))

        self.console.print(table)

    def create_activity_progress(self):
        """Spinner with elapsed time; a no-op context when quiet"""
        if self.quiet:
            return nullcontext(None)

        return Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
