"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output:
colored messages, spinners, progress bars and the stage summaries. Supports
verbosity levels and the --no-color flag.
"""

from typing import Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    BarColumn,
    TaskProgressColumn,
    TimeRemainingColumn,
)
from rich.spinner import Spinner
from rich.live import Live
from rich.table import Table

from src.content_converter.wiki_converter import ConversionSummary
from src.export.extractor import ExtractionSummary
from src.wiki_analyzer.statistics import MigrationStatistics


class OutputHandler:
    """Handles all terminal output using Rich library.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Analysis completed")
        >>> with handler.spinner("Analyzing..."):
        ...     # Do work
        ...     pass
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False):
        """Initialize output handler.

        Args:
            verbosity: Verbosity level (0=summary, 1=info, 2=debug)
            no_color: Disable color output if True
        """
        self.verbosity = verbosity
        self.console = Console(
            force_terminal=not no_color,
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        """Display success message in green."""
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        """Display error message in red."""
        self.console.print(f"[red]✗[/red] {message}", style="red")

    def warning(self, message: str) -> None:
        """Display warning message in yellow."""
        self.console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(message)

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{message}[/dim]")

    def print(self, message: str) -> None:
        """Display message without formatting."""
        self.console.print(message)

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Display spinner for single operations.

        Args:
            message: Message to display with spinner

        Example:
            >>> with handler.spinner("Reading Redmine database..."):
            ...     # Do work
            ...     pass
        """
        spinner = Spinner("dots", text=message)
        with Live(spinner, console=self.console, refresh_per_second=10):
            yield

    @contextmanager
    def progress_bar(self, total: int, description: str = "Processing") -> Iterator[Progress]:
        """Display progress bar for multi-item operations.

        Args:
            total: Total number of items to process
            description: Description text for progress bar

        Yields:
            Progress instance for updating progress

        Example:
            >>> with handler.progress_bar(10, "Converting pages") as progress:
            ...     task = progress.add_task("Converting pages", total=10)
            ...     for i in range(10):
            ...         progress.update(task, advance=1)
        """
        progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=self.console,
        )
        with progress:
            yield progress

    def print_statistics(self, stats: MigrationStatistics) -> None:
        """Display analysis statistics as a table, followed by any data gaps."""
        table = Table(title="Analysis Summary", show_header=True, header_style="bold")
        table.add_column("Record")
        table.add_column("Count", justify="right")

        table.add_row("Pages", str(stats.total_pages))
        table.add_row("  native", str(stats.native_pages))
        table.add_row("  redirect", str(stats.redirect_pages))
        table.add_row("  file", str(stats.file_pages))
        table.add_row("  diagram", str(stats.diagram_pages))
        table.add_row("Revisions", str(stats.revisions))
        table.add_row("Attachments", str(stats.attachments))
        table.add_row("Diagrams", str(stats.diagrams))
        table.add_row("Redirects resolved", str(stats.redirects_resolved))
        table.add_row("Redirects dropped", str(stats.redirects_dropped))
        self.console.print(table)

        gaps = stats.gaps()
        if not gaps:
            self.console.print("\n[green]No data gaps detected[/green]")
            return
        self.console.print("\n[bold]Data gaps:[/bold]")
        for gap in gaps:
            self.console.print(f"  [yellow]⚠[/yellow] {gap}")

    def print_extraction_summary(self, summary: ExtractionSummary) -> None:
        """Display extract stage counts."""
        self.console.print("\n[bold]Extraction Summary:[/bold]")
        self.console.print(f"  [green]✓[/green] Attachment files: {summary.copied}")
        self.console.print(f"  [green]✓[/green] Diagrams: {summary.diagrams}")
        if summary.missing > 0:
            self.console.print(f"  [yellow]⚠[/yellow] Missing files: {summary.missing}")

    def print_conversion_summary(self, summary: ConversionSummary) -> None:
        """Display convert stage counts."""
        self.console.print("\n[bold]Conversion Summary:[/bold]")
        self.console.print(f"  Pages: {summary.pages}")
        self.console.print(f"  [green]✓[/green] Converted revisions: {summary.converted}")
        if summary.passed_through > 0:
            self.console.print(f"  [dim]─[/dim] Passed through: {summary.passed_through}")

        if summary.diagnostics > 0:
            self.console.print(
                f"\n[yellow]Conversion completed with {summary.diagnostics} diagnostic(s), "
                f"see the missing-titles, missing-attachments and invalid-links buckets[/yellow]"
            )
        else:
            self.console.print("\n[green]Conversion completed successfully[/green]")
