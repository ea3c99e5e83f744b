"""
CLI Reporter Module
===================

Rich terminal output for deletion reports and request logs.

Classes
-------
CLIReporter
    Renders a :class:`DeletionReport` as a table of per-type counts and a
    request log as a table of failed deletions.

Example
-------
>>> from tagreaper.reporters import CLIReporter
>>>
>>> reporter = CLIReporter()
>>> reporter.report(deletion_report)

See Also
--------
rich : Python library for rich text and formatting.
JSONReporter : For programmatic access.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tagreaper.core.logging import LogEntry
from tagreaper.orchestrator import DeletionReport

# Module logger
logger = logging.getLogger(__name__)


class CLIReporter:
    """
    Reporter for displaying deletion results in the terminal.

    Parameters
    ----------
    console : Console, optional
        Rich Console instance. If not provided, creates a new one.

    Examples
    --------
    >>> reporter = CLIReporter()
    >>> reporter.report(report)

    >>> with open("tagreaper-20240115_103000.log") as f:
    ...     reporter.report_log_entries(read_log_entries(f))
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()
        logger.debug("Initialized CLIReporter")

    def report(self, report: DeletionReport) -> None:
        """
        Print the header, per-type counts and the abort reason, if any.

        Parameters
        ----------
        report : DeletionReport
            Report of a finished run.
        """
        self._print_header(report)

        by_type = report.by_type
        if by_type:
            self._print_counts_table(report)
        else:
            self.console.print("\n[green]Nothing to delete.[/green]")

        if report.aborted and report.error is not None:
            self.print_error(f"Run aborted: {report.error}")

    def report_log_entries(self, entries: Iterable[LogEntry]) -> int:
        """
        Print a table of the failed deletions found in a request log.

        Parameters
        ----------
        entries : iterable of LogEntry
            Parsed request log lines.

        Returns
        -------
        int
            Number of failures printed.
        """
        failures: List[LogEntry] = [e for e in entries if e.is_failure]
        if not failures:
            self.console.print("\n[green]No failed deletions in the log.[/green]")
            return 0

        table = Table(
            title=f"\nFailed Deletions ({len(failures)})",
            title_style="bold",
            show_lines=False,
        )
        table.add_column("Resource Type", style="cyan", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Error Code", style="red")
        table.add_column("Message", style="dim", max_width=60)
        table.add_column("Parent", style="yellow")

        for entry in failures:
            parent = ""
            if entry.parent_resource_type:
                parent = f"{entry.parent_resource_type} {entry.parent_resource_name}".strip()
            table.add_row(
                entry.resource_type or "N/A",
                entry.resource_name or "N/A",
                entry.aws_err_code,
                self._truncate(entry.aws_err_msg or entry.err_msg or entry.msg, 60),
                parent,
            )

        self.console.print(table)
        return len(failures)

    # =========================================================================
    # Private Methods: Output Formatting
    # =========================================================================

    def _print_header(self, report: DeletionReport) -> None:
        header_text = Text()
        title = "Dry-Run Report" if report.dry_run else "Deletion Report"
        header_text.append(f"\n{title}\n", style="bold blue")
        status = "aborted" if report.aborted else "completed"
        header_text.append(f"Run {status}", style="red" if report.aborted else "dim")
        self.console.print(Panel(header_text, border_style="blue"))

    def _print_counts_table(self, report: DeletionReport) -> None:
        table = Table(title="\nResources by Type", title_style="bold", show_lines=False)
        table.add_column("Resource Type", style="cyan", no_wrap=True)
        if report.dry_run:
            table.add_column("Would Delete", style="blue", justify="right")
        else:
            table.add_column("Deleted", style="green", justify="right")
            table.add_column("Failed", style="red", justify="right")
            table.add_column("Skipped", style="yellow", justify="right")

        for resource_type, counts in report.by_type.items():
            if report.dry_run:
                table.add_row(resource_type, str(counts["dry_run"]))
            else:
                table.add_row(
                    resource_type,
                    str(counts["deleted"]),
                    str(counts["failed"]),
                    str(counts["skipped"]),
                )

        totals = report.totals
        if report.dry_run:
            table.add_row("[bold]Total[/bold]", str(totals["dry_run"]))
        else:
            table.add_row(
                "[bold]Total[/bold]",
                str(totals["deleted"]),
                str(totals["failed"]),
                str(totals["skipped"]),
            )

        self.console.print(table)

    @staticmethod
    def _truncate(text: str, max_length: int) -> str:
        if len(text) <= max_length:
            return text
        return text[:max_length - 3] + "..."

    def print_error(self, message: str) -> None:
        self.console.print(f"\n[red bold]Error:[/red bold] {message}")

    def __repr__(self) -> str:
        return "CLIReporter()"
