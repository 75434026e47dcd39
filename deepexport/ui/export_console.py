"""Console output for Deep Export.

This module provides the ExportConsole class, a Rich-based renderer for the
run banner, the expected totals, per-event progress lines and the final
summary.

Example:
    from deepexport.ui import ExportConsole

    ui = ExportConsole()
    ui.display_expected_totals(summary)
    ui.display_summary(summary)
"""

from typing import Callable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from deepexport.models import ExportFailure, ExportSummary, FolderPath, RepositoryNode


class ExportConsole:
    """Rich-based console renderer for export runs.

    Args:
        console: Optional Rich Console instance for output. Pass a Console
            bound to a StringIO to capture output in tests.

    Attributes:
        console: The Rich Console instance used for all output.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def display_banner(self, version: str, started: str) -> None:
        self.console.print(
            f"[bold]===== Start Documentum Deep Export v{version} {started} =====[/bold]"
        )

    def display_footer(self, duration_seconds: float, finished: str) -> None:
        self.console.print()
        self.console.print(f"Total Run Time: {int(duration_seconds)} sec")
        self.console.print(f"[bold]===== End Documentum Deep Export {finished} =====[/bold]")

    def display_connected(self, user: str, docbase: str) -> None:
        self.console.print(f"Logging onto Documentum... [green]Success[/green] ({escape(user)}@{escape(docbase)})")

    def display_expected_totals(self, summary: ExportSummary) -> None:
        """Display the source, target and pre-counted totals in a panel."""
        mode = "all versions" if summary.all_versions else "current versions"
        target = str(summary.target) if summary.target is not None else "-"
        body = (
            f"Export source path: {escape(summary.source)}\n"
            f"Export target path: {escape(target)}\n"
            f"Sub folders found: {summary.expected_folders:,}\n"
            f"Documents found: {summary.expected_documents:,} ({mode})"
        )
        self.console.print(Panel(body, title="Export Plan", border_style="blue"))

    def display_log_file(self, log_path) -> None:
        self.console.print(f"[dim]Log file = {escape(str(log_path))}[/dim]")

    def display_folder(self, folder_path: FolderPath) -> None:
        self.console.print(f"Exporting Folder: {escape(str(folder_path))}")

    def display_document(self, node: RepositoryNode) -> None:
        self.console.print(f"    Exporting Document: {escape(node.name)} {escape(f'[{node.object_id}]')}")

    def display_failure(self, failure: ExportFailure) -> None:
        target = failure.target if failure.target is not None else failure.name
        self.console.print(
            f"[red]ERROR:[/red] Could not export {escape(str(target))} - {escape(failure.message)}"
        )

    def display_summary(self, summary: ExportSummary) -> None:
        """Display final counters after the traversal completes.

        Shows a table of processed, written and skipped counts and lists
        failures if any occurred.
        """
        counters = summary.counters
        has_failures = bool(counters.failures)
        self.console.print(
            Panel("Export Summary", border_style="yellow" if has_failures else "green")
        )

        table = Table(show_header=True, header_style="bold")
        table.add_column("Metric", style="cyan")
        table.add_column("Expected", justify="right")
        table.add_column("Actual", justify="right")

        table.add_row(
            "Folders processed",
            f"{summary.expected_folders:,}",
            f"{counters.folders_exported:,}",
        )
        table.add_row(
            "Documents processed",
            f"{summary.expected_documents:,}",
            f"{counters.documents_exported:,}",
        )
        table.add_row("Documents written", "", f"{counters.files_written:,}")
        for reason, count in counters.skipped.items():
            table.add_row(f"Skipped: {reason.log_text}", "", f"{count:,}")
        table.add_row("Duration", "", self._format_duration(summary.duration_seconds))

        self.console.print(table)

        if has_failures:
            self._display_errors(summary.errors)

    def create_progress_callback(
        self, total_documents: int
    ) -> tuple[Progress, Callable[[int], None]]:
        """Create a progress bar and callback for document export tracking.

        The caller must use the returned Progress as a context manager.

        Returns:
            tuple[Progress, Callable[[int], None]]: The Progress instance and
            a callback taking the number of documents processed so far.

        Example:
            progress, callback = ui.create_progress_callback(120)
            with progress:
                walker.walk(root, progress=callback)
        """
        progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
        )
        task_id = progress.add_task("Exporting documents...", total=total_documents or None)

        def callback(completed: int) -> None:
            progress.update(task_id, completed=completed)

        return progress, callback

    def _display_errors(self, errors: List[str]) -> None:
        self.console.print(f"[red]Errors ({len(errors)}):[/red]")
        for error in errors:
            self.console.print(f"  [dim]- {escape(error)}[/dim]")

    def _format_duration(self, seconds: float) -> str:
        total_seconds = int(seconds)
        if total_seconds < 60:
            return f"{total_seconds}s"
        minutes, secs = divmod(total_seconds, 60)
        hours, minutes = divmod(minutes, 60)
        if hours:
            return f"{hours}h {minutes}m {secs}s"
        return f"{minutes}m {secs}s"
