"""ExportLogger for writing the export run log.

This module provides the ExportLogger class, an append-only text sink that
records one line per structural event of an export run (folder entered,
document exported, document skipped, export failed) between a header and a
summary section.
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO

from deepexport.models import (
    ExportFailure,
    ExportSummary,
    FolderPath,
    RepositoryNode,
    SkipReason,
)


class ExportLogger:
    """Logger for export runs with a structured output format.

    Usage:
        with ExportLogger(target_dir, all_versions=False) as log:
            log.log_header()
            log.log_paths(source, target)
            log.log_expected_totals(folders, documents)
            log.log_folder(folder_path)
            log.log_document(node, file_path)
            log.log_summary(summary)

    Attributes:
        SEPARATOR: The 65-character separator line used between sections.
        FILE_NAME_TEMPLATE: Name of the log file created in the log directory.
    """

    SEPARATOR = "=" * 65
    FILE_NAME_TEMPLATE = "DCTMDeepExport_{timestamp}.log"

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        all_versions: bool = False,
        log_file_path: Optional[Path] = None,
    ) -> None:
        """Initialize the ExportLogger.

        Args:
            log_dir: Directory the timestamped log file is created in.
                Defaults to the current directory.
            all_versions: Whether all versions are being exported (shown in header).
            log_file_path: Explicit log file path; overrides log_dir.

        Raises:
            OSError: If the log file location is not writable.
        """
        self._all_versions = all_versions
        self._start_timestamp = datetime.now()
        self._file_handle: Optional[TextIO] = None

        if log_file_path is not None:
            self._log_file_path = Path(log_file_path)
        else:
            timestamp_str = self._start_timestamp.strftime("%Y-%m-%d_%H-%M-%S")
            directory = Path(log_dir) if log_dir is not None else Path.cwd()
            self._log_file_path = directory / self.FILE_NAME_TEMPLATE.format(timestamp=timestamp_str)

        self._validate_path()

    def _validate_path(self) -> None:
        """Validate that the log file's directory exists and is a directory.

        Raises:
            OSError: If the parent directory doesn't exist or is not a directory.
        """
        parent = self._log_file_path.parent
        if not parent.exists():
            raise OSError(f"Parent directory does not exist: {parent}")
        if not parent.is_dir():
            raise OSError(f"Parent path is not a directory: {parent}")

    def __enter__(self) -> "ExportLogger":
        """Open the log file.

        Raises:
            OSError: If the file cannot be opened for writing.
        """
        try:
            self._file_handle = open(self._log_file_path, "w", encoding="utf-8")
        except OSError as e:
            raise OSError(f"Cannot open log file for writing: {e}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close the log file, even if an exception occurred."""
        if self._file_handle is not None:
            try:
                self._file_handle.close()
            except OSError as e:
                print(f"Warning: Error closing log file: {e}", file=sys.stderr)
            finally:
                self._file_handle = None

    def get_log_path(self) -> Path:
        return self._log_file_path

    def log_header(self) -> None:
        """Write the title, timestamp and export mode."""
        self._write_separator()
        self._write_line("Documentum Deep Export")
        self._write_separator()
        self._write_line(f"Timestamp: {self._format_timestamp(self._start_timestamp)}")
        mode = "ALL VERSIONS" if self._all_versions else "CURRENT VERSIONS"
        self._write_line(f"Mode: {mode}")
        self._write_line("")

    def log_paths(self, source: str, target: Optional[Path]) -> None:
        self._write_line(f"Export target path = {target}")
        self._write_line(f"Export source path = {source}")

    def log_expected_totals(self, folders: int, documents: int) -> None:
        self._write_line(f"Found {folders} sub folders to export")
        self._write_line(f"Found {documents} documents to export")
        self._write_line("")

    def log_folder(self, folder_path: FolderPath) -> None:
        self._write_line(f"Exporting Folder: {folder_path}")

    def log_document(self, node: RepositoryNode, file_path: Path) -> None:
        self._write_line(f"\tExporting Document: {node.name} [{node.object_id}]\t--> {file_path}")

    def log_skip(self, node: RepositoryNode, reason: SkipReason) -> None:
        self._write_line(f"\t{reason.log_text} -- skipping {node.name}\t({node.object_id})")

    def log_failure(self, failure: ExportFailure) -> None:
        target = failure.target if failure.target is not None else failure.name
        self._write_line(f"\tERROR: Could not export {target} [{failure.object_id}] - {failure.message}")

    def log_error(self, message: str) -> None:
        """Record the error that aborted the run."""
        self._write_line("")
        self._write_line(f"FATAL: {message}")
        self._write_line("Export aborted")

    def log_summary(self, summary: ExportSummary) -> None:
        """Write the summary section and the closing line."""
        counters = summary.counters
        self._write_line("")
        self._write_separator()
        self._write_line("SUMMARY")
        self._write_separator()
        self._write_line(f"Folders processed: {counters.folders_exported}")
        self._write_line(f"Documents processed: {counters.documents_exported}")
        self._write_line(f"Documents written: {counters.files_written}")

        if counters.skipped:
            self._write_line(f"Documents skipped: {counters.total_skipped}")
            for reason, count in counters.skipped.items():
                self._write_line(f"- {reason.log_text}: {count}", indent=2)

        if counters.failures:
            self._write_line(f"Total errors: {len(counters.failures)}")
            self._write_line("Errors:")
            for error in summary.errors:
                self._write_line(f"- {error}", indent=2)

        self._write_line(f"Duration: {self._format_duration(summary.duration_seconds)}")
        self._write_line("")
        self._write_line(f"Log file: {self._log_file_path}")
        self._write_separator()
        self._write_line("End Documentum Deep Export")

    def _format_duration(self, seconds: float) -> str:
        """Format duration like "5m 23s", "1h 5m 30s" or "45s"."""
        total_seconds = int(seconds)

        if total_seconds < 60:
            return f"{total_seconds}s"

        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        secs = total_seconds % 60

        if hours > 0:
            return f"{hours}h {minutes}m {secs}s"
        else:
            return f"{minutes}m {secs}s"

    def _format_timestamp(self, dt: datetime) -> str:
        return dt.strftime("%Y-%m-%d %H:%M:%S")

    def _write_separator(self) -> None:
        self._write_line(self.SEPARATOR)

    def _write_line(self, text: str, indent: int = 0) -> None:
        """Write a line to the log file with optional indentation.

        Args:
            text: The text to write.
            indent: Number of spaces to indent the line.
        """
        if self._file_handle is None:
            print(
                f"Warning: Attempted to write to closed log file: {text}",
                file=sys.stderr,
            )
            return

        try:
            indented_text = " " * indent + text
            self._file_handle.write(indented_text + "\n")
            self._file_handle.flush()
        except OSError as e:
            print(f"Warning: Error writing to log file: {e}", file=sys.stderr)
