"""Tests for ExportConsole rendering."""

from pathlib import Path

import pytest

from deepexport.models import (
    ExportFailure,
    ExportSummary,
    FolderPath,
    NodeType,
    RepositoryNode,
    RunCounters,
    SkipReason,
)
from deepexport.ui import ExportConsole


def _output(ui: ExportConsole) -> str:
    return ui.console.file.getvalue()


@pytest.mark.unit
class TestExportConsole:
    """Tests for the individual display methods."""

    def test_banner_and_footer(self, ui_with_captured_output: ExportConsole):
        ui = ui_with_captured_output
        ui.display_banner("1.0.0", "2024-01-01 10:00:00")
        ui.display_footer(12.7, "2024-01-01 10:00:12")

        output = _output(ui)
        assert "===== Start Documentum Deep Export v1.0.0 2024-01-01 10:00:00 =====" in output
        assert "Total Run Time: 12 sec" in output
        assert "===== End Documentum Deep Export" in output

    def test_expected_totals(self, ui_with_captured_output: ExportConsole):
        ui = ui_with_captured_output
        ui.display_expected_totals(
            ExportSummary(source="/Temp", target=Path("/out"), expected_folders=2, expected_documents=1500)
        )

        output = _output(ui)
        assert "Export Plan" in output
        assert "Sub folders found: 2" in output
        assert "Documents found: 1,500 (current versions)" in output

    def test_expected_totals_without_target(self, ui_with_captured_output: ExportConsole):
        ui = ui_with_captured_output
        ui.display_expected_totals(ExportSummary(source="/Temp", all_versions=True))

        output = _output(ui)
        assert "Export target path: -" in output
        assert "(all versions)" in output

    def test_document_line_keeps_brackets(self, ui_with_captured_output: ExportConsole):
        ui = ui_with_captured_output
        node = RepositoryNode("0900000180001234", "Report [draft]", NodeType.DOCUMENT)
        ui.display_document(node)

        assert "Exporting Document: Report [draft] [0900000180001234]" in _output(ui)

    def test_folder_line(self, ui_with_captured_output: ExportConsole):
        ui = ui_with_captured_output
        ui.display_folder(FolderPath.parse("/Temp/Sub"))
        assert "Exporting Folder: /Temp/Sub" in _output(ui)

    def test_summary_table(self, ui_with_captured_output: ExportConsole):
        ui = ui_with_captured_output
        counters = RunCounters(folders_exported=2, documents_exported=5, files_written=3)
        counters.record_skip(SkipReason.NO_CONTENT)
        counters.failures.append(ExportFailure("0900000180009999", "Broken", None, "store offline"))
        ui.display_summary(
            ExportSummary(
                source="/Temp",
                expected_folders=2,
                expected_documents=4,
                counters=counters,
                duration_seconds=75,
            )
        )

        output = _output(ui)
        assert "Export Summary" in output
        assert "Folders processed" in output
        assert "Documents written" in output
        assert "Skipped: No content" in output
        assert "1m 15s" in output
        assert "Errors (1):" in output
        assert "Could not export Broken [0900000180009999]: store offline" in output

    def test_progress_callback(self, ui_with_captured_output: ExportConsole):
        progress, callback = ui_with_captured_output.create_progress_callback(3)
        with progress:
            for completed in range(1, 4):
                callback(completed)

        task = progress.tasks[0]
        assert task.completed == 3
        assert task.total == 3
