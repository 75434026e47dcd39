"""End-to-end tests for the Deep Export CLI.

This module tests the CLI interface using Typer's CliRunner against JSON
repository snapshots.
"""

import os
from pathlib import Path
from typing import List
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from deepexport.cli import __version__, app


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a CliRunner instance for testing."""
    return CliRunner()


def _connection_args(snapshot_file: Path) -> List[str]:
    return ["--docbase", str(snapshot_file), "--user", "dmadmin", "--password", "secret"]


@pytest.fixture
def in_temp_dir(temp_dir: Path):
    """Run the test with temp_dir as working directory."""
    original_cwd = os.getcwd()
    os.chdir(temp_dir)
    try:
        yield temp_dir
    finally:
        os.chdir(original_cwd)


@pytest.mark.integration
class TestCliBasics:
    """Tests for version and help output."""

    def test_version(self, cli_runner: CliRunner):
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"v{__version__}" in result.output

    def test_help_lists_commands(self, cli_runner: CliRunner):
        result = cli_runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "export" in result.output
        assert "count" in result.output

    def test_invalid_page_size(self, cli_runner: CliRunner, snapshot_file: Path, export_dir: Path):
        result = cli_runner.invoke(
            app,
            ["export", *_connection_args(snapshot_file), "--source", "/Temp",
             "--target", str(export_dir), "--page-size", "0"],
        )
        assert result.exit_code != 0


@pytest.mark.integration
class TestExportCommand:
    """Tests for the export command."""

    def test_export(self, cli_runner: CliRunner, snapshot_file: Path, export_dir: Path, in_temp_dir: Path):
        result = cli_runner.invoke(
            app,
            ["export", *_connection_args(snapshot_file), "--source", "/Temp", "--target", str(export_dir)],
        )

        assert result.exit_code == 0, result.output
        assert "Start Documentum Deep Export" in result.output
        assert "Folders processed: 1" in result.output
        assert "Documents processed: 3" in result.output
        assert "Total Run Time:" in result.output
        assert (export_dir / "Temp" / "Report.pdf").exists()
        assert list(export_dir.glob("DCTMDeepExport_*.log"))

    def test_export_all_versions(self, cli_runner: CliRunner, snapshot_file: Path, export_dir: Path, in_temp_dir: Path):
        result = cli_runner.invoke(
            app,
            ["export", *_connection_args(snapshot_file), "--source", "/Temp",
             "--target", str(export_dir), "--versions"],
        )

        assert result.exit_code == 0, result.output
        assert (export_dir / "Temp" / "Report-v1.0.pdf").exists()
        assert (export_dir / "Temp" / "Report-v1.1.pdf").exists()

    def test_export_from_config_file(self, cli_runner: CliRunner, snapshot_file: Path, export_dir: Path, in_temp_dir: Path, monkeypatch):
        monkeypatch.setenv("DEEPEXPORT_TEST_PASSWORD", "secret")
        config_path = in_temp_dir / "deepexport.yaml"
        config_path.write_text(
            "docbase:\n"
            f"  name: {snapshot_file}\n"
            "  user: dmadmin\n"
            "  password: ${DEEPEXPORT_TEST_PASSWORD}\n"
            "export:\n"
            "  source: /Temp/Archive\n"
            f"  target: {export_dir}\n"
        )

        # The default config file is picked up from the working directory
        result = cli_runner.invoke(app, ["export"])

        assert result.exit_code == 0, result.output
        assert (export_dir / "Temp" / "Archive" / "Notes.txt").exists()
        assert not (export_dir / "Temp" / "Report.pdf").exists()

    def test_options_override_config_file(self, cli_runner: CliRunner, snapshot_file: Path, export_dir: Path, in_temp_dir: Path):
        config_path = in_temp_dir / "settings.yaml"
        config_path.write_text(
            "docbase:\n"
            f"  name: {snapshot_file}\n"
            "  user: dmadmin\n"
            "  password: wrong\n"
            "export:\n"
            "  source: /Temp\n"
            f"  target: {export_dir}\n"
        )

        result = cli_runner.invoke(app, ["export", "--config", str(config_path), "--password", "secret"])

        assert result.exit_code == 0, result.output

    def test_missing_settings(self, cli_runner: CliRunner, in_temp_dir: Path):
        result = cli_runner.invoke(app, ["export", "--source", "/Temp"])

        assert result.exit_code == 1
        assert "Missing required settings" in result.output

    def test_missing_source_folder(self, cli_runner: CliRunner, snapshot_file: Path, export_dir: Path, in_temp_dir: Path):
        result = cli_runner.invoke(
            app,
            ["export", *_connection_args(snapshot_file), "--source", "/Nope", "--target", str(export_dir)],
        )

        assert result.exit_code == 1
        assert "does not exist in repository" in result.output

    def test_error_message_with_brackets(self, cli_runner: CliRunner, snapshot_file: Path, export_dir: Path, in_temp_dir: Path):
        result = cli_runner.invoke(
            app,
            ["export", *_connection_args(snapshot_file), "--source", "/Nope[/x]", "--target", str(export_dir)],
        )

        assert result.exit_code == 1
        assert "/Nope[/x] does not exist in repository" in result.output

    def test_bad_password(self, cli_runner: CliRunner, snapshot_file: Path, export_dir: Path, in_temp_dir: Path):
        result = cli_runner.invoke(
            app,
            ["export", "--docbase", str(snapshot_file), "--user", "dmadmin", "--password", "nope",
             "--source", "/Temp", "--target", str(export_dir)],
        )

        assert result.exit_code == 1
        assert "Authentication failed" in result.output

    def test_missing_config_file(self, cli_runner: CliRunner, in_temp_dir: Path):
        result = cli_runner.invoke(app, ["export", "--config", "absent.yaml"])

        assert result.exit_code == 1
        assert "Configuration file not found" in result.output

    def test_keyboard_interrupt(self, cli_runner: CliRunner, snapshot_file: Path, export_dir: Path, in_temp_dir: Path):
        with patch("deepexport.cli.ExportOrchestrator.run", side_effect=KeyboardInterrupt):
            result = cli_runner.invoke(
                app,
                ["export", *_connection_args(snapshot_file), "--source", "/Temp", "--target", str(export_dir)],
            )

        assert result.exit_code == 130
        assert "interrupted" in result.output


@pytest.mark.integration
class TestCountCommand:
    """Tests for the count command."""

    def test_count(self, cli_runner: CliRunner, snapshot_file: Path, in_temp_dir: Path):
        result = cli_runner.invoke(app, ["count", *_connection_args(snapshot_file), "--source", "/Temp"])

        assert result.exit_code == 0, result.output
        assert "Found 1 sub folder(s) and 3 document(s) below /Temp" in result.output
        assert list(in_temp_dir.glob("DCTMDeepExport_*.log")) == []

    def test_count_all_versions(self, cli_runner: CliRunner, snapshot_file: Path, in_temp_dir: Path):
        result = cli_runner.invoke(
            app, ["count", *_connection_args(snapshot_file), "--source", "/Temp", "--versions"]
        )

        assert result.exit_code == 0, result.output
        assert "4 document(s)" in result.output

    def test_count_missing_source(self, cli_runner: CliRunner, snapshot_file: Path, in_temp_dir: Path):
        result = cli_runner.invoke(app, ["count", *_connection_args(snapshot_file), "--source", "/Nope"])

        assert result.exit_code == 1
