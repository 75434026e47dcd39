"""Pytest fixtures for Deep Export tests."""

import io
import json
import tempfile
from pathlib import Path
from typing import Dict, Generator

import pytest
from rich.console import Console

from deepexport.operations import ContentExporter
from deepexport.repository import MemoryRepository, MemorySession
from deepexport.ui import ExportConsole


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single component")
    config.addinivalue_line("markers", "integration: tests spanning several components")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for isolated test environments.

    Yields:
        Path to the temporary directory.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def export_dir(temp_dir: Path) -> Path:
    """An existing, empty local export target directory."""
    target = temp_dir / "export"
    target.mkdir()
    return target


@pytest.fixture
def memory_repo() -> MemoryRepository:
    """Create an empty in-memory repository with one user."""
    return MemoryRepository("repo1", users={"dmadmin": "secret"})


@pytest.fixture
def sample_repo(memory_repo: MemoryRepository) -> MemoryRepository:
    """Create a small repository tree.

    Creates:
        /Temp/
        ├── Report (pdf, 2 versions: 1.0, 1.1)
        ├── Notes (txt)
        ├── Sub/
        │   └── Deep/
        │       └── Plan (docx)
        └── Empty/

    Returns:
        The populated MemoryRepository.
    """
    repo = memory_repo
    report = repo.add_document("/Temp", "Report", content=b"%PDF-1.4 v1", format_extension="pdf")
    repo.add_version(report, content=b"%PDF-1.4 v1.1")
    repo.add_document("/Temp", "Notes", content=b"some notes", format_extension="txt")
    repo.add_document("/Temp/Sub/Deep", "Plan", content=b"PK plan", format_extension="docx")
    repo.add_folder("/Temp/Empty")
    return repo


@pytest.fixture
def session(sample_repo: MemoryRepository) -> Generator[MemorySession, None, None]:
    """Open a session on the sample repository and release it afterwards."""
    with sample_repo.open_session("dmadmin", "secret") as opened:
        yield opened


@pytest.fixture
def exporter(session: MemorySession) -> ContentExporter:
    """ContentExporter for the current version of each document."""
    return ContentExporter(session)


@pytest.fixture
def snapshot_file(temp_dir: Path) -> Path:
    """Write a JSON repository snapshot.

    Creates:
        /Temp/
        ├── Report (pdf, 2 versions, the second read from report.pdf)
        ├── Parked (txt, content parked on a remote server)
        ├── workflow (not a document)
        └── Archive/
            └── Notes (txt)

    Returns:
        Path to the snapshot file.
    """
    (temp_dir / "report.pdf").write_bytes(b"%PDF-1.4 from file")
    data: Dict = {
        "name": "repo1",
        "max_result_rows": 4000,
        "users": {"dmadmin": "secret"},
        "folders": ["/Temp/Archive"],
        "documents": [
            {
                "folder": "/Temp",
                "name": "Report",
                "format": "pdf",
                "versions": [
                    {"label": "1.0", "content": "first"},
                    {"label": "1.1", "content_file": "report.pdf"},
                ],
            },
            {"folder": "/Temp", "name": "Parked", "content": "remote", "parked": 1},
            {"folder": "/Temp/Archive", "name": "Notes", "content": "notes"},
        ],
        "objects": [{"folder": "/Temp", "name": "workflow"}],
    }
    path = temp_dir / "snapshot.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def ui_with_captured_output() -> ExportConsole:
    """Create an ExportConsole with Console output captured to StringIO.

    Access captured output via: ui.console.file.getvalue()
    """
    output = io.StringIO()
    console = Console(file=output, force_terminal=False, width=120)
    return ExportConsole(console=console)
