"""Deep Export - Documentum repository export tool.

A Python application that mirrors a repository folder tree onto the local
filesystem and writes the primary content of every document in it, one
version or all versions per document.
"""

__version__ = "1.0.0"

from .models import (
    NodeType,
    SkipReason,
    RepositoryNode,
    ContentObject,
    FolderPath,
    ExportFailure,
    RunCounters,
    ExportSummary,
)

__all__ = [
    "__version__",
    "NodeType",
    "SkipReason",
    "RepositoryNode",
    "ContentObject",
    "FolderPath",
    "ExportFailure",
    "RunCounters",
    "ExportSummary",
]


def main() -> None:
    """Entry point for the Deep Export CLI application.

    Imports and runs the Typer app from the deepexport.cli module.
    """
    from deepexport.cli import app
    app()
