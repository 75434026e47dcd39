"""
Documentum Deep Export - CLI Interface.

A command-line interface for exporting a repository folder tree, with the
primary content of every document in it, to a local directory.

Usage Examples:
    # Show how many folders and documents an export would cover
    python -m deepexport count --docbase snapshot.json --user dmadmin \\
        --password secret --source /Temp

    # Export the current version of every document below /Temp
    python -m deepexport export --source /Temp --target /data/export

    # Export every version, reading the remaining settings from a file
    python -m deepexport export --config deepexport.yaml --versions

    # Echo every folder and document with debug logging
    python -m deepexport export --config deepexport.yaml --verbose
"""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from deepexport.config import DEFAULT_CONFIG_FILE, ExportConfig, load_config
from deepexport.errors import DeepExportError
from deepexport.orchestration import ExportOrchestrator
from deepexport.ui import ExportConsole

__version__ = "1.0.0"

# Initialize Typer app
app = typer.Typer(
    name="deepexport",
    help="Documentum Deep Export - Export a repository folder tree to the local filesystem.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for consistent output formatting
console = Console()


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        console.print(f"Documentum Deep Export v{__version__}")
        raise typer.Exit()


def validate_page_size(value: Optional[int]) -> Optional[int]:
    """
    Validate that an explicit page size is positive.

    Raises:
        typer.BadParameter: If value is zero or negative.
    """
    if value is not None and value < 1:
        raise typer.BadParameter("Page size must be a positive number of rows")
    return value


def configure_logging(verbose: bool) -> None:
    """Route library logging through Rich; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def resolve_config(config_file: Optional[Path], **overrides) -> ExportConfig:
    """
    Build the run configuration from the config file and command-line options.

    The file named by --config is required to exist; without --config the
    default file is read when it is present in the working directory.
    Command-line options that were given override the file.

    Raises:
        ConfigError: If the config file is missing or malformed.
    """
    if config_file is not None:
        base = load_config(config_file)
    elif Path(DEFAULT_CONFIG_FILE).is_file():
        base = load_config(DEFAULT_CONFIG_FILE)
    else:
        base = ExportConfig()
    return base.merged(**overrides)


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Documentum Deep Export - Export a repository folder tree to the local filesystem."""
    pass


@app.command()
def export(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help=f"YAML settings file. Defaults to ./{DEFAULT_CONFIG_FILE} when present.",
    ),
    docbase: Optional[str] = typer.Option(None, "--docbase", help="Repository name."),
    user: Optional[str] = typer.Option(None, "--user", help="Repository user."),
    password: Optional[str] = typer.Option(None, "--password", help="Repository password."),
    source: Optional[str] = typer.Option(
        None, "--source", help="Repository folder path to export, e.g. /Temp."
    ),
    target: Optional[str] = typer.Option(
        None, "--target", help="Existing local directory to export into."
    ),
    backend: Optional[str] = typer.Option(None, "--backend", help="Repository backend name."),
    versions: bool = typer.Option(
        False,
        "--versions",
        help="Export every version of each document, not only the current one.",
    ),
    page_size: Optional[int] = typer.Option(
        None,
        "--page-size",
        help="Rows requested per folder enumeration page.",
        callback=validate_page_size,
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        "-l",
        help="Run log path. Defaults to a timestamped file in the target directory.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Echo every folder and document and enable debug logging.",
    ),
) -> None:
    """
    Export a repository folder tree with its document content.

    Mirrors every folder below the source path as a local directory and
    writes the primary content of every document into it:
    1. Check: Validate settings, target directory and source folder
    2. Count: Report the expected folder and document totals
    3. Export: Walk the folder tree once, writing each document
    4. Summary: Display counters, skips and failures
    """
    configure_logging(verbose)
    start_time = time.time()
    console.print()
    ExportConsole(console).display_banner(__version__, _timestamp())

    try:
        config = resolve_config(
            config_file,
            docbase=docbase,
            user=user,
            password=password,
            source=source,
            target=target,
            backend=backend,
            all_versions=True if versions else None,
            page_size=page_size,
        )

        orchestrator = ExportOrchestrator(
            config,
            ui=ExportConsole(console),
            verbose=verbose,
            log_file_path=log_file,
        )
        summary = orchestrator.run()

        console.print()
        console.print(f"Folders processed: {summary.counters.folders_exported}")
        console.print(f"Documents processed: {summary.counters.documents_exported}")

        if summary.counters.failures:
            console.print(
                f"\n[yellow]Completed with {len(summary.counters.failures)} error(s).[/yellow]"
            )
        if summary.log_file is not None:
            console.print(f"[dim]Log written to: {escape(str(summary.log_file))}[/dim]")

    except KeyboardInterrupt:
        console.print("\n[yellow]Export interrupted by user.[/yellow]")
        raise typer.Exit(130)

    except DeepExportError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    except OSError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    finally:
        ExportConsole(console).display_footer(time.time() - start_time, _timestamp())


@app.command()
def count(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help=f"YAML settings file. Defaults to ./{DEFAULT_CONFIG_FILE} when present.",
    ),
    docbase: Optional[str] = typer.Option(None, "--docbase", help="Repository name."),
    user: Optional[str] = typer.Option(None, "--user", help="Repository user."),
    password: Optional[str] = typer.Option(None, "--password", help="Repository password."),
    source: Optional[str] = typer.Option(
        None, "--source", help="Repository folder path to count, e.g. /Temp."
    ),
    backend: Optional[str] = typer.Option(None, "--backend", help="Repository backend name."),
    versions: bool = typer.Option(
        False,
        "--versions",
        help="Count every version of each document, not only the current one.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable debug logging.",
    ),
) -> None:
    """
    Count the folders and documents an export would cover.

    Runs the source folder check and the pre-count queries without creating
    any directory or file.
    """
    configure_logging(verbose)

    try:
        config = resolve_config(
            config_file,
            docbase=docbase,
            user=user,
            password=password,
            source=source,
            backend=backend,
            all_versions=True if versions else None,
        )

        orchestrator = ExportOrchestrator(config, ui=ExportConsole(console), verbose=verbose)
        summary = orchestrator.count()

        console.print(
            f"\n[green]Found {summary.expected_folders} sub folder(s) and "
            f"{summary.expected_documents} document(s) below {escape(summary.source)}.[/green]"
        )

    except KeyboardInterrupt:
        console.print("\n[yellow]Count interrupted by user.[/yellow]")
        raise typer.Exit(130)

    except DeepExportError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    except OSError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
