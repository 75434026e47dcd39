"""ExportOrchestrator for coordinating a repository export run.

This module provides the ExportOrchestrator class that runs the complete
export workflow. It validates the configuration, opens the repository
session, checks the target directory and the source folder, reports the
expected totals, walks the folder tree once from the source folder and
aggregates the run counters. The session is released on every exit path.

Example:
    from deepexport.config import ExportConfig
    from deepexport.orchestration import ExportOrchestrator

    orchestrator = ExportOrchestrator(
        ExportConfig(docbase="repo1", user="dmadmin", password="secret",
                     source="/Temp", target="/data/export")
    )

    # Expected totals only
    preview = orchestrator.count()

    # Full export
    summary = orchestrator.run()
"""

import logging
import time
from contextlib import ExitStack
from pathlib import Path
from typing import Callable, Optional

from deepexport.config import ExportConfig
from deepexport.errors import ConfigError, DeepExportError, PreconditionError
from deepexport.models import ExportSummary, FolderPath, RunCounters
from deepexport.operations import ContentExporter
from deepexport.orchestration.export_logger import ExportLogger
from deepexport.repository import RepositorySession, connect
from deepexport.repository.dql import (
    count_documents_query,
    count_folders_query,
    folder_exists_query,
    query_single_value,
)
from deepexport.scanning import FolderWalker
from deepexport.ui import ExportConsole

logger = logging.getLogger(__name__)

Connector = Callable[..., RepositorySession]


class ExportOrchestrator:
    """Orchestrates an export run.

    The orchestrator exposes two workflows:
    - count(): Read-only preview that reports the expected folder and
      document totals.
    - run(): The full export, which also mirrors the folder tree and
      writes every exportable document.

    Both share a common planning phase (source check and pre-count queries).
    The orchestrator owns the run counters; the folder walker returns the
    counts of its walk and they are folded into the summary here.

    Attributes:
        config: Settings for the run.
        verbose: Whether every folder and document is echoed to the console.
    """

    def __init__(
        self,
        config: ExportConfig,
        connector: Connector = connect,
        ui: Optional[ExportConsole] = None,
        verbose: bool = False,
        log_file_path: Optional[Path] = None,
    ) -> None:
        """Initialize the ExportOrchestrator.

        Args:
            config: Settings for the run.
            connector: Factory opening a repository session; called as
                connector(docbase, user, password, backend=backend).
            ui: Optional console for progress and summaries. Nothing is
                printed when None.
            verbose: If True, echo each folder and document instead of
                showing a progress bar.
            log_file_path: Explicit run log path. Defaults to a timestamped
                file in the target directory.
        """
        self.config = config
        self.verbose = verbose
        self.log_file_path = log_file_path
        self._connector = connector
        self._ui = ui

    def count(self) -> ExportSummary:
        """Report the expected totals without exporting anything.

        Raises:
            ConfigError: If required settings are missing.
            AuthError: If the session cannot be established.
            PreconditionError: If the source folder does not exist.
            QueryError: If a count query fails.
        """
        start_time = time.time()
        self.config.validate(require_target=False)

        with self._connect() as session:
            target = self.config.target_path if self.config.target.strip() else None
            summary = self._plan(session, target, None)

        summary.duration_seconds = time.time() - start_time
        return summary

    def run(self) -> ExportSummary:
        """Execute the export.

        Returns:
            ExportSummary with expected totals and the counters of the walk.

        Raises:
            ConfigError: If settings are missing or the target is unusable.
            AuthError: If the session cannot be established.
            PreconditionError: If the source folder does not exist.
            QueryError: If a query fails; the run is aborted.
            OSError: If a folder directory cannot be created.
        """
        start_time = time.time()
        self.config.validate()

        with self._connect() as session, ExitStack() as stack:
            target = self._check_target()
            export_logger = self._open_logger(target, stack)

            try:
                summary = self._plan(session, target, export_logger)
                counters = self._walk(session, summary, export_logger)
            except (DeepExportError, OSError) as e:
                if export_logger is not None:
                    export_logger.log_error(str(e))
                raise

            summary.counters.merge(counters)
            summary.duration_seconds = time.time() - start_time
            if export_logger is not None:
                summary.log_file = export_logger.get_log_path()
                export_logger.log_summary(summary)

        if self._ui is not None:
            self._ui.display_summary(summary)
        return summary

    def _connect(self) -> RepositorySession:
        config = self.config
        logger.debug(f"Connecting to {config.docbase} as {config.user} ({config.backend})")
        session = self._connector(
            config.docbase, config.user, config.password, backend=config.backend
        )
        if self._ui is not None:
            self._ui.display_connected(config.user, config.docbase)
        return session

    def _check_target(self) -> Path:
        """Resolve the target directory.

        Raises:
            ConfigError: If the target does not exist or is not a directory.
        """
        target = self.config.target_path
        if not target.exists():
            raise ConfigError(f"Export path {target} does not exist.")
        if not target.is_dir():
            raise ConfigError(f"Export path {target} is not a folder.")
        return target.resolve()

    def _open_logger(self, target: Path, stack: ExitStack) -> Optional[ExportLogger]:
        """Open the run log on the stack; on failure the run continues without one."""
        try:
            export_logger = stack.enter_context(
                ExportLogger(
                    log_dir=target,
                    all_versions=self.config.all_versions,
                    log_file_path=self.log_file_path,
                )
            )
        except OSError as e:
            logger.warning(f"Could not create log file: {e}")
            return None

        if self._ui is not None:
            self._ui.display_log_file(export_logger.get_log_path())
        return export_logger

    def _plan(
        self,
        session: RepositorySession,
        target: Optional[Path],
        export_logger: Optional[ExportLogger],
    ) -> ExportSummary:
        """Check the source folder and run the pre-count queries.

        Raises:
            PreconditionError: If the source folder does not exist.
            QueryError: If a query fails.
        """
        source = self.config.source_path
        all_versions = self.config.all_versions

        if export_logger is not None:
            export_logger.log_header()
            export_logger.log_paths(source, target)

        found = int(query_single_value(session, folder_exists_query(source)))
        if found < 1:
            raise PreconditionError(f"Source path {source} does not exist in repository.")

        summary = ExportSummary(
            source=source,
            target=target,
            all_versions=all_versions,
            expected_folders=int(query_single_value(session, count_folders_query(source))),
            expected_documents=int(
                query_single_value(session, count_documents_query(source, all_versions))
            ),
        )

        if export_logger is not None:
            export_logger.log_expected_totals(summary.expected_folders, summary.expected_documents)
        if self._ui is not None:
            self._ui.display_expected_totals(summary)
        return summary

    def _walk(
        self,
        session: RepositorySession,
        summary: ExportSummary,
        export_logger: Optional[ExportLogger],
    ) -> RunCounters:
        """Resolve the source folder and walk it once."""
        root = session.get_folder_by_path(summary.source)
        if root is None:
            raise PreconditionError(f"Source path {summary.source} does not exist in repository.")

        echo = self._ui if self.verbose else None
        exporter = ContentExporter(
            session,
            all_versions=self.config.all_versions,
            export_logger=export_logger,
            ui=echo,
        )
        walker = FolderWalker(
            session,
            summary.target,
            exporter,
            all_versions=self.config.all_versions,
            page_size=self.config.page_size,
            export_logger=export_logger,
            ui=echo,
        )

        root_path = FolderPath.parse(summary.source)
        if export_logger is not None:
            export_logger.log_folder(root_path)
        if echo is not None:
            echo.display_folder(root_path)

        if self._ui is None or self.verbose:
            return walker.walk(root)

        progress, callback = self._ui.create_progress_callback(summary.expected_documents)
        with progress:
            return walker.walk(root, progress=callback)
