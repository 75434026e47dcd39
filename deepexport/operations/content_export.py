"""
Content export step for the Documentum Deep Export tool.

This module contains the ContentExporter class, which decides whether a
single document can be materialized and writes its content to a
collision-free file name.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from deepexport.errors import ContentError
from deepexport.models import (
    ExportFailure,
    ExportOutcome,
    RepositoryNode,
    SkipReason,
    is_object_id,
)
from deepexport.repository.base import RepositorySession
from deepexport.ui import ExportConsole

from .file_naming import unique_export_path

if TYPE_CHECKING:
    from deepexport.orchestration.export_logger import ExportLogger

logger = logging.getLogger(__name__)


class ContentExporter:
    """
    Exports the primary content of one document at a time.

    A document is skipped when it has no content association, when its
    content object cannot be resolved, when the content is parked on a
    remote (BOCS) server, or when it has no content. Retrieval and write
    errors are reported as failures; none of these outcomes raise.
    """

    def __init__(
        self,
        session: RepositorySession,
        all_versions: bool = False,
        export_logger: Optional["ExportLogger"] = None,
        ui: Optional[ExportConsole] = None,
    ) -> None:
        """
        Create a ContentExporter bound to a repository session.

        Parameters:
            session (RepositorySession): Session used to resolve content objects and stream content.
            all_versions (bool): If True, file names carry the document's implicit version label.
            export_logger (ExportLogger): Optional run log receiving one line per outcome.
            ui (ExportConsole): Optional console echoing exported documents and failures.
        """
        self.session = session
        self.all_versions = all_versions
        self.export_logger = export_logger
        self.ui = ui

    def export(self, directory: Path, node: RepositoryNode) -> ExportOutcome:
        """
        Export one document into directory, which must already exist.

        Parameters:
            directory (Path): Local directory mirroring the document's folder.
            node (RepositoryNode): The document to export.

        Returns:
            ExportOutcome: The written path, the skip reason, or the failure.
        """
        reason = self.check_content(node)
        if reason is not None:
            logger.debug(f"Skipping {node.object_id}: {reason.value}")
            if self.export_logger is not None:
                self.export_logger.log_skip(node, reason)
            return ExportOutcome(node=node, skip_reason=reason)

        version_label = node.implicit_version_label if self.all_versions else None
        target: Optional[Path] = None
        try:
            target = unique_export_path(directory, node.name, node.format_extension, version_label)
            self.session.export_content(node, target)
        except (ContentError, OSError) as e:
            failure = ExportFailure(
                object_id=node.object_id,
                name=node.name,
                target=target,
                message=str(e),
            )
            logger.warning(f"Could not export {node.object_id} to {target}: {e}")
            self._discard_partial_file(target)
            if self.export_logger is not None:
                self.export_logger.log_failure(failure)
            if self.ui is not None:
                self.ui.display_failure(failure)
            return ExportOutcome(node=node, failure=failure)

        if self.export_logger is not None:
            self.export_logger.log_document(node, target)
        if self.ui is not None:
            self.ui.display_document(node)
        return ExportOutcome(node=node, path=target)

    def check_content(self, node: RepositoryNode) -> Optional[SkipReason]:
        """
        Decide whether a document has exportable content.

        Returns:
            SkipReason: Why the document cannot be exported, or None if it can.
        """
        if not is_object_id(node.content_id):
            return SkipReason.NO_CONTENT_ASSOCIATION

        content = self.session.get_content_object(node.content_id)
        if content is None:
            return SkipReason.UNRESOLVABLE_CONTENT_OBJECT
        if content.parked_state != 0:
            return SkipReason.PARKED_CONTENT

        if node.content_size <= 0:
            return SkipReason.NO_CONTENT
        return None

    def _discard_partial_file(self, target: Optional[Path]) -> None:
        """Remove a file left behind by a failed export, if any."""
        if target is None:
            return
        try:
            target.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"Could not remove partial file {target}: {e}")
