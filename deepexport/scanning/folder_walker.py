"""Folder traversal engine.

This module provides the FolderWalker class, which mirrors a repository
folder tree onto the local filesystem and hands every document it finds to
the content export step.

The walk is depth-first and pre-order: a sub folder is exported completely
before the walker moves on to the next sibling. It uses an explicit stack of
frames instead of recursion, so deep hierarchies are not limited by the
interpreter's recursion limit.

Example:
    >>> from deepexport.scanning import FolderWalker
    >>> walker = FolderWalker(session, Path("/export"), exporter)
    >>> counters = walker.walk(session.get_folder_by_path("/Temp"))
    >>> print(f"{counters.folders_exported} folders, {counters.documents_exported} documents")
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional, Set

from deepexport.models import FolderPath, RepositoryNode, RunCounters, SkipReason
from deepexport.operations import ContentExporter
from deepexport.repository.base import RepositorySession
from deepexport.repository.dql import OBJECT_ID_COLUMN, children_query
from deepexport.ui import ExportConsole

from .paged_reader import DEFAULT_PAGE_SIZE, PagedRowReader

if TYPE_CHECKING:
    from deepexport.orchestration.export_logger import ExportLogger

logger = logging.getLogger(__name__)


@dataclass
class _Frame:
    """One folder being enumerated."""
    folder_path: FolderPath
    directory: Path
    rows: PagedRowReader


class FolderWalker:
    """Walks a repository folder tree and exports its documents.

    For each folder the walker creates the mirrored local directory, then
    enumerates the folder's children through a PagedRowReader and dispatches
    each child: folders are descended into, documents go to the
    ContentExporter, and anything else is skipped.

    Children are visited in r_object_id order, the order the paged
    enumeration returns them in. Within a folder this puts documents (09...)
    ahead of sub folders (0b...).

    Skips and failed exports never stop the walk. A QueryError raised while
    enumerating a folder aborts the whole walk.

    Attributes:
        session: Repository session shared by every step of the walk.
        target: Local directory the repository paths are mirrored under.
        exporter: ContentExporter receiving each document.
        all_versions: Whether every version of a document is enumerated.
        page_size: Rows requested per enumeration page.
    """

    def __init__(
        self,
        session: RepositorySession,
        target: Path,
        exporter: ContentExporter,
        all_versions: bool = False,
        page_size: int = DEFAULT_PAGE_SIZE,
        export_logger: Optional["ExportLogger"] = None,
        ui: Optional[ExportConsole] = None,
    ) -> None:
        """Initialize the FolderWalker.

        Args:
            session: Repository session used for queries and object lookups.
            target: Existing local directory to mirror folders under.
            exporter: Content export step for documents.
            all_versions: If True, enumerate all versions of each document.
            page_size: Maximum rows per enumeration page.
            export_logger: Optional run log receiving folder and skip lines.
            ui: Optional console echoing each folder entered.
        """
        self.session = session
        self.target = target
        self.exporter = exporter
        self.all_versions = all_versions
        self.page_size = page_size
        self.export_logger = export_logger
        self.ui = ui

    def walk(
        self,
        root: RepositoryNode,
        progress: Optional[Callable[[int], None]] = None,
    ) -> RunCounters:
        """Export the folder tree below root.

        The root folder's directory is created but the root itself is not
        counted; ``folders_exported`` counts sub folders only.

        Args:
            root: Folder to start from.
            progress: Optional callback receiving the number of documents
                processed so far, called after each document.

        Returns:
            RunCounters for this walk.

        Raises:
            QueryError: If a folder cannot be enumerated.
            OSError: If a local directory cannot be created.
        """
        counters = RunCounters()
        # Folder ids already walked; a folder linked into several parents is walked once
        visited: Set[str] = {root.object_id}
        stack: List[_Frame] = [self._enter(root, self._folder_path(root, None))]

        while stack:
            frame = stack[-1]
            if not frame.rows.has_next():
                stack.pop()
                continue

            row = frame.rows.next()
            node = self.session.get_object(row[OBJECT_ID_COLUMN])

            if node.is_folder:
                if node.object_id in visited:
                    logger.debug(f"Folder {node.object_id} already exported, not walking it again")
                    continue
                visited.add(node.object_id)
                folder_path = self._folder_path(node, frame.folder_path)
                logger.debug(f"Entering folder {folder_path} ({node.object_id})")
                if self.export_logger is not None:
                    self.export_logger.log_folder(folder_path)
                if self.ui is not None:
                    self.ui.display_folder(folder_path)
                counters.folders_exported += 1
                stack.append(self._enter(node, folder_path))

            elif node.is_document:
                counters.documents_exported += 1
                counters.record_outcome(self.exporter.export(frame.directory, node))
                if progress is not None:
                    progress(counters.documents_exported)

            else:
                counters.record_skip(SkipReason.NOT_A_DOCUMENT)
                if self.export_logger is not None:
                    self.export_logger.log_skip(node, SkipReason.NOT_A_DOCUMENT)

        return counters

    def _enter(self, folder: RepositoryNode, folder_path: FolderPath) -> _Frame:
        """Create the folder's local directory and open its child enumeration."""
        directory = folder_path.local_path(self.target)
        directory.mkdir(parents=True, exist_ok=True)

        rows = PagedRowReader(
            self.session,
            children_query(folder.object_id, self.all_versions),
            page_size=self.page_size,
        )
        return _Frame(folder_path=folder_path, directory=directory, rows=rows)

    def _folder_path(self, folder: RepositoryNode, parent: Optional[FolderPath]) -> FolderPath:
        if folder.folder_path:
            return FolderPath.parse(folder.folder_path)
        if parent is None:
            return FolderPath((folder.name,))
        return parent.child(folder.name)
