"""Collaborator interfaces for repository backends.

The export engine talks to a repository only through these two classes.
A backend provides a RepositorySession that executes DQL, resolves objects
and streams content; query results come back as RowCursor instances.

Example:
    >>> with connect("repo1", "dmadmin", "secret") as session:
    ...     with session.execute("select r_object_id from dm_folder where ...") as cursor:
    ...         row = cursor.fetch()
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from deepexport.models import ContentObject, RepositoryNode

# A result row maps column names to values
Row = Dict[str, Any]


class RowCursor(ABC):
    """Forward-only cursor over the rows of one query result.

    Cursors hold a native resource and must be closed; use them as context
    managers so the resource is released on every exit path.
    """

    @abstractmethod
    def fetch(self) -> Optional[Row]:
        """Return the next row, or None once the results are exhausted."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying resource. Calling close twice is allowed."""

    def __iter__(self) -> Iterator[Row]:
        while True:
            row = self.fetch()
            if row is None:
                return
            yield row

    def __enter__(self) -> "RowCursor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class RepositorySession(ABC):
    """An authenticated, read-only session with a repository.

    Attributes:
        max_result_rows: Maximum number of rows a single query result may
            return, or None if the backend imposes no cap.
    """

    max_result_rows: Optional[int] = None

    @abstractmethod
    def execute(self, query: str) -> RowCursor:
        """Execute a DQL query.

        Raises:
            QueryError: If the query cannot be executed.
        """

    @abstractmethod
    def get_object(self, object_id: str) -> RepositoryNode:
        """Resolve an object id to a full object handle.

        Raises:
            QueryError: If the object does not exist.
        """

    @abstractmethod
    def get_content_object(self, content_id: str) -> Optional[ContentObject]:
        """Resolve a dmr_content id, or return None if it does not resolve."""

    @abstractmethod
    def get_folder_by_path(self, path: str) -> Optional[RepositoryNode]:
        """Return the folder whose r_folder_path matches path, if any."""

    @abstractmethod
    def export_content(self, node: RepositoryNode, destination: Path) -> None:
        """Write the primary content of a document to destination.

        Raises:
            ContentError: If the repository cannot deliver the content.
            OSError: If the destination cannot be written.
        """

    @abstractmethod
    def release(self) -> None:
        """Release the session. Releasing twice is a no-op."""

    def __enter__(self) -> "RepositorySession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
