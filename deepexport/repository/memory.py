"""In-memory repository backend.

MemoryRepository holds a complete folder/document tree in process memory and
serves it through MemorySession, which interprets the DQL produced by
:mod:`deepexport.repository.dql`. It is used by the test suite and for
offline runs against a JSON snapshot of a repository.

The optional ``max_result_rows`` cap silently truncates every query result,
the way a Documentum collection stops at its configured maximum.

Example:
    >>> repo = MemoryRepository("repo1")
    >>> repo.add_folder("/Temp/Reports")
    >>> repo.add_document("/Temp", "Report", content=b"%PDF-1.4", format_extension="pdf")
    >>> session = repo.open_session("dmadmin")
"""

import json
import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from deepexport.errors import AuthError, ContentError, DeepExportError, QueryError
from deepexport.models import ContentObject, FolderPath, NodeType, RepositoryNode

from .base import Row, RowCursor, RepositorySession

logger = logging.getLogger(__name__)

CURRENT_LABEL = "CURRENT"

_TYPE_FILTERS = {
    "dm_sysobject": None,
    "dm_folder": NodeType.FOLDER,
    "dm_document": NodeType.DOCUMENT,
}

_COUNT_RE = re.compile(
    r"^select\s+count\(\*\)\s+as\s+(?P<alias>\w+)\s+from\s+(?P<type>\w+)"
    r"(?P<all>\s+\(ALL\))?\s+where\s+(?P<where>.+)$",
    re.IGNORECASE | re.DOTALL,
)
_SELECT_RE = re.compile(
    r"^select\s+(?P<columns>\w+(?:\s*,\s*\w+)*)\s+from\s+(?P<type>\w+)"
    r"(?P<all>\s+\(ALL\))?\s+where\s+(?P<where>.+)$",
    re.IGNORECASE | re.DOTALL,
)
_RETURN_TOP_RE = re.compile(r"\s+enable\s*\(\s*RETURN_TOP\s+(\d+)\s*\)\s*$", re.IGNORECASE)
_ORDER_BY_RE = re.compile(r"\s+order\s+by\s+(\w+)\s*$", re.IGNORECASE)

_LITERAL = r"'(?:[^']|'')*'"
_TERM_RE = re.compile(
    r"\s*(?:"
    rf"any\s+r_folder_path\s*=\s*(?P<path_eq>{_LITERAL})"
    rf"|folder\(\s*id\(\s*(?P<folder_id>{_LITERAL})\s*\)\s*\)"
    rf"|folder\(\s*(?P<folder_path>{_LITERAL})\s*(?P<descend>,\s*descend\s*)?\)"
    rf"|(?P<attr>\w+)\s*(?P<op>>=|<=|>|<|=)\s*(?P<value>{_LITERAL}|\d+)"
    r")\s*(?:\band\b|$)",
    re.IGNORECASE,
)


def _unquote(literal: str) -> str:
    return literal[1:-1].replace("''", "'")


@dataclass
class _StoredObject:
    node: RepositoryNode
    parent_ids: Tuple[str, ...]
    current: bool = True
    content: Optional[bytes] = None
    unreadable: bool = False


class MemoryRepository:
    """A repository held entirely in memory.

    Args:
        name: Repository (docbase) name.
        max_result_rows: Cap applied to every query result, or None.
        users: Optional mapping of user name to password. When given,
            sessions are only opened for matching credentials.
    """

    def __init__(
        self,
        name: str = "memory",
        max_result_rows: Optional[int] = None,
        users: Optional[Dict[str, str]] = None,
    ) -> None:
        self.name = name
        self.max_result_rows = max_result_rows
        self.users = users
        self._objects: Dict[str, _StoredObject] = {}
        self._contents: Dict[str, ContentObject] = {}
        self._folders_by_path: Dict[str, str] = {}
        self._sequence = 0
        self.queries: List[str] = []

    # ------------------------------------------------------------------
    # Building the tree
    # ------------------------------------------------------------------

    def _next_id(self, prefix: str) -> str:
        self._sequence += 1
        return f"{prefix}{self._sequence:014x}"

    def add_folder(self, path: str) -> RepositoryNode:
        """Create a folder, and any missing parents, and return its handle."""
        folder_path = FolderPath.parse(path)
        if not folder_path.segments:
            raise ValueError("Cannot create the repository root")

        node: Optional[RepositoryNode] = None
        current = FolderPath(())
        for segment in folder_path.segments:
            parent_path = current
            current = current.child(segment)
            existing = self._folders_by_path.get(current.repository_path)
            if existing is not None:
                node = self._objects[existing].node
                continue

            # Top level folders are cabinets
            if parent_path.segments:
                prefix = "0b"
                parent_ids: Tuple[str, ...] = (self._folders_by_path[parent_path.repository_path],)
            else:
                prefix = "0c"
                parent_ids = ()
            node = RepositoryNode(
                object_id=self._next_id(prefix),
                name=segment,
                node_type=NodeType.FOLDER,
                folder_path=current.repository_path,
            )
            self._objects[node.object_id] = _StoredObject(node=node, parent_ids=parent_ids)
            self._folders_by_path[current.repository_path] = node.object_id
        return node

    def add_document(
        self,
        folder: str,
        name: str,
        content: Optional[bytes] = b"",
        format_extension: str = "txt",
        version_label: str = "1.0",
        parked_state: int = 0,
        content_id: Optional[str] = None,
        unreadable: bool = False,
    ) -> RepositoryNode:
        """Create a document in folder and return its handle.

        Args:
            folder: Repository path of the parent folder (created if missing).
            name: object_name of the document.
            content: Content bytes, or None for a document without a
                dmr_content object.
            format_extension: DOS extension of the document's format.
            version_label: Implicit version label of this first version.
            parked_state: i_parked_state of the content object.
            content_id: Explicit i_contents_id; used to model a reference
                that does not resolve to a content object.
            unreadable: If True, content retrieval fails with ContentError.
        """
        parent = self.add_folder(folder)
        return self._store_document(
            parent_ids=(parent.object_id,),
            name=name,
            content=content,
            format_extension=format_extension,
            version_labels=(version_label, CURRENT_LABEL),
            parked_state=parked_state,
            content_id=content_id,
            unreadable=unreadable,
        )

    def add_version(
        self,
        document: RepositoryNode,
        content: Optional[bytes] = b"",
        version_label: Optional[str] = None,
        parked_state: int = 0,
    ) -> RepositoryNode:
        """Check in a new version of document; the new version becomes current."""
        previous = self._objects[document.object_id]
        if version_label is None:
            version_label = _next_version_label(previous.node.implicit_version_label)

        previous.current = False
        previous.node = replace(
            previous.node,
            version_labels=tuple(
                label for label in previous.node.version_labels if label != CURRENT_LABEL
            ),
        )
        return self._store_document(
            parent_ids=previous.parent_ids,
            name=previous.node.name,
            content=content,
            format_extension=previous.node.format_extension,
            version_labels=(version_label, CURRENT_LABEL),
            parked_state=parked_state,
        )

    def add_object(self, folder: str, name: str) -> RepositoryNode:
        """Create a sysobject that is neither a folder nor a document."""
        parent = self.add_folder(folder)
        node = RepositoryNode(
            object_id=self._next_id("08"),
            name=name,
            node_type=NodeType.OTHER,
        )
        self._objects[node.object_id] = _StoredObject(node=node, parent_ids=(parent.object_id,))
        return node

    def link(self, node: RepositoryNode, folder: str) -> None:
        """Link an existing object into another folder as well."""
        parent = self.add_folder(folder)
        stored = self._objects[node.object_id]
        if parent.object_id not in stored.parent_ids:
            stored.parent_ids = stored.parent_ids + (parent.object_id,)

    def _store_document(
        self,
        parent_ids: Tuple[str, ...],
        name: str,
        content: Optional[bytes],
        format_extension: str,
        version_labels: Tuple[str, ...],
        parked_state: int = 0,
        content_id: Optional[str] = None,
        unreadable: bool = False,
    ) -> RepositoryNode:
        if content_id is None and content is not None:
            content_id = self._next_id("06")
            self._contents[content_id] = ContentObject(
                object_id=content_id, parked_state=parked_state
            )
        node = RepositoryNode(
            object_id=self._next_id("09"),
            name=name,
            node_type=NodeType.DOCUMENT,
            content_id=content_id,
            content_size=len(content) if content is not None else 0,
            format_extension=format_extension,
            version_labels=version_labels,
        )
        self._objects[node.object_id] = _StoredObject(
            node=node,
            parent_ids=parent_ids,
            content=content,
            unreadable=unreadable,
        )
        return node

    @classmethod
    def from_snapshot(cls, snapshot_path: Union[str, Path]) -> "MemoryRepository":
        """Load a repository from a JSON snapshot file.

        The snapshot lists folders, documents (with their versions) and other
        objects::

            {
              "name": "repo1",
              "max_result_rows": 4000,
              "users": {"dmadmin": "secret"},
              "folders": ["/Temp/Reports"],
              "documents": [
                {"folder": "/Temp", "name": "Report", "format": "pdf",
                 "versions": [{"label": "1.0", "content": "..."},
                              {"label": "1.1", "content_file": "report.pdf"}]}
              ],
              "objects": [{"folder": "/Temp", "name": "workflow"}]
            }

        Raises:
            OSError: If the snapshot cannot be read.
            ValueError: If the snapshot is malformed.
        """
        snapshot_path = Path(snapshot_path)
        with open(snapshot_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Snapshot must contain a JSON object: {snapshot_path}")

        repo = cls(
            name=data.get("name", snapshot_path.stem),
            max_result_rows=data.get("max_result_rows"),
            users=data.get("users"),
        )
        for folder in data.get("folders", []):
            repo.add_folder(folder)

        for entry in data.get("documents", []):
            versions = entry.get("versions") or [entry]
            first, rest = versions[0], versions[1:]
            node = repo.add_document(
                entry["folder"],
                entry["name"],
                content=_snapshot_content(first, snapshot_path.parent),
                format_extension=entry.get("format", "txt"),
                version_label=first.get("label", "1.0"),
                parked_state=int(first.get("parked", 0)),
            )
            for version in rest:
                node = repo.add_version(
                    node,
                    content=_snapshot_content(version, snapshot_path.parent),
                    version_label=version.get("label"),
                    parked_state=int(version.get("parked", 0)),
                )

        for entry in data.get("objects", []):
            repo.add_object(entry["folder"], entry["name"])

        logger.debug(f"Loaded {len(repo._objects)} objects from snapshot {snapshot_path}")
        return repo

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def open_session(self, user: str, secret: str = "") -> "MemorySession":
        """Open a session, checking credentials when a user table is set.

        Raises:
            AuthError: If the credentials do not match.
        """
        if self.users is not None and self.users.get(user) != secret:
            raise AuthError(f"Authentication failed for {user}@{self.name}")
        return MemorySession(self, user)

    # ------------------------------------------------------------------
    # Query evaluation
    # ------------------------------------------------------------------

    def run_query(self, query: str) -> List[Row]:
        """Evaluate a DQL query and return every row, before any cap.

        Raises:
            QueryError: If the query is not understood.
        """
        self.queries.append(query)
        text = query.strip()

        limit: Optional[int] = None
        top = _RETURN_TOP_RE.search(text)
        if top:
            limit = int(top.group(1))
            text = text[: top.start()]

        order_by: Optional[str] = None
        order = _ORDER_BY_RE.search(text)
        if order:
            order_by = order.group(1).lower()
            text = text[: order.start()]

        count = _COUNT_RE.match(text)
        if count:
            matched = self._match(count.group("type"), bool(count.group("all")), count.group("where"), query)
            return [{count.group("alias"): len(matched)}]

        select = _SELECT_RE.match(text)
        if not select:
            raise QueryError(f"Unsupported query: {query}", query)

        columns = [column.strip().lower() for column in select.group("columns").split(",")]
        matched = self._match(select.group("type"), bool(select.group("all")), select.group("where"), query)
        if order_by is not None:
            matched.sort(key=lambda stored: _attribute(stored, order_by, query))
        if limit is not None:
            matched = matched[:limit]
        return [{column: _attribute(stored, column, query) for column in columns} for stored in matched]

    def _match(self, type_name: str, all_versions: bool, where: str, query: str) -> List[_StoredObject]:
        type_name = type_name.lower()
        if type_name not in _TYPE_FILTERS:
            raise QueryError(f"Unknown type {type_name}", query)
        node_type = _TYPE_FILTERS[type_name]

        predicates = self._parse_where(where, query)
        result = []
        for stored in self._objects.values():
            if node_type is not None and stored.node.node_type is not node_type:
                continue
            if not all_versions and not stored.current:
                continue
            if all(predicate(stored) for predicate in predicates):
                result.append(stored)
        return result

    def _parse_where(self, where: str, query: str) -> list:
        predicates = []
        position = 0
        where = where.strip()
        while position < len(where):
            term = _TERM_RE.match(where, position)
            if not term or term.end() == position:
                raise QueryError(f"Unsupported predicate near: {where[position:]}", query)
            position = term.end()

            if term.group("path_eq") is not None:
                path = _unquote(term.group("path_eq"))
                predicates.append(lambda s, path=path: s.node.folder_path == path)
            elif term.group("folder_id") is not None:
                folder_id = _unquote(term.group("folder_id"))
                predicates.append(lambda s, folder_id=folder_id: folder_id in s.parent_ids)
            elif term.group("folder_path") is not None:
                path = _unquote(term.group("folder_path"))
                if term.group("descend"):
                    predicates.append(lambda s, path=path: self._is_below(s, path))
                else:
                    folder_id = self._folders_by_path.get(path)
                    predicates.append(lambda s, folder_id=folder_id: folder_id in s.parent_ids)
            else:
                attr = term.group("attr").lower()
                op = term.group("op")
                raw = term.group("value")
                value: Any = _unquote(raw) if raw.startswith("'") else int(raw)
                predicates.append(
                    lambda s, attr=attr, op=op, value=value: _compare(
                        _attribute(s, attr, query), op, value
                    )
                )
        return predicates

    def _is_below(self, stored: _StoredObject, path: str) -> bool:
        prefix = path.rstrip("/") + "/"
        for parent_id in stored.parent_ids:
            parent_path = self._objects[parent_id].node.folder_path or ""
            if parent_path == path or parent_path.startswith(prefix):
                return True
        return False

    # ------------------------------------------------------------------
    # Lookups used by sessions
    # ------------------------------------------------------------------

    def lookup(self, object_id: str) -> Optional[RepositoryNode]:
        stored = self._objects.get(object_id)
        return stored.node if stored else None

    def lookup_content(self, content_id: str) -> Optional[ContentObject]:
        return self._contents.get(content_id)

    def lookup_folder(self, path: str) -> Optional[RepositoryNode]:
        object_id = self._folders_by_path.get(path)
        return self._objects[object_id].node if object_id else None

    def read_content(self, object_id: str) -> bytes:
        stored = self._objects.get(object_id)
        if stored is None or stored.content is None:
            raise ContentError(f"No content stored for {object_id}")
        if stored.unreadable:
            raise ContentError(f"Content of {object_id} cannot be retrieved from the content store")
        return stored.content


class MemoryCursor(RowCursor):
    """Cursor over a precomputed list of rows."""

    def __init__(self, rows: Sequence[Row], session: "MemorySession") -> None:
        self._rows = list(rows)
        self._position = 0
        self._session = session
        self.closed = False
        session.open_cursors += 1

    def fetch(self) -> Optional[Row]:
        if self.closed:
            raise QueryError("Cursor is closed")
        if self._position >= len(self._rows):
            return None
        row = self._rows[self._position]
        self._position += 1
        return row

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._session.open_cursors -= 1


class MemorySession(RepositorySession):
    """Session with a MemoryRepository.

    Attributes:
        open_cursors: Number of cursors created and not yet closed.
        released: Whether release() has been called.
    """

    def __init__(self, repository: MemoryRepository, user: str) -> None:
        self.repository = repository
        self.user = user
        self.max_result_rows = repository.max_result_rows
        self.open_cursors = 0
        self.released = False

    def _check_open(self) -> None:
        if self.released:
            raise DeepExportError("Session has been released")

    def execute(self, query: str) -> RowCursor:
        self._check_open()
        rows = self.repository.run_query(query)
        if self.max_result_rows is not None:
            rows = rows[: self.max_result_rows]
        return MemoryCursor(rows, self)

    def get_object(self, object_id: str) -> RepositoryNode:
        self._check_open()
        node = self.repository.lookup(object_id)
        if node is None:
            raise QueryError(f"Object {object_id} does not exist")
        return node

    def get_content_object(self, content_id: str) -> Optional[ContentObject]:
        self._check_open()
        return self.repository.lookup_content(content_id)

    def get_folder_by_path(self, path: str) -> Optional[RepositoryNode]:
        self._check_open()
        return self.repository.lookup_folder(path)

    def export_content(self, node: RepositoryNode, destination: Path) -> None:
        self._check_open()
        content = self.repository.read_content(node.object_id)
        with open(destination, "wb") as f:
            f.write(content)

    def release(self) -> None:
        if not self.released:
            self.released = True
            logger.debug(f"Released session {self.user}@{self.repository.name}")


def connect(
    repository: Union[str, Path, MemoryRepository], user: str, secret: str
) -> MemorySession:
    """Open a session on an in-memory repository.

    Args:
        repository: A MemoryRepository, or the path of a JSON snapshot.
        user: User name.
        secret: Password.

    Raises:
        AuthError: If the snapshot cannot be loaded or the credentials
            are rejected.
    """
    if not isinstance(repository, MemoryRepository):
        try:
            repository = MemoryRepository.from_snapshot(repository)
        except (OSError, ValueError, KeyError) as e:
            raise AuthError(f"Cannot open repository {repository}: {e}") from e
    return repository.open_session(user, secret)


def _attribute(stored: _StoredObject, name: str, query: str) -> Any:
    node = stored.node
    if name == "r_object_id":
        return node.object_id
    if name == "object_name":
        return node.name
    if name == "r_folder_path":
        return node.folder_path
    if name == "r_full_content_size":
        return node.content_size
    if name == "i_contents_id":
        return node.content_id
    raise QueryError(f"Unknown attribute {name}", query)


def _compare(left: Any, op: str, right: Any) -> bool:
    if left is None:
        return False
    if op == "=":
        return left == right
    if op == ">":
        return left > right
    if op == ">=":
        return left >= right
    if op == "<":
        return left < right
    return left <= right


def _next_version_label(label: Optional[str]) -> str:
    if not label or not re.match(r"^\d+(\.\d+)*$", label):
        return "1.0"
    parts = label.split(".")
    parts[-1] = str(int(parts[-1]) + 1)
    return ".".join(parts)


def _snapshot_content(entry: Dict[str, Any], base_dir: Path) -> Optional[bytes]:
    if "content_file" in entry:
        return (base_dir / entry["content_file"]).read_bytes()
    if "content" in entry:
        content = entry["content"]
        return content.encode("utf-8") if content is not None else None
    return None
