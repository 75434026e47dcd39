"""
Core data models for the Documentum Deep Export tool.

This module contains the following dataclasses:
- RepositoryNode: Handle to a sysobject in the source repository
- ContentObject: The dmr_content object backing a document
- FolderPath: Repository folder path split into segments
- ExportFailure: A document whose content could not be materialized
- ExportOutcome: Result of one content export step
- RunCounters: Mutable counters accumulated during one traversal
- ExportSummary: Summary of a complete export run
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .node_type import NodeType
from .skip_reason import SkipReason

# Documentum's null object id
NULL_ID = "0000000000000000"

_OBJECT_ID_PATTERN = re.compile(r"^[0-9a-f]{16}$")
_NUMERIC_LABEL_PATTERN = re.compile(r"^\d+(\.\d+)*$")


def is_object_id(value: Optional[str]) -> bool:
    """Return True if value is a well-formed, non-null 16 digit object id."""
    if not value:
        return False
    return bool(_OBJECT_ID_PATTERN.match(value)) and value != NULL_ID


@dataclass(frozen=True)
class RepositoryNode:
    """Handle to an object in the source repository."""
    object_id: str                    # r_object_id
    name: str                         # object_name
    node_type: NodeType               # Folder, Document or Other
    folder_path: Optional[str] = None # r_folder_path[0] (folders only)
    content_id: Optional[str] = None  # i_contents_id (documents only)
    content_size: int = 0             # r_full_content_size
    format_extension: str = ""        # DOS extension of a_content_type
    version_labels: Tuple[str, ...] = ()  # r_version_label

    @property
    def is_folder(self) -> bool:
        return self.node_type is NodeType.FOLDER

    @property
    def is_document(self) -> bool:
        return self.node_type is NodeType.DOCUMENT

    @property
    def implicit_version_label(self) -> Optional[str]:
        """The numeric version label (e.g. "1.2"), or the first label if none is numeric."""
        for label in self.version_labels:
            if _NUMERIC_LABEL_PATTERN.match(label):
                return label
        return self.version_labels[0] if self.version_labels else None


@dataclass(frozen=True)
class ContentObject:
    """The dmr_content object referenced by a document."""
    object_id: str                    # r_object_id of the dmr_content
    parked_state: int = 0             # i_parked_state, non-zero when parked on BOCS


@dataclass(frozen=True)
class FolderPath:
    """Repository folder path, e.g. ``/Temp/Reports``, as ordered segments."""
    segments: Tuple[str, ...]

    @classmethod
    def parse(cls, path: str) -> "FolderPath":
        return cls(tuple(part for part in path.split("/") if part))

    @property
    def repository_path(self) -> str:
        return "/" + "/".join(self.segments)

    def child(self, name: str) -> "FolderPath":
        return FolderPath(self.segments + (name,))

    def local_path(self, target: Path) -> Path:
        """Mirror this folder under the local target directory."""
        return target.joinpath(*self.segments)

    def __str__(self) -> str:
        return self.repository_path


@dataclass
class ExportFailure:
    """A document whose content could not be written to disk."""
    object_id: str
    name: str
    target: Optional[Path]
    message: str


@dataclass
class RunCounters:
    """Counters accumulated during a traversal.

    ``documents_exported`` counts export attempts: every document reached by
    the walk is counted before its content is checked. ``files_written``
    counts documents that actually produced a file.
    """
    folders_exported: int = 0
    documents_exported: int = 0
    files_written: int = 0
    skipped: Dict[SkipReason, int] = field(default_factory=dict)
    failures: List[ExportFailure] = field(default_factory=list)

    def record_skip(self, reason: SkipReason) -> None:
        self.skipped[reason] = self.skipped.get(reason, 0) + 1

    def record_outcome(self, outcome: "ExportOutcome") -> None:
        """Count the result of one content export step."""
        if outcome.written:
            self.files_written += 1
        elif outcome.skip_reason is not None:
            self.record_skip(outcome.skip_reason)
        elif outcome.failure is not None:
            self.failures.append(outcome.failure)

    @property
    def total_skipped(self) -> int:
        return sum(self.skipped.values())

    def merge(self, other: "RunCounters") -> "RunCounters":
        """Fold another set of counters into this one and return self."""
        self.folders_exported += other.folders_exported
        self.documents_exported += other.documents_exported
        self.files_written += other.files_written
        for reason, count in other.skipped.items():
            self.skipped[reason] = self.skipped.get(reason, 0) + count
        self.failures.extend(other.failures)
        return self


@dataclass
class ExportSummary:
    """Summary of an export run returned by ExportOrchestrator."""
    source: str = ""                  # Repository folder path exported
    target: Optional[Path] = None     # Local target directory
    all_versions: bool = False        # Whether all versions were exported
    expected_folders: int = 0         # Sub folders found by the pre-count query
    expected_documents: int = 0       # Documents with content found by the pre-count query
    counters: RunCounters = field(default_factory=RunCounters)
    duration_seconds: float = 0.0     # Total run duration
    log_file: Optional[Path] = None   # Run log written to the target directory

    @property
    def errors(self) -> List[str]:
        return [
            f"Could not export {failure.name} [{failure.object_id}]: {failure.message}"
            for failure in self.counters.failures
        ]


@dataclass
class ExportOutcome:
    """Result of handing one document to the content export step.

    Exactly one of ``path``, ``skip_reason`` and ``failure`` is set.
    """
    node: RepositoryNode
    path: Optional[Path] = None
    skip_reason: Optional[SkipReason] = None
    failure: Optional[ExportFailure] = None

    @property
    def written(self) -> bool:
        return self.path is not None
