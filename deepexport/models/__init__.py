"""
Models package for the Documentum Deep Export tool.

This package provides convenient imports for all data models:
- NodeType: Enum classifying repository objects
- SkipReason: Enum of reasons an object produced no file
- RepositoryNode: Repository object handle
- ContentObject: dmr_content object handle
- FolderPath: Repository folder path
- ExportFailure: Failed document export record
- ExportOutcome: Result of one content export step
- RunCounters: Traversal counters
- ExportSummary: Export run summary
"""

from .node_type import NodeType
from .skip_reason import SkipReason
from .data_models import (
    NULL_ID,
    ContentObject,
    ExportFailure,
    ExportOutcome,
    ExportSummary,
    FolderPath,
    RepositoryNode,
    RunCounters,
    is_object_id,
)

__all__ = [
    "NULL_ID",
    "NodeType",
    "SkipReason",
    "RepositoryNode",
    "ContentObject",
    "FolderPath",
    "ExportFailure",
    "ExportOutcome",
    "RunCounters",
    "ExportSummary",
    "is_object_id",
]
