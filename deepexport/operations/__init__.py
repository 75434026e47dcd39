"""Document export operations package for Deep Export.

This package provides the file naming policy and the ContentExporter class
that writes a single document's content to disk.

Example:
    >>> from deepexport.operations import ContentExporter, unique_export_path
    >>> exporter = ContentExporter(session, all_versions=False)
    >>> outcome = exporter.export(Path("/export/Temp"), document)
    >>> print(outcome.path or outcome.skip_reason)
"""

from .content_export import ContentExporter
from .file_naming import (
    build_file_name,
    normalize_extension,
    sanitize_file_name,
    unique_export_path,
)

__all__ = [
    "ContentExporter",
    "build_file_name",
    "normalize_extension",
    "sanitize_file_name",
    "unique_export_path",
]
