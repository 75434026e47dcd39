"""File naming for exported documents.

Documents are written under their object name with a format extension. The
name is sanitized minimally: ``:`` becomes ``_`` and both slashes become
``-``. Nothing else (case, whitespace, Unicode) is touched.

Names never collide with existing files: when ``Report.pdf`` exists the next
candidates are ``Report_(1).pdf``, ``Report_(2).pdf`` and so on. The check is
not atomic; exports run on a single thread.

Example:
    >>> unique_export_path(Path("/export/Temp"), "Q1: Sales/Costs", "pdf")
    PosixPath('/export/Temp/Q1_ Sales-Costs.pdf')
"""

import os
from pathlib import Path
from typing import Optional

_REPLACEMENTS = (
    (":", "_"),
    ("/", "-"),
    ("\\", "-"),
)


def sanitize_file_name(name: str) -> str:
    """Replace path-hostile characters in an object name."""
    for old, new in _REPLACEMENTS:
        name = name.replace(old, new)
    return name


def normalize_extension(extension: Optional[str]) -> str:
    """Return extension with a single leading dot, or "" if there is none."""
    if not extension:
        return ""
    extension = extension.lstrip(".")
    return f".{extension}" if extension else ""


def build_file_name(
    name: str,
    extension: Optional[str],
    version_label: Optional[str] = None,
    counter: int = 0,
) -> str:
    """Build a candidate file name.

    Args:
        name: Object name; sanitized here.
        extension: Format extension, with or without a leading dot.
        version_label: Appended as ``-v<label>`` when given.
        counter: Collision counter; 0 means no suffix.
    """
    stem = sanitize_file_name(name)
    if version_label:
        stem += f"-v{version_label}"
    if counter:
        stem += f"_({counter})"
    return stem + normalize_extension(extension)


def unique_export_path(
    directory: Path,
    name: str,
    extension: Optional[str],
    version_label: Optional[str] = None,
) -> Path:
    """Return the first candidate path in directory that does not exist yet."""
    counter = 0
    while True:
        candidate = directory / build_file_name(name, extension, version_label, counter)
        # lexists so a dangling symlink is never written through
        if not os.path.lexists(candidate):
            return candidate
        counter += 1
