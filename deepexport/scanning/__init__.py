"""Repository scanning package for Deep Export.

This package provides the two classes that read the repository tree:

- PagedRowReader: Presents a capped query result as one lazy sequence of
  rows by re-issuing the query page by page.
- FolderWalker: Walks a folder tree depth-first, mirroring folders as local
  directories and handing documents to the content export step.

Example:
    >>> from deepexport.scanning import FolderWalker, PagedRowReader
    >>> reader = PagedRowReader(session, children_query(folder_id), page_size=500)
    >>> rows = list(reader)
"""

from .paged_reader import DEFAULT_PAGE_SIZE, PagedRowReader
from .folder_walker import FolderWalker

__all__ = ["DEFAULT_PAGE_SIZE", "FolderWalker", "PagedRowReader"]
