"""Paged reading of query results.

Repositories cap the number of rows a single query result may return. The
PagedRowReader hides that cap: it re-issues the query one page at a time,
continuing after the last key seen, and presents the pages as one lazy
sequence of rows.

Example:
    >>> from deepexport.scanning import PagedRowReader
    >>> reader = PagedRowReader(session, children_query(folder.object_id), page_size=4000)
    >>> while reader.has_next():
    ...     row = reader.next()
    ...     print(row["r_object_id"])
"""

import logging
from collections import deque
from typing import Deque, List, Optional

from deepexport.errors import QueryError
from deepexport.repository.base import RepositorySession, Row
from deepexport.repository.dql import OBJECT_ID_COLUMN, paged_query

logger = logging.getLogger(__name__)

# Rows requested per page unless the session caps results lower
DEFAULT_PAGE_SIZE = 4000


class PagedRowReader:
    """Single-pass, non-restartable sequence of rows read page by page.

    Each page is read completely into memory and its cursor closed before
    any of its rows is handed out, so no cursor is open while the caller
    processes rows. A page shorter than the page size ends the sequence.

    Rows come back sorted on the key column, not in the repository's
    natural result order.

    Attributes:
        pages_fetched: Number of page queries executed so far.
        rows_read: Number of rows handed out so far.
    """

    def __init__(
        self,
        session: RepositorySession,
        query: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        key: str = OBJECT_ID_COLUMN,
    ) -> None:
        """Initialize the reader. No query is executed until rows are requested.

        Args:
            session: Session used to execute the page queries.
            query: Base query; must contain a where clause and select key.
            page_size: Maximum rows per page. Lowered to the session's
                result cap when that is smaller.
            key: Column used to order pages and continue between them.

        Raises:
            ValueError: If page_size is not positive.
        """
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")

        cap = session.max_result_rows
        self._session = session
        self._query = query
        self._key = key
        self._page_size = min(page_size, cap) if cap else page_size
        self._page: Deque[Row] = deque()
        self._last_key: Optional[str] = None
        self._exhausted = False
        self.pages_fetched = 0
        self.rows_read = 0

    @property
    def page_size(self) -> int:
        return self._page_size

    def has_next(self) -> bool:
        """Return True if another row is available, fetching a page if needed.

        Raises:
            QueryError: If a page query cannot be executed.
        """
        if not self._page and not self._exhausted:
            self._fetch_page()
        return bool(self._page)

    def next(self) -> Row:
        """Return the next row.

        Raises:
            StopIteration: If the sequence is exhausted.
            QueryError: If a page query cannot be executed.
        """
        if not self.has_next():
            raise StopIteration
        self.rows_read += 1
        return self._page.popleft()

    def __iter__(self) -> "PagedRowReader":
        return self

    def __next__(self) -> Row:
        return self.next()

    def _fetch_page(self) -> None:
        query = paged_query(self._query, after=self._last_key, limit=self._page_size, key=self._key)
        page: List[Row] = []

        with self._session.execute(query) as cursor:
            for row in cursor:
                page.append(row)
                if len(page) >= self._page_size:
                    break

        self.pages_fetched += 1
        if len(page) < self._page_size:
            self._exhausted = True

        if page:
            try:
                self._last_key = page[-1][self._key]
            except KeyError:
                raise QueryError(f"Paged query did not return key column '{self._key}'", query)

        logger.debug(f"Fetched page {self.pages_fetched} with {len(page)} rows")
        self._page.extend(page)
