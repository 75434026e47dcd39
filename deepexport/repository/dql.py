"""DQL query builders used by the export engine.

All literal values are quoted with :func:`quote`, which doubles embedded
single quotes as DQL requires.
"""

from typing import Any, Optional

from deepexport.errors import QueryError

from .base import RepositorySession

COUNT_COLUMN = "_cnt"
OBJECT_ID_COLUMN = "r_object_id"


def quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _all_versions(all_versions: bool) -> str:
    return " (ALL)" if all_versions else ""


def folder_exists_query(path: str) -> str:
    return (
        f"select count(*) as {COUNT_COLUMN} from dm_folder "
        f"where any r_folder_path = {quote(path)}"
    )


def count_folders_query(path: str) -> str:
    """Count every folder below path, at any depth."""
    return (
        f"select count(*) as {COUNT_COLUMN} from dm_folder "
        f"where folder({quote(path)}, descend)"
    )


def count_documents_query(path: str, all_versions: bool = False) -> str:
    """Count every document with content below path, at any depth."""
    return (
        f"select count(*) as {COUNT_COLUMN} from dm_document{_all_versions(all_versions)} "
        f"where folder({quote(path)}, descend) and r_full_content_size > 0"
    )


def children_query(folder_id: str, all_versions: bool = False) -> str:
    """Select the direct children of a folder."""
    return (
        f"select {OBJECT_ID_COLUMN} from dm_sysobject{_all_versions(all_versions)} "
        f"where folder(id({quote(folder_id)}))"
    )


def paged_query(
    base: str,
    after: Optional[str] = None,
    limit: Optional[int] = None,
    key: str = OBJECT_ID_COLUMN,
) -> str:
    """Restrict a query to one page of rows ordered by key.

    Keyset continuation needs pages sorted on the key they continue after,
    so the order by clause replaces the repository's own result order.

    Args:
        base: Query with a where clause.
        after: Continue after this key value (exclusive). None for the first page.
        limit: Maximum rows in the page.
        key: Column the pages are keyed and ordered on.
    """
    query = base
    if after is not None:
        query += f" and {key} > {quote(after)}"
    query += f" order by {key}"
    if limit is not None:
        query += f" enable (RETURN_TOP {limit})"
    return query


def query_single_value(
    session: RepositorySession, query: str, column: str = COUNT_COLUMN
) -> Any:
    """Run a query that returns one row and return one of its columns."""
    with session.execute(query) as cursor:
        row = cursor.fetch()
    if row is None or column not in row:
        raise QueryError(f"Query returned no '{column}' value", query)
    return row[column]
