"""Repository access package for Deep Export.

This package defines the collaborator interfaces the export engine depends
on, the DQL queries it issues, and a registry of backends:

- RepositorySession / RowCursor: abstract session and cursor interfaces.
- dql: query builders for existence checks, counts and folder children.
- memory: an in-memory backend, also loadable from a JSON snapshot.

Example:
    >>> from deepexport.repository import connect
    >>> with connect("snapshot.json", "dmadmin", "secret") as session:
    ...     folder = session.get_folder_by_path("/Temp")
"""

from typing import Callable, Dict

from deepexport.errors import ConfigError

from . import memory
from .base import RepositorySession, Row, RowCursor
from .memory import MemoryRepository, MemorySession

# Backend name -> factory(repository, user, secret)
BACKENDS: Dict[str, Callable[..., RepositorySession]] = {
    "memory": memory.connect,
}


def connect(repository, user: str, secret: str, backend: str = "memory") -> RepositorySession:
    """Open a session with a repository through the named backend.

    Raises:
        ConfigError: If the backend is not registered.
        AuthError: If the session cannot be established.
    """
    try:
        factory = BACKENDS[backend]
    except KeyError:
        raise ConfigError(
            f"Unknown repository backend '{backend}'. Available: {', '.join(sorted(BACKENDS))}"
        )
    return factory(repository, user, secret)


__all__ = [
    "BACKENDS",
    "connect",
    "RepositorySession",
    "Row",
    "RowCursor",
    "MemoryRepository",
    "MemorySession",
]
