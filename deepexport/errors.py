"""Exception hierarchy for the Documentum Deep Export tool.

Per-run conditions are raised as exceptions and abort the export. Per-object
conditions (skips and failed content retrieval) are recorded on the run
counters instead; ContentError is the one per-object exception, raised by
repository backends and caught by the content export step.
"""


class DeepExportError(Exception):
    """Base class for all export errors."""


class ConfigError(DeepExportError):
    """Missing or invalid settings, or an unusable target directory."""


class PreconditionError(DeepExportError):
    """The source folder does not exist in the repository."""


class AuthError(DeepExportError):
    """A repository session could not be established."""


class QueryError(DeepExportError):
    """A DQL query could not be executed."""

    def __init__(self, message: str, query: str = "") -> None:
        super().__init__(message)
        self.query = query


class ContentError(DeepExportError):
    """The content of a single document could not be retrieved."""
