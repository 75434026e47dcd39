"""
SkipReason enum for objects that are not exported.

Skips are per-object and never abort a run. Each reason carries the text
written to the export log, in the order the checks are evaluated:
1. Not a document - the child is neither a folder nor a document
2. No content association - the document has no content object reference
3. Unresolvable content object - the reference does not resolve
4. Parked content - the content lives on a remote (BOCS) cache server
5. No content - the document has no content stream
"""

from enum import Enum


class SkipReason(Enum):
    """Encodes why a repository object produced no file."""
    NOT_A_DOCUMENT = "not_a_document"
    NO_CONTENT_ASSOCIATION = "no_content_association"
    UNRESOLVABLE_CONTENT_OBJECT = "unresolvable_content_object"
    PARKED_CONTENT = "parked_content"
    NO_CONTENT = "no_content"

    @property
    def log_text(self) -> str:
        """Human readable reason used in export log lines."""
        return _LOG_TEXT[self]


_LOG_TEXT = {
    SkipReason.NOT_A_DOCUMENT: "Not a document",
    SkipReason.NO_CONTENT_ASSOCIATION: "Object has no associated dmr_content object",
    SkipReason.UNRESOLVABLE_CONTENT_OBJECT: "Cannot get associated dmr_content object",
    SkipReason.PARKED_CONTENT: "Object is parked",
    SkipReason.NO_CONTENT: "No content",
}
