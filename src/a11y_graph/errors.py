# src/a11y_graph/errors.py
from typing import List, Optional


class A11yGraphError(Exception):
    """Base class for all errors raised by the document model engine."""


class FragmentParseError(A11yGraphError):
    """
    Raised by a fragment producer when one source text cannot be turned into
    its fragment type. The document builder catches it, records a warning and
    continues with the remaining fragments.
    """

    def __init__(self, source_file: str, reason: str, line: Optional[int] = None):
        self.source_file = source_file
        self.reason = reason
        self.line = line
        where = f"{source_file}:{line}" if line else source_file
        super().__init__(f"Could not parse {where}: {reason}")


class DocumentBuildError(A11yGraphError):
    """Raised when sources were supplied but not a single fragment could be parsed."""

    def __init__(self, warnings: List["object"]):
        self.warnings = warnings
        files = ", ".join(getattr(w, "source_file", "?") for w in warnings)
        super().__init__(f"No fragment could be parsed ({files})")


class GraphStateError(A11yGraphError):
    """Programmer error: the graph was used in a way its lifecycle forbids."""


class ReadOnlyGraphError(A11yGraphError):
    """Programmer error: attempted mutation of a merged graph or a read-only view."""


class BuildCancelled(A11yGraphError):
    """Raised between fragment parse steps when a build's cancel flag is set."""
