"""Exception hierarchy for json-tree.

Every failure the engine can report is recoverable and surfaces as one of
these exceptions, raised from the call that failed.  Nothing is kept in
module state: the position of a parse failure travels on the exception.

Hierarchy::

    JSONTreeError
    ├── ParseError (also ValueError)
    │   └── NestingTooDeepError
    ├── AllocationError (also MemoryError)
    ├── SizeOverflowError (also OverflowError)
    ├── NodeLifecycleError (also ValueError)
    └── ReferenceInvalidatedError (also RuntimeError)
"""

from __future__ import annotations

__all__ = [
    "AllocationError",
    "JSONTreeError",
    "NestingTooDeepError",
    "NodeLifecycleError",
    "ParseError",
    "ReferenceInvalidatedError",
    "SizeOverflowError",
]


class JSONTreeError(Exception):
    """Base class for all json-tree errors.

    Attributes:
        message:        Human-readable description of the failure.
        original_error: The exception that caused this one, if any.
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ParseError(JSONTreeError, ValueError):
    """The input is not valid JSON (or has trailing bytes when they are forbidden).

    Attributes:
        position: Byte offset of the first offending byte, relative to the
            start of the whole input buffer.
    """

    def __init__(self, message: str, position: int) -> None:
        super().__init__(message)
        self.position = position

    def __str__(self) -> str:
        return f"{self.message} at offset {self.position}"


class NestingTooDeepError(ParseError):
    """Arrays/objects are nested deeper than the configured ceiling."""

    def __init__(self, position: int, max_depth: int) -> None:
        super().__init__(f"nesting exceeds maximum depth of {max_depth}", position)
        self.max_depth = max_depth


class AllocationError(JSONTreeError, MemoryError):
    """The allocator denied a request.

    Attributes:
        size: Number of bytes that were requested.
    """

    def __init__(self, size: int, original_error: Exception | None = None) -> None:
        super().__init__(f"allocation of {size} bytes was denied", original_error)
        self.size = size


class SizeOverflowError(JSONTreeError, OverflowError):
    """A required buffer size exceeds the representable maximum."""

    def __init__(self, requested: int, limit: int) -> None:
        super().__init__(f"buffer size {requested} exceeds the limit of {limit} bytes")
        self.requested = requested
        self.limit = limit


class NodeLifecycleError(JSONTreeError, ValueError):
    """A node was used in a way its ownership state does not allow.

    Raised for use after delete, linking a node that already has a parent,
    linking a node into its own subtree, and deleting a node that is still
    linked into a parent.
    """


class ReferenceInvalidatedError(JSONTreeError, RuntimeError):
    """A reference node was read after the node it borrows from was deleted."""
