"""ParseResult dataclass for parser output.

This module provides the result type returned by ``Parser.parse()`` and
``parse_with_opts()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from json_tree.tree.nodes import Node

__all__ = ["ParseResult"]


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Outcome of a successful parse.

    Attributes:
        root: Root of the new tree.  The caller owns it and releases it with
            ``root.delete()``.
        end: Offset just past the root value, relative to the start of the
            whole input buffer.  Trailing whitespace is not included.
    """

    root: Node
    end: int
