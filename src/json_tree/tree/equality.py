"""Structural comparison of two trees.

Two trees are structurally equal when they have the same kinds, the same
values, and the same members in the same order (keys compared byte for byte,
duplicates included).  Reference nodes compare by the content they borrow,
so a reference and its origin are equal.

Differences are reported as JSON Pointer paths (RFC 6901):
- the root is "" (empty string);
- each level appends "/{key_or_index}", escaping "~" as "~0" and "/" as "~1".
"""

from __future__ import annotations

import math

from json_tree.tree.nodes import Node, NodeKind

__all__ = ["find_difference", "trees_equal"]


def trees_equal(left: Node, right: Node) -> bool:
    """Return True if ``left`` and ``right`` are structurally equal."""
    return find_difference(left, right) is None


def find_difference(left: Node, right: Node) -> str | None:
    """Return the JSON Pointer of the first difference, or None if equal.

    The walk is depth-first in chain order and uses an explicit stack.
    """
    stack: list[tuple[Node, Node, str]] = [(left, right, "")]
    while stack:
        a, b, path = stack.pop()
        if a.kind is not b.kind:
            return path
        kind = a.kind
        if kind is NodeKind.NUMBER:
            if not _same_number(a.number_value, b.number_value):
                return path
        elif kind in (NodeKind.STRING, NodeKind.RAW):
            if (a.text_bytes or b"") != (b.text_bytes or b""):
                return path
        elif kind in (NodeKind.ARRAY, NodeKind.OBJECT):
            a_children = a.children
            b_children = b.children
            if len(a_children) != len(b_children):
                return path
            pairs = []
            for index, (ca, cb) in enumerate(zip(a_children, b_children, strict=True)):
                if kind is NodeKind.OBJECT:
                    if ca.key_bytes != cb.key_bytes:
                        return f"{path}/{_escape(ca.key or '')}"
                    segment = _escape(ca.key or "")
                else:
                    segment = str(index)
                pairs.append((ca, cb, f"{path}/{segment}"))
            stack.extend(reversed(pairs))
    return None


def _same_number(a: float, b: float) -> bool:
    if math.isnan(a) and math.isnan(b):
        return True
    # -0.0 and 0.0 print differently, so they are different values here.
    return a == b and math.copysign(1.0, a) == math.copysign(1.0, b)


def _escape(segment: str) -> str:
    return segment.replace("~", "~0").replace("/", "~1")
