"""Constructors for JSON nodes, and conversion to and from Python values.

Scalar and container constructors mirror the node kinds one to one.  The bulk
constructors take a whole sequence of primitives and return an ARRAY; they
route the input through numpy so that the element type is applied exactly
(``create_int_array`` truncates to 32-bit ints, ``create_float_array`` rounds
through single precision).

Every constructor is all-or-nothing: if the allocator denies a request
part-way, whatever was built so far is released before the
``AllocationError`` propagates.

``TreeBuilder`` converts ordinary Python values (dict, list, str, numbers,
bool, None) into a tree, and ``to_python`` converts a tree back.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import numpy as np
import numpy.typing as npt

from json_tree.errors import NodeLifecycleError
from json_tree.hooks import Allocator
from json_tree.tree.nodes import Node, NodeKind, to_bytes, truncate_to_int

__all__ = [
    "JsonValue",
    "TreeBuilder",
    "create_array",
    "create_bool",
    "create_double_array",
    "create_false",
    "create_float_array",
    "create_int_array",
    "create_null",
    "create_number",
    "create_object",
    "create_raw",
    "create_string",
    "create_string_array",
    "create_true",
    "to_python",
]

# Type alias for valid JSON values
JsonValue = dict[str, Any] | list[Any] | str | int | float | bool | None


# ---------------------------------------------------------------------------
# Scalars and empty containers
# ---------------------------------------------------------------------------


def create_null(*, allocator: Allocator | None = None) -> Node:
    return Node(NodeKind.NULL, allocator=allocator)


def create_true(*, allocator: Allocator | None = None) -> Node:
    return Node(NodeKind.TRUE, allocator=allocator)


def create_false(*, allocator: Allocator | None = None) -> Node:
    return Node(NodeKind.FALSE, allocator=allocator)


def create_bool(value: bool, *, allocator: Allocator | None = None) -> Node:
    return Node(NodeKind.TRUE if value else NodeKind.FALSE, allocator=allocator)


def create_number(value: float, *, allocator: Allocator | None = None) -> Node:
    """Create a NUMBER node; the integer snapshot is derived from ``value``."""
    node = Node(NodeKind.NUMBER, allocator=allocator)
    node._number = float(value)
    node._int = truncate_to_int(node._number)
    return node


def create_string(value: str | bytes, *, allocator: Allocator | None = None) -> Node:
    """Create a STRING node owning a copy of ``value``."""
    return _create_text(NodeKind.STRING, value, allocator)


def create_raw(value: str | bytes, *, allocator: Allocator | None = None) -> Node:
    """Create a RAW node; its text is printed verbatim, without quoting."""
    return _create_text(NodeKind.RAW, value, allocator)


def create_array(*, allocator: Allocator | None = None) -> Node:
    return Node(NodeKind.ARRAY, allocator=allocator)


def create_object(*, allocator: Allocator | None = None) -> Node:
    return Node(NodeKind.OBJECT, allocator=allocator)


def _create_text(kind: NodeKind, value: str | bytes, allocator: Allocator | None) -> Node:
    data = to_bytes(value)
    node = Node(kind, allocator=allocator)
    try:
        node._own_text(data)
    except Exception:
        node.delete()
        raise
    return node


# ---------------------------------------------------------------------------
# Bulk array constructors
# ---------------------------------------------------------------------------


def create_int_array(
    numbers: Iterable[int] | npt.ArrayLike, *, allocator: Allocator | None = None
) -> Node:
    """Create an ARRAY of NUMBER nodes from C ``int`` values.

    Floats are truncated toward zero; values outside the 32-bit range raise
    ``OverflowError`` (numpy's own check).
    """
    return _create_number_array(np.asarray(numbers, dtype=np.int32), allocator)


def create_float_array(
    numbers: Iterable[float] | npt.ArrayLike, *, allocator: Allocator | None = None
) -> Node:
    """Create an ARRAY of NUMBER nodes from single-precision values.

    Each value is rounded to float32 first, so ``0.1`` becomes
    ``0.10000000149011612`` exactly as a C ``float`` would.
    """
    return _create_number_array(np.asarray(numbers, dtype=np.float32), allocator)


def create_double_array(
    numbers: Iterable[float] | npt.ArrayLike, *, allocator: Allocator | None = None
) -> Node:
    """Create an ARRAY of NUMBER nodes from double-precision values."""
    return _create_number_array(np.asarray(numbers, dtype=np.float64), allocator)


def create_string_array(
    strings: Iterable[str | bytes], *, allocator: Allocator | None = None
) -> Node:
    """Create an ARRAY of STRING nodes, each owning a copy of its input."""
    array = create_array(allocator=allocator)
    try:
        for value in strings:
            array._link(create_string(value, allocator=array.allocator))
    except Exception:
        array.delete()
        raise
    return array


def _create_number_array(values: np.ndarray, allocator: Allocator | None) -> Node:
    if values.ndim != 1:
        msg = f"expected a one-dimensional sequence, got shape {values.shape}"
        raise ValueError(msg)
    array = create_array(allocator=allocator)
    try:
        for value in values.tolist():
            array._link(create_number(value, allocator=array.allocator))
    except Exception:
        array.delete()
        raise
    return array


# ---------------------------------------------------------------------------
# Python value conversion
# ---------------------------------------------------------------------------


@dataclass
class TreeBuilder:
    """Converts any valid Python JSON value into a Node tree.

    The dispatch order is critical: bool MUST be checked before int because
    bool is a subclass of int in Python (isinstance(True, int) is True).

    Object keys must be ``str`` (or bytes); every key is copied into an
    owned block.  Tuples are accepted as arrays.

    Example::

        builder = TreeBuilder()
        root = builder.build({"user": {"name": "John", "tags": ["a", "b"]}})
        # root: OBJECT -> "user": OBJECT -> "name": STRING, "tags": ARRAY

    Attributes:
        allocator: Allocator for every node built.  None uses the
            process-wide hooks.
    """

    allocator: Allocator | None = None

    def build(self, value: JsonValue) -> Node:
        """Convert a Python value to a Node tree.

        Args:
            value: Any valid JSON value (dict, list, tuple, str, bytes, int,
                float, bool, None).

        Returns:
            The root of a new tree owned by the caller.

        Raises:
            TypeError: If value (or anything nested in it) is not a JSON type.
            AllocationError: If the allocator denies a request; nothing built
                so far is leaked.
        """
        # CRITICAL: bool MUST be checked before int: bool subclasses int in Python
        if isinstance(value, bool):
            return create_bool(value, allocator=self.allocator)

        if isinstance(value, dict):
            return self._build_object(value)

        if isinstance(value, (list, tuple)):
            return self._build_array(value)

        if isinstance(value, (str, bytes)):
            return create_string(value, allocator=self.allocator)

        if isinstance(value, (int, float)):
            return create_number(value, allocator=self.allocator)

        if value is None:
            return create_null(allocator=self.allocator)

        msg = f"Unsupported JSON value type: {type(value)!r}"
        raise TypeError(msg)

    def _build_object(self, obj: dict[str, Any]) -> Node:
        object_node = create_object(allocator=self.allocator)
        try:
            for key, val in obj.items():
                if not isinstance(key, (str, bytes)):
                    msg = f"Object keys must be str, got {type(key)!r}"
                    raise TypeError(msg)
                child = self.build(val)
                object_node._link(child)
                child._set_owned_key(to_bytes(key))
        except Exception:
            object_node.delete()
            raise
        return object_node

    def _build_array(self, arr: list[Any] | tuple[Any, ...]) -> Node:
        array_node = create_array(allocator=self.allocator)
        try:
            for item in arr:
                array_node._link(self.build(item))
        except Exception:
            array_node.delete()
            raise
        return array_node


def to_python(node: Node) -> JsonValue:
    """Convert a tree back into plain Python values.

    Numbers come back as ``float`` (the engine stores doubles).  RAW nodes
    come back as their text.  For objects with duplicate keys the last member
    wins, matching ``json.loads``.  The walk uses an explicit stack, so the
    depth of the tree is not limited by Python's recursion limit.
    """
    if node.is_deleted:
        msg = "node has been deleted"
        raise NodeLifecycleError(msg)
    holder: list[JsonValue] = []
    # (node, destination container, key when the destination is a dict)
    stack: list[tuple[Node, list[Any] | dict[str, Any], str | None]] = [(node, holder, None)]
    while stack:
        current, target, key = stack.pop()
        kind = current.kind
        value: Any
        if kind is NodeKind.ARRAY:
            value = []
            stack.extend((child, value, None) for child in reversed(current.children))
        elif kind is NodeKind.OBJECT:
            value = {}
            stack.extend((child, value, child.key) for child in reversed(current.children))
        elif kind is NodeKind.NUMBER:
            value = current.number_value
        elif kind in (NodeKind.STRING, NodeKind.RAW):
            value = current.text if current.text is not None else ""
        elif kind is NodeKind.NULL:
            value = None
        else:
            value = kind is NodeKind.TRUE
        if isinstance(target, dict):
            target[key or ""] = value
        else:
            target.append(value)
    return holder[0]
