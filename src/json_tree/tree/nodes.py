"""Node and NodeKind: the in-memory JSON tree.

A ``Node`` holds one JSON value.  Containers (ARRAY, OBJECT) own an ordered
list of children; every child knows its parent, which is how ``next``/``prev``
are answered and how a node is unlinked.  Ownership is strict:

- a node is linked into at most one parent at a time;
- deleting a root deletes its whole subtree, releasing every block the
  subtree owns back to the allocator that produced it;
- a linked node is never deleted on its own, it must be detached first.

Reference nodes borrow the text or children of an *origin* node instead of
owning a copy.  Deleting a reference releases only its own header (and its
key, if owned).  Reading borrowed content after the origin has been deleted
raises ``ReferenceInvalidatedError``.

Strings are stored as UTF-8 bytes.  The ``text``/``key`` properties decode
them with ``surrogateescape`` so arbitrary input bytes survive a round trip.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from enum import StrEnum, auto

from json_tree.errors import NodeLifecycleError, ReferenceInvalidatedError
from json_tree.hooks import NODE_HEADER_SIZE, Allocator, allocate_block, resolve_allocator

__all__ = ["INT_MAX", "INT_MIN", "Node", "NodeKind", "to_bytes", "truncate_to_int"]

INT_MAX = 2**31 - 1
INT_MIN = -(2**31)


class NodeKind(StrEnum):
    """The eight kinds of JSON node.

    StrEnum values are the lowercased member names:
    - NULL, FALSE, TRUE -> literal keywords
    - NUMBER            -> double with an integer snapshot
    - STRING            -> escaped on output
    - RAW               -> emitted verbatim on output
    - ARRAY, OBJECT     -> containers
    """

    NULL = auto()
    FALSE = auto()
    TRUE = auto()
    NUMBER = auto()
    STRING = auto()
    RAW = auto()
    ARRAY = auto()
    OBJECT = auto()


CONTAINER_KINDS = frozenset({NodeKind.ARRAY, NodeKind.OBJECT})
TEXT_KINDS = frozenset({NodeKind.STRING, NodeKind.RAW})


def truncate_to_int(value: float) -> int:
    """Integer snapshot of a double: truncation toward zero, saturating at 32 bits."""
    if math.isnan(value):
        return 0
    if value >= INT_MAX:
        return INT_MAX
    if value <= INT_MIN:
        return INT_MIN
    return int(value)


def to_bytes(value: str | bytes | bytearray | memoryview) -> bytes:
    """Return the UTF-8 bytes for a str, or a bytes copy of a bytes-like value.

    Raises:
        UnicodeEncodeError: If a str holds a lone surrogate outside
            U+DC80..U+DCFF (the ``surrogateescape`` range).
        TypeError: If ``value`` is neither str nor bytes-like.
    """
    if isinstance(value, str):
        return value.encode("utf-8", "surrogateescape")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    msg = f"expected str or bytes-like, got {type(value)!r}"
    raise TypeError(msg)


def _decode(data: bytes | bytearray) -> str:
    return bytes(data).decode("utf-8", "surrogateescape")


class Node:
    """A single JSON value and its place in the tree.

    Nodes are normally produced by the parser or by the constructors in
    ``json_tree.tree.builder``; calling ``Node(kind)`` directly gives an empty
    value of that kind (0 for numbers; a string without text prints as
    ``""``).

    Args:
        kind:      The node kind.
        allocator: Allocator for the header and every block this node will
            own.  Defaults to the process-wide hooks.
    """

    __slots__ = (
        "_allocator",
        "_children",
        "_deleted",
        "_header",
        "_int",
        "_key",
        "_key_is_const",
        "_kind",
        "_number",
        "_origin",
        "_parent",
        "_text",
    )

    def __init__(self, kind: NodeKind, *, allocator: Allocator | None = None) -> None:
        self._allocator = resolve_allocator(allocator)
        self._header = allocate_block(self._allocator, NODE_HEADER_SIZE)
        self._kind = NodeKind(kind)
        self._number = 0.0
        self._int = 1 if self._kind is NodeKind.TRUE else 0
        self._text: bytearray | None = None
        self._key: bytes | bytearray | None = None
        self._key_is_const = False
        self._children: list[Node] = []
        self._parent: Node | None = None
        self._origin: Node | None = None
        self._deleted = False

    # ------------------------------------------------------------------
    # Identity and state
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        if self._deleted:
            return "<Node deleted>"
        parts = [self._kind.value]
        if self._key is not None:
            parts.append(f"key={_decode(self._key)!r}")
        if self._kind is NodeKind.NUMBER:
            parts.append(repr(self._number))
        if self._origin is not None:
            parts.append("reference")
        elif self._kind in TEXT_KINDS and self._text is not None:
            parts.append(repr(_decode(self._text)))
        elif self._kind in CONTAINER_KINDS:
            parts.append(f"children={len(self._children)}")
        return f"<Node {' '.join(parts)}>"

    @property
    def allocator(self) -> Allocator:
        """The allocator that owns this node's blocks."""
        return self._allocator

    @property
    def is_deleted(self) -> bool:
        return self._deleted

    @property
    def is_reference(self) -> bool:
        """True when text/children are borrowed from another node."""
        self._check_alive()
        return self._origin is not None

    @property
    def origin(self) -> Node | None:
        """The node a reference borrows from; None for ordinary nodes."""
        self._check_alive()
        return self._origin

    @property
    def kind(self) -> NodeKind:
        self._check_alive()
        return self._kind

    # ------------------------------------------------------------------
    # Type predicates
    # ------------------------------------------------------------------

    @property
    def is_null(self) -> bool:
        return self.kind is NodeKind.NULL

    @property
    def is_false(self) -> bool:
        return self.kind is NodeKind.FALSE

    @property
    def is_true(self) -> bool:
        return self.kind is NodeKind.TRUE

    @property
    def is_bool(self) -> bool:
        return self.kind in (NodeKind.TRUE, NodeKind.FALSE)

    @property
    def is_number(self) -> bool:
        return self.kind is NodeKind.NUMBER

    @property
    def is_string(self) -> bool:
        return self.kind is NodeKind.STRING

    @property
    def is_raw(self) -> bool:
        return self.kind is NodeKind.RAW

    @property
    def is_array(self) -> bool:
        return self.kind is NodeKind.ARRAY

    @property
    def is_object(self) -> bool:
        return self.kind is NodeKind.OBJECT

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    @property
    def number_value(self) -> float:
        self._check_alive()
        return self._number

    @property
    def int_value(self) -> int:
        """Truncated integer snapshot of ``number_value`` (1 for TRUE nodes)."""
        self._check_alive()
        return self._int

    @property
    def text_bytes(self) -> bytes | None:
        """UTF-8 text of a STRING/RAW node, None for other kinds."""
        text = self._content()._text
        return None if text is None else bytes(text)

    @property
    def text(self) -> str | None:
        text = self._content()._text
        return None if text is None else _decode(text)

    @property
    def key_bytes(self) -> bytes | None:
        """Member name when the node belongs to an object."""
        self._check_alive()
        return None if self._key is None else bytes(self._key)

    @property
    def key(self) -> str | None:
        self._check_alive()
        return None if self._key is None else _decode(self._key)

    @property
    def key_is_const(self) -> bool:
        """True when the key is borrowed from the caller and never released here."""
        self._check_alive()
        return self._key_is_const

    def set_number_value(self, value: float) -> float:
        """Set the double and resynchronise the integer snapshot."""
        self._require_kind(NodeKind.NUMBER)
        self._number = float(value)
        self._int = truncate_to_int(self._number)
        return self._number

    def set_int_value(self, value: int) -> int:
        """Set an integral value; the double receives the same value."""
        self._require_kind(NodeKind.NUMBER)
        self._number = float(value)
        self._int = max(INT_MIN, min(INT_MAX, int(value)))
        return self._int

    def set_bool_value(self, value: bool) -> bool:
        """Flip a TRUE/FALSE node to the given truth value."""
        if not self.is_bool:
            msg = f"set_bool_value requires a true/false node, got {self._kind}"
            raise TypeError(msg)
        self._kind = NodeKind.TRUE if value else NodeKind.FALSE
        self._int = 1 if value else 0
        return bool(value)

    def set_text_value(self, value: str | bytes) -> None:
        """Replace the owned text of a STRING/RAW node."""
        self._check_alive()
        if self._kind not in TEXT_KINDS:
            msg = f"set_text_value requires a string or raw node, got {self._kind}"
            raise TypeError(msg)
        if self._origin is not None:
            msg = "cannot set the text of a reference node"
            raise TypeError(msg)
        self._own_text(to_bytes(value))

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    @property
    def parent(self) -> Node | None:
        self._check_alive()
        return self._parent

    @property
    def children(self) -> tuple[Node, ...]:
        """Snapshot of the (possibly borrowed) children in chain order."""
        return tuple(self._content()._children)

    @property
    def child(self) -> Node | None:
        """First child, or None for an empty container or a scalar."""
        children = self._content()._children
        return children[0] if children else None

    @property
    def next(self) -> Node | None:
        """Following sibling in the parent's chain."""
        parent = self.parent
        if parent is None:
            return None
        siblings = parent._children
        index = parent._index_of(self)
        return siblings[index + 1] if index + 1 < len(siblings) else None

    @property
    def prev(self) -> Node | None:
        """Preceding sibling in the parent's chain."""
        parent = self.parent
        if parent is None:
            return None
        index = parent._index_of(self)
        return parent._children[index - 1] if index > 0 else None

    def __iter__(self) -> Iterator[Node]:
        return iter(self.children)

    def delete(self) -> None:
        """Release this root node and everything it owns.

        The traversal uses an explicit stack, so arbitrarily deep trees are
        safe.  References inside the subtree release only their own header
        and owned key; the content they borrow stays with its origin.

        Raises:
            NodeLifecycleError: If the node is still linked into a parent, or
                was already deleted.
        """
        self._check_alive()
        if self._parent is not None:
            msg = "cannot delete a node that is still linked; detach it first"
            raise NodeLifecycleError(msg)
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            allocator = node._allocator
            if node._origin is None:
                stack.extend(node._children)
                if node._text is not None:
                    allocator.release(node._text)
            if node._key is not None and not node._key_is_const:
                allocator.release(node._key)  # type: ignore[arg-type]
            allocator.release(node._header)
            node._children = []
            node._text = None
            node._key = None
            node._parent = None
            node._origin = None
            node._deleted = True

    # ------------------------------------------------------------------
    # Engine-internal helpers (used by parser, builder and mutation)
    # ------------------------------------------------------------------

    def _check_alive(self) -> None:
        if self._deleted:
            msg = "node has been deleted"
            raise NodeLifecycleError(msg)

    def _require_kind(self, kind: NodeKind) -> None:
        self._check_alive()
        if self._kind is not kind:
            msg = f"operation requires a {kind} node, got {self._kind}"
            raise TypeError(msg)

    def _content(self) -> Node:
        """Return the node that actually holds this node's text/children."""
        self._check_alive()
        origin = self._origin
        if origin is None:
            return self
        if origin._deleted:
            msg = "the origin of this reference node has been deleted"
            raise ReferenceInvalidatedError(msg)
        return origin

    def _own_text(self, data: bytes | bytearray) -> None:
        block = allocate_block(self._allocator, len(data))
        block[:] = data
        if self._text is not None:
            self._allocator.release(self._text)
        self._text = block

    def _adopt_text(self, block: bytearray) -> None:
        """Take ownership of a block already allocated from this node's allocator."""
        if self._text is not None:
            self._allocator.release(self._text)
        self._text = block

    def _set_owned_key(self, data: bytes | bytearray) -> None:
        block = allocate_block(self._allocator, len(data))
        block[:] = data
        self._drop_key()
        self._key = block
        self._key_is_const = False

    def _adopt_key(self, block: bytearray) -> None:
        self._drop_key()
        self._key = block
        self._key_is_const = False

    def _set_const_key(self, key: bytes | bytearray) -> None:
        self._drop_key()
        self._key = key
        self._key_is_const = True

    def _drop_key(self) -> None:
        if self._key is not None and not self._key_is_const:
            self._allocator.release(self._key)  # type: ignore[arg-type]
        self._key = None
        self._key_is_const = False

    def _require_container(self) -> None:
        self._check_alive()
        if self._kind not in CONTAINER_KINDS:
            msg = f"{self._kind} node has no children"
            raise TypeError(msg)
        if self._origin is not None:
            msg = "cannot change the children of a reference node"
            raise TypeError(msg)

    def _index_of(self, child: Node) -> int:
        for index, candidate in enumerate(self._children):
            if candidate is child:
                return index
        msg = "node is not a child of this parent"
        raise NodeLifecycleError(msg)

    def _link(self, child: Node, index: int | None = None) -> None:
        """Link a fresh, parentless node at ``index`` (append when None)."""
        child._parent = self
        if index is None:
            self._children.append(child)
        else:
            self._children.insert(index, child)

    def _unlink_at(self, index: int) -> Node:
        child = self._children.pop(index)
        child._parent = None
        return child

    def _splice_at(self, index: int, replacement: Node) -> Node:
        old = self._children[index]
        self._children[index] = replacement
        replacement._parent = self
        old._parent = None
        return old

