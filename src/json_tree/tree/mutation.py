"""Read and modify trees: lookup, attach, detach, insert, replace, duplicate.

All functions take the container first, the way the rest of the engine's
surface does.  Ownership rules:

- attaching transfers ownership of a parentless node to the container;
- detaching hands an independent root back to the caller;
- replacing deletes the old node, so any handle to it becomes unusable;
- key lookups scan the chain in order and return the first match, so
  duplicate keys are kept (and printed) but only the first is reachable by
  name.

Case-insensitive lookup folds ASCII letters only, byte by byte.
"""

from __future__ import annotations

from json_tree.errors import NodeLifecycleError
from json_tree.tree.builder import (
    create_bool,
    create_false,
    create_null,
    create_number,
    create_raw,
    create_string,
    create_true,
)
from json_tree.tree.nodes import Node, NodeKind, to_bytes

__all__ = [
    "add_bool_to_object",
    "add_false_to_object",
    "add_item_reference_to_array",
    "add_item_reference_to_object",
    "add_item_to_array",
    "add_item_to_object",
    "add_item_to_object_cs",
    "add_null_to_object",
    "add_number_to_object",
    "add_raw_to_object",
    "add_string_to_object",
    "add_true_to_object",
    "create_reference",
    "delete_item_from_array",
    "delete_item_from_object",
    "delete_item_from_object_case_sensitive",
    "detach_item_from_array",
    "detach_item_from_object",
    "detach_item_from_object_case_sensitive",
    "detach_item_via_pointer",
    "duplicate",
    "get_array_item",
    "get_array_size",
    "get_object_item",
    "get_object_item_case_sensitive",
    "has_object_item",
    "insert_item_in_array",
    "replace_item_in_array",
    "replace_item_in_object",
    "replace_item_in_object_case_sensitive",
    "replace_item_via_pointer",
]

_ASCII_FOLD = bytes.maketrans(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZ", b"abcdefghijklmnopqrstuvwxyz"
)


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def get_array_size(array: Node) -> int:
    """Number of children of an array (or members of an object)."""
    return len(array.children)


def get_array_item(array: Node, index: int) -> Node | None:
    """Child at ``index``, or None when the index is past the end."""
    children = array.children
    _check_index(index)
    return children[index] if index < len(children) else None


def get_object_item(obj: Node, key: str | bytes) -> Node | None:
    """First member whose key matches ``key`` ignoring ASCII case."""
    return _find_member(obj, key, case_sensitive=False)[1]


def get_object_item_case_sensitive(obj: Node, key: str | bytes) -> Node | None:
    """First member whose key matches ``key`` exactly."""
    return _find_member(obj, key, case_sensitive=True)[1]


def has_object_item(obj: Node, key: str | bytes) -> bool:
    """Case-insensitive membership test."""
    return get_object_item(obj, key) is not None


def _check_index(index: int) -> None:
    if index < 0:
        msg = f"index must be >= 0, got {index}"
        raise IndexError(msg)


def _find_member(obj: Node, key: str | bytes, *, case_sensitive: bool) -> tuple[int, Node | None]:
    wanted = to_bytes(key)
    if not case_sensitive:
        wanted = wanted.translate(_ASCII_FOLD)
    for index, member in enumerate(obj.children):
        candidate = member.key_bytes
        if candidate is None:
            continue
        if not case_sensitive:
            candidate = candidate.translate(_ASCII_FOLD)
        if candidate == wanted:
            return index, member
    return -1, None


# ---------------------------------------------------------------------------
# Attach
# ---------------------------------------------------------------------------


def add_item_to_array(array: Node, item: Node) -> None:
    """Append ``item`` to the end of ``array``'s chain.

    Array members never carry a key, so any key ``item`` still has is
    released.
    """
    _check_attachable(array, item, NodeKind.ARRAY)
    item._drop_key()
    array._link(item)


def add_item_to_object(obj: Node, key: str | bytes, item: Node) -> None:
    """Append ``item`` to ``obj`` under an owned copy of ``key``.

    A key the item already owned is released first.
    """
    _check_attachable(obj, item, NodeKind.OBJECT)
    item._set_owned_key(to_bytes(key))
    obj._link(item)


def add_item_to_object_cs(obj: Node, key: str | bytes | bytearray, item: Node) -> None:
    """Append ``item`` to ``obj`` borrowing ``key`` instead of copying it.

    The key object is stored as given (a ``str`` is encoded once) and never
    released by the engine; a caller who later mutates a ``bytearray`` key
    changes the member's name.
    """
    _check_attachable(obj, item, NodeKind.OBJECT)
    borrowed = key.encode("utf-8", "surrogateescape") if isinstance(key, str) else key
    if not isinstance(borrowed, (bytes, bytearray)):
        msg = f"key must be str, bytes or bytearray, got {type(key)!r}"
        raise TypeError(msg)
    item._set_const_key(borrowed)
    obj._link(item)


def create_reference(item: Node) -> Node:
    """Create a header-only node that borrows ``item``'s text/children.

    The reference copies the kind and number of ``item`` but not its key.
    A reference to a reference borrows from the original owner.
    """
    origin = item._content()
    ref = Node(item.kind, allocator=item.allocator)
    ref._number = item._number
    ref._int = item._int
    ref._origin = origin
    return ref


def add_item_reference_to_array(array: Node, item: Node) -> Node:
    """Append a reference to ``item``; ``item`` itself stays where it is."""
    _check_container(array, NodeKind.ARRAY)
    ref = create_reference(item)
    try:
        add_item_to_array(array, ref)
    except Exception:
        ref.delete()
        raise
    return ref


def add_item_reference_to_object(obj: Node, key: str | bytes, item: Node) -> Node:
    """Add a reference to ``item`` under ``key``; ``item`` stays where it is."""
    _check_container(obj, NodeKind.OBJECT)
    ref = create_reference(item)
    try:
        add_item_to_object(obj, key, ref)
    except Exception:
        ref.delete()
        raise
    return ref


def add_null_to_object(obj: Node, key: str | bytes) -> Node:
    return _add_new_member(obj, key, create_null(allocator=obj.allocator))


def add_true_to_object(obj: Node, key: str | bytes) -> Node:
    return _add_new_member(obj, key, create_true(allocator=obj.allocator))


def add_false_to_object(obj: Node, key: str | bytes) -> Node:
    return _add_new_member(obj, key, create_false(allocator=obj.allocator))


def add_bool_to_object(obj: Node, key: str | bytes, value: bool) -> Node:
    return _add_new_member(obj, key, create_bool(value, allocator=obj.allocator))


def add_number_to_object(obj: Node, key: str | bytes, value: float) -> Node:
    return _add_new_member(obj, key, create_number(value, allocator=obj.allocator))


def add_string_to_object(obj: Node, key: str | bytes, value: str | bytes) -> Node:
    return _add_new_member(obj, key, create_string(value, allocator=obj.allocator))


def add_raw_to_object(obj: Node, key: str | bytes, value: str | bytes) -> Node:
    return _add_new_member(obj, key, create_raw(value, allocator=obj.allocator))


def _add_new_member(obj: Node, key: str | bytes, item: Node) -> Node:
    try:
        add_item_to_object(obj, key, item)
    except Exception:
        item.delete()
        raise
    return item


def insert_item_in_array(array: Node, index: int, item: Node) -> None:
    """Insert ``item`` before the child at ``index``; past the end appends."""
    _check_index(index)
    _check_attachable(array, item, NodeKind.ARRAY)
    item._drop_key()
    array._link(item, min(index, len(array._children)))


def _check_container(container: Node, kind: NodeKind | None = None) -> None:
    # keyed attachers take an OBJECT, keyless ones an ARRAY
    if kind is not None:
        container._require_kind(kind)
    container._require_container()


def _check_attachable(container: Node, item: Node, kind: NodeKind | None = None) -> None:
    _check_container(container, kind)
    item._check_alive()
    if item is container:
        msg = "cannot attach a node to itself"
        raise NodeLifecycleError(msg)
    if item._parent is not None:
        msg = "node is already linked into a parent; detach it first"
        raise NodeLifecycleError(msg)
    if _would_create_cycle(container, item):
        msg = "attaching this node would make the tree cyclic"
        raise NodeLifecycleError(msg)


def _would_create_cycle(container: Node, item: Node) -> bool:
    """True when ``container`` is reachable from ``item``.

    Reachability follows children and, for references, the origin's
    children, since the printer walks both.
    """
    ancestors: set[int] = set()
    node: Node | None = container
    while node is not None:
        ancestors.add(id(node))
        node = node._parent
    seen: set[int] = set()
    stack = [item]
    while stack:
        current = stack.pop()
        if id(current) in ancestors:
            return True
        if id(current) in seen:
            continue
        seen.add(id(current))
        if current._origin is not None:
            stack.append(current._origin)
        else:
            stack.extend(current._children)
    return False


# ---------------------------------------------------------------------------
# Detach / delete
# ---------------------------------------------------------------------------


def detach_item_via_pointer(parent: Node, item: Node) -> Node:
    """Unlink ``item`` from ``parent`` and return it as an independent root.

    Raises:
        NodeLifecycleError: If ``item`` is not a child of ``parent``.
    """
    parent._require_container()
    item._check_alive()
    return parent._unlink_at(parent._index_of(item))


def detach_item_from_array(array: Node, index: int) -> Node | None:
    """Unlink the child at ``index``; None when the index is past the end."""
    array._require_container()
    _check_index(index)
    if index >= len(array._children):
        return None
    return array._unlink_at(index)


def detach_item_from_object(obj: Node, key: str | bytes) -> Node | None:
    """Unlink the first member matching ``key`` ignoring ASCII case."""
    obj._require_container()
    index, _member = _find_member(obj, key, case_sensitive=False)
    return None if index < 0 else obj._unlink_at(index)


def detach_item_from_object_case_sensitive(obj: Node, key: str | bytes) -> Node | None:
    obj._require_container()
    index, _member = _find_member(obj, key, case_sensitive=True)
    return None if index < 0 else obj._unlink_at(index)


def delete_item_from_array(array: Node, index: int) -> bool:
    """Detach and delete the child at ``index``; False when nothing matched."""
    return _delete_detached(detach_item_from_array(array, index))


def delete_item_from_object(obj: Node, key: str | bytes) -> bool:
    return _delete_detached(detach_item_from_object(obj, key))


def delete_item_from_object_case_sensitive(obj: Node, key: str | bytes) -> bool:
    return _delete_detached(detach_item_from_object_case_sensitive(obj, key))


def _delete_detached(item: Node | None) -> bool:
    if item is None:
        return False
    item.delete()
    return True


# ---------------------------------------------------------------------------
# Replace
# ---------------------------------------------------------------------------


def replace_item_via_pointer(parent: Node, item: Node, replacement: Node) -> bool:
    """Put ``replacement`` at ``item``'s position and delete ``item``.

    In an object, a replacement without a key takes an owned copy of the old
    member's key; in an array, the replacement's key is dropped.

    Returns:
        True once the splice is done (``item`` is invalid from then on).

    Raises:
        NodeLifecycleError: If ``item`` is not a child of ``parent`` or
            ``replacement`` cannot be attached.
    """
    _check_attachable(parent, replacement)
    index = parent._index_of(item)
    _prepare_replacement_key(parent, replacement, item.key_bytes)
    old = parent._splice_at(index, replacement)
    old.delete()
    return True


def replace_item_in_array(array: Node, index: int, replacement: Node) -> bool:
    """Replace the child at ``index``; False (no change) when out of range."""
    _check_index(index)
    _check_attachable(array, replacement, NodeKind.ARRAY)
    if index >= len(array._children):
        return False
    replacement._drop_key()
    array._splice_at(index, replacement).delete()
    return True


def replace_item_in_object(obj: Node, key: str | bytes, replacement: Node) -> bool:
    """Replace the first member matching ``key`` ignoring ASCII case.

    The replacement is stored under an owned copy of ``key`` as given, not
    the old member's spelling.
    """
    return _replace_member(obj, key, replacement, case_sensitive=False)


def replace_item_in_object_case_sensitive(obj: Node, key: str | bytes, replacement: Node) -> bool:
    return _replace_member(obj, key, replacement, case_sensitive=True)


def _replace_member(
    obj: Node, key: str | bytes, replacement: Node, *, case_sensitive: bool
) -> bool:
    _check_attachable(obj, replacement, NodeKind.OBJECT)
    index, _member = _find_member(obj, key, case_sensitive=case_sensitive)
    if index < 0:
        return False
    replacement._set_owned_key(to_bytes(key))
    obj._splice_at(index, replacement).delete()
    return True


def _prepare_replacement_key(parent: Node, replacement: Node, old_key: bytes | None) -> None:
    if parent.kind is NodeKind.ARRAY:
        replacement._drop_key()
    elif replacement._key is None and old_key is not None:
        replacement._set_owned_key(old_key)


# ---------------------------------------------------------------------------
# Duplicate
# ---------------------------------------------------------------------------


def duplicate(item: Node, recurse: bool = True) -> Node:
    """Return a new, independent copy of ``item``.

    Scalar fields are copied; owned text and keys are deep-copied.  Keys that
    were borrowed (``add_item_to_object_cs``) are deep-copied as well, so a
    duplicate never depends on the lifetime of a caller's buffer.  A
    duplicate of a reference node is an ordinary node owning copies of the
    borrowed content.

    Args:
        item:    Node to copy.
        recurse: When False only ``item`` itself is copied (a container comes
            back empty); when True every descendant is copied in order.

    Raises:
        AllocationError: If the allocator denies a request; the partial copy
            is released first.
    """
    root = _copy_node(item)
    if not recurse:
        return root
    try:
        stack: list[tuple[Node, Node]] = [(item, root)]
        while stack:
            source, target = stack.pop()
            for child in source.children:
                copy = _copy_node(child)
                target._link(copy)
                stack.append((child, copy))
    except Exception:
        root.delete()
        raise
    return root


def _copy_node(item: Node) -> Node:
    copy = Node(item.kind, allocator=item.allocator)
    try:
        copy._number = item._number
        copy._int = item._int
        text = item.text_bytes
        if text is not None:
            copy._own_text(text)
        if item._key is not None:
            copy._set_owned_key(item._key)
    except Exception:
        copy.delete()
        raise
    return copy

