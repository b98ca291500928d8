"""Printer: Node tree -> JSON text.

Two strategies produce identical output:

- ``Printer.print`` (exact-length): every node is rendered into its own
  temporary block, bottom-up.  A container sums the lengths of its rendered
  children plus separators and indentation, allocates one block of exactly
  that size, concatenates, and releases the children's blocks.
- ``Printer.print_buffered`` (growable buffer): one ``PrintBuffer`` is written
  front to back and doubled as needed.  Fewer, larger allocations; the
  result is copied out of the buffer at the end.

Both walks use an explicit stack, so tree depth is not limited by Python's
recursion limit.  If the allocator denies a request, every temporary block is
released before ``AllocationError`` propagates.

Output format:

- compact: no whitespace at all, ``{"a":[1,2]}``;
- formatted: a newline and one indent unit per depth after ``{``, ``[`` and
  each member separator, and before the closing bracket; object members
  render as ``"key":<TAB>value``; empty containers render as ``[]``/``{}``.

Numbers use ``%.15g`` and fall back to ``%.17g`` when the shorter text does
not read back as the same double.  NaN and infinities render as ``null``.
"""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING

from cachetools import LRUCache

from json_tree.buffer import PrintBuffer
from json_tree.config import PrinterConfig
from json_tree.errors import SizeOverflowError
from json_tree.hooks import Allocator, allocate_block
from json_tree.tree.nodes import Node, NodeKind

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = ["Printer", "escape_string", "escaped_length"]

_NULL = b"null"
_TRUE = b"true"
_FALSE = b"false"

_SHORT_ESCAPES: dict[int, bytes] = {
    ord('"'): b'\\"',
    ord("\\"): b"\\\\",
    0x08: b"\\b",
    0x0C: b"\\f",
    0x0A: b"\\n",
    0x0D: b"\\r",
    0x09: b"\\t",
}
_ESCAPES: dict[int, bytes] = {byte: b"\\u%04x" % byte for byte in range(0x20)}
_ESCAPES.update(_SHORT_ESCAPES)

_NEEDS_ESCAPE = re.compile(rb'["\\\x00-\x1f]')


def escaped_length(data: bytes | bytearray) -> int:
    """Length of ``data`` once quoted and escaped."""
    extra = sum(len(_ESCAPES[m.group()[0]]) - 1 for m in _NEEDS_ESCAPE.finditer(data))
    return len(data) + extra + 2


def escape_string(data: bytes | bytearray) -> bytes:
    """Quote and escape UTF-8 ``data`` as a JSON string literal.

    The output size is computed first, then the escaped bytes are written
    into a buffer of exactly that size.  Non-ASCII bytes are copied through
    unchanged.
    """
    out = bytearray(escaped_length(data))
    out[0] = out[-1] = 0x22
    pos = 1
    start = 0
    for match in _NEEDS_ESCAPE.finditer(data):
        chunk = data[start : match.start()]
        escape = _ESCAPES[data[match.start()]]
        out[pos : pos + len(chunk)] = chunk
        pos += len(chunk)
        out[pos : pos + len(escape)] = escape
        pos += len(escape)
        start = match.end()
    out[pos:-1] = data[start:]
    return bytes(out)


class Printer:
    """Renders ``Node`` trees as JSON text.

    Each printer keeps its own LRU cache of rendered numbers (keyed by
    ``float.hex()`` so that ``-0.0`` and ``0.0`` stay distinct); nothing is
    shared between instances.

    Args:
        config:    Printer configuration.  Defaults to ``PrinterConfig()``.
        allocator: Allocator for temporaries and output buffers.  None uses
            the allocator of the node being printed.
    """

    def __init__(
        self,
        config: PrinterConfig | None = None,
        allocator: Allocator | None = None,
    ) -> None:
        self._config = config if config is not None else PrinterConfig()
        self._allocator = allocator
        self._indent = self._config.indent.encode("ascii")
        self._numbers: LRUCache[str, bytes] = LRUCache(maxsize=self._config.number_cache_size)

    @property
    def config(self) -> PrinterConfig:
        return self._config

    # ------------------------------------------------------------------
    # Exact-length strategy
    # ------------------------------------------------------------------

    def print(self, node: Node, formatted: bool = True) -> bytes:
        """Render ``node`` using exact-size allocations.

        Args:
            node:      Root of the subtree to print.  Any node can be printed,
                including linked ones; printing never changes the tree.
            formatted: Newlines and indentation when True, compact when False.

        Returns:
            The UTF-8 JSON text.

        Raises:
            AllocationError: If the allocator denies a request.
            SizeOverflowError: If some rendering would exceed
                ``max_buffer_size``.
            ReferenceInvalidatedError: If a reference in the tree outlived
                its origin.
        """
        allocator = self._allocator if self._allocator is not None else node.allocator
        limit = self._config.max_buffer_size
        # Rendered blocks of finished nodes; a container consumes the last
        # ``len(children)`` entries, which are its children in order.
        parts: list[bytearray] = []
        stack: list[tuple[Node, int, bool]] = [(node, 0, False)]
        try:
            while stack:
                current, depth, expanded = stack.pop()
                kind = current.kind
                if kind in (NodeKind.ARRAY, NodeKind.OBJECT):
                    children = current._content()._children
                    if children and not expanded:
                        stack.append((current, depth, True))
                        stack.extend((child, depth + 1, False) for child in reversed(children))
                        continue
                    count = len(children)
                    rendered = parts[len(parts) - count :] if count else []
                    pieces = list(
                        self._container_pieces(kind, children, rendered, depth, formatted)
                    )
                    block = _join(allocator, pieces, limit)
                    for child_block in rendered:
                        allocator.release(child_block)
                    if count:
                        del parts[-count:]
                    parts.append(block)
                else:
                    parts.append(_join(allocator, [self._scalar(current)], limit))
            result = parts.pop()
        except Exception:
            for block in parts:
                allocator.release(block)
            raise
        output = bytes(result)
        allocator.release(result)
        return output

    # ------------------------------------------------------------------
    # Growable-buffer strategy
    # ------------------------------------------------------------------

    def print_buffered(
        self,
        node: Node,
        prebuffer: int | None = None,
        formatted: bool = True,
    ) -> bytes:
        """Render ``node`` into one growable buffer.

        Args:
            node:      Root of the subtree to print.
            prebuffer: Initial capacity guess in bytes.  None uses
                ``PrinterConfig.default_prebuffer``.  A good guess avoids
                regrowth; a bad one only costs copies.
            formatted: Newlines and indentation when True, compact when False.

        Returns:
            The UTF-8 JSON text.

        Raises:
            ValueError: If ``prebuffer`` is negative.
            AllocationError: If the allocator denies a request.
            SizeOverflowError: If the output would exceed ``max_buffer_size``.
        """
        if prebuffer is None:
            prebuffer = self._config.default_prebuffer
        if prebuffer < 0:
            msg = f"prebuffer must be >= 0, got {prebuffer}"
            raise ValueError(msg)
        allocator = self._allocator if self._allocator is not None else node.allocator
        buffer = PrintBuffer(allocator, prebuffer, self._config.max_buffer_size)
        try:
            for chunk in self._iter_chunks(node, formatted):
                buffer.write(chunk)
            return buffer.getvalue()
        finally:
            buffer.release()

    def _iter_chunks(self, node: Node, formatted: bool) -> Iterator[bytes]:
        """Yield the output front to back without recursion."""
        # Work items are either a node to render (with its depth) or a
        # literal chunk.
        stack: list[tuple[Node, int] | bytes] = [(node, 0)]
        while stack:
            item = stack.pop()
            if isinstance(item, bytes):
                yield item
                continue
            current, depth = item
            kind = current.kind
            if kind not in (NodeKind.ARRAY, NodeKind.OBJECT):
                yield self._scalar(current)
                continue
            children = current._content()._children
            open_, close = (b"{", b"}") if kind is NodeKind.OBJECT else (b"[", b"]")
            if not children:
                yield open_ + close
                continue
            yield open_
            if formatted:
                yield b"\n"
            pending: list[tuple[Node, int] | bytes] = []
            last = len(children) - 1
            for index, child in enumerate(children):
                prefix = self._indent * (depth + 1) if formatted else b""
                if kind is NodeKind.OBJECT:
                    prefix += self._key_prefix(child, formatted)
                if prefix:
                    pending.append(prefix)
                pending.append((child, depth + 1))
                separator = b"," if index < last else b""
                if formatted:
                    separator += b"\n"
                if separator:
                    pending.append(separator)
            if formatted:
                pending.append(self._indent * depth)
            pending.append(close)
            stack.extend(reversed(pending))

    # ------------------------------------------------------------------
    # Shared rendering
    # ------------------------------------------------------------------

    def _container_pieces(
        self,
        kind: NodeKind,
        children: list[Node],
        rendered: list[bytearray],
        depth: int,
        formatted: bool,
    ) -> Iterator[bytes | bytearray]:
        open_, close = (b"{", b"}") if kind is NodeKind.OBJECT else (b"[", b"]")
        if not children:
            yield open_ + close
            return
        yield open_
        if formatted:
            yield b"\n"
        last = len(children) - 1
        for index, (child, block) in enumerate(zip(children, rendered, strict=True)):
            if formatted:
                yield self._indent * (depth + 1)
            if kind is NodeKind.OBJECT:
                yield self._key_prefix(child, formatted)
            yield block
            if index < last:
                yield b","
            if formatted:
                yield b"\n"
        if formatted:
            yield self._indent * depth
        yield close

    def _key_prefix(self, member: Node, formatted: bool) -> bytes:
        key = member._key if member._key is not None else b""
        return escape_string(key) + (b":\t" if formatted else b":")

    def _scalar(self, node: Node) -> bytes:
        kind = node.kind
        if kind is NodeKind.NULL:
            return _NULL
        if kind is NodeKind.TRUE:
            return _TRUE
        if kind is NodeKind.FALSE:
            return _FALSE
        if kind is NodeKind.NUMBER:
            return self._number(node.number_value)
        text = node._content()._text
        if kind is NodeKind.RAW:
            if text is None:
                msg = "raw node has no text to print"
                raise ValueError(msg)
            return bytes(text)
        return escape_string(text if text is not None else b"")

    def _number(self, value: float) -> bytes:
        if math.isnan(value) or math.isinf(value):
            return _NULL
        key = value.hex()
        cached = self._numbers.get(key)
        if cached is not None:
            return cached
        text = "%.15g" % value
        if float(text) != value:
            text = "%.17g" % value
        rendered = text.encode("ascii")
        self._numbers[key] = rendered
        return rendered


def _join(allocator: Allocator, pieces: list[bytes | bytearray], limit: int) -> bytearray:
    """Allocate one block of exactly the combined size and copy ``pieces`` in."""
    total = sum(len(piece) for piece in pieces)
    if total > limit:
        raise SizeOverflowError(total, limit)
    block = allocate_block(allocator, total)
    offset = 0
    for piece in pieces:
        block[offset : offset + len(piece)] = piece
        offset += len(piece)
    return block
