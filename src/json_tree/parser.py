"""Parser: JSON text -> Node tree.

The grammar is RFC 8259 with one documented leniency: a trailing comma
before ``]`` or ``}`` is accepted.  Whitespace is any byte <= 0x20.

Nesting is handled with an explicit stack of open containers instead of
Python recursion, so the depth ceiling (``ParserConfig.max_depth``) is the
only limit and deep input can never hit ``RecursionError``.

Every node is linked into the tree the moment it is created, before its
text or key is copied.  On any failure the root is deleted, which releases
every block the call allocated, and only then does the exception propagate.
The caller either receives a complete tree or nothing.
"""

from __future__ import annotations

import logging
import re

from json_tree.config import ParserConfig
from json_tree.errors import NestingTooDeepError, ParseError
from json_tree.hooks import Allocator, resolve_allocator
from json_tree.result import ParseResult
from json_tree.tree.nodes import Node, NodeKind

__all__ = ["Parser"]

logger = logging.getLogger(__name__)

_QUOTE = 0x22
_BACKSLASH = 0x5C
_COMMA = 0x2C
_COLON = 0x3A
_MINUS = 0x2D
_PLUS = 0x2B
_DOT = 0x2E
_ZERO = 0x30
_OPEN_ARRAY = 0x5B
_CLOSE_ARRAY = 0x5D
_OPEN_OBJECT = 0x7B
_CLOSE_OBJECT = 0x7D

_DIGITS = frozenset(b"0123456789")
_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")
_EXPONENT_MARKERS = frozenset(b"eE")

_LITERALS: dict[int, tuple[bytes, NodeKind]] = {
    ord("n"): (b"null", NodeKind.NULL),
    ord("t"): (b"true", NodeKind.TRUE),
    ord("f"): (b"false", NodeKind.FALSE),
}

_SIMPLE_ESCAPES: dict[int, int] = {
    ord('"'): ord('"'),
    ord("\\"): ord("\\"),
    ord("/"): ord("/"),
    ord("b"): 0x08,
    ord("f"): 0x0C,
    ord("n"): 0x0A,
    ord("r"): 0x0D,
    ord("t"): 0x09,
}

# Bytes that end a run of plain string content.
_STRING_SPECIAL = re.compile(rb'["\\\x00-\x1f]')


class Parser:
    """Parses JSON text into a tree of ``Node`` objects.

    A parser holds only its configuration and allocator, so one instance can
    be reused for any number of calls.

    Args:
        config:    Parser configuration.  Defaults to ``ParserConfig()``.
        allocator: Allocator for every node and block of the parsed tree.
            Defaults to the process-wide hooks at parse time.

    Example::

        parser = Parser(ParserConfig(require_end=True))
        result = parser.parse(b'{"a": [1, 2, 3]}')
        result.root.delete()
    """

    def __init__(
        self,
        config: ParserConfig | None = None,
        allocator: Allocator | None = None,
    ) -> None:
        self._config = config if config is not None else ParserConfig()
        self._allocator = allocator

    @property
    def config(self) -> ParserConfig:
        return self._config

    def parse(
        self,
        data: str | bytes | bytearray | memoryview,
        start: int = 0,
        end: int | None = None,
    ) -> ParseResult:
        """Parse one JSON value from ``data[start:end]``.

        ``str`` input is encoded to UTF-8 first; all offsets are byte offsets
        into the encoded buffer.  Code points U+DC80..U+DCFF come back out as
        the raw bytes they stand for (``surrogateescape``); any other lone
        surrogate is a ``ParseError`` at its offset.

        Args:
            data:  The JSON text.
            start: Offset of the first byte to parse.
            end:   Offset one past the last byte to parse; None means the end
                of the buffer.

        Returns:
            A ``ParseResult`` with the new root and the offset just past it.

        Raises:
            ParseError: If the text is not valid JSON, or trailing bytes remain
                and ``require_end`` is set.  ``position`` is relative to the
                start of ``data``.
            NestingTooDeepError: If containers nest deeper than ``max_depth``.
            AllocationError: If the allocator denies a request.
            ValueError: If ``start``/``end`` do not describe a valid range.
        """
        try:
            buf = _as_bytes(data)
            limit = len(buf) if end is None else end
            if not 0 <= start <= limit <= len(buf):
                msg = f"invalid range [{start}, {end}) for a buffer of {len(buf)} bytes"
                raise ValueError(msg)
            return self._parse_range(buf, start, limit)
        except ParseError as exc:
            logger.debug("parse failed at offset %d: %s", exc.position, exc.message)
            raise

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def _parse_range(self, buf: bytes, pos: int, limit: int) -> ParseResult:
        allocator = resolve_allocator(self._allocator)
        max_depth = self._config.max_depth
        root: Node | None = None
        # Open containers, innermost last.
        stack: list[Node] = []
        pending_key: bytes | None = None

        try:
            pos = _skip_whitespace(buf, pos, limit)
            while True:
                # At the start of a value.
                if pos >= limit:
                    raise ParseError("unexpected end of input", pos)
                byte = buf[pos]

                if byte == _OPEN_ARRAY or byte == _OPEN_OBJECT:
                    if len(stack) >= max_depth:
                        raise NestingTooDeepError(pos, max_depth)
                    is_object = byte == _OPEN_OBJECT
                    container_kind = NodeKind.OBJECT if is_object else NodeKind.ARRAY
                    node = Node(container_kind, allocator=allocator)
                    if stack:
                        stack[-1]._link(node)
                        if pending_key is not None:
                            node._set_owned_key(pending_key)
                    else:
                        root = node
                    pending_key = None
                    pos = _skip_whitespace(buf, pos + 1, limit)
                    close = _CLOSE_OBJECT if is_object else _CLOSE_ARRAY
                    if pos < limit and buf[pos] == close:
                        pos += 1
                    else:
                        stack.append(node)
                        if is_object:
                            pending_key, pos = _parse_member_key(buf, pos, limit)
                        continue
                else:
                    node = Node(NodeKind.NULL, allocator=allocator)
                    if stack:
                        stack[-1]._link(node)
                        if pending_key is not None:
                            node._set_owned_key(pending_key)
                    else:
                        root = node
                    pending_key = None
                    pos = _parse_scalar(node, buf, pos, limit)

                # After a complete value: close containers until one wants more.
                while stack:
                    container = stack[-1]
                    is_object = container._kind is NodeKind.OBJECT
                    close = _CLOSE_OBJECT if is_object else _CLOSE_ARRAY
                    pos = _skip_whitespace(buf, pos, limit)
                    if pos >= limit:
                        raise ParseError("unexpected end of input", pos)
                    byte = buf[pos]
                    if byte == close:
                        stack.pop()
                        pos += 1
                        continue
                    if byte != _COMMA:
                        expected = "'}'" if is_object else "']'"
                        raise ParseError(f"expected ',' or {expected}", pos)
                    pos = _skip_whitespace(buf, pos + 1, limit)
                    if pos < limit and buf[pos] == close:
                        # trailing comma
                        stack.pop()
                        pos += 1
                        continue
                    if is_object:
                        pending_key, pos = _parse_member_key(buf, pos, limit)
                    break
                else:
                    break

            value_end = pos
            if self._config.require_end:
                pos = _skip_whitespace(buf, pos, limit)
                if pos < limit:
                    raise ParseError("unexpected trailing characters", pos)
        except Exception:
            if root is not None:
                root.delete()
            raise

        if root is None:
            raise ParseError("unexpected end of input", start)
        return ParseResult(root=root, end=value_end)


# ---------------------------------------------------------------------------
# Lexical helpers
# ---------------------------------------------------------------------------


def _as_bytes(data: str | bytes | bytearray | memoryview) -> bytes:
    if isinstance(data, str):
        try:
            return data.encode("utf-8", "surrogateescape")
        except UnicodeEncodeError as exc:
            position = len(data[: exc.start].encode("utf-8", "surrogateescape"))
            raise ParseError("lone surrogate in text input", position) from exc
    if isinstance(data, bytes):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    msg = f"expected str or a bytes-like object, got {type(data)!r}"
    raise TypeError(msg)


def _skip_whitespace(buf: bytes, pos: int, limit: int) -> int:
    while pos < limit and buf[pos] <= 0x20:
        pos += 1
    return pos


def _parse_member_key(buf: bytes, pos: int, limit: int) -> tuple[bytes, int]:
    """Parse ``"key" :`` and return the key and the offset of the value."""
    if pos >= limit:
        raise ParseError("unexpected end of input", pos)
    if buf[pos] != _QUOTE:
        raise ParseError("expected string key", pos)
    key, pos = _scan_string(buf, pos, limit)
    pos = _skip_whitespace(buf, pos, limit)
    if pos >= limit or buf[pos] != _COLON:
        raise ParseError("expected ':'", pos)
    return key, _skip_whitespace(buf, pos + 1, limit)


def _parse_scalar(node: Node, buf: bytes, pos: int, limit: int) -> int:
    """Fill ``node`` from the scalar at ``pos`` and return the offset past it."""
    byte = buf[pos]

    literal = _LITERALS.get(byte)
    if literal is not None:
        word, kind = literal
        if buf.startswith(word, pos, limit):
            node._kind = kind
            node._int = 1 if kind is NodeKind.TRUE else 0
            return pos + len(word)
        raise ParseError("invalid literal", pos)

    if byte == _QUOTE:
        text, end = _scan_string(buf, pos, limit)
        node._kind = NodeKind.STRING
        node._own_text(text)
        return end

    if byte == _MINUS or byte in _DIGITS:
        end = _scan_number(buf, pos, limit)
        value = float(buf[pos:end].decode("ascii"))
        node._kind = NodeKind.NUMBER
        node.set_number_value(value)
        return end

    raise ParseError("unexpected character", pos)


def _scan_number(buf: bytes, pos: int, limit: int) -> int:
    """Validate ``-? int frac? exp?`` at ``pos``; return the offset past it."""
    i = pos
    if buf[i] == _MINUS:
        i += 1
    if i >= limit or buf[i] not in _DIGITS:
        raise ParseError("expected digit", i)
    if buf[i] == _ZERO:
        i += 1
    else:
        while i < limit and buf[i] in _DIGITS:
            i += 1
    if i < limit and buf[i] == _DOT:
        i += 1
        if i >= limit or buf[i] not in _DIGITS:
            raise ParseError("expected digit after decimal point", i)
        while i < limit and buf[i] in _DIGITS:
            i += 1
    if i < limit and buf[i] in _EXPONENT_MARKERS:
        i += 1
        if i < limit and buf[i] in (_PLUS, _MINUS):
            i += 1
        if i >= limit or buf[i] not in _DIGITS:
            raise ParseError("expected digit in exponent", i)
        while i < limit and buf[i] in _DIGITS:
            i += 1
    return i


def _scan_string(buf: bytes, pos: int, limit: int) -> tuple[bytes, int]:
    """Decode the string literal whose opening quote is at ``pos``.

    Returns the UTF-8 content and the offset just past the closing quote.
    """
    out = bytearray()
    i = pos + 1
    while True:
        match = _STRING_SPECIAL.search(buf, i, limit)
        if match is None:
            raise ParseError("unterminated string", limit)
        j = match.start()
        out += buf[i:j]
        byte = buf[j]
        if byte == _QUOTE:
            return bytes(out), j + 1
        if byte != _BACKSLASH:
            raise ParseError("unescaped control character in string", j)
        if j + 1 >= limit:
            raise ParseError("unterminated string", limit)
        escape = buf[j + 1]
        simple = _SIMPLE_ESCAPES.get(escape)
        if simple is not None:
            out.append(simple)
            i = j + 2
        elif escape == ord("u"):
            codepoint, i = _decode_unicode_escape(buf, j, limit)
            out += chr(codepoint).encode("utf-8")
        else:
            raise ParseError("invalid escape sequence", j)


def _read_hex4(buf: bytes, pos: int, limit: int, escape_at: int) -> int:
    digits = buf[pos : pos + 4]
    if pos + 4 > limit or len(digits) != 4 or any(b not in _HEX_DIGITS for b in digits):
        raise ParseError("invalid unicode escape", escape_at)
    return int(digits, 16)


def _decode_unicode_escape(buf: bytes, pos: int, limit: int) -> tuple[int, int]:
    """Decode ``\\uXXXX`` (plus a low surrogate if needed) starting at ``pos``.

    Returns the codepoint and the offset just past the escape(s).  Every
    failure is reported at ``pos``, the backslash of the first escape.
    """
    first = _read_hex4(buf, pos + 2, limit, pos)
    if 0xDC00 <= first <= 0xDFFF:
        raise ParseError("unpaired low surrogate", pos)
    if not 0xD800 <= first <= 0xDBFF:
        return first, pos + 6
    second_at = pos + 6
    if second_at + 1 >= limit or buf[second_at] != _BACKSLASH or buf[second_at + 1] != ord("u"):
        raise ParseError("missing low surrogate", pos)
    second = _read_hex4(buf, second_at + 2, limit, pos)
    if not 0xDC00 <= second <= 0xDFFF:
        raise ParseError("invalid low surrogate", pos)
    codepoint = 0x10000 + (((first & 0x3FF) << 10) | (second & 0x3FF))
    return codepoint, pos + 12
