"""Minifier: strip whitespace and comments from JSON text.

Outside string literals, space, tab, CR and LF are dropped, ``//`` comments
run to the end of the line and ``/* */`` comments to the closing ``*/`` (or
to the end of the input when unterminated).  String literals, escapes
included, are copied verbatim; an unterminated string is copied to the end.
Nothing else is validated, so invalid JSON is minified rather than rejected.

The result is idempotent: ``minify(minify(x)) == minify(x)``.
"""

from __future__ import annotations

import re
from typing import overload

__all__ = ["minify"]

_TOKENS = re.compile(
    rb"""
    (?P<string>"(?:[^"\\]|\\.?)*"?)
    | //[^\n]*
    | /\*.*?(?:\*/|\Z)
    | [ \t\r\n]+
    """,
    re.VERBOSE | re.DOTALL,
)


def _keep_strings(match: re.Match[bytes]) -> bytes:
    return match.group("string") or b""


@overload
def minify(text: str) -> str: ...
@overload
def minify(text: bytes) -> bytes: ...
@overload
def minify(text: bytearray) -> bytearray: ...


def minify(text: str | bytes | bytearray) -> str | bytes | bytearray:
    """Return ``text`` with insignificant whitespace and comments removed.

    Args:
        text: JSON text.  A ``bytearray`` is rewritten in place (the result
            is never longer than the input) and returned.

    Returns:
        The minified text, of the same type as ``text``.

    Raises:
        TypeError: If ``text`` is not str, bytes or bytearray.

    Example::

        minify('{ "a" : 1, /* note */ "b" : "x y" }')
        # '{"a":1,"b":"x y"}'
    """
    if isinstance(text, str):
        data = text.encode("utf-8", "surrogateescape")
        return _TOKENS.sub(_keep_strings, data).decode("utf-8", "surrogateescape")
    if isinstance(text, bytearray):
        text[:] = _TOKENS.sub(_keep_strings, bytes(text))
        return text
    if isinstance(text, bytes):
        return _TOKENS.sub(_keep_strings, text)
    msg = f"minify expects str, bytes or bytearray, got {type(text)!r}"
    raise TypeError(msg)
