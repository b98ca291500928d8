"""Public API functions for json-tree.

This module provides the user-facing functions: parse, parse_with_opts,
print_json, print_unformatted, print_buffered and minify.  Each call creates
a fresh ``Parser`` or ``Printer``, so nothing is carried from one call to the
next; the only process-wide state is the optional allocator installed with
``json_tree.hooks.init_hooks``.

Printing functions return ``str``; use ``Printer`` directly for bytes.
"""

from __future__ import annotations

from dataclasses import replace

from json_tree.config import ParserConfig, PrinterConfig
from json_tree.hooks import Allocator
from json_tree.minify import minify
from json_tree.parser import Parser
from json_tree.printer import Printer
from json_tree.result import ParseResult
from json_tree.tree.nodes import Node

__all__ = [
    "minify",
    "parse",
    "parse_with_opts",
    "print_buffered",
    "print_json",
    "print_unformatted",
]


def parse(
    text: str | bytes | bytearray | memoryview,
    *,
    require_end: bool = False,
    config: ParserConfig | None = None,
    allocator: Allocator | None = None,
) -> Node:
    """Parse JSON text and return the root of a new tree.

    Args:
        text:        The JSON text.
        require_end: Reject anything but whitespace after the root value.
            Overrides ``config.require_end`` when True.
        config:      Parser configuration.  Defaults to ``ParserConfig()``.
        allocator:   Allocator for the tree.  Defaults to the process-wide hooks.

    Returns:
        The root node.  The caller owns it and releases it with ``delete()``.

    Raises:
        ParseError: If the text is not valid JSON.
        AllocationError: If the allocator denies a request.
    """
    return parse_with_opts(text, require_end=require_end, config=config, allocator=allocator).root


def parse_with_opts(
    text: str | bytes | bytearray | memoryview,
    *,
    require_end: bool = False,
    start: int = 0,
    end: int | None = None,
    config: ParserConfig | None = None,
    allocator: Allocator | None = None,
) -> ParseResult:
    """Parse JSON text and also report where the root value ended.

    Useful for reading several concatenated values: pass the returned
    ``end`` as the next ``start``.

    Args:
        text:        The JSON text.
        require_end: Reject anything but whitespace after the root value.
        start:       Byte offset to start parsing at.
        end:         Byte offset to stop at; None means the end of ``text``.
        config:      Parser configuration.  Defaults to ``ParserConfig()``.
        allocator:   Allocator for the tree.

    Returns:
        A ``ParseResult`` with the root and the offset just past it.
    """
    config = config if config is not None else ParserConfig()
    if require_end and not config.require_end:
        config = replace(config, require_end=True)
    return Parser(config=config, allocator=allocator).parse(text, start=start, end=end)


def print_json(node: Node, *, config: PrinterConfig | None = None) -> str:
    """Render ``node`` as formatted JSON (newlines and indentation)."""
    return _decode(Printer(config=config).print(node, formatted=True))


def print_unformatted(node: Node, *, config: PrinterConfig | None = None) -> str:
    """Render ``node`` as compact JSON."""
    return _decode(Printer(config=config).print(node, formatted=False))


def print_buffered(
    node: Node,
    prebuffer: int | None = None,
    formatted: bool = True,
    *,
    config: PrinterConfig | None = None,
) -> str:
    """Render ``node`` through a growable buffer seeded with ``prebuffer`` bytes.

    The output is identical to ``print_json``/``print_unformatted``; only the
    allocation pattern differs.

    Args:
        node:      Root of the subtree to print.
        prebuffer: Initial buffer size guess.  None uses
            ``PrinterConfig.default_prebuffer``.
        formatted: Newlines and indentation when True, compact when False.
        config:    Printer configuration.

    Returns:
        The JSON text.
    """
    return _decode(Printer(config=config).print_buffered(node, prebuffer, formatted))


def _decode(data: bytes) -> str:
    return data.decode("utf-8", "surrogateescape")
