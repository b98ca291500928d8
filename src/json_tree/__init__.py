"""json-tree - a JSON document engine with an owned node tree and pluggable allocation."""

from __future__ import annotations

from json_tree.api import (
    minify,
    parse,
    parse_with_opts,
    print_buffered,
    print_json,
    print_unformatted,
)
from json_tree.config import ParserConfig, PrinterConfig
from json_tree.errors import (
    AllocationError,
    JSONTreeError,
    NestingTooDeepError,
    NodeLifecycleError,
    ParseError,
    ReferenceInvalidatedError,
    SizeOverflowError,
)
from json_tree.hooks import Allocator, CountingAllocator, DefaultAllocator, get_hooks, init_hooks
from json_tree.parser import Parser
from json_tree.printer import Printer
from json_tree.result import ParseResult
from json_tree.tree import Node, NodeKind, TreeBuilder, find_difference, to_python, trees_equal

__version__: str = "0.1.0"
__all__: list[str] = [
    "AllocationError",
    "Allocator",
    "CountingAllocator",
    "DefaultAllocator",
    "JSONTreeError",
    "NestingTooDeepError",
    "Node",
    "NodeKind",
    "NodeLifecycleError",
    "ParseError",
    "ParseResult",
    "Parser",
    "ParserConfig",
    "Printer",
    "PrinterConfig",
    "ReferenceInvalidatedError",
    "SizeOverflowError",
    "TreeBuilder",
    "find_difference",
    "get_hooks",
    "init_hooks",
    "minify",
    "parse",
    "parse_with_opts",
    "print_buffered",
    "print_json",
    "print_unformatted",
    "to_python",
    "trees_equal",
]
