"""ParserConfig and PrinterConfig for engine configuration.

Both are frozen (immutable) dataclasses validated on construction.  They are
passed explicitly to ``Parser``/``Printer`` (or the ``json_tree.api``
functions); there is no global configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["DEFAULT_MAX_DEPTH", "MAX_BUFFER_SIZE", "ParserConfig", "PrinterConfig"]

DEFAULT_MAX_DEPTH = 1000
# Largest buffer the printer will request (C INT_MAX).
MAX_BUFFER_SIZE = 2**31 - 1


@dataclass(frozen=True, slots=True)
class ParserConfig:
    """Immutable configuration for the parser.

    Attributes:
        max_depth: Maximum nesting of arrays/objects.  The root container is
            depth 1.  Exceeding it raises ``NestingTooDeepError``.
        require_end: When True, only whitespace may follow the root value;
            anything else is a ``ParseError`` at the first trailing byte.
            When False, trailing bytes are ignored (a leniency the caller opts
            into, not a guarantee that they are harmless).
    """

    max_depth: int = DEFAULT_MAX_DEPTH
    require_end: bool = False

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            msg = f"max_depth must be >= 1, got {self.max_depth}"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class PrinterConfig:
    """Immutable configuration for the printer.

    Attributes:
        indent: One indentation unit for formatted output.  Only spaces and
            tabs are allowed so that formatted output stays valid JSON.
        max_buffer_size: Largest buffer either print strategy may allocate;
            larger requests raise ``SizeOverflowError``.
        number_cache_size: Entries kept in the per-printer LRU cache of
            rendered numbers.
        default_prebuffer: Initial capacity used by ``print_buffered`` when
            the caller gives no size hint.
    """

    indent: str = "\t"
    max_buffer_size: int = MAX_BUFFER_SIZE
    number_cache_size: int = 256
    default_prebuffer: int = 256

    def __post_init__(self) -> None:
        if not self.indent or self.indent.strip(" \t"):
            msg = f"indent must be a non-empty run of spaces/tabs, got {self.indent!r}"
            raise ValueError(msg)
        if self.max_buffer_size < 1:
            msg = f"max_buffer_size must be >= 1, got {self.max_buffer_size}"
            raise ValueError(msg)
        if self.number_cache_size < 1:
            msg = f"number_cache_size must be >= 1, got {self.number_cache_size}"
            raise ValueError(msg)
        if self.default_prebuffer < 0:
            msg = f"default_prebuffer must be >= 0, got {self.default_prebuffer}"
            raise ValueError(msg)
