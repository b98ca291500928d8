"""Allocator capability used by every part of the engine.

Node headers, owned strings and printer buffers are all requested from an
``Allocator`` and handed back to it when the engine is done with them.  The
allocator is a structural Protocol, in the same spirit as a pluggable backend:
any object with conformant ``allocate``/``release`` methods works, no
inheritance required.

An allocator signals denial by raising ``MemoryError``.  Engine code never
calls ``allocate`` directly; it goes through ``allocate_block`` which turns the
denial into an ``AllocationError`` carrying the requested size.

Example::

    from json_tree import parse
    from json_tree.hooks import CountingAllocator

    alloc = CountingAllocator()
    root = parse('{"a": [1, 2]}', allocator=alloc)
    root.delete()
    assert alloc.live_blocks == 0
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from json_tree.errors import AllocationError

__all__ = [
    "NODE_HEADER_SIZE",
    "Allocator",
    "CountingAllocator",
    "DefaultAllocator",
    "allocate_block",
    "get_hooks",
    "init_hooks",
    "resolve_allocator",
]

logger = logging.getLogger(__name__)

# Bytes charged for one node header (links, kind, number, string pointers).
NODE_HEADER_SIZE = 64


@runtime_checkable
class Allocator(Protocol):
    """Structural protocol for the allocate/release pair.

    ``allocate`` must return a zero-filled ``bytearray`` of exactly ``size``
    bytes or raise ``MemoryError``.  ``release`` receives blocks previously
    returned by ``allocate``, each exactly once.
    """

    def allocate(self, size: int) -> bytearray: ...

    def release(self, block: bytearray) -> None: ...


class DefaultAllocator:
    """Plain ``bytearray`` allocator; release leaves reclamation to the GC."""

    def allocate(self, size: int) -> bytearray:
        return bytearray(size)

    def release(self, block: bytearray) -> None:
        return None


class CountingAllocator:
    """Allocator that tracks every live block.

    Useful as a leak harness: after any complete engine call (successful or
    failed) ``live_blocks`` must be back to its value before the call, apart
    from whatever the call returned to the caller.

    Args:
        fail_after: When set, the allocation with this 0-based index and every
            later one is denied with ``MemoryError``.  ``None`` never denies.
    """

    def __init__(self, fail_after: int | None = None) -> None:
        if fail_after is not None and fail_after < 0:
            msg = f"fail_after must be >= 0, got {fail_after}"
            raise ValueError(msg)
        self.fail_after = fail_after
        self.total_allocations = 0
        self.denied = 0
        self.peak_blocks = 0
        # id(block) -> block; holding the block keeps its id from being reused.
        self._live: dict[int, bytearray] = {}

    @property
    def live_blocks(self) -> int:
        """Number of blocks allocated and not yet released."""
        return len(self._live)

    @property
    def live_bytes(self) -> int:
        """Total size of the live blocks."""
        return sum(len(block) for block in self._live.values())

    def allocate(self, size: int) -> bytearray:
        if self.fail_after is not None and self.total_allocations >= self.fail_after:
            self.denied += 1
            msg = f"allocation #{self.total_allocations} denied"
            raise MemoryError(msg)
        block = bytearray(size)
        self.total_allocations += 1
        self._live[id(block)] = block
        self.peak_blocks = max(self.peak_blocks, len(self._live))
        return block

    def release(self, block: bytearray) -> None:
        if self._live.get(id(block)) is not block:
            msg = "release of a block that is not live (double release or foreign block)"
            raise ValueError(msg)
        del self._live[id(block)]


_hooks: Allocator = DefaultAllocator()


def init_hooks(hooks: Allocator | None) -> None:
    """Install the process-wide default allocator.

    Passing ``None`` resets to ``DefaultAllocator``.  Calls that pass an
    explicit ``allocator=`` argument are not affected.  Blocks allocated under
    the previous hooks are still released to the allocator that produced
    them, because every node remembers its own allocator.
    """
    global _hooks
    if hooks is None:
        _hooks = DefaultAllocator()
        logger.debug("allocator hooks reset to defaults")
        return
    if not isinstance(hooks, Allocator):
        msg = f"hooks must provide allocate() and release(), got {type(hooks)!r}"
        raise TypeError(msg)
    _hooks = hooks
    logger.debug("allocator hooks set to %r", hooks)


def get_hooks() -> Allocator:
    """Return the current process-wide default allocator."""
    return _hooks


def resolve_allocator(allocator: Allocator | None) -> Allocator:
    """Return ``allocator`` or, when it is None, the process-wide default."""
    return allocator if allocator is not None else _hooks


def allocate_block(allocator: Allocator, size: int) -> bytearray:
    """Request ``size`` bytes, converting a denial into ``AllocationError``."""
    try:
        return allocator.allocate(size)
    except MemoryError as exc:
        if isinstance(exc, AllocationError):
            raise
        raise AllocationError(size, original_error=exc) from exc
