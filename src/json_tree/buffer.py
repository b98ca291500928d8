"""PrintBuffer: the growable output buffer used by buffered printing.

The buffer is a single block from the allocator plus a write offset.  When a
write would not fit, the capacity grows to the next power of two that holds
``offset + n`` bytes: a new block is allocated, the written bytes are copied
over, and the old block is released.  A request beyond ``max_size`` raises
``SizeOverflowError`` and leaves the buffer exactly as it was.
"""

from __future__ import annotations

import logging

from json_tree.errors import SizeOverflowError
from json_tree.hooks import Allocator, allocate_block

__all__ = ["PrintBuffer"]

logger = logging.getLogger(__name__)


class PrintBuffer:
    """Append-only byte buffer with power-of-two growth.

    Args:
        allocator: Allocator that supplies (and receives back) every block.
        capacity:  Initial capacity in bytes (0 defers the first allocation to
            the first write).
        max_size:  Largest capacity the buffer may ever reach.

    Raises:
        SizeOverflowError: If ``capacity`` already exceeds ``max_size``.
        AllocationError: If the initial block is denied.
    """

    def __init__(self, allocator: Allocator, capacity: int, max_size: int) -> None:
        if capacity < 0:
            msg = f"capacity must be >= 0, got {capacity}"
            raise ValueError(msg)
        if capacity > max_size:
            raise SizeOverflowError(capacity, max_size)
        self._allocator = allocator
        self._max_size = max_size
        self._block: bytearray | None = allocate_block(allocator, capacity) if capacity else None
        self._offset = 0

    @property
    def capacity(self) -> int:
        return 0 if self._block is None else len(self._block)

    @property
    def offset(self) -> int:
        """Number of bytes written so far."""
        return self._offset

    def ensure(self, n: int) -> None:
        """Make room for ``n`` more bytes after the current offset.

        Raises:
            SizeOverflowError: If ``offset + n`` exceeds ``max_size``.
            AllocationError: If the larger block is denied; the buffer keeps
                its old block and content.
        """
        needed = self._offset + n
        if needed <= self.capacity:
            return
        if needed > self._max_size:
            raise SizeOverflowError(needed, self._max_size)
        new_capacity = min(_next_power_of_two(needed), self._max_size)
        new_block = allocate_block(self._allocator, new_capacity)
        logger.debug("print buffer grown from %d to %d bytes", self.capacity, new_capacity)
        if self._block is not None:
            new_block[: self._offset] = self._block[: self._offset]
            self._allocator.release(self._block)
        self._block = new_block

    def write(self, data: bytes | bytearray) -> None:
        """Append ``data``, growing the buffer first if necessary."""
        n = len(data)
        if n == 0:
            return
        self.ensure(n)
        block = self._block
        if block is not None:
            block[self._offset : self._offset + n] = data
            self._offset += n

    def getvalue(self) -> bytes:
        """Return a copy of the bytes written so far."""
        if self._block is None:
            return b""
        return bytes(self._block[: self._offset])

    def release(self) -> None:
        """Hand the block back to the allocator; the buffer is empty afterwards."""
        if self._block is not None:
            self._allocator.release(self._block)
        self._block = None
        self._offset = 0


def _next_power_of_two(n: int) -> int:
    """Smallest power of two >= ``n`` (1 for n <= 1)."""
    return 1 if n <= 1 else 1 << (n - 1).bit_length()
