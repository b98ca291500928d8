"""Tests for the allocator capability in json_tree.hooks.

Verifies:
- DefaultAllocator and CountingAllocator satisfy the Allocator Protocol structurally
- CountingAllocator tracks live blocks/bytes, peak usage and denials
- fail_after denies the allocation with that index and every later one
- Double release and foreign blocks are rejected
- init_hooks/get_hooks install and reset the process-wide default
- allocate_block converts MemoryError into AllocationError
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from json_tree import parse
from json_tree.errors import AllocationError
from json_tree.hooks import (
    NODE_HEADER_SIZE,
    Allocator,
    CountingAllocator,
    DefaultAllocator,
    allocate_block,
    get_hooks,
    init_hooks,
    resolve_allocator,
)


@pytest.fixture
def reset_hooks() -> Iterator[None]:
    """Restore the default hooks after a test that installs its own."""
    yield
    init_hooks(None)


class TestAllocatorProtocol:
    """Structural conformance to the Allocator Protocol."""

    def test_default_allocator_conforms(self) -> None:
        assert isinstance(DefaultAllocator(), Allocator)

    def test_counting_allocator_conforms(self) -> None:
        assert isinstance(CountingAllocator(), Allocator)

    def test_duck_typed_allocator_conforms(self) -> None:
        """No inheritance required: any object with allocate/release works."""

        class Custom:
            def allocate(self, size: int) -> bytearray:
                return bytearray(size)

            def release(self, block: bytearray) -> None:
                pass

        assert isinstance(Custom(), Allocator)

    def test_object_without_release_does_not_conform(self) -> None:
        class HalfAllocator:
            def allocate(self, size: int) -> bytearray:
                return bytearray(size)

        assert not isinstance(HalfAllocator(), Allocator)

    def test_default_allocator_returns_zero_filled_block(self) -> None:
        block = DefaultAllocator().allocate(8)
        assert block == bytearray(8)


class TestCountingAllocator:
    """Bookkeeping of the leak-test allocator."""

    def test_starts_empty(self) -> None:
        alloc = CountingAllocator()
        assert alloc.live_blocks == 0
        assert alloc.live_bytes == 0
        assert alloc.total_allocations == 0

    def test_tracks_live_blocks_and_bytes(self) -> None:
        alloc = CountingAllocator()
        a = alloc.allocate(10)
        alloc.allocate(6)
        assert alloc.live_blocks == 2
        assert alloc.live_bytes == 16
        alloc.release(a)
        assert alloc.live_blocks == 1
        assert alloc.live_bytes == 6

    def test_peak_blocks_is_high_water_mark(self) -> None:
        alloc = CountingAllocator()
        blocks = [alloc.allocate(1) for _ in range(3)]
        for block in blocks:
            alloc.release(block)
        assert alloc.peak_blocks == 3
        assert alloc.live_blocks == 0

    def test_fail_after_denies_from_that_index(self) -> None:
        alloc = CountingAllocator(fail_after=2)
        alloc.allocate(1)
        alloc.allocate(1)
        with pytest.raises(MemoryError):
            alloc.allocate(1)
        with pytest.raises(MemoryError):
            alloc.allocate(1)
        assert alloc.denied == 2
        assert alloc.total_allocations == 2

    def test_fail_after_zero_denies_everything(self) -> None:
        alloc = CountingAllocator(fail_after=0)
        with pytest.raises(MemoryError):
            alloc.allocate(1)

    def test_negative_fail_after_rejected(self) -> None:
        with pytest.raises(ValueError, match="fail_after"):
            CountingAllocator(fail_after=-1)

    def test_double_release_rejected(self) -> None:
        alloc = CountingAllocator()
        block = alloc.allocate(4)
        alloc.release(block)
        with pytest.raises(ValueError, match="not live"):
            alloc.release(block)

    def test_foreign_block_rejected(self) -> None:
        alloc = CountingAllocator()
        with pytest.raises(ValueError, match="not live"):
            alloc.release(bytearray(4))

    def test_equal_blocks_are_tracked_separately(self) -> None:
        """Two zero-filled blocks of the same size are still distinct blocks."""
        alloc = CountingAllocator()
        a = alloc.allocate(4)
        b = alloc.allocate(4)
        alloc.release(a)
        assert alloc.live_blocks == 1
        alloc.release(b)
        assert alloc.live_blocks == 0


class TestProcessWideHooks:
    """init_hooks / get_hooks / resolve_allocator."""

    def test_default_hooks(self) -> None:
        assert isinstance(get_hooks(), DefaultAllocator)

    def test_init_hooks_installs_allocator(self, reset_hooks: None) -> None:
        alloc = CountingAllocator()
        init_hooks(alloc)
        assert get_hooks() is alloc

    def test_parse_uses_installed_hooks(self, reset_hooks: None) -> None:
        alloc = CountingAllocator()
        init_hooks(alloc)
        root = parse("[1, 2]")
        assert alloc.live_blocks == 3
        root.delete()
        assert alloc.live_blocks == 0

    def test_explicit_allocator_takes_precedence(self, reset_hooks: None) -> None:
        installed = CountingAllocator()
        explicit = CountingAllocator()
        init_hooks(installed)
        root = parse("[1]", allocator=explicit)
        assert installed.total_allocations == 0
        assert explicit.live_blocks == 2
        root.delete()

    def test_reset_to_default(self, reset_hooks: None) -> None:
        init_hooks(CountingAllocator())
        init_hooks(None)
        assert isinstance(get_hooks(), DefaultAllocator)

    def test_non_allocator_rejected(self) -> None:
        with pytest.raises(TypeError, match="allocate"):
            init_hooks(object())  # type: ignore[arg-type]

    def test_nodes_remember_their_allocator(self, reset_hooks: None) -> None:
        """Swapping hooks does not redirect releases of existing nodes."""
        first = CountingAllocator()
        init_hooks(first)
        root = parse('"text"')
        init_hooks(CountingAllocator())
        root.delete()
        assert first.live_blocks == 0

    def test_resolve_allocator(self) -> None:
        alloc = CountingAllocator()
        assert resolve_allocator(alloc) is alloc
        assert resolve_allocator(None) is get_hooks()


class TestAllocateBlock:
    """allocate_block error conversion."""

    def test_returns_block_of_requested_size(self) -> None:
        assert len(allocate_block(DefaultAllocator(), NODE_HEADER_SIZE)) == NODE_HEADER_SIZE

    def test_memory_error_becomes_allocation_error(self) -> None:
        with pytest.raises(AllocationError) as exc_info:
            allocate_block(CountingAllocator(fail_after=0), 32)
        assert exc_info.value.size == 32
        assert isinstance(exc_info.value.original_error, MemoryError)

    def test_allocation_error_is_a_memory_error(self) -> None:
        with pytest.raises(MemoryError):
            allocate_block(CountingAllocator(fail_after=0), 1)
