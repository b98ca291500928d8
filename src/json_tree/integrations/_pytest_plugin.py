"""pytest fixtures for code that builds or consumes json-tree documents.

Registered under the ``pytest11`` entry point in pyproject.toml, so any
project with json-tree installed gets two fixtures without touching its own
conftest.py:

- ``assert_json_tree_equal``: structural comparison of two trees (or a tree
  and a plain Python value) that names the first differing JSON Pointer.
- ``counting_allocator``: a fresh ``CountingAllocator`` for leak checks.
"""

from __future__ import annotations

from typing import Any

import pytest

from json_tree.hooks import CountingAllocator
from json_tree.printer import Printer
from json_tree.tree.builder import TreeBuilder
from json_tree.tree.equality import find_difference
from json_tree.tree.nodes import Node


@pytest.fixture(scope="session")
def assert_json_tree_equal() -> Any:
    """Fixture that returns a callable structural-equality asserter.

    The fixture is session-scoped because the returned callable is stateless.
    Either side may be a ``Node`` or a plain Python JSON value; plain values
    are built into a temporary tree which is deleted again afterwards.

    Usage in tests::

        def test_parse(assert_json_tree_equal):
            assert_json_tree_equal(parse('{"a": [1, 2]}'), {"a": [1, 2]})

        def test_order_matters(assert_json_tree_equal):
            with pytest.raises(AssertionError, match=r"first difference at"):
                assert_json_tree_equal(parse("[1, 2]"), [2, 1])

    Returns:
        A callable ``_assert(actual, expected) -> None`` that raises
        ``AssertionError`` when the two trees differ.
    """

    def _assert(actual: Any, expected: Any) -> None:
        """Assert that two JSON trees are structurally equal.

        Args:
            actual:   The tree (or Python value) produced by the code under test.
            expected: The expected tree (or Python value).

        Raises:
            AssertionError: When the trees differ, with a message naming the
                JSON Pointer of the first difference and both renderings.
        """
        owned: list[Node] = []
        try:
            left = _as_node(actual, owned)
            right = _as_node(expected, owned)
            path = find_difference(left, right)
            if path is not None:
                printer = Printer()
                rendered_left = printer.print(left, formatted=False).decode("utf-8", "replace")
                rendered_right = printer.print(right, formatted=False).decode("utf-8", "replace")
                raise AssertionError(
                    f"JSON trees differ: first difference at {path!r}\n"
                    f"  actual:   {rendered_left}\n"
                    f"  expected: {rendered_right}"
                )
        finally:
            for node in owned:
                node.delete()

    return _assert


@pytest.fixture
def counting_allocator() -> CountingAllocator:
    """Fixture that returns a fresh ``CountingAllocator``.

    Function-scoped, so every test starts with zero live blocks.  Pass it as
    ``allocator=`` to any engine call and check ``live_blocks`` afterwards::

        def test_no_leak(counting_allocator):
            parse("[1, 2, 3]", allocator=counting_allocator).delete()
            assert counting_allocator.live_blocks == 0
    """
    return CountingAllocator()


def _as_node(value: Any, owned: list[Node]) -> Node:
    if isinstance(value, Node):
        return value
    node = TreeBuilder().build(value)
    owned.append(node)
    return node
