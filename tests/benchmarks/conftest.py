"""Deterministic document generators for performance benchmarks.

All generators produce fixed, reproducible documents. No random values.
Three tiers: a small flat object, a 1,000-record array and a deeply
nested chain, each provided both as Python values and as JSON text.
"""

from __future__ import annotations

from typing import Any

import pytest

from json_tree import Node, TreeBuilder, print_json


def generate_flat_object(num_keys: int, prefix: str = "key") -> dict[str, Any]:
    """Generate a flat dict mixing string, number and literal values."""
    values: list[Any] = ["value", 1.5, True, None]
    return {f"{prefix}_{i}": values[i % len(values)] for i in range(num_keys)}


def generate_records(num_records: int) -> list[dict[str, Any]]:
    """Generate an array of small records, the shape of a typical API payload."""
    return [
        {
            "id": i,
            "name": f"record \"{i}\"\n",
            "score": i / 7,
            "tags": [f"t{i % 5}", f"t{i % 3}"],
            "active": i % 2 == 0,
            "parent": None,
        }
        for i in range(num_records)
    ]


def generate_nested(depth: int) -> dict[str, Any]:
    """Generate a chain of single-member objects ``depth`` levels deep."""
    doc: dict[str, Any] = {"leaf": [1, 2, 3]}
    for i in range(depth - 1):
        doc = {f"level_{i}": doc}
    return doc


def _build(value: Any) -> Node:
    return TreeBuilder().build(value)


# --- Fixtures for each size tier ---


@pytest.fixture
def flat_tree() -> Node:
    """50-key flat object."""
    return _build(generate_flat_object(50))


@pytest.fixture
def records_tree() -> Node:
    """1,000 records, about 100 KB of formatted text."""
    return _build(generate_records(1000))


@pytest.fixture
def nested_tree() -> Node:
    """About 200 levels of nested objects."""
    return _build(generate_nested(200))


@pytest.fixture
def flat_text(flat_tree: Node) -> str:
    return print_json(flat_tree)


@pytest.fixture
def records_text(records_tree: Node) -> str:
    return print_json(records_tree)


@pytest.fixture
def nested_text(nested_tree: Node) -> str:
    return print_json(nested_tree)
