"""Tree subpackage: the node model and everything that builds or edits it.

Re-exports the most used names:
- Node: a single JSON value and its place in the tree
- NodeKind: StrEnum of the eight node kinds
- TreeBuilder: converts Python values into a Node tree
- to_python: converts a Node tree back into Python values
- trees_equal / find_difference: structural comparison of two trees
"""

from json_tree.tree.builder import TreeBuilder, to_python
from json_tree.tree.equality import find_difference, trees_equal
from json_tree.tree.nodes import Node, NodeKind

__all__ = ["Node", "NodeKind", "TreeBuilder", "find_difference", "to_python", "trees_equal"]
