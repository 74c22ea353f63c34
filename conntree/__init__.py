"""Connection tree core: nesting rules, sort policy and drag-and-drop reordering."""

__version__ = "1.0.0"

from .connection_sort import SortBy, SortDirection, SortPolicy, build_children, build_tree
from .nesting import MAX_NESTING_DEPTH, can_move_to_parent, depth_of, max_descendant_depth
from .nodes import Node
from .reorder import DropRect, MoveResult, ReorderEngine

__all__ = [
    "MAX_NESTING_DEPTH",
    "DropRect",
    "MoveResult",
    "Node",
    "ReorderEngine",
    "SortBy",
    "SortDirection",
    "SortPolicy",
    "build_children",
    "build_tree",
    "can_move_to_parent",
    "depth_of",
    "max_descendant_depth",
]
