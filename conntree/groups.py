"""Connection tree management for conntree.

This module provides the :class:`ConnectionTreeManager`, which owns the
current snapshot of connections and groups, loads and saves it through
:class:`~conntree.config.Config` and applies the results produced by the
reorder engine.
"""

import logging
from dataclasses import replace
from typing import List, Optional

from .connection_sort import SortPolicy, TreeRow, apply_sort_to_order, build_children, build_tree
from .dnd.logic import DropPosition
from .nesting import (
    MAX_NESTING_DEPTH,
    MoveRejected,
    ParentChoice,
    find_depth_violations,
    repair_forest,
    selectable_parents,
)
from .nodes import Node, find_node, nodes_from_dicts, nodes_to_dicts
from .reorder import MoveResult, ReorderEngine, plan_reparent
from .search_utils import filter_nodes

logger = logging.getLogger(__name__)


class ConnectionTreeManager:
    """Manages the hierarchical connection tree"""

    def __init__(self, config):
        self.config = config
        self.nodes: List[Node] = []
        self.sort_policy = SortPolicy.from_config(config)
        self.engine = ReorderEngine(
            max_depth=self.max_nesting_depth,
            enable_reorder=self.sort_policy.enable_reorder,
        )
        self._load_tree()

    @property
    def max_nesting_depth(self) -> int:
        value = self.config.get_setting("tree.max_nesting_depth", MAX_NESTING_DEPTH)
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
        return MAX_NESTING_DEPTH

    def _load_tree(self):
        """Load the connection tree from configuration"""
        try:
            records = self.config.get_setting("connection_tree", []) or []
            self.nodes = repair_forest(nodes_from_dicts(records))
        except Exception as e:
            logger.error(f"Failed to load connection tree: {e}")
            self.nodes = []

        violations = find_depth_violations(self.nodes, self.max_nesting_depth)
        if violations:
            logger.warning(
                f"{len(violations)} item(s) exceed the nesting depth of {self.max_nesting_depth}: "
                f"{', '.join(violations)}"
            )

    def _save_tree(self):
        """Save the connection tree to configuration"""
        try:
            self.config.set_setting("connection_tree", nodes_to_dicts(self.nodes))
        except Exception as e:
            logger.error(f"Failed to save connection tree: {e}")

    def get_node(self, node_id: Optional[str]) -> Optional[Node]:
        return find_node(self.nodes, node_id)

    def children(self, parent_id: Optional[str] = None) -> List[Node]:
        """Direct children of ``parent_id`` in display order"""
        return build_children(self.nodes, parent_id, self.sort_policy)

    def visible_rows(self, query: str = "", favorites_only: bool = False) -> List[TreeRow]:
        """Rows of the tree as currently expanded, optionally filtered"""
        nodes = filter_nodes(self.nodes, query, favorites_only)
        # Searching shows matches inside collapsed groups too
        return build_tree(nodes, self.sort_policy, include_collapsed=bool(query))

    def apply(self, result: MoveResult) -> bool:
        """Replace the snapshot with a successful move result and persist it"""
        if not result.ok or not result.changed:
            return False
        self.nodes = list(result.nodes)
        self._save_tree()
        return True

    def move(self, dragged_id: str, target_id: str, position: DropPosition) -> MoveResult:
        """Move ``dragged_id`` before, after or inside ``target_id``"""
        self.engine.on_drag_start(dragged_id)
        result = self.engine.drop(self.nodes, target_id, position)
        self.apply(result)
        return result

    def move_to_root(self, node_id: str) -> MoveResult:
        """Move ``node_id`` to the end of the root level"""
        self.engine.on_drag_start(node_id)
        result = self.engine.on_panel_drop(self.nodes)
        self.apply(result)
        return result

    def reparent(self, node_id: str, parent_id: Optional[str]) -> MoveResult:
        """Move ``node_id`` into ``parent_id`` as chosen in the connection editor"""
        try:
            updated = plan_reparent(self.nodes, node_id, parent_id, self.max_nesting_depth)
        except MoveRejected as e:
            logger.warning(f"Cannot move '{node_id}' into '{parent_id}': {e.reason}")
            return MoveResult(list(self.nodes), False, node_id, parent_id, "inside", e)
        result = MoveResult(updated, True, node_id, parent_id, "inside")
        self.apply(result)
        return result

    def selectable_parents(self, node_id: Optional[str], is_group: Optional[bool] = None) -> List[ParentChoice]:
        """Groups offered as parents for ``node_id`` with the reason any is disabled"""
        if is_group is None:
            node = self.get_node(node_id)
            is_group = bool(node and node.is_group)
        return selectable_parents(node_id, self.nodes, is_group, self.max_nesting_depth)

    def set_group_expanded(self, group_id: str, expanded: bool):
        """Set whether a group is expanded"""
        group = self.get_node(group_id)
        if not group or not group.is_group or group.expanded == expanded:
            return
        self.nodes = [replace(node, expanded=expanded) if node.id == group_id else node for node in self.nodes]
        self._save_tree()

    def set_sort_policy(self, policy: SortPolicy):
        """Switch the active sort and remember it"""
        self.sort_policy = policy
        self.engine.enable_reorder = policy.enable_reorder
        self.config.set_setting("tree.sort_by", policy.sort_by.value)
        self.config.set_setting("tree.sort_direction", policy.direction.value)
        self.config.set_setting("tree.enable_reorder", policy.enable_reorder)

    def freeze_sort_order(self, policy: Optional[SortPolicy] = None) -> bool:
        """Store the order produced by ``policy`` as the custom order"""
        updated, changed = apply_sort_to_order(self.nodes, policy or self.sort_policy)
        if changed:
            self.nodes = updated
            self._save_tree()
        return changed
