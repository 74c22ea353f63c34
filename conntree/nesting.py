"""Depth and cycle checks for the connection tree.

Every reparenting, whether it comes from a drag in the sidebar or from the
group picker in the connection editor, goes through :func:`check_move`. The
checks are pure and operate on a snapshot of nodes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Set

from gettext import gettext as _

from .nodes import Node, index_nodes

logger = logging.getLogger(__name__)

MAX_NESTING_DEPTH = 5


class MoveRejected(Exception):
    """Base class for moves the tree refuses to perform."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class StaleReference(MoveRejected):
    """A node id no longer exists in the snapshot."""


class CycleViolation(MoveRejected):
    """The proposed parent is the node itself or one of its descendants."""


class DepthExceeded(MoveRejected):
    """The moved subtree would reach the nesting ceiling."""

    def __init__(self, reason: str, max_depth: int):
        super().__init__(reason)
        self.max_depth = max_depth


class InvalidParent(MoveRejected):
    """The proposed parent is a connection rather than a group."""


class NoOp(MoveRejected):
    """The move would not change anything."""


def _as_index(nodes) -> Dict[str, Node]:
    if isinstance(nodes, dict):
        return nodes
    return index_nodes(nodes)


def depth_of(node_id: Optional[str], nodes) -> int:
    """Number of parent hops from ``node_id`` to the root.

    Root nodes and unknown ids have depth 0. A cycle in the parent chain also
    yields 0 so callers never loop forever on corrupt data.
    """
    index = _as_index(nodes)
    node = index.get(node_id) if node_id is not None else None
    if node is None:
        return 0

    depth = 0
    seen: Set[str] = {node.id}
    parent_id = node.parent_id
    while parent_id is not None:
        if parent_id in seen:
            logger.debug(f"Cycle detected while measuring depth of '{node_id}'")
            return 0
        seen.add(parent_id)
        parent = index.get(parent_id)
        if parent is None:
            break
        depth += 1
        parent_id = parent.parent_id
    return depth


def _children_map(index: Dict[str, Node]) -> Dict[Optional[str], List[str]]:
    children: Dict[Optional[str], List[str]] = {}
    for node in index.values():
        children.setdefault(node.parent_id, []).append(node.id)
    return children


def max_descendant_depth(node_id: str, nodes) -> int:
    """Depth of the deepest descendant of ``node_id`` relative to it."""
    index = _as_index(nodes)
    children = _children_map(index)

    deepest = 0
    visited: Set[str] = {node_id}
    stack = [(child, 1) for child in children.get(node_id, [])]
    while stack:
        current, level = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        deepest = max(deepest, level)
        stack.extend((child, level + 1) for child in children.get(current, []))
    return deepest


def is_descendant(candidate_id: Optional[str], ancestor_id: str, nodes) -> bool:
    """Return True if ``candidate_id`` lies somewhere below ``ancestor_id``."""
    index = _as_index(nodes)
    seen: Set[str] = set()
    current = index.get(candidate_id) if candidate_id is not None else None
    while current is not None and current.parent_id is not None:
        if current.parent_id == ancestor_id:
            return True
        if current.parent_id in seen:
            return False
        seen.add(current.parent_id)
        current = index.get(current.parent_id)
    return False


def subtree_ids(node_id: str, nodes) -> Set[str]:
    """Ids of ``node_id`` and everything below it."""
    index = _as_index(nodes)
    children = _children_map(index)
    result: Set[str] = set()
    stack = [node_id]
    while stack:
        current = stack.pop()
        if current in result:
            continue
        result.add(current)
        stack.extend(children.get(current, []))
    return result


def _depth_message(max_depth: int) -> str:
    return _("Max depth ({depth}) exceeded").format(depth=max_depth)


def check_move(
    dragged_id: str,
    candidate_parent_id: Optional[str],
    nodes,
    max_depth: int = MAX_NESTING_DEPTH,
) -> None:
    """Raise :class:`MoveRejected` if ``dragged_id`` may not live under the candidate.

    ``candidate_parent_id`` of ``None`` means the root level.
    """
    index = _as_index(nodes)
    if dragged_id not in index:
        raise StaleReference(_("Item no longer exists"))

    subtree_height = max_descendant_depth(dragged_id, index)

    if candidate_parent_id is None:
        # Root placement: the node lands at depth 0, only its own subtree counts
        if subtree_height >= max_depth:
            raise DepthExceeded(_depth_message(max_depth), max_depth)
        return

    if candidate_parent_id == dragged_id:
        raise CycleViolation(_("Cannot be its own parent"))

    candidate = index.get(candidate_parent_id)
    if candidate is None:
        raise StaleReference(_("Target group no longer exists"))

    if is_descendant(candidate_parent_id, dragged_id, index):
        raise CycleViolation(_("Cannot move into own descendant"))

    if not candidate.is_group:
        raise InvalidParent(_("Only groups can contain items"))

    if depth_of(candidate_parent_id, index) + 1 + subtree_height >= max_depth:
        raise DepthExceeded(_depth_message(max_depth), max_depth)


def can_move_to_parent(
    dragged_id: str,
    candidate_parent_id: Optional[str],
    nodes,
    max_depth: int = MAX_NESTING_DEPTH,
) -> bool:
    try:
        check_move(dragged_id, candidate_parent_id, nodes, max_depth)
    except MoveRejected:
        return False
    return True


def move_rejection_reason(
    dragged_id: str,
    candidate_parent_id: Optional[str],
    nodes,
    max_depth: int = MAX_NESTING_DEPTH,
) -> Optional[str]:
    """Human readable reason a move is refused, or None if it is allowed."""
    try:
        check_move(dragged_id, candidate_parent_id, nodes, max_depth)
    except MoveRejected as e:
        return e.reason
    return None


@dataclass(frozen=True)
class ParentChoice:
    """A group offered by the connection editor's parent picker."""

    group: Node
    disabled: bool = False
    reason: Optional[str] = None


def selectable_parents(
    node_id: Optional[str],
    nodes: Sequence[Node],
    is_group: bool = False,
    max_depth: int = MAX_NESTING_DEPTH,
) -> List[ParentChoice]:
    """Annotate every group with whether ``node_id`` may be moved into it.

    ``node_id`` is None while a new connection is being created; only the
    depth rule applies then. ``is_group`` tells whether the edited item is a
    group, in which case its own subtree height counts towards the ceiling.
    """
    index = _as_index(nodes)
    editing_existing = node_id is not None and node_id in index
    descendant_depth = (
        max_descendant_depth(node_id, index) if editing_existing and is_group else 0
    )

    choices: List[ParentChoice] = []
    for group in nodes:
        if not group.is_group:
            continue
        if editing_existing and group.id == node_id:
            choices.append(ParentChoice(group, True, _("Cannot be its own parent")))
            continue
        if editing_existing and is_descendant(group.id, node_id, index):
            choices.append(ParentChoice(group, True, _("Cannot move into own descendant")))
            continue
        group_depth = depth_of(group.id, index) + 1
        if group_depth + descendant_depth >= max_depth:
            choices.append(ParentChoice(group, True, _depth_message(max_depth)))
        else:
            choices.append(ParentChoice(group))
    return choices


def find_depth_violations(nodes: Sequence[Node], max_depth: int = MAX_NESTING_DEPTH) -> List[str]:
    """Ids of nodes whose depth plus subtree height reaches ``max_depth``."""
    index = _as_index(nodes)
    return [
        node.id
        for node in nodes
        if depth_of(node.id, index) + max_descendant_depth(node.id, index) >= max_depth
    ]


def repair_forest(nodes: Sequence[Node]) -> List[Node]:
    """Return a copy of ``nodes`` whose parent links form a valid forest.

    Nodes pointing at a missing parent or at a connection are moved to the
    root. Every node found on a parent cycle is detached to the root as well.
    Depth overflow is left alone; :func:`find_depth_violations` reports it.
    """
    index = index_nodes(nodes)
    fixed: Dict[str, Node] = {}

    for node in nodes:
        if node.parent_id is None:
            continue
        parent = index.get(node.parent_id)
        if parent is None:
            logger.warning(f"Node '{node.id}' references missing parent '{node.parent_id}'; moving to root")
            fixed[node.id] = replace(node, parent_id=None)
        elif not parent.is_group:
            logger.warning(f"Node '{node.id}' is parented to connection '{parent.id}'; moving to root")
            fixed[node.id] = replace(node, parent_id=None)

    index.update(fixed)

    for node_id in list(index):
        on_path: List[str] = []
        seen: Set[str] = set()
        current = index.get(node_id)
        while current is not None and current.parent_id is not None:
            if current.id in seen:
                break
            seen.add(current.id)
            on_path.append(current.id)
            current = index.get(current.parent_id)
        if current is not None and current.parent_id is not None and current.id in seen:
            cycle_start = on_path.index(current.id)
            for cycle_id in on_path[cycle_start:]:
                logger.warning(f"Node '{cycle_id}' is part of a parent cycle; moving to root")
                index[cycle_id] = replace(index[cycle_id], parent_id=None)
                fixed[cycle_id] = index[cycle_id]

    return [fixed.get(node.id, node) for node in nodes]


__all__ = [
    "MAX_NESTING_DEPTH",
    "CycleViolation",
    "DepthExceeded",
    "InvalidParent",
    "MoveRejected",
    "NoOp",
    "ParentChoice",
    "StaleReference",
    "can_move_to_parent",
    "check_move",
    "depth_of",
    "find_depth_violations",
    "is_descendant",
    "max_descendant_depth",
    "move_rejection_reason",
    "repair_forest",
    "selectable_parents",
    "subtree_ids",
]
