"""Drag-and-drop reordering of the connection tree.

The planners (:func:`plan_drop`, :func:`plan_panel_drop`,
:func:`plan_reparent`) are pure: they take a snapshot of nodes and return a
new one, raising :class:`~conntree.nesting.MoveRejected` when the move is not
allowed. :class:`ReorderEngine` tracks a single drag session and turns those
rejections into an unchanged snapshot plus a logged warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from gettext import gettext as _

from .dnd.logic import DROP_POSITIONS, DropPosition, resolve_drop_position
from .nesting import (
    MAX_NESTING_DEPTH,
    CycleViolation,
    MoveRejected,
    NoOp,
    StaleReference,
    check_move,
    is_descendant,
)
from .nodes import Node, index_nodes, replace_nodes, utcnow

logger = logging.getLogger(__name__)


class DragPhase(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    HOVERING = "hovering"


@dataclass(frozen=True)
class DropRect:
    """Vertical extent of the row under the pointer."""

    top: float
    height: float


@dataclass(frozen=True)
class DragState:
    phase: DragPhase = DragPhase.IDLE
    dragged_id: Optional[str] = None
    over_id: Optional[str] = None
    position: Optional[DropPosition] = None


IDLE = DragState()


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a drop.

    ``nodes`` is always a usable snapshot: the updated one when the move
    succeeded, the caller's own snapshot when it was rejected.
    """

    nodes: List[Node]
    changed: bool
    dragged_id: Optional[str] = None
    target_id: Optional[str] = None
    position: Optional[DropPosition] = None
    error: Optional[MoveRejected] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def reason(self) -> Optional[str]:
        return self.error.reason if self.error else None


def _sibling_rank_key(node: Node):
    return (node.order, node.name.casefold(), node.name, node.id)


def _ensure_changed(original: Sequence[Node], updated: List[Node]) -> List[Node]:
    before = {node.id: (node.parent_id, node.order, node.expanded) for node in original}
    for node in updated:
        if before.get(node.id) != (node.parent_id, node.order, node.expanded):
            return updated
    raise NoOp(_("Item is already in that position"))


def plan_drop(
    nodes: Sequence[Node],
    dragged_id: str,
    target_id: str,
    position: DropPosition,
    max_depth: int = MAX_NESTING_DEPTH,
    now: Optional[datetime] = None,
) -> List[Node]:
    """Return the snapshot after dropping ``dragged_id`` relative to ``target_id``."""
    if position not in DROP_POSITIONS:
        raise ValueError(f"Unsupported position '{position}'")

    if dragged_id == target_id:
        raise NoOp(_("Cannot drop an item onto itself"))

    index = index_nodes(nodes)
    dragged = index.get(dragged_id)
    target = index.get(target_id)
    if dragged is None:
        raise StaleReference(_("Dragged item no longer exists"))
    if target is None:
        raise StaleReference(_("Drop target no longer exists"))

    if dragged.is_group and (target_id == dragged_id or is_descendant(target_id, dragged_id, index)):
        raise CycleViolation(_("Cannot drop a group into itself or its descendants"))

    if position == "inside" and target.is_group:
        new_parent_id = target.id
    else:
        # Connections never accept "inside"; treat it as a sibling drop
        if position == "inside":
            position = "after"
        new_parent_id = target.parent_id

    check_move(dragged_id, new_parent_id, index, max_depth)

    now = now or utcnow()
    siblings = [node for node in nodes if node.parent_id == new_parent_id]
    updates: Dict[str, Node] = {}

    if position == "inside":
        new_order = 0
        for sibling in siblings:
            if sibling.id != dragged_id:
                updates[sibling.id] = replace(sibling, order=sibling.order + 1)
    else:
        ordered = sorted(
            (node for node in siblings if node.id != dragged_id), key=_sibling_rank_key
        )
        target_index = next((i for i, node in enumerate(ordered) if node.id == target_id), -1)
        if position == "before":
            new_order = target_index if target_index >= 0 else 0
        else:
            new_order = target_index + 1 if target_index >= 0 else len(ordered)

        for rank, sibling in enumerate(ordered):
            adjusted = rank + 1 if rank >= new_order else rank
            if sibling.order != adjusted:
                updates[sibling.id] = replace(sibling, order=adjusted)

    updates[dragged_id] = dragged.moved(new_parent_id, new_order, now)

    if position == "inside" and target.is_group and not target.expanded:
        updates[target.id] = replace(updates.get(target.id, target), expanded=True)

    return _ensure_changed(nodes, replace_nodes(nodes, updates))


def plan_panel_drop(
    nodes: Sequence[Node],
    dragged_id: str,
    max_depth: int = MAX_NESTING_DEPTH,
    now: Optional[datetime] = None,
) -> List[Node]:
    """Return the snapshot after dropping ``dragged_id`` on the empty panel area.

    The node becomes the last root-level entry.
    """
    index = index_nodes(nodes)
    dragged = index.get(dragged_id)
    if dragged is None:
        raise StaleReference(_("Dragged item no longer exists"))

    check_move(dragged_id, None, index, max_depth)

    max_order = max(
        (node.order for node in nodes if node.parent_id is None and node.id != dragged_id),
        default=-1,
    )
    updates = {dragged_id: dragged.moved(None, max_order + 1, now)}
    return _ensure_changed(nodes, replace_nodes(nodes, updates))


def plan_reparent(
    nodes: Sequence[Node],
    node_id: str,
    parent_id: Optional[str],
    max_depth: int = MAX_NESTING_DEPTH,
    now: Optional[datetime] = None,
) -> List[Node]:
    """Move ``node_id`` under ``parent_id`` (``None`` for root), after its last child.

    Used by the connection editor's group picker, where there is no drop
    target to position against.
    """
    index = index_nodes(nodes)
    node = index.get(node_id)
    if node is None:
        raise StaleReference(_("Item no longer exists"))

    if node.parent_id == parent_id:
        raise NoOp(_("Item is already in that group"))

    check_move(node_id, parent_id, index, max_depth)

    max_order = max(
        (other.order for other in nodes if other.parent_id == parent_id and other.id != node_id),
        default=-1,
    )
    updates = {node_id: node.moved(parent_id, max_order + 1, now)}
    return replace_nodes(nodes, updates)


class ReorderEngine:
    """Drag session state machine for the connection tree.

    The engine never owns the node collection; every handler that can commit
    receives the current snapshot and returns a :class:`MoveResult`.
    """

    def __init__(
        self,
        max_depth: int = MAX_NESTING_DEPTH,
        enable_reorder: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.max_depth = max_depth
        self.enable_reorder = enable_reorder
        self._clock = clock or utcnow
        self._state = IDLE

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def dragged_id(self) -> Optional[str]:
        return self._state.dragged_id

    @property
    def is_dragging(self) -> bool:
        return self._state.phase != DragPhase.IDLE

    def _reset(self) -> None:
        self._state = IDLE

    # -- session events ---------------------------------------------------

    def on_drag_start(self, node_id: str) -> None:
        if self._state.phase != DragPhase.IDLE:
            logger.debug(f"Drag of '{node_id}' supersedes stale drag of '{self._state.dragged_id}'")
        if not self.enable_reorder:
            self._reset()
            return
        self._state = DragState(DragPhase.DRAGGING, dragged_id=node_id)
        logger.debug(f"Drag started for '{node_id}'")

    def on_drag_over(
        self,
        nodes: Sequence[Node],
        target_id: str,
        pointer_y: float,
        rect: DropRect,
    ) -> Optional[DropPosition]:
        """Update the hover state and return the drop position to display."""
        dragged_id = self._state.dragged_id
        if dragged_id is None:
            return None

        target = index_nodes(nodes).get(target_id)
        if target is None or target_id == dragged_id:
            self._state = DragState(DragPhase.DRAGGING, dragged_id=dragged_id)
            return None

        position = resolve_drop_position(pointer_y, rect.top, rect.height, target.is_group)
        self._state = DragState(DragPhase.HOVERING, dragged_id, target_id, position)
        return position

    def on_drag_leave(self) -> None:
        if self._state.dragged_id is not None:
            self._state = DragState(DragPhase.DRAGGING, dragged_id=self._state.dragged_id)

    def on_drag_end(self) -> None:
        if self._state.phase != DragPhase.IDLE:
            logger.debug(f"Drag of '{self._state.dragged_id}' ended")
        self._reset()

    def on_drop(
        self,
        nodes: Sequence[Node],
        target_id: str,
        pointer_y: float,
        rect: DropRect,
    ) -> MoveResult:
        target = index_nodes(nodes).get(target_id)
        if target is None:
            position = None
        else:
            position = resolve_drop_position(pointer_y, rect.top, rect.height, target.is_group)
        return self._commit(nodes, target_id, position)

    def drop(self, nodes: Sequence[Node], target_id: str, position: DropPosition) -> MoveResult:
        """Commit a drop whose position is already known."""
        return self._commit(nodes, target_id, position)

    def on_panel_drop(self, nodes: Sequence[Node]) -> MoveResult:
        dragged_id = self._state.dragged_id
        try:
            if dragged_id is None:
                raise NoOp(_("Nothing is being dragged"))
            updated = plan_panel_drop(nodes, dragged_id, self.max_depth, self._clock())
        except MoveRejected as e:
            return self._rejected(nodes, dragged_id, None, None, e)
        finally:
            self._reset()
        logger.debug(f"Moved '{dragged_id}' to the root level")
        return MoveResult(updated, True, dragged_id)

    # -- internals --------------------------------------------------------

    def _commit(
        self,
        nodes: Sequence[Node],
        target_id: str,
        position: Optional[DropPosition],
    ) -> MoveResult:
        dragged_id = self._state.dragged_id
        try:
            if dragged_id is None:
                raise NoOp(_("Nothing is being dragged"))
            if position is None:
                raise StaleReference(_("Drop target no longer exists"))
            updated = plan_drop(nodes, dragged_id, target_id, position, self.max_depth, self._clock())
        except MoveRejected as e:
            return self._rejected(nodes, dragged_id, target_id, position, e)
        finally:
            self._reset()
        logger.debug(f"Dropped '{dragged_id}' {position} '{target_id}'")
        return MoveResult(updated, True, dragged_id, target_id, position)

    @staticmethod
    def _rejected(nodes, dragged_id, target_id, position, error: MoveRejected) -> MoveResult:
        logger.warning(f"Cannot move '{dragged_id}': {error.reason}")
        return MoveResult(list(nodes), False, dragged_id, target_id, position, error)


__all__ = [
    "DragPhase",
    "DragState",
    "DropRect",
    "MoveResult",
    "ReorderEngine",
    "plan_drop",
    "plan_panel_drop",
    "plan_reparent",
]
