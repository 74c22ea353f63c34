"""Sidebar drag-and-drop wiring for the connection tree.

Everything here is presentation glue: it forwards GTK pointer events to the
:class:`~conntree.reorder.ReorderEngine`, toggles drop indicator CSS classes on
rows and hands finished moves to the :class:`~conntree.groups.ConnectionTreeManager`.
The window is expected to provide ``connection_list`` (a ``Gtk.ListBox`` whose
rows carry a ``node_id`` attribute), ``connection_scrolled`` and
``rebuild_connection_list()``.
"""

from __future__ import annotations

import logging
from typing import Optional

import gi
gi.require_version("Gtk", "4.0")
from gi.repository import Gtk, Gdk, GObject, GLib

from .dnd.logic import AutoscrollParams, DropPosition, autoscroll_velocity
from .groups import ConnectionTreeManager
from .nesting import NoOp
from .reorder import DropRect, MoveResult

logger = logging.getLogger(__name__)

DRAG_PAYLOAD_TYPE = "tree-node"

DROP_CLASSES = {
    "before": "drop-before",
    "after": "drop-after",
    "inside": "drop-inside",
}


class DropIndicator:
    """Shows where a dragged row will land by toggling CSS classes."""

    def __init__(self):
        self.row = None
        self.position: Optional[DropPosition] = None

    def show(self, row, position: DropPosition):
        if row is self.row and position == self.position:
            return
        self.clear()
        row.add_css_class(DROP_CLASSES[position])
        self.row = row
        self.position = position

    def clear(self):
        if self.row is not None:
            for css_class in DROP_CLASSES.values():
                self.row.remove_css_class(css_class)
        self.row = None
        self.position = None


def _coerce_drag_value(value):
    """Extract the Python payload from drag values produced by ``DragSource``."""

    if isinstance(value, GObject.Value):
        for getter in ("get_boxed", "get_object", "get"):
            try:
                extracted = getattr(value, getter)()
            except Exception:
                extracted = None
            if extracted is not None:
                return extracted
        return None

    return value


def _row_rect(row) -> DropRect:
    allocation = row.get_allocation()
    return DropRect(float(allocation.y), float(allocation.height))


class TreeDragController:
    """Connects a window's connection list to the reorder engine."""

    def __init__(self, window, manager: ConnectionTreeManager):
        self.window = window
        self.manager = manager
        self.indicator = DropIndicator()
        self._autoscroll_timeout_id = 0
        self._autoscroll_velocity = 0.0

    @property
    def engine(self):
        return self.manager.engine

    def attach(self):
        """Install drop and motion controllers on the connection list."""
        connection_list = self.window.connection_list

        drop_target = Gtk.DropTarget.new(type=GObject.TYPE_PYOBJECT, actions=Gdk.DragAction.MOVE)
        drop_target.connect(
            "accept", lambda target, value: isinstance(_coerce_drag_value(value), dict)
        )
        drop_target.connect("drop", lambda target, value, x, y: self.on_drop(value, x, y))
        connection_list.add_controller(drop_target)

        motion_controller = Gtk.DropControllerMotion()
        motion_controller.connect("enter", lambda controller, x, y: self.on_motion(x, y))
        motion_controller.connect("motion", lambda controller, x, y: self.on_motion(x, y))
        motion_controller.connect("leave", lambda controller: self.on_leave())
        connection_list.add_controller(motion_controller)

    def attach_row(self, row):
        """Make ``row`` draggable."""
        drag_source = Gtk.DragSource()
        drag_source.set_actions(Gdk.DragAction.MOVE)
        drag_source.connect("prepare", lambda source, x, y: self._on_drag_prepare(row))
        drag_source.connect("drag-begin", lambda source, drag: self.on_drag_begin(row))
        drag_source.connect("drag-end", lambda source, drag, delete_data: self.on_drag_end())
        row.add_controller(drag_source)
        row._drag_source = drag_source

    # -- drag source ------------------------------------------------------

    def _on_drag_prepare(self, row):
        payload = {"type": DRAG_PAYLOAD_TYPE, "node_id": row.node_id}
        return Gdk.ContentProvider.new_for_value(payload)

    def on_drag_begin(self, row):
        try:
            self.engine.on_drag_start(row.node_id)
        except Exception as e:
            logger.error(f"Error in drag begin: {e}")

    def on_drag_end(self):
        self.indicator.clear()
        self._stop_autoscroll()
        self.engine.on_drag_end()

    # -- drop target ------------------------------------------------------

    def on_motion(self, x, y):
        try:
            self._update_autoscroll(y)

            row = self.window.connection_list.get_row_at_y(int(y))
            node_id = getattr(row, "node_id", None) if row else None
            if node_id is None:
                self.indicator.clear()
                self.engine.on_drag_leave()
                return Gdk.DragAction.MOVE

            position = self.engine.on_drag_over(self.manager.nodes, node_id, y, _row_rect(row))
            if position:
                self.indicator.show(row, position)
            else:
                self.indicator.clear()
        except Exception as e:
            logger.error(f"Error handling motion: {e}")
        return Gdk.DragAction.MOVE

    def on_leave(self):
        self.indicator.clear()
        self._stop_autoscroll()
        self.engine.on_drag_leave()

    def on_drop(self, value, x, y) -> bool:
        self.indicator.clear()
        self._stop_autoscroll()
        try:
            payload = _coerce_drag_value(value)
            if not isinstance(payload, dict) or payload.get("type") != DRAG_PAYLOAD_TYPE:
                self.engine.on_drag_end()
                return False

            node_id = payload.get("node_id")
            if node_id and self.engine.dragged_id != node_id:
                # Drag began outside this controller (e.g. another window)
                self.engine.on_drag_start(node_id)

            row = self.window.connection_list.get_row_at_y(int(y))
            target_id = getattr(row, "node_id", None) if row else None
            if target_id is None:
                result = self.engine.on_panel_drop(self.manager.nodes)
            else:
                result = self.engine.on_drop(self.manager.nodes, target_id, y, _row_rect(row))

            return self._finish(result)
        except Exception as e:
            logger.error(f"Error handling drop: {e}")
            self.engine.on_drag_end()
            return False

    def _finish(self, result: MoveResult) -> bool:
        if self.manager.apply(result):
            self.window.rebuild_connection_list()
            return True

        if result.error is not None and not isinstance(result.error, NoOp):
            show_toast = getattr(self.window, "show_toast", None)
            if callable(show_toast):
                show_toast(result.reason)
        return False

    # -- autoscroll -------------------------------------------------------

    def _update_autoscroll(self, y):
        """Update autoscroll velocity based on pointer position within the viewport."""
        scrolled = getattr(self.window, "connection_scrolled", None)
        if not scrolled:
            self._stop_autoscroll()
            return

        height = scrolled.get_allocation().height
        vadjustment = scrolled.get_vadjustment()
        adjustment_value = vadjustment.get_value() if vadjustment else 0.0
        config = self.manager.config

        velocity = autoscroll_velocity(
            AutoscrollParams(
                viewport_height=height,
                pointer_y=y - adjustment_value,
                margin=config.get_setting("ui.autoscroll_margin", 48.0),
                max_velocity=config.get_setting("ui.autoscroll_max_velocity", 28.0),
            )
        )

        if velocity:
            self._start_autoscroll(velocity)
        else:
            self._stop_autoscroll()

    def _start_autoscroll(self, velocity):
        """Ensure an autoscroll timeout is active with the requested velocity."""
        self._autoscroll_velocity = float(velocity)
        if self._autoscroll_timeout_id:
            return

        interval = max(10, int(self.manager.config.get_setting("ui.autoscroll_interval_ms", 16)))
        self._autoscroll_timeout_id = GLib.timeout_add(interval, self._autoscroll_step)

    def _stop_autoscroll(self):
        """Cancel any active autoscroll timeout and reset state."""
        if self._autoscroll_timeout_id:
            GLib.source_remove(self._autoscroll_timeout_id)
        self._autoscroll_timeout_id = 0
        self._autoscroll_velocity = 0.0

    def _autoscroll_step(self):
        scrolled = getattr(self.window, "connection_scrolled", None)
        adjustment = scrolled.get_vadjustment() if scrolled else None
        if not adjustment or not self._autoscroll_velocity:
            self._autoscroll_timeout_id = 0
            self._autoscroll_velocity = 0.0
            return False

        lower = adjustment.get_lower()
        upper = max(lower, adjustment.get_upper() - adjustment.get_page_size())
        current = adjustment.get_value()
        new_value = max(lower, min(upper, current + self._autoscroll_velocity))
        if new_value != current:
            adjustment.set_value(new_value)
        return True


def build_sidebar(window, manager: ConnectionTreeManager) -> TreeDragController:
    """Set up sidebar drag-and-drop for ``window``."""

    controller = TreeDragController(window, manager)
    controller.attach()
    return controller


__all__ = ["DropIndicator", "TreeDragController", "build_sidebar"]
