"""DnD helper utilities exposed for reuse in tests and application code."""

from .logic import (
    DROP_POSITIONS,
    GROUP_EDGE_RATIO,
    AutoscrollParams,
    DropPosition,
    HitTestResult,
    RowBounds,
    autoscroll_velocity,
    hit_test_row,
    resolve_drop_position,
)

__all__ = [
    "DROP_POSITIONS",
    "GROUP_EDGE_RATIO",
    "AutoscrollParams",
    "DropPosition",
    "HitTestResult",
    "RowBounds",
    "autoscroll_velocity",
    "hit_test_row",
    "resolve_drop_position",
]
