"""Pure helper functions for sidebar drag-and-drop workflows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Sequence


DropPosition = Literal["before", "after", "inside"]

DROP_POSITIONS = ("before", "after", "inside")

# Fraction of a group row's height, at each edge, that means "next to" rather
# than "into" the group.
GROUP_EDGE_RATIO = 0.25


@dataclass(frozen=True)
class RowBounds:
    """Geometry metadata for hit-testing tree rows."""

    key: str
    top: float
    height: float
    is_group: bool = False


@dataclass(frozen=True)
class HitTestResult:
    """Result of translating a pointer Y coordinate to a drop slot."""

    key: str
    position: DropPosition


@dataclass(frozen=True)
class AutoscrollParams:
    """Parameters for computing autoscroll velocity."""

    viewport_height: float
    pointer_y: float
    margin: float
    max_velocity: float


def resolve_drop_position(
    pointer_y: float,
    rect_top: float,
    rect_height: float,
    target_is_group: bool,
) -> DropPosition:
    """Map a pointer position over a row to ``before``, ``after`` or ``inside``.

    Group rows split into a top quarter (``before``), a middle half
    (``inside``) and a bottom quarter (``after``). Connection rows only split
    in half, since they cannot contain anything.
    """

    height = float(rect_height)
    offset = float(pointer_y) - float(rect_top)

    if height <= 0.0:
        if target_is_group:
            return "inside"
        return "before" if offset <= 0.0 else "after"

    if target_is_group:
        if offset < height * GROUP_EDGE_RATIO:
            return "before"
        if offset > height * (1.0 - GROUP_EDGE_RATIO):
            return "after"
        return "inside"

    return "before" if offset < height / 2.0 else "after"


def hit_test_row(rows: Sequence[RowBounds], pointer_y: float) -> Optional[HitTestResult]:
    """Return the row under ``pointer_y`` and the drop position on it.

    Rows may arrive in any order. A pointer above every row targets the first
    row with ``before``; a pointer below every row targets the last row with
    ``after``.
    """

    if not rows:
        return None

    pointer = float(pointer_y)
    ordered = sorted(rows, key=lambda r: (r.top, r.height))

    first = ordered[0]
    if pointer < first.top:
        return HitTestResult(first.key, "before")

    for row in ordered:
        height = max(0.0, float(row.height))
        if row.top <= pointer < row.top + height or (height == 0.0 and pointer == row.top):
            position = resolve_drop_position(pointer, row.top, height, row.is_group)
            return HitTestResult(row.key, position)

    last = ordered[-1]
    if pointer >= last.top + max(0.0, float(last.height)):
        return HitTestResult(last.key, "after")

    # Pointer sits in a gap between rows: attach it below the row above
    above = [row for row in ordered if row.top + max(0.0, float(row.height)) <= pointer]
    return HitTestResult(above[-1].key, "after")


def autoscroll_velocity(params: AutoscrollParams) -> float:
    """Calculate the signed autoscroll velocity for a pointer.

    Negative velocities scroll upwards, positive values scroll downwards. The
    computation is linear within the configured margin and zero elsewhere.
    """

    height = float(params.viewport_height)
    if height <= 0.0:
        return 0.0

    pointer = max(0.0, min(float(params.pointer_y), height))
    margin = max(1.0, min(float(params.margin), height / 2.0))
    max_velocity = max(0.1, float(params.max_velocity))

    top_threshold = margin
    bottom_threshold = height - margin

    if pointer < top_threshold:
        distance = top_threshold - pointer
        return -_scale_velocity(distance, margin, max_velocity)

    if pointer > bottom_threshold:
        distance = pointer - bottom_threshold
        return _scale_velocity(distance, margin, max_velocity)

    return 0.0


def _scale_velocity(distance: float, margin: float, max_velocity: float) -> float:
    ratio = min(1.0, max(0.0, distance) / margin)
    return max_velocity * ratio
