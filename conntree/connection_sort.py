"""Helpers for ordering connections and groups inside the tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from functools import cmp_to_key
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Set, Tuple

from gettext import gettext as _

from .nodes import Node, timestamp_value

logger = logging.getLogger(__name__)


class SortBy(str, Enum):
    NAME = "name"
    PROTOCOL = "protocol"
    HOSTNAME = "hostname"
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    RECENTLY_USED = "recentlyUsed"
    CUSTOM = "custom"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortPolicy:
    """Active sort settings for a tree view."""

    sort_by: SortBy = SortBy.NAME
    direction: SortDirection = SortDirection.ASC
    enable_reorder: bool = True

    @property
    def multiplier(self) -> int:
        return -1 if self.direction == SortDirection.DESC else 1

    @classmethod
    def from_values(cls, sort_by, direction=None, enable_reorder: bool = True) -> "SortPolicy":
        """Build a policy from loosely typed values, falling back to defaults."""
        try:
            sort_key = SortBy(sort_by) if sort_by is not None else SortBy.NAME
        except ValueError:
            logger.warning(f"Unknown sort key {sort_by!r}; falling back to name")
            sort_key = SortBy.NAME
        try:
            sort_direction = SortDirection(direction) if direction is not None else SortDirection.ASC
        except ValueError:
            logger.warning(f"Unknown sort direction {direction!r}; falling back to ascending")
            sort_direction = SortDirection.ASC
        return cls(sort_key, sort_direction, bool(enable_reorder))

    @classmethod
    def from_config(cls, config) -> "SortPolicy":
        return cls.from_values(
            config.get_setting("tree.sort_by", SortBy.CUSTOM.value),
            config.get_setting("tree.sort_direction", SortDirection.ASC.value),
            config.get_setting("tree.enable_reorder", True),
        )


@dataclass(frozen=True)
class SortPreset:
    """Describes a sort option shown in the sort menu."""

    sort_by: SortBy
    title: str
    description: str
    icon_name: str


SORT_PRESETS: Dict[SortBy, SortPreset] = {
    SortBy.NAME: SortPreset(
        SortBy.NAME,
        _("Name"),
        _("Sort alphabetically by name"),
        "view-sort-ascending-symbolic",
    ),
    SortBy.PROTOCOL: SortPreset(
        SortBy.PROTOCOL,
        _("Protocol"),
        _("Group connections of the same protocol together"),
        "network-server-symbolic",
    ),
    SortBy.HOSTNAME: SortPreset(
        SortBy.HOSTNAME,
        _("Hostname"),
        _("Sort by host name or address"),
        "network-workgroup-symbolic",
    ),
    SortBy.CREATED_AT: SortPreset(
        SortBy.CREATED_AT,
        _("Date created"),
        _("Sort by creation date"),
        "document-new-symbolic",
    ),
    SortBy.UPDATED_AT: SortPreset(
        SortBy.UPDATED_AT,
        _("Date modified"),
        _("Sort by last modification"),
        "document-edit-symbolic",
    ),
    SortBy.RECENTLY_USED: SortPreset(
        SortBy.RECENTLY_USED,
        _("Recently used"),
        _("Sort by last connection time"),
        "document-open-recent-symbolic",
    ),
    SortBy.CUSTOM: SortPreset(
        SortBy.CUSTOM,
        _("Custom"),
        _("Keep the order arranged by drag and drop"),
        "view-list-symbolic",
    ),
}


def _compare(a, b) -> int:
    return (a > b) - (a < b)


def compare_names(a: str, b: str) -> int:
    """Case-insensitive comparison that still orders names differing only in case."""
    a = a or ""
    b = b or ""
    return _compare((a.casefold(), a), (b.casefold(), b))


Comparator = Callable[[Node, Node, SortPolicy], int]


def _by_name(a: Node, b: Node, policy: SortPolicy) -> int:
    return compare_names(a.name, b.name) * policy.multiplier


def _by_protocol(a: Node, b: Node, policy: SortPolicy) -> int:
    return compare_names(a.protocol, b.protocol) * policy.multiplier


def _by_hostname(a: Node, b: Node, policy: SortPolicy) -> int:
    return compare_names(a.hostname, b.hostname) * policy.multiplier


def _by_created(a: Node, b: Node, policy: SortPolicy) -> int:
    return _compare(timestamp_value(a.created_at), timestamp_value(b.created_at)) * policy.multiplier


def _by_updated(a: Node, b: Node, policy: SortPolicy) -> int:
    return _compare(timestamp_value(a.updated_at), timestamp_value(b.updated_at)) * policy.multiplier


def _by_recently_used(a: Node, b: Node, policy: SortPolicy) -> int:
    # Not expressed through ``multiplier``: ascending maps to -1 here.
    # Kept as shipped until the intended direction is confirmed.
    sign = -1 if policy.direction == SortDirection.ASC else 1
    return _compare(timestamp_value(b.last_connected), timestamp_value(a.last_connected)) * sign


def _by_custom(a: Node, b: Node, policy: SortPolicy) -> int:
    if policy.enable_reorder:
        result = _compare(a.order, b.order) * policy.multiplier
        if result:
            return result
    return compare_names(a.name, b.name) * policy.multiplier


_COMPARATORS: Dict[SortBy, Comparator] = {
    SortBy.NAME: _by_name,
    SortBy.PROTOCOL: _by_protocol,
    SortBy.HOSTNAME: _by_hostname,
    SortBy.CREATED_AT: _by_created,
    SortBy.UPDATED_AT: _by_updated,
    SortBy.RECENTLY_USED: _by_recently_used,
    SortBy.CUSTOM: _by_custom,
}

if set(_COMPARATORS) != set(SortBy):
    raise RuntimeError(f"Missing comparators for {set(SortBy) - set(_COMPARATORS)}")


def sibling_sort_key(policy: SortPolicy) -> Callable[[Node], object]:
    """Return a ``sorted`` key implementing the tree's sibling order."""

    comparator = _COMPARATORS[policy.sort_by]

    def _cmp(a: Node, b: Node) -> int:
        if a.is_group != b.is_group:
            return -1 if a.is_group else 1
        result = comparator(a, b, policy)
        if result:
            return result
        # Equal rank: fall back to name, then id, so output is stable
        return compare_names(a.name, b.name) or _compare(a.id, b.id)

    return cmp_to_key(_cmp)


def build_children(
    nodes: Sequence[Node], parent_id: Optional[str], policy: Optional[SortPolicy] = None
) -> List[Node]:
    """Return the direct children of ``parent_id`` in display order.

    ``parent_id`` of ``None`` selects the root level. Groups always come
    before connections; within each partition ``policy`` decides.
    """
    policy = policy or SortPolicy()
    children = [node for node in nodes if node.parent_id == parent_id]
    return sorted(children, key=sibling_sort_key(policy))


class TreeRow(NamedTuple):
    node: Node
    depth: int


def build_tree(
    nodes: Sequence[Node],
    policy: Optional[SortPolicy] = None,
    parent_id: Optional[str] = None,
    include_collapsed: bool = False,
) -> List[TreeRow]:
    """Flatten the visible tree into rows in display order.

    Children of collapsed groups are skipped unless ``include_collapsed`` is
    set.
    """
    policy = policy or SortPolicy()
    rows: List[TreeRow] = []
    visited: Set[str] = set()

    def _walk(current_parent: Optional[str], depth: int) -> None:
        for node in build_children(nodes, current_parent, policy):
            if node.id in visited:
                continue
            visited.add(node.id)
            rows.append(TreeRow(node, depth))
            if node.is_group and (node.expanded or include_collapsed):
                _walk(node.id, depth + 1)

    _walk(parent_id, 0)
    return rows


def apply_sort_to_order(nodes: Sequence[Node], policy: SortPolicy) -> Tuple[List[Node], bool]:
    """Rewrite every sibling list's ``order`` to match ``policy``.

    Returns the new snapshot and whether any order changed. Running it twice
    with the same policy is a no-op the second time.
    """
    parents: List[Optional[str]] = [None]
    for node in nodes:
        if node.is_group:
            parents.append(node.id)

    updates: Dict[str, Node] = {}
    for parent_id in parents:
        for order, node in enumerate(build_children(nodes, parent_id, policy)):
            if node.order != order:
                updates[node.id] = replace(node, order=order)

    changed = bool(updates)
    if changed:
        logger.debug(f"Sort {policy.sort_by.value}-{policy.direction.value} renumbered {len(updates)} nodes")
    return [updates.get(node.id, node) for node in nodes], changed


__all__ = [
    "SORT_PRESETS",
    "SortBy",
    "SortDirection",
    "SortPolicy",
    "SortPreset",
    "TreeRow",
    "apply_sort_to_order",
    "build_children",
    "build_tree",
    "compare_names",
    "sibling_sort_key",
]
