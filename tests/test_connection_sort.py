"""Tests for connection sorting helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from conntree.connection_sort import (
    _COMPARATORS,
    SORT_PRESETS,
    SortBy,
    SortDirection,
    SortPolicy,
    apply_sort_to_order,
    build_children,
    build_tree,
)
from conntree.nodes import Node

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _ids(nodes):
    return [node.id for node in nodes]


def _sample():
    return [
        Node(id="web", name="web", protocol="ssh", hostname="b.example", order=2,
             created_at=BASE + timedelta(days=2), updated_at=BASE + timedelta(days=1),
             last_connected=BASE + timedelta(hours=5)),
        Node(id="db", name="Database", protocol="rdp", hostname="c.example", order=0,
             created_at=BASE + timedelta(days=1), updated_at=BASE + timedelta(days=3)),
        Node(id="api", name="api", protocol="http", hostname="a.example", order=1,
             created_at=BASE + timedelta(days=3), updated_at=BASE + timedelta(days=2),
             last_connected=BASE + timedelta(hours=9)),
        Node(id="grp-b", name="Beta", is_group=True, order=5),
        Node(id="grp-a", name="alpha", is_group=True, order=9),
        Node(id="nested", name="nested", parent_id="grp-a"),
    ]


def test_groups_always_come_first():
    for sort_by in SortBy:
        for direction in SortDirection:
            children = build_children(_sample(), None, SortPolicy(sort_by, direction))
            kinds = [node.is_group for node in children]
            assert kinds == sorted(kinds, reverse=True), (sort_by, direction)


def test_only_direct_children_are_returned():
    assert _ids(build_children(_sample(), "grp-a", SortPolicy())) == ["nested"]
    assert "nested" not in _ids(build_children(_sample(), None, SortPolicy()))


@pytest.mark.parametrize(
    "sort_by,direction,expected",
    [
        (SortBy.NAME, SortDirection.ASC, ["grp-a", "grp-b", "api", "db", "web"]),
        (SortBy.NAME, SortDirection.DESC, ["grp-b", "grp-a", "web", "db", "api"]),
        (SortBy.PROTOCOL, SortDirection.ASC, ["grp-a", "grp-b", "api", "db", "web"]),
        (SortBy.HOSTNAME, SortDirection.ASC, ["grp-a", "grp-b", "api", "web", "db"]),
        (SortBy.CREATED_AT, SortDirection.ASC, ["grp-a", "grp-b", "db", "web", "api"]),
        (SortBy.UPDATED_AT, SortDirection.DESC, ["grp-a", "grp-b", "db", "api", "web"]),
        (SortBy.CUSTOM, SortDirection.ASC, ["grp-b", "grp-a", "db", "api", "web"]),
        (SortBy.CUSTOM, SortDirection.DESC, ["grp-a", "grp-b", "web", "api", "db"]),
    ],
)
def test_sort_keys(sort_by, direction, expected):
    policy = SortPolicy(sort_by, direction)
    assert _ids(build_children(_sample(), None, policy)) == expected


def test_recently_used_keeps_observed_direction_mapping():
    asc = build_children(_sample(), None, SortPolicy(SortBy.RECENTLY_USED, SortDirection.ASC))
    desc = build_children(_sample(), None, SortPolicy(SortBy.RECENTLY_USED, SortDirection.DESC))

    # Leaves only: never-connected counts as the oldest
    assert _ids(asc)[2:] == ["db", "web", "api"]
    assert _ids(desc)[2:] == ["api", "web", "db"]


def test_custom_falls_back_to_name_when_reorder_disabled():
    policy = SortPolicy(SortBy.CUSTOM, SortDirection.ASC, enable_reorder=False)
    assert _ids(build_children(_sample(), None, policy)) == ["grp-a", "grp-b", "api", "db", "web"]


def test_custom_order_ties_break_by_name():
    nodes = [Node(id="z", name="zulu", order=1), Node(id="a", name="Alpha", order=1), Node(id="m", name="mike")]
    policy = SortPolicy(SortBy.CUSTOM)
    assert _ids(build_children(nodes, None, policy)) == ["m", "a", "z"]


def test_build_children_is_idempotent_and_pure():
    nodes = _sample()
    snapshot = list(nodes)
    policy = SortPolicy(SortBy.UPDATED_AT, SortDirection.ASC)

    first = build_children(nodes, None, policy)
    second = build_children(nodes, None, policy)

    assert first == second
    assert nodes == snapshot


def test_build_tree_skips_collapsed_groups():
    nodes = [
        Node(id="g1", name="one", is_group=True, expanded=True),
        Node(id="g2", name="two", is_group=True, expanded=False),
        Node(id="a", name="a", parent_id="g1"),
        Node(id="b", name="b", parent_id="g2"),
    ]

    rows = build_tree(nodes, SortPolicy())
    assert [(row.node.id, row.depth) for row in rows] == [("g1", 0), ("a", 1), ("g2", 0)]

    rows = build_tree(nodes, SortPolicy(), include_collapsed=True)
    assert [(row.node.id, row.depth) for row in rows] == [("g1", 0), ("a", 1), ("g2", 0), ("b", 1)]


def test_apply_sort_to_order_changes_orders_and_is_idempotent():
    nodes = _sample()
    policy = SortPolicy(SortBy.NAME, SortDirection.ASC)

    updated, changed = apply_sort_to_order(nodes, policy)
    assert changed is True
    orders = {node.id: node.order for node in updated}
    assert orders["grp-a"] == 0 and orders["grp-b"] == 1
    assert [orders[key] for key in ("api", "db", "web")] == [2, 3, 4]
    assert orders["nested"] == 0

    custom = build_children(updated, None, SortPolicy(SortBy.CUSTOM))
    assert _ids(custom) == _ids(build_children(nodes, None, policy))

    _, changed_again = apply_sort_to_order(updated, policy)
    assert changed_again is False


def test_policy_from_values_falls_back_on_unknown_input():
    policy = SortPolicy.from_values("bogus", "sideways", enable_reorder=0)
    assert policy == SortPolicy(SortBy.NAME, SortDirection.ASC, False)
    assert SortPolicy.from_values("recentlyUsed", "desc").sort_by is SortBy.RECENTLY_USED


def test_every_sort_key_has_a_preset():
    assert set(SORT_PRESETS) == set(SortBy)


def test_every_sort_key_has_a_comparator():
    assert set(_COMPARATORS) == set(SortBy)
