from types import SimpleNamespace

from conntree.nodes import Node
from conntree.search_utils import connection_matches, filter_nodes


def _ids(nodes):
    return [node.id for node in nodes]


def test_connection_matches_fields():
    conn = SimpleNamespace(name="Prod DB", hostname="db.example.com", description="Primary")
    assert connection_matches(conn, "prod")
    assert connection_matches(conn, "EXAMPLE")
    assert connection_matches(conn, "primary")
    assert not connection_matches(conn, "staging")


def test_connection_matches_handles_missing_fields():
    conn = SimpleNamespace(name="only-name", hostname=None)
    assert connection_matches(conn, "only")
    assert connection_matches(conn, "")


def _tree():
    return [
        Node(id="g", name="Servers", is_group=True),
        Node(id="sub", name="Nested", is_group=True, parent_id="g"),
        Node(id="web", name="web", hostname="web.example", parent_id="sub", favorite=True),
        Node(id="db", name="db", parent_id="g"),
        Node(id="misc", name="misc"),
    ]


def test_filter_keeps_ancestors_of_matches():
    assert _ids(filter_nodes(_tree(), "web")) == ["g", "sub", "web"]


def test_group_name_match_keeps_group():
    assert _ids(filter_nodes(_tree(), "servers")) == ["g"]


def test_favorites_only():
    assert _ids(filter_nodes(_tree(), favorites_only=True)) == ["g", "sub", "web"]
    assert filter_nodes(_tree(), "db", favorites_only=True) == []


def test_empty_filter_returns_everything():
    assert _ids(filter_nodes(_tree())) == ["g", "sub", "web", "db", "misc"]
