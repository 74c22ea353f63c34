from datetime import datetime, timezone

from conntree.nodes import Node, nodes_from_dicts, nodes_to_dicts, replace_nodes, timestamp_value


def test_from_dict_accepts_camel_case_keys():
    node = Node.from_dict(
        {
            "id": "c1",
            "name": "web",
            "isGroup": False,
            "parentId": "g1",
            "order": 3,
            "createdAt": "2024-05-01T10:00:00Z",
            "lastConnected": 1714557600000,
        }
    )

    assert node.parent_id == "g1"
    assert node.order == 3
    assert node.created_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert node.last_connected == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


def test_round_trip_keeps_unknown_keys():
    record = {"id": "c1", "name": "db", "port": 5432, "username": "admin"}

    data = Node.from_dict(record).to_dict()

    assert data["port"] == 5432
    assert data["username"] == "admin"
    assert data["parent_id"] is None
    assert data["is_group"] is False


def test_bad_order_defaults_to_zero():
    assert Node.from_dict({"id": "x", "order": "first"}).order == 0
    assert Node.from_dict({"id": "x", "order": True}).order == 0


def test_nodes_from_dicts_skips_invalid_and_duplicate_records(caplog):
    records = [{"id": "a"}, {"name": "no id"}, {"id": "a", "name": "again"}, {"id": "b"}]

    nodes = nodes_from_dicts(records)

    assert [node.id for node in nodes] == ["a", "b"]
    assert "duplicate node id 'a'" in caplog.text


def test_moved_touches_updated_at_only():
    stamp = datetime(2025, 1, 1, tzinfo=timezone.utc)
    node = Node(id="a", name="a", created_at=stamp)

    moved = node.moved("g", 4, now=stamp)

    assert (moved.parent_id, moved.order, moved.updated_at) == ("g", 4, stamp)
    assert moved.created_at == node.created_at
    assert node.parent_id is None


def test_replace_nodes_returns_new_list():
    nodes = [Node(id="a"), Node(id="b")]
    replacement = Node(id="b", name="bee")

    result = replace_nodes(nodes, {"b": replacement})

    assert result[1] is replacement
    assert nodes[1].name == ""
    assert replace_nodes(nodes, {}) is not nodes


def test_timestamp_value_treats_naive_as_utc():
    naive = datetime(2024, 1, 1)
    aware = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert timestamp_value(naive) == timestamp_value(aware)
    assert timestamp_value(None) == 0.0


def test_nodes_to_dicts_serialises_timestamps():
    stamp = datetime(2024, 2, 3, 4, 5, tzinfo=timezone.utc)
    (data,) = nodes_to_dicts([Node(id="a", updated_at=stamp, tags=("prod",))])
    assert data["updated_at"] == stamp.isoformat()
    assert data["tags"] == ["prod"]
