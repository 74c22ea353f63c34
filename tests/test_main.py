import json
import logging

import pytest

from conntree.config import CONFIG_VERSION
from conntree.main import main, parse_args


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "config_version": CONFIG_VERSION,
                "tree": {"sort_by": "custom", "sort_direction": "asc"},
                "connection_tree": [
                    {"id": "g1", "name": "Group1", "is_group": True, "order": 0},
                    {"id": "i1", "name": "Item1", "parent_id": "g1", "order": 0, "hostname": "one.example"},
                    {"id": "g2", "name": "Group2", "is_group": True, "order": 1},
                ],
            }
        )
    )
    return path


def run(config_path, *args):
    return main(["--config", str(config_path), "--no-log-file", *args])


def _stored_tree(config_path):
    data = json.loads(config_path.read_text())
    return {record["id"]: record for record in data["connection_tree"]}


def test_parse_args_defaults():
    args = parse_args(["move", "a", "b"])
    assert args.position == "after"
    assert args.config is None


def test_show_prints_tree(config_path, capsys):
    assert run(config_path, "show") == 0
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "- Group1/  [g1]",
        "      Item1 (one.example)  [i1]",
        "- Group2/  [g2]",
    ]


def test_move_inside_persists(config_path, capsys):
    assert run(config_path, "move", "i1", "g2", "--position", "inside") == 0
    assert _stored_tree(config_path)["i1"]["parent_id"] == "g2"


def test_rejected_move_reports_reason(config_path, capsys):
    before = _stored_tree(config_path)
    assert run(config_path, "move", "g1", "i1", "--position", "inside") == 1
    err = capsys.readouterr().err
    assert "Cannot drop a group into itself or its descendants" in err
    assert _stored_tree(config_path) == before
    assert _stored_tree(config_path)["g1"].get("parent_id") is None


def test_move_root(config_path):
    assert run(config_path, "move-root", "i1") == 0
    stored = _stored_tree(config_path)["i1"]
    assert stored["parent_id"] is None
    assert stored["order"] == 2


def test_parents_lists_choices(config_path, capsys):
    assert run(config_path, "parents", "g1") == 0
    out = capsys.readouterr().out
    assert "g1\tGroup1  (Cannot be its own parent)" in out
    assert "g2\tGroup2\n" in out


def test_parents_unknown_item(config_path, capsys):
    assert run(config_path, "parents", "nope") == 1
    assert "Unknown item: nope" in capsys.readouterr().err


def test_freeze_sort(config_path, capsys):
    assert run(config_path, "freeze-sort") == 0
    assert "already matches" in capsys.readouterr().out
