"""Connection and group records that make up the connection tree.

A :class:`Node` is immutable; every change produces a new instance through
:func:`dataclasses.replace`. Collections of nodes are plain sequences
("snapshots") owned by the caller. Helpers in this module never mutate the
sequence they are given.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

# Accepted spellings for the serialised fields. The first entry is the
# canonical key written by ``to_dict``.
_FIELD_ALIASES = {
    "parent_id": ("parent_id", "parentId"),
    "is_group": ("is_group", "isGroup"),
    "created_at": ("created_at", "createdAt"),
    "updated_at": ("updated_at", "updatedAt"),
    "last_connected": ("last_connected", "lastConnected"),
}

_KNOWN_KEYS = {
    "id",
    "name",
    "order",
    "expanded",
    "protocol",
    "hostname",
    "description",
    "favorite",
    "tags",
}
for _aliases in _FIELD_ALIASES.values():
    _KNOWN_KEYS.update(_aliases)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Node:
    """A connection (leaf) or a group in the connection tree."""

    id: str
    name: str = ""
    is_group: bool = False
    parent_id: Optional[str] = None
    order: float = 0
    expanded: bool = True
    protocol: str = ""
    hostname: str = ""
    description: str = ""
    favorite: bool = False
    tags: tuple = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_connected: Optional[datetime] = None
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def moved(self, parent_id: Optional[str], order: float, now: Optional[datetime] = None) -> "Node":
        """Return a copy placed under ``parent_id`` at ``order``."""
        return replace(self, parent_id=parent_id, order=order, updated_at=now or utcnow())

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "name": self.name,
                "is_group": self.is_group,
                "parent_id": self.parent_id,
                "order": self.order,
                "expanded": self.expanded,
                "protocol": self.protocol,
                "hostname": self.hostname,
                "description": self.description,
                "favorite": self.favorite,
                "tags": list(self.tags),
                "created_at": _format_timestamp(self.created_at),
                "updated_at": _format_timestamp(self.updated_at),
                "last_connected": _format_timestamp(self.last_connected),
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Node":
        """Build a node from a stored dict.

        Both snake_case and camelCase keys are accepted. Keys that do not map
        onto a field are kept in ``extra`` so they survive a save.
        """
        node_id = data.get("id")
        if not node_id:
            raise ValueError("Node record is missing an 'id'")

        def _pick(name: str, default: Any = None) -> Any:
            for key in _FIELD_ALIASES.get(name, (name,)):
                if key in data:
                    return data[key]
            return default

        parent_id = _pick("parent_id")
        order = data.get("order")
        if not isinstance(order, (int, float)) or isinstance(order, bool):
            order = 0

        return cls(
            id=str(node_id),
            name=str(data.get("name") or ""),
            is_group=bool(_pick("is_group", False)),
            parent_id=str(parent_id) if parent_id else None,
            order=order,
            expanded=bool(data.get("expanded", True)),
            protocol=str(data.get("protocol") or ""),
            hostname=str(data.get("hostname") or ""),
            description=str(data.get("description") or ""),
            favorite=bool(data.get("favorite", False)),
            tags=tuple(data.get("tags") or ()),
            created_at=_parse_timestamp(_pick("created_at")),
            updated_at=_parse_timestamp(_pick("updated_at")),
            last_connected=_parse_timestamp(_pick("last_connected")),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        # Millisecond epoch values come from exported collections
        seconds = value / 1000.0 if value > 1e11 else float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    try:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Ignoring unparsable timestamp {value!r}")
        return None


def timestamp_value(value: Optional[datetime]) -> float:
    """Return ``value`` as epoch seconds, 0 when unset."""
    if value is None:
        return 0.0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def index_nodes(nodes: Iterable[Node]) -> Dict[str, Node]:
    """Map node ids to nodes. Later duplicates win."""
    return {node.id: node for node in nodes}


def find_node(nodes: Iterable[Node], node_id: Optional[str]) -> Optional[Node]:
    if node_id is None:
        return None
    for node in nodes:
        if node.id == node_id:
            return node
    return None


def children_of(nodes: Iterable[Node], parent_id: Optional[str]) -> List[Node]:
    """Direct children of ``parent_id`` in snapshot order (unsorted)."""
    return [node for node in nodes if node.parent_id == parent_id]


def replace_nodes(nodes: Sequence[Node], updates: Mapping[str, Node]) -> List[Node]:
    """Return a new snapshot with ``updates`` overwriting nodes by id."""
    if not updates:
        return list(nodes)
    return [updates.get(node.id, node) for node in nodes]


def nodes_from_dicts(records: Iterable[Mapping[str, Any]]) -> List[Node]:
    result: List[Node] = []
    seen = set()
    for record in records:
        try:
            node = Node.from_dict(record)
        except (TypeError, ValueError, AttributeError) as e:
            logger.error(f"Skipping invalid node record {record!r}: {e}")
            continue
        if node.id in seen:
            logger.warning(f"Skipping duplicate node id '{node.id}'")
            continue
        seen.add(node.id)
        result.append(node)
    return result


def nodes_to_dicts(nodes: Iterable[Node]) -> List[Dict[str, Any]]:
    return [node.to_dict() for node in nodes]


__all__ = [
    "Node",
    "children_of",
    "find_node",
    "index_nodes",
    "nodes_from_dicts",
    "nodes_to_dicts",
    "replace_nodes",
    "timestamp_value",
    "utcnow",
]
