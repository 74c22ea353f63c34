from __future__ import annotations

from typing import Any, Iterable, List


def connection_matches(connection: Any, query: str) -> bool:
    """Return True if connection matches the search query.

    The search checks the connection's name, hostname and description in a
    case-insensitive manner.
    """
    if not query:
        return True
    text = query.lower()
    fields = [
        getattr(connection, "name", ""),
        getattr(connection, "hostname", ""),
        getattr(connection, "description", ""),
    ]
    return any(text in (field or "").lower() for field in fields)


def filter_nodes(nodes: Iterable[Any], query: str = "", favorites_only: bool = False) -> List[Any]:
    """Return the nodes passing the favourites and search filters.

    Groups are kept when they match or when any of their descendants match,
    so that matches stay reachable in the tree.
    """
    nodes = list(nodes)
    if not query and not favorites_only:
        return nodes

    def _passes(node) -> bool:
        if getattr(node, "is_group", False):
            return bool(query) and connection_matches(node, query)
        if favorites_only and not getattr(node, "favorite", False):
            return False
        return connection_matches(node, query)

    by_id = {node.id: node for node in nodes}
    keep = set()
    for node in nodes:
        if not _passes(node):
            continue
        keep.add(node.id)
        parent_id = node.parent_id
        while parent_id is not None and parent_id not in keep:
            keep.add(parent_id)
            parent = by_id.get(parent_id)
            parent_id = parent.parent_id if parent else None

    return [node for node in nodes if node.id in keep]


__all__ = ["connection_matches", "filter_nodes"]
