"""Inheritance graph walk over role rows.

A role inherits every explicit item of every ancestor reachable through its
``parent_ids``. The graph may contain cycles; the walk keeps a visited set
and loads one frontier per query, so it ends after at most one pass over
the table.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Set

from sqlalchemy.orm import Session


@dataclass(frozen=True)
class GraphNode:
    """The slice of a role row the walk needs."""

    id: int
    explicit_item_ids: FrozenSet[int]
    parent_ids: FrozenSet[int]


NodeLoader = Callable[[Set[int]], Iterable[GraphNode]]


class InheritanceGraph:
    """Resolves inherited items through a pluggable node loader."""

    def __init__(self, load_nodes: NodeLoader):
        self._load_nodes = load_nodes

    def resolve_inherited_items(
        self,
        start_parent_ids: Iterable[int],
        exclude: Optional[Iterable[int]] = None,
    ) -> Set[int]:
        """Union of the explicit items of all ancestors reachable from ``start_parent_ids``.

        Ids in ``exclude`` count as already visited. Passing the starting
        node's own id there keeps its items from coming back through a cycle.
        Parent ids that no longer exist are skipped.
        """
        visited: Set[int] = set(exclude or ())
        frontier = set(start_parent_ids) - visited
        items: Set[int] = set()

        while frontier:
            visited |= frontier
            next_frontier: Set[int] = set()
            for node in self._load_nodes(frontier):
                items |= node.explicit_item_ids
                next_frontier |= node.parent_ids
            frontier = next_frontier - visited

        return items


def sql_node_loader(db: Session, model) -> NodeLoader:
    """Loader reading one frontier of ``model`` rows with a single IN query."""

    def load(ids: Set[int]) -> List[GraphNode]:
        rows = db.query(model).filter(model.id.in_(sorted(ids))).all()
        return [
            GraphNode(
                id=row.id,
                explicit_item_ids=frozenset(row.explicit_item_ids),
                parent_ids=frozenset(row.parent_ids),
            )
            for row in rows
        ]

    return load


def dict_node_loader(nodes: Dict[int, GraphNode]) -> NodeLoader:
    """Loader over an in-memory mapping of nodes."""

    def load(ids: Set[int]) -> List[GraphNode]:
        return [nodes[i] for i in sorted(ids) if i in nodes]

    return load


def tag_effective_items(items: Iterable[Any], inherited_ids: Set[int]) -> List[Dict[str, Any]]:
    """Item summaries with an ``inherited`` flag.

    An item that is both explicit and inherited is reported as inherited.
    """
    return [
        {
            "id": item.id,
            "code": item.code,
            "name": item.name,
            "status": item.status,
            "inherited": item.id in inherited_ids,
        }
        for item in items
    ]
