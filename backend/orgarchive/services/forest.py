"""Immutable in-memory snapshot of one tree type (categories or organigram).

Built once per request from a single ``list_all`` query: an id -> node map
plus a children adjacency map. Every traversal the permission core needs
(descendants, ancestors, ancestor names, pre-order walk) runs here with
explicit work-lists, so depth never touches the recursion limit and the
database is never queried per node.

A stored forest is supposed to be acyclic. If a cycle slipped in anyway,
traversals detect it through a visited set and raise TreeConsistencyError
instead of looping.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from ..core.enums import NodeKind
from ..exceptions import TreeConsistencyError


@dataclass(frozen=True)
class NodeRecord:
    """The fields of a tree node the permission core looks at."""

    id: str
    parent_id: Optional[str]
    name: str
    order_key: float = 0.0
    kind: Optional[NodeKind] = None
    has_file: bool = False
    reference: Optional[str] = None


SortKey = Callable[[NodeRecord], Tuple]


def by_order_key(node: NodeRecord) -> Tuple:
    """Organigram sibling order: ascending order_key, ties by id."""
    return (node.order_key, node.id)


def by_name(node: NodeRecord) -> Tuple:
    """Category sibling order: case-insensitive name, ties by id."""
    return (node.name.casefold(), node.id)


class Forest:
    """Read-only forest of NodeRecords.

    A node whose parent_id points to a node that is not part of the snapshot
    (an orphan) is treated as a root.
    """

    def __init__(self, nodes: Iterable[NodeRecord]):
        self._by_id: Dict[str, NodeRecord] = {}
        for node in nodes:
            self._by_id[node.id] = node

        self._children: Dict[Optional[str], List[str]] = {}
        for node in self._by_id.values():
            self._children.setdefault(self.parent_of(node.id), []).append(node.id)

    # -- Lookup -----------------------------------------------------------

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._by_id

    def __iter__(self) -> Iterator[NodeRecord]:
        return iter(self._by_id.values())

    def get(self, node_id: Optional[str]) -> Optional[NodeRecord]:
        if node_id is None:
            return None
        return self._by_id.get(node_id)

    def parent_of(self, node_id: str) -> Optional[str]:
        """Parent id inside this snapshot; None for roots and orphans."""
        node = self._by_id[node_id]
        if node.parent_id is not None and node.parent_id in self._by_id:
            return node.parent_id
        return None

    def children_of(self, node_id: Optional[str]) -> List[NodeRecord]:
        """Direct children, unsorted. ``None`` returns the roots."""
        return [self._by_id[cid] for cid in self._children.get(node_id, [])]

    def roots(self) -> List[NodeRecord]:
        return self.children_of(None)

    # -- Traversals -------------------------------------------------------

    def descendants(self, node_id: str) -> List[str]:
        """All descendant ids of *node_id* (breadth-first, node excluded)."""
        seen = {node_id}
        result: List[str] = []
        queue = deque(self._children.get(node_id, []))
        while queue:
            current = queue.popleft()
            if current in seen:
                raise TreeConsistencyError(current)
            seen.add(current)
            result.append(current)
            queue.extend(self._children.get(current, []))
        return result

    def subtree_ids(self, node_id: str) -> List[str]:
        """*node_id* followed by all of its descendants."""
        return [node_id, *self.descendants(node_id)]

    def ancestors(self, node_id: str) -> List[str]:
        """Ancestor ids, nearest parent first, root last."""
        seen = {node_id}
        result: List[str] = []
        current = self.parent_of(node_id)
        while current is not None:
            if current in seen:
                raise TreeConsistencyError(current)
            seen.add(current)
            result.append(current)
            current = self.parent_of(current)
        return result

    def path_names(self, node_id: str) -> List[str]:
        """Names from the root down to and including *node_id*."""
        chain = [node_id, *self.ancestors(node_id)]
        return [self._by_id[nid].name for nid in reversed(chain)]

    def is_descendant(self, ancestor_id: str, candidate_id: str) -> bool:
        """True if *candidate_id* lies strictly below *ancestor_id*."""
        if candidate_id not in self._by_id or ancestor_id == candidate_id:
            return False
        return ancestor_id in self.ancestors(candidate_id)

    def walk(self, order: SortKey = by_name) -> List[NodeRecord]:
        """Pre-order traversal of the whole forest, siblings sorted by *order*.

        Raises TreeConsistencyError when some node is unreachable from the
        roots, which only happens when parent links form a cycle.
        """
        result: List[NodeRecord] = []
        seen: set[str] = set()
        stack = sorted(self.roots(), key=order, reverse=True)
        while stack:
            node = stack.pop()
            if node.id in seen:
                raise TreeConsistencyError(node.id)
            seen.add(node.id)
            result.append(node)
            stack.extend(sorted(self.children_of(node.id), key=order, reverse=True))

        if len(seen) != len(self._by_id):
            unreachable = sorted(set(self._by_id) - seen)
            raise TreeConsistencyError(unreachable[0])
        return result
