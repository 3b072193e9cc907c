"""
arkham/core/hierarchy.py - Parent/child adjacency index

Keeps a networkx DiGraph of parent -> child edges next to the node table so
child, descendant and ancestor lookups do not scan every node.

The index is updated incrementally by the store on add/delete/reparent and
rebuilt wholesale after load, undo and redo.
"""

from typing import Iterable, List, Mapping, Optional, Set
import logging

import networkx as nx

from arkham.core.dataclasses import Node

__all__ = ['HierarchyIndex']

logger = logging.getLogger(__name__)


class HierarchyIndex:
    """
    Forest of nodes keyed by id.

    Every node is a vertex; a node with a parent has exactly one incoming
    edge. Cycles are rejected by set_parent.

    Usage:
        index = HierarchyIndex.from_nodes(store_nodes)
        index.children("group-1")
        index.is_descendant("node-3", of="group-1")
    """

    def __init__(self):
        self._graph = nx.DiGraph()

    @classmethod
    def from_nodes(cls, nodes: Mapping[str, Node]) -> "HierarchyIndex":
        index = cls()
        index.rebuild(nodes)
        return index

    def rebuild(self, nodes: Mapping[str, Node]) -> List[str]:
        """
        Rebuild from the parent back-references of a node table.

        Returns:
            Ids of nodes whose parent link was dropped because it named a
            missing node or would have closed a cycle
        """
        self._graph = nx.DiGraph()
        self._graph.add_nodes_from(nodes.keys())
        rejected: List[str] = []
        for node_id, node in nodes.items():
            if not node.parent_node:
                continue
            if node.parent_node not in nodes or not self.set_parent(node_id, node.parent_node):
                rejected.append(node_id)
        return rejected

    # ==================== Mutation ====================

    def add(self, node_id: str, parent_id: Optional[str] = None) -> None:
        self._graph.add_node(node_id)
        if parent_id is not None:
            self.set_parent(node_id, parent_id)

    def remove(self, node_id: str) -> None:
        """Drop a node; its children become parentless in the index."""
        if node_id in self._graph:
            self._graph.remove_node(node_id)

    def set_parent(self, node_id: str, parent_id: Optional[str]) -> bool:
        """
        Move node_id under parent_id (None detaches).

        Returns False if the move would create a cycle.
        """
        if parent_id is not None:
            if parent_id == node_id or self.is_descendant(parent_id, of=node_id):
                logger.debug(f"Rejected reparent of {node_id} under its descendant {parent_id}")
                return False
            self._graph.add_node(parent_id)

        self._graph.add_node(node_id)
        for current in list(self._graph.predecessors(node_id)):
            self._graph.remove_edge(current, node_id)
        if parent_id is not None:
            self._graph.add_edge(parent_id, node_id)
        return True

    # ==================== Queries ====================

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._graph

    def parent(self, node_id: str) -> Optional[str]:
        if node_id not in self._graph:
            return None
        for parent_id in self._graph.predecessors(node_id):
            return parent_id
        return None

    def children(self, node_id: str) -> List[str]:
        if node_id not in self._graph:
            return []
        return list(self._graph.successors(node_id))

    def descendants(self, node_id: str) -> Set[str]:
        if node_id not in self._graph:
            return set()
        return nx.descendants(self._graph, node_id)

    def descendants_preorder(self, node_id: str) -> List[str]:
        """Descendants depth-first, each parent before its children."""
        if node_id not in self._graph:
            return []
        order = list(nx.dfs_preorder_nodes(self._graph, node_id))
        return order[1:]

    def ancestors(self, node_id: str) -> List[str]:
        """Ancestors ordered from the direct parent up to the root."""
        chain: List[str] = []
        current = self.parent(node_id)
        while current is not None and current not in chain:
            chain.append(current)
            current = self.parent(current)
        return chain

    def is_descendant(self, node_id: str, of: str) -> bool:
        if node_id not in self._graph or of not in self._graph:
            return False
        return nx.has_path(self._graph, of, node_id) and node_id != of

    def subtree(self, node_id: str) -> Set[str]:
        """The node and all of its descendants."""
        return self.descendants(node_id) | {node_id}

    def roots(self) -> List[str]:
        return [n for n in self._graph.nodes if self._graph.in_degree(n) == 0]

    def topmost_ancestor(self, node_id: str) -> str:
        chain = self.ancestors(node_id)
        return chain[-1] if chain else node_id

    def depth(self, node_id: str) -> int:
        return len(self.ancestors(node_id))

    def consistent_with(self, nodes: Mapping[str, Node]) -> bool:
        """True if the index matches the parent back-references of nodes."""
        if set(self._graph.nodes) != set(nodes.keys()):
            return False
        for node_id, node in nodes.items():
            if self.parent(node_id) != node.parent_node:
                return False
        return True

    def node_ids(self) -> Iterable[str]:
        return list(self._graph.nodes)
