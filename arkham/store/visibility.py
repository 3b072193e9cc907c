"""
arkham/store/visibility.py - Structural visibility

Visibility is a pure function of the graph, recomputed after every
command, so collapsing and re-expanding a group always restores the
previous visibility set exactly.

- A node is hidden when any ancestor is a collapsed group.
- A sticky note is also hidden when its own hidden flag is set or its
  target is hidden.
- An edge is hidden when an endpoint is hidden; a real edge is also
  hidden while a virtual edge stands in for it.
"""

from typing import Dict, List, Mapping, Set, Tuple

from arkham.core.dataclasses import Edge, Node
from arkham.core.hierarchy import HierarchyIndex


def _collapsed_ancestor(nodes: Mapping[str, Node], hierarchy: HierarchyIndex, node_id: str) -> bool:
    for ancestor_id in hierarchy.ancestors(node_id):
        ancestor = nodes.get(ancestor_id)
        if ancestor is not None and ancestor.is_group and not ancestor.is_expanded:
            return True
    return False


def refresh_visibility(
    nodes: Dict[str, Node],
    edges: Dict[str, Edge],
    hierarchy: HierarchyIndex,
) -> Tuple[List[str], List[str]]:
    """
    Recompute `hidden` on every node and edge in place.

    Returns:
        (node ids whose flag changed, edge ids whose flag changed)
    """
    hidden: Dict[str, bool] = {}
    for node_id, node in nodes.items():
        hidden[node_id] = _collapsed_ancestor(nodes, hierarchy, node_id)

    for node_id, node in nodes.items():
        if not node.is_sticky:
            continue
        target = node.data.target_node_id
        if node.data.hidden or (target and hidden.get(target, False)):
            hidden[node_id] = True

    changed_nodes: List[str] = []
    for node_id, node in nodes.items():
        if node.hidden != hidden[node_id]:
            node.hidden = hidden[node_id]
            changed_nodes.append(node_id)

    replaced: Set[str] = set()
    for edge in edges.values():
        if edge.virtual:
            replaced.update(edge.original_edge_ids)

    changed_edges: List[str] = []
    for edge_id, edge in edges.items():
        is_hidden = (
            hidden.get(edge.source, False)
            or hidden.get(edge.target, False)
            or (not edge.virtual and edge_id in replaced)
        )
        if edge.hidden != is_hidden:
            edge.hidden = is_hidden
            changed_edges.append(edge_id)

    return changed_nodes, changed_edges
