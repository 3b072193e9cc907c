"""
arkham/store/cleanup.py - Structural self-healing

Runs after every structural command:
1. iteratively drop nodes whose parent no longer exists
2. drop sticky notes whose target no longer exists
3. drop edges with a missing endpoint
4. drop vanished originals from virtual edges; a virtual edge with none
   left is dropped too

Drift is repaired silently and logged at DEBUG.
"""

from dataclasses import dataclass, field
from typing import Dict, List
import logging

from arkham.core.dataclasses import Edge, Node

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    removed_nodes: List[str] = field(default_factory=list)
    removed_stickies: List[str] = field(default_factory=list)
    removed_edges: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.removed_nodes or self.removed_stickies or self.removed_edges)


def prune_orphans(nodes: Dict[str, Node]) -> List[str]:
    """Remove nodes with a dangling parent, repeating until none remain."""
    removed: List[str] = []
    while True:
        orphans = [
            node_id for node_id, node in nodes.items()
            if node.parent_node and node.parent_node not in nodes
        ]
        if not orphans:
            return removed
        for node_id in orphans:
            del nodes[node_id]
        removed.extend(orphans)


def prune_stickies(nodes: Dict[str, Node]) -> List[str]:
    """Remove sticky notes bound to a target that no longer exists."""
    dead = [
        node_id for node_id, node in nodes.items()
        if node.is_sticky and node.data.target_node_id and node.data.target_node_id not in nodes
    ]
    for node_id in dead:
        del nodes[node_id]
    return dead


def prune_edges(nodes: Dict[str, Node], edges: Dict[str, Edge]) -> List[str]:
    dangling = [
        edge_id for edge_id, edge in edges.items()
        if edge.source not in nodes or edge.target not in nodes
    ]
    for edge_id in dangling:
        del edges[edge_id]
    return dangling


def prune_virtual_edges(edges: Dict[str, Edge]) -> List[str]:
    """Forget originals that no longer exist. Returns the virtual edges removed."""
    emptied: List[str] = []
    for edge_id, edge in edges.items():
        if not edge.virtual:
            continue
        edge.original_edge_ids = [i for i in edge.original_edge_ids if i in edges]
        if not edge.original_edge_ids:
            emptied.append(edge_id)
    for edge_id in emptied:
        del edges[edge_id]
    return emptied


def run_cleanup(nodes: Dict[str, Node], edges: Dict[str, Edge]) -> CleanupReport:
    """Apply every pass until the graph is stable."""
    report = CleanupReport()
    while True:
        orphans = prune_orphans(nodes)
        stickies = prune_stickies(nodes)
        report.removed_nodes.extend(orphans)
        report.removed_stickies.extend(stickies)
        if not stickies:
            break

    report.removed_edges.extend(prune_edges(nodes, edges))
    report.removed_edges.extend(prune_virtual_edges(edges))

    if report.changed:
        logger.debug(
            f"Cleanup removed {len(report.removed_nodes)} orphan(s), "
            f"{len(report.removed_stickies)} sticky note(s), "
            f"{len(report.removed_edges)} edge(s)"
        )
    return report
