"""
arkham/store/virtual_edges.py - Collapsed-group edge proxies

When a group collapses, every real edge crossing its boundary is
represented by a dashed virtual edge between the group and the outside
endpoint. Edges sharing the same outside endpoint and direction collapse
into one virtual edge listing all of the originals.
"""

from typing import Dict, List, Mapping, Set, Tuple

from arkham.core.dataclasses import Edge

VIRTUAL_EDGE_STYLE = {"strokeDasharray": "5,5"}


def virtual_edge_id(group_id: str, source: str, target: str) -> str:
    return f"virtual-{group_id}-{source}-{target}"


def build_virtual_edges(
    group_id: str,
    inside: Set[str],
    edges: Mapping[str, Edge],
    edge_type: str,
) -> List[Edge]:
    """
    Virtual edges for collapsing group_id.

    Args:
        group_id: The collapsing group
        inside: Ids of every descendant of the group
        edges: Current edge table
        edge_type: Rendering type for the new edges
    """
    grouped: Dict[Tuple[str, str], Edge] = {}

    for edge in edges.values():
        if edge.virtual:
            continue
        source_inside = edge.source in inside
        target_inside = edge.target in inside
        if source_inside == target_inside:
            continue

        if source_inside:
            source, target = group_id, edge.target
        else:
            source, target = edge.source, group_id
        if source == target:
            continue

        key = (source, target)
        if key in grouped:
            grouped[key].original_edge_ids.append(edge.id)
            continue

        grouped[key] = Edge(
            id=virtual_edge_id(group_id, source, target),
            source=source,
            target=target,
            source_handle=None if source_inside else edge.source_handle,
            target_handle=edge.target_handle if source_inside else None,
            type=edge_type,
            animated=True,
            style=dict(VIRTUAL_EDGE_STYLE),
            marker_end=dict(edge.marker_end) if edge.marker_end else None,
            virtual=True,
            original_edge_ids=[edge.id],
            group_id=group_id,
        )

    return list(grouped.values())
