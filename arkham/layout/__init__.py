"""
ARKHAM Layout Module

Spatial layout resolver:
- Geometry (absolute rectangles from relative positions)
- Group auto-resize with negative-coordinate shift
- Breadth-first overlap resolution
"""

from arkham.layout.geometry import (
    Rect,
    parse_dimension,
    node_size,
    absolute_position,
    absolute_rect,
    to_local,
)
from arkham.layout.group_size import (
    GroupSizeResult,
    compute_group_size,
    apply_group_size,
    refit_ancestors,
)
from arkham.layout.overlap import OverlapResolver, OverlapResult

__all__ = [
    "Rect",
    "parse_dimension",
    "node_size",
    "absolute_position",
    "absolute_rect",
    "to_local",
    "GroupSizeResult",
    "compute_group_size",
    "apply_group_size",
    "refit_ancestors",
    "OverlapResolver",
    "OverlapResult",
]
