"""
ARKHAM Group Auto-Resize

Fits a group around its content box and, when expanded, its children.

    size = max(minimum, content + padding, children bounding box + padding)

Children with negative local coordinates shift the group up/left and every
child down/right by the same amount, so absolute positions are unchanged
and no child sits left of or above its parent's origin.
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple
import logging

from arkham.core.constants import (
    GROUP_COLLAPSED_PADDING,
    GROUP_EMPTY_MIN_HEIGHT,
    GROUP_EMPTY_MIN_WIDTH,
    GROUP_MIN_HEIGHT,
    GROUP_MIN_WIDTH,
    GROUP_PADDING,
    NEGATIVE_SHIFT_PADDING_X,
    NEGATIVE_SHIFT_PADDING_Y,
)
from arkham.core.dataclasses import Node
from arkham.layout.geometry import node_size, parse_dimension
from arkham.core.hierarchy import HierarchyIndex

logger = logging.getLogger(__name__)


@dataclass
class GroupSizeResult:
    """New size of a group and the shift applied to its children."""
    width: float
    height: float
    shift_x: float = 0.0
    shift_y: float = 0.0

    @property
    def shifted(self) -> bool:
        return self.shift_x != 0 or self.shift_y != 0


def compute_group_size(
    group: Node,
    children: Sequence[Node],
    content_size: Optional[Tuple[float, float]] = None,
) -> GroupSizeResult:
    """Compute a group's size without mutating anything."""
    if content_size is None:
        content_size = (group.data.content_width or 0, group.data.content_height or 0)
    content_width, content_height = content_size

    shift_x = shift_y = 0.0

    if group.is_expanded:
        if children:
            min_x = min(c.position.x for c in children)
            min_y = min(c.position.y for c in children)
            if min_x < 0:
                shift_x = NEGATIVE_SHIFT_PADDING_X - min_x
            if min_y < 0:
                shift_y = NEGATIVE_SHIFT_PADDING_Y - min_y

            max_x = max(c.position.x + shift_x + node_size(c)[0] for c in children)
            max_y = max(c.position.y + shift_y + node_size(c)[1] for c in children)

            width = max(content_width + GROUP_PADDING, max_x + GROUP_PADDING)
            height = max(content_height + GROUP_PADDING, max_y + GROUP_PADDING)
        else:
            width = max(content_width + GROUP_PADDING, GROUP_EMPTY_MIN_WIDTH)
            height = max(content_height + GROUP_PADDING, GROUP_EMPTY_MIN_HEIGHT)
    else:
        width = content_width + GROUP_COLLAPSED_PADDING
        height = content_height + GROUP_COLLAPSED_PADDING

    return GroupSizeResult(
        width=max(width, GROUP_MIN_WIDTH),
        height=max(height, GROUP_MIN_HEIGHT),
        shift_x=shift_x,
        shift_y=shift_y,
    )


def apply_group_size(
    nodes: Mapping[str, Node],
    hierarchy: HierarchyIndex,
    group_id: str,
    content_size: Optional[Tuple[float, float]] = None,
) -> bool:
    """
    Resize one group in place.

    Records content_size on the group when given. Returns True if the
    group's size, content box or children's positions changed.
    """
    group = nodes.get(group_id)
    if group is None or not group.is_group:
        return False

    children = [nodes[c] for c in hierarchy.children(group_id) if c in nodes]
    result = compute_group_size(group, children, content_size)
    changed = False

    if result.shifted:
        group.position.x -= result.shift_x
        group.position.y -= result.shift_y
        for child in children:
            child.position.x += result.shift_x
            child.position.y += result.shift_y
        logger.debug(
            f"Shifted children of {group_id} by ({result.shift_x}, {result.shift_y})"
        )
        changed = True

    if content_size is not None:
        width, height = content_size
        if group.data.content_width != width or group.data.content_height != height:
            group.data.content_width = width
            group.data.content_height = height
            changed = True

    if (
        parse_dimension(group.style.get("width")) != result.width
        or parse_dimension(group.style.get("height")) != result.height
    ):
        group.style["width"] = result.width
        group.style["height"] = result.height
        changed = True

    # Keep the measured size in step until the renderer reports a new one
    group.width = result.width
    group.height = result.height
    return changed


def refit_ancestors(
    nodes: Mapping[str, Node],
    hierarchy: HierarchyIndex,
    node_id: str,
) -> List[str]:
    """Resize every group ancestor of node_id, innermost first."""
    changed: List[str] = []
    for ancestor_id in hierarchy.ancestors(node_id):
        if apply_group_size(nodes, hierarchy, ancestor_id):
            changed.append(ancestor_id)
    return changed
