"""
ARKHAM Layout Geometry

Rectangles, node sizes and absolute positions.

Node positions are stored relative to the parent, so every absolute
coordinate is computed by walking the parent chain. Nothing caches an
absolute position.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from arkham.core.constants import (
    DEFAULT_GROUP_HEIGHT,
    DEFAULT_GROUP_WIDTH,
    DEFAULT_NODE_HEIGHT,
    DEFAULT_NODE_WIDTH,
)
from arkham.core.dataclasses import Node


@dataclass
class Rect:
    """Axis-aligned rectangle in absolute canvas coordinates."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def contains(self, point: Tuple[float, float]) -> bool:
        px, py = point
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def intersects(self, other: "Rect") -> bool:
        """Strict intersection; touching edges do not count."""
        return (
            self.x < other.right
            and self.right > other.x
            and self.y < other.bottom
            and self.bottom > other.y
        )

    def overlap(self, other: "Rect") -> Tuple[float, float]:
        """Overlap extent on the x and y axes (0 when disjoint on an axis)."""
        dx = min(self.right, other.right) - max(self.x, other.x)
        dy = min(self.bottom, other.bottom) - max(self.y, other.y)
        return (max(0.0, dx), max(0.0, dy))


def parse_dimension(value: Any) -> Optional[float]:
    """Read a style dimension: numbers, numeric strings and "300px"."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("px"):
            text = text[:-2]
        try:
            return float(text)
        except ValueError:
            return None
    return None


def node_size(node: Node) -> Tuple[float, float]:
    """
    Rendered size of a node.

    Groups are sized by their style (written by the auto-resize), other
    nodes by their last measurement. Either falls back to the other source
    and then to the defaults.
    """
    style_width = parse_dimension(node.style.get("width"))
    style_height = parse_dimension(node.style.get("height"))
    measured_width = parse_dimension(node.width)
    measured_height = parse_dimension(node.height)

    if node.is_group:
        width = style_width or measured_width or DEFAULT_GROUP_WIDTH
        height = style_height or measured_height or DEFAULT_GROUP_HEIGHT
    else:
        width = measured_width or style_width or DEFAULT_NODE_WIDTH
        height = measured_height or style_height or DEFAULT_NODE_HEIGHT
    return (width, height)


def absolute_position(nodes: Mapping[str, Node], node_id: str) -> Tuple[float, float]:
    """Sum relative positions up the parent chain."""
    x = y = 0.0
    seen = set()
    current = nodes.get(node_id)
    while current is not None and current.id not in seen:
        seen.add(current.id)
        x += current.position.x
        y += current.position.y
        current = nodes.get(current.parent_node) if current.parent_node else None
    return (x, y)


def absolute_rect(nodes: Mapping[str, Node], node_id: str) -> Rect:
    x, y = absolute_position(nodes, node_id)
    width, height = node_size(nodes[node_id])
    return Rect(x, y, width, height)


def to_local(
    nodes: Mapping[str, Node],
    parent_id: Optional[str],
    point: Tuple[float, float],
) -> Tuple[float, float]:
    """Translate an absolute point into parent_id's coordinate space."""
    if not parent_id or parent_id not in nodes:
        return point
    origin_x, origin_y = absolute_position(nodes, parent_id)
    return (point[0] - origin_x, point[1] - origin_y)
