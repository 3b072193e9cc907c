"""
ARKHAM Overlap Resolver

Breadth-first push-apart of intersecting nodes.

A pusher (the node just resized or moved) shoves every node it intersects
along the axis of smaller overlap, away from its own center. Leftward or
upward pushes become downward pushes. Pushed nodes become pushers in turn.
The loop stops when the queue empties or the iteration cap is hit; a capped
run leaves residual overlap and is only logged.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple
import logging

from arkham.core.constants import OVERLAP_MARGIN, OVERLAP_MAX_ITERATIONS
from arkham.core.dataclasses import Node
from arkham.core.hierarchy import HierarchyIndex
from arkham.layout.geometry import Rect, absolute_rect
from arkham.layout.group_size import apply_group_size, refit_ancestors

logger = logging.getLogger(__name__)


@dataclass
class OverlapResult:
    """Outcome of one resolution pass."""
    moved: Dict[str, Tuple[float, float]] = field(default_factory=dict)
    resized: Set[str] = field(default_factory=set)
    iterations: int = 0
    converged: bool = True

    def merge(self, other: "OverlapResult") -> None:
        for node_id, (dx, dy) in other.moved.items():
            px, py = self.moved.get(node_id, (0.0, 0.0))
            self.moved[node_id] = (px + dx, py + dy)
        self.resized |= other.resized
        self.iterations += other.iterations
        self.converged = self.converged and other.converged

    @property
    def changed(self) -> bool:
        return bool(self.moved or self.resized)


class OverlapResolver:
    """
    Push-apart resolver over a node table.

    Mutates node positions (and group sizes on refit) in place.

    Usage:
        resolver = OverlapResolver(nodes, hierarchy)
        result = resolver.resolve_overlaps("group-1")
        if not result.converged:
            ...
    """

    def __init__(
        self,
        nodes: Mapping[str, Node],
        hierarchy: HierarchyIndex,
        margin: float = OVERLAP_MARGIN,
        max_iterations: int = OVERLAP_MAX_ITERATIONS,
    ):
        self._nodes = nodes
        self._hierarchy = hierarchy
        self._margin = margin
        self._max_iterations = max_iterations

    # ==================== Public API ====================

    def resolve_overlaps(self, pusher_id: str) -> OverlapResult:
        """Push any intersecting node outside the pusher's family."""
        if pusher_id not in self._nodes:
            return OverlapResult()
        result = self._run(pusher_id, self._any_candidates)
        self._refit_moved_parents(result)
        return result

    def resolve_group_overlaps(self, group_id: str) -> OverlapResult:
        """Push only sibling groups sharing the pusher's parent."""
        node = self._nodes.get(group_id)
        if node is None or not node.is_group:
            return OverlapResult()
        result = self._run(group_id, self._sibling_group_candidates)
        self._refit_moved_parents(result)
        return result

    # ==================== BFS ====================

    def _run(
        self,
        pusher_id: str,
        candidates_for: Callable[[str, Rect], Iterable[str]],
    ) -> OverlapResult:
        result = OverlapResult()
        queue = deque([pusher_id])

        while queue:
            if result.iterations >= self._max_iterations:
                result.converged = False
                logger.warning(
                    f"Overlap resolution from {pusher_id} stopped after "
                    f"{result.iterations} iterations; layout may still overlap"
                )
                break
            result.iterations += 1

            current = queue.popleft()
            if current not in self._nodes:
                continue
            rect = absolute_rect(self._nodes, current)

            for candidate_id in list(candidates_for(current, rect)):
                candidate_rect = absolute_rect(self._nodes, candidate_id)
                if not rect.intersects(candidate_rect):
                    continue
                dx, dy = self._push_delta(rect, candidate_rect)
                self._move(candidate_id, dx, dy, result)
                queue.append(candidate_id)

        return result

    def _push_delta(self, pusher: Rect, candidate: Rect) -> Tuple[float, float]:
        overlap_x, overlap_y = pusher.overlap(candidate)
        pusher_cx = pusher.center[0]
        candidate_cx = candidate.center[0]

        if overlap_x < overlap_y and candidate_cx > pusher_cx:
            return (pusher.right - candidate.x + self._margin, 0.0)
        return (0.0, pusher.bottom - candidate.y + self._margin)

    def _move(self, node_id: str, dx: float, dy: float, result: OverlapResult) -> None:
        """Move a node (its descendants follow) and its attached stickies."""
        subtree = self._hierarchy.subtree(node_id)
        to_move = [node_id] + [
            s for s in self._attached_stickies(subtree) if s not in subtree
        ]
        for moving_id in to_move:
            node = self._nodes[moving_id]
            node.position.x += dx
            node.position.y += dy
            px, py = result.moved.get(moving_id, (0.0, 0.0))
            result.moved[moving_id] = (px + dx, py + dy)
        logger.debug(f"Pushed {node_id} by ({dx}, {dy})")

    # ==================== Candidates ====================

    def _attached_stickies(self, subtree: Set[str]) -> List[str]:
        return [
            n.id for n in self._nodes.values()
            if n.is_sticky and n.data.target_node_id in subtree
        ]

    def _any_candidates(self, pusher_id: str, rect: Rect) -> Iterable[str]:
        subtree = self._hierarchy.subtree(pusher_id)
        pusher_ancestors = set(self._hierarchy.ancestors(pusher_id))
        attached = set(self._attached_stickies(subtree))

        for node_id, node in self._nodes.items():
            if node.hidden or node_id in subtree or node_id in pusher_ancestors:
                continue
            if node_id in attached:
                continue
            if not rect.intersects(absolute_rect(self._nodes, node_id)):
                continue
            # Let the outermost intersecting ancestor take the push
            own_ancestors = [
                a for a in self._hierarchy.ancestors(node_id) if a not in pusher_ancestors
            ]
            if any(rect.intersects(absolute_rect(self._nodes, a)) for a in own_ancestors):
                continue
            yield node_id

    def _sibling_group_candidates(self, pusher_id: str, rect: Rect) -> Iterable[str]:
        parent_id = self._nodes[pusher_id].parent_node
        for node_id, node in self._nodes.items():
            if node_id == pusher_id or not node.is_group or node.hidden:
                continue
            if node.parent_node != parent_id:
                continue
            yield node_id

    # ==================== Refit ====================

    def _refit_moved_parents(self, result: OverlapResult) -> None:
        """Resize the parents of moved nodes and resolve upward if they grew."""
        parents: List[str] = []
        for node_id in result.moved:
            parent_id = self._hierarchy.parent(node_id)
            if parent_id and parent_id not in parents:
                parents.append(parent_id)

        for parent_id in parents:
            if not apply_group_size(self._nodes, self._hierarchy, parent_id):
                continue
            result.resized.add(parent_id)
            result.resized.update(refit_ancestors(self._nodes, self._hierarchy, parent_id))
            result.merge(self.resolve_group_overlaps(parent_id))
