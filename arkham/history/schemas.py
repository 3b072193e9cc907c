"""
history/schemas.py - History data structures

Snapshots captured before every history-significant store command.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict
from datetime import datetime, timezone
import copy
import uuid

from arkham.core.dataclasses import Edge, GameState, Node


@dataclass
class HistorySnapshot:
    """
    Deep copy of {nodes, edges, gameState} at one point in time.

    Snapshots are never mutated after capture; restoring one hands out
    fresh copies so the stack entry stays pristine.
    """

    nodes: Dict[str, Node] = field(default_factory=dict)
    edges: Dict[str, Edge] = field(default_factory=dict)
    game_state: GameState = field(default_factory=GameState)

    snapshot_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    label: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def capture(
        cls,
        nodes: Dict[str, Node],
        edges: Dict[str, Edge],
        game_state: GameState,
        label: str = "",
    ) -> "HistorySnapshot":
        return cls(
            nodes=copy.deepcopy(nodes),
            edges=copy.deepcopy(edges),
            game_state=copy.deepcopy(game_state),
            label=label,
        )

    def restore(self) -> "HistorySnapshot":
        """Fresh deep copy for installing into the live store."""
        return HistorySnapshot(
            nodes=copy.deepcopy(self.nodes),
            edges=copy.deepcopy(self.edges),
            game_state=copy.deepcopy(self.game_state),
            snapshot_id=self.snapshot_id,
            label=self.label,
            created_at=self.created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshot_id": self.snapshot_id,
            "label": self.label,
            "created_at": self.created_at.isoformat(),
            "num_nodes": len(self.nodes),
            "num_edges": len(self.edges),
        }
