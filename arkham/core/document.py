"""
ARKHAM Scenario Document

Container for the persisted scenario document:
{nodes, edges, gameState, characters, resources, edgeType, viewport?}.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import copy
import json

from arkham.core.dataclasses import CharacterRef, Edge, GameState, Node, ResourceRef
from arkham.core.enums import EdgeType


@dataclass
class ScenarioDocument:
    """
    A complete scenario.

    from_dict() expects an already sanitized document; see
    arkham.validators.sanitizer.validate_scenario_data.
    """
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    game_state: GameState = field(default_factory=GameState)
    characters: List[CharacterRef] = field(default_factory=list)
    resources: List[ResourceRef] = field(default_factory=list)
    edge_type: str = EdgeType.DEFAULT.value
    viewport: Optional[Dict[str, float]] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "gameState": self.game_state.to_dict(),
            "characters": [c.to_dict() for c in self.characters],
            "resources": [r.to_dict() for r in self.resources],
            "edgeType": self.edge_type,
        }
        if self.viewport is not None:
            result["viewport"] = copy.deepcopy(self.viewport)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioDocument":
        return cls(
            nodes=[Node.from_dict(n) for n in data.get("nodes", [])],
            edges=[Edge.from_dict(e) for e in data.get("edges", [])],
            game_state=GameState.from_dict(data.get("gameState")),
            characters=[CharacterRef.from_dict(c) for c in data.get("characters") or []],
            resources=[ResourceRef.from_dict(r) for r in data.get("resources") or []],
            edge_type=data.get("edgeType") or EdgeType.DEFAULT.value,
            viewport=copy.deepcopy(data.get("viewport")),
        )

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)
