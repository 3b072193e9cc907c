"""
ARKHAM Graph Dataclasses

Dataclasses for every entity of a scenario document: nodes and their data
payload, edges, variables, the derived game state and the external
character/resource references.
Each dataclass includes to_dict() and from_dict() for serialization to the
camelCase persisted document.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional
import copy

from arkham.core.enums import NodeType, VariableType, EdgeType, GameCategory
from arkham.core.field_aliases import normalize_key, document_key


# ==================== Geometry ====================

@dataclass
class Position:
    """A point in a parent's local coordinate space."""
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Position":
        if not data:
            return cls()
        return cls(x=data.get("x", 0.0), y=data.get("y", 0.0))


# ==================== Node Data ====================

@dataclass
class BranchCase:
    """One output of a switch branch."""
    id: str
    label: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BranchCase":
        return cls(id=str(data.get("id", "")), label=str(data.get("label", "")))


@dataclass
class NodeData:
    """
    Type-specific payload of a node.

    Every field is optional; a field left as None is omitted from the
    persisted document. Keys this class does not know are kept in `extra`
    so documents round-trip unchanged.
    """
    label: str = ""
    description: Optional[str] = None
    revealed: Optional[bool] = None
    is_start: Optional[bool] = None

    # Element
    info_type: Optional[str] = None
    info_value: Optional[str] = None
    quantity: Optional[Any] = None
    action_type: Optional[str] = None
    reference_id: Optional[str] = None

    # Branch
    branch_type: Optional[str] = None
    branches: Optional[List[BranchCase]] = None
    condition_variable: Optional[str] = None
    condition_value: Optional[str] = None

    # Variable
    target_variable: Optional[str] = None
    variable_value: Optional[Any] = None
    previous_value: Optional[Any] = None

    # Jump
    jump_target: Optional[str] = None

    # Group
    expanded: Optional[bool] = None
    content_width: Optional[float] = None
    content_height: Optional[float] = None

    # Sticky
    target_node_id: Optional[str] = None
    hidden: Optional[bool] = None
    has_sticky: Optional[bool] = None

    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def attribute_names(cls) -> List[str]:
        return [f.name for f in fields(cls) if f.name != "extra"]

    @property
    def is_revealed(self) -> bool:
        return bool(self.revealed)

    def update(self, updates: Dict[str, Any]) -> None:
        """Merge a partial update; keys may be document or attribute names."""
        known = set(self.attribute_names())
        for key, value in updates.items():
            attr = normalize_key(key)
            if attr == "branches" and value is not None:
                value = [
                    b if isinstance(b, BranchCase) else BranchCase.from_dict(b)
                    for b in value
                ]
            if attr in known:
                setattr(self, attr, value)
            else:
                self.extra[key] = value

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"label": self.label}
        for name in self.attribute_names():
            if name == "label":
                continue
            value = getattr(self, name)
            if value is None:
                continue
            if name == "branches":
                value = [b.to_dict() for b in value]
            result[document_key(name)] = copy.deepcopy(value)
        for key, value in self.extra.items():
            result.setdefault(key, copy.deepcopy(value))
        return result

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "NodeData":
        node_data = cls()
        if data:
            node_data.update(copy.deepcopy(data))
        if node_data.label is None:
            node_data.label = ""
        return node_data


# ==================== Node ====================

# Top-level node keys handled explicitly; anything else lands in Node.extra
_NODE_KEYS = {"id", "type", "position", "data", "parentNode", "width", "height", "style", "hidden"}


@dataclass
class Node:
    """
    A scenario graph vertex.

    `position` is relative to the parent's coordinate space when
    `parent_node` is set, absolute otherwise. `width`/`height` hold the last
    measured or resolved size; `style` may carry a declared size.
    """
    id: str
    type: NodeType
    position: Position = field(default_factory=Position)
    data: NodeData = field(default_factory=NodeData)
    parent_node: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None
    style: Dict[str, Any] = field(default_factory=dict)
    hidden: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_group(self) -> bool:
        return self.type == NodeType.GROUP

    @property
    def is_sticky(self) -> bool:
        return self.type == NodeType.STICKY

    @property
    def is_expanded(self) -> bool:
        return bool(self.data.expanded)

    def copy(self) -> "Node":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "position": self.position.to_dict(),
            "data": self.data.to_dict(),
        }
        if self.parent_node is not None:
            result["parentNode"] = self.parent_node
        if self.width is not None:
            result["width"] = self.width
        if self.height is not None:
            result["height"] = self.height
        if self.style:
            result["style"] = copy.deepcopy(self.style)
        if self.hidden:
            result["hidden"] = True
        for key, value in self.extra.items():
            result.setdefault(key, copy.deepcopy(value))
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        return cls(
            id=data["id"],
            type=NodeType(data["type"]),
            position=Position.from_dict(data.get("position")),
            data=NodeData.from_dict(data.get("data")),
            parent_node=data.get("parentNode"),
            width=data.get("width"),
            height=data.get("height"),
            style=copy.deepcopy(data.get("style") or {}),
            hidden=bool(data.get("hidden", False)),
            extra={k: copy.deepcopy(v) for k, v in data.items() if k not in _NODE_KEYS},
        )


# ==================== Edge ====================

_EDGE_KEYS = {
    "id", "source", "target", "sourceHandle", "targetHandle",
    "type", "animated", "style", "data", "markerEnd", "hidden",
}


@dataclass
class Edge:
    """
    A directed connection between two nodes.

    Virtual edges stand in for real edges that cross the boundary of a
    collapsed group; `original_edge_ids` lists the edges they replace.
    """
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    type: str = EdgeType.DEFAULT.value
    animated: bool = False
    style: Dict[str, Any] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)
    marker_end: Optional[Dict[str, Any]] = None
    hidden: bool = False

    # Virtual edge bookkeeping
    virtual: bool = False
    original_edge_ids: List[str] = field(default_factory=list)
    group_id: Optional[str] = None

    def copy(self) -> "Edge":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        data = copy.deepcopy(self.data)
        if self.virtual:
            data.update({
                "isVirtual": True,
                "originalEdgeIds": list(self.original_edge_ids),
                "groupId": self.group_id,
            })
        result: Dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.type,
        }
        if self.source_handle is not None:
            result["sourceHandle"] = self.source_handle
        if self.target_handle is not None:
            result["targetHandle"] = self.target_handle
        if self.animated:
            result["animated"] = True
        if self.style:
            result["style"] = copy.deepcopy(self.style)
        if data:
            result["data"] = data
        if self.marker_end is not None:
            result["markerEnd"] = copy.deepcopy(self.marker_end)
        if self.hidden:
            result["hidden"] = True
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Edge":
        payload = copy.deepcopy(data.get("data") or {})
        virtual = bool(payload.pop("isVirtual", False))
        original_ids = payload.pop("originalEdgeIds", None)
        legacy_original = payload.pop("originalEdgeId", None)
        group_id = payload.pop("groupId", None)
        if original_ids is None:
            original_ids = [legacy_original] if legacy_original else []
        return cls(
            id=data["id"],
            source=data["source"],
            target=data["target"],
            source_handle=data.get("sourceHandle"),
            target_handle=data.get("targetHandle"),
            type=data.get("type") or EdgeType.DEFAULT.value,
            animated=bool(data.get("animated", False)),
            style=copy.deepcopy(data.get("style") or {}),
            data=payload,
            marker_end=copy.deepcopy(data.get("markerEnd")),
            hidden=bool(data.get("hidden", False)),
            virtual=virtual,
            original_edge_ids=list(original_ids),
            group_id=group_id,
        )


# ==================== Variables ====================

@dataclass
class Variable:
    """A named, typed scenario variable."""
    name: str
    type: VariableType = VariableType.STRING
    value: Any = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type.value, "value": copy.deepcopy(self.value)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], name: Optional[str] = None) -> "Variable":
        return cls(
            name=data.get("name") or name or "",
            type=VariableType(data.get("type", VariableType.STRING.value)),
            value=copy.deepcopy(data.get("value")),
        )


# ==================== Game State ====================

@dataclass
class GameState:
    """
    Derived play state.

    The five category mappings are recomputed from the graph and never
    edited directly. The variable table travels with the game state so
    that history snapshots capture it.
    """
    inventory: Dict[str, float] = field(default_factory=dict)
    equipment: Dict[str, float] = field(default_factory=dict)
    knowledge: Dict[str, float] = field(default_factory=dict)
    skills: Dict[str, float] = field(default_factory=dict)
    stats: Dict[str, float] = field(default_factory=dict)
    variables: Dict[str, Variable] = field(default_factory=dict)
    current_nodes: List[str] = field(default_factory=list)
    revealed_nodes: List[str] = field(default_factory=list)

    def category(self, category: GameCategory) -> Dict[str, float]:
        return getattr(self, category.value)

    def copy(self) -> "GameState":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentNodes": list(self.current_nodes),
            "revealedNodes": list(self.revealed_nodes),
            "inventory": dict(self.inventory),
            "equipment": dict(self.equipment),
            "knowledge": dict(self.knowledge),
            "skills": dict(self.skills),
            "stats": dict(self.stats),
            "variables": {name: v.to_dict() for name, v in self.variables.items()},
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GameState":
        if not data:
            return cls()
        variables = {
            name: Variable.from_dict(v, name=name)
            for name, v in (data.get("variables") or {}).items()
            if isinstance(v, dict)
        }
        return cls(
            inventory=dict(data.get("inventory") or {}),
            equipment=dict(data.get("equipment") or {}),
            knowledge=dict(data.get("knowledge") or {}),
            skills=dict(data.get("skills") or {}),
            stats=dict(data.get("stats") or {}),
            variables=variables,
            current_nodes=list(data.get("currentNodes") or []),
            revealed_nodes=list(data.get("revealedNodes") or []),
        )


# ==================== External References ====================

@dataclass
class CharacterRef:
    """A character entity referenced by character nodes."""
    id: str
    type: str
    name: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.type, "name": self.name, "description": self.description}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CharacterRef":
        return cls(
            id=data["id"],
            type=data["type"],
            name=data["name"],
            description=data.get("description") or "",
        )


@dataclass
class ResourceRef:
    """A resource entity referenced by resource and element nodes."""
    id: str
    type: str
    name: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.type, "name": self.name, "description": self.description}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceRef":
        return cls(
            id=data["id"],
            type=data["type"],
            name=data["name"],
            description=data.get("description") or "",
        )
