"""
arkham/validators/sanitizer.py - Scenario document sanitizer

Validates a parsed scenario document and repairs what it can.

Only a document that is not an object, or whose nodes/edges are not
arrays, is rejected. Everything else is corrected in place and every
repair is reported in `corrections`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set
import copy
import logging
import math
import re
import uuid

from pydantic import ValidationError

from arkham.core.enums import EdgeType, NodeType, VariableType
from arkham.validators.schemas import CharacterRecord, ResourceRecord, ViewportRecord

logger = logging.getLogger("validators.sanitizer")

VALID_NODE_TYPES = [t.value for t in NodeType]
VALID_EDGE_TYPES = [t.value for t in EdgeType]
DEFAULT_NODE_TYPE = NodeType.EVENT.value

_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

# Node keys carried over as-is when a node needs repair
_PRESERVED_NODE_KEYS = ("parentNode", "width", "height", "style", "extent", "zIndex")


@dataclass
class ValidationResult:
    """Outcome of validate_scenario_data()."""

    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    corrected_data: Optional[Dict[str, Any]] = None
    corrections: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "correctedData": self.corrected_data,
            "corrections": list(self.corrections),
        }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def default_game_state() -> Dict[str, Any]:
    return {
        "currentNodes": [],
        "revealedNodes": [],
        "inventory": {},
        "equipment": {},
        "knowledge": {},
        "skills": {},
        "stats": {},
        "variables": {},
    }


# =============================================================================
# NODES
# =============================================================================

def validate_node(node: Any) -> List[str]:
    """Problems with a single node entry (empty when it is well-formed)."""
    if not isinstance(node, dict):
        return ["node is not an object"]

    problems: List[str] = []
    node_id = node.get("id")
    if not node_id:
        problems.append("id is missing")
    elif not isinstance(node_id, str):
        problems.append("id must be a string")

    node_type = node.get("type")
    if not node_type:
        problems.append("type is missing")
    elif node_type not in VALID_NODE_TYPES:
        problems.append(f"invalid type \"{node_type}\" (valid: {', '.join(VALID_NODE_TYPES)})")

    position = node.get("position")
    if not position:
        problems.append("position is missing")
    elif not isinstance(position, dict) or not _is_number(position.get("x")) or not _is_number(position.get("y")):
        problems.append("position x and y must be numbers")

    data = node.get("data")
    if data is None:
        problems.append("data is missing")
    elif not isinstance(data, dict):
        problems.append("data must be an object")

    return problems


def correct_node(node: Any) -> Dict[str, Any]:
    """Return a repaired copy of a node entry."""
    source = node if isinstance(node, dict) else {}
    position = source.get("position") if isinstance(source.get("position"), dict) else {}
    node_id = source.get("id")
    node_type = source.get("type")

    corrected: Dict[str, Any] = {
        "id": node_id if node_id and isinstance(node_id, str) else _new_id("node"),
        "type": node_type if node_type in VALID_NODE_TYPES else DEFAULT_NODE_TYPE,
        "position": {
            "x": position.get("x") if _is_number(position.get("x")) else 0,
            "y": position.get("y") if _is_number(position.get("y")) else 0,
        },
        "data": copy.deepcopy(source["data"]) if isinstance(source.get("data"), dict) else {},
    }

    for key in _PRESERVED_NODE_KEYS:
        if key in source:
            corrected[key] = copy.deepcopy(source[key])
    for key in ("selected", "dragging", "hidden"):
        if key in source:
            corrected[key] = bool(source[key])

    return corrected


def _node_corrections(index: int, node: Any) -> List[str]:
    source = node if isinstance(node, dict) else {}
    notes: List[str] = []
    if not source.get("id") or not isinstance(source.get("id"), str):
        notes.append(f"Node {index}: generated a new id")

    node_type = source.get("type")
    if node_type and node_type not in VALID_NODE_TYPES:
        notes.append(f"Node {index}: replaced invalid type \"{node_type}\" with \"{DEFAULT_NODE_TYPE}\"")
    elif not node_type:
        notes.append(f"Node {index}: filled missing type with \"{DEFAULT_NODE_TYPE}\"")

    position = source.get("position")
    if not isinstance(position, dict) or not _is_number(position.get("x")) or not _is_number(position.get("y")):
        notes.append(f"Node {index}: filled position with defaults (x: 0, y: 0)")

    data = source.get("data")
    if data is None:
        notes.append(f"Node {index}: filled missing data with {{}}")
    elif not isinstance(data, dict):
        notes.append(f"Node {index}: replaced invalid data \"{data}\" with {{}}")
    return notes


def _sanitize_nodes(nodes: List[Any], result: ValidationResult) -> List[Dict[str, Any]]:
    valid: List[Dict[str, Any]] = []
    seen: Set[str] = set()

    for index, node in enumerate(nodes):
        problems = validate_node(node)
        if problems:
            result.warnings.append(f"Node {index}: {', '.join(problems)}")
            entry = correct_node(node)
            result.corrections.extend(_node_corrections(index, node))
        else:
            entry = copy.deepcopy(node)

        if entry["id"] in seen:
            duplicate = entry["id"]
            entry["id"] = _new_id("node")
            result.warnings.append(f"Node {index}: duplicate id \"{duplicate}\"")
            result.corrections.append(
                f"Node {index}: renamed duplicate id \"{duplicate}\" to \"{entry['id']}\""
            )
        seen.add(entry["id"])
        valid.append(entry)

    return valid


# =============================================================================
# EDGES
# =============================================================================

def validate_edge(edge: Any, node_ids: Set[str]) -> List[str]:
    if not isinstance(edge, dict):
        return ["edge is not an object"]

    problems: List[str] = []
    edge_id = edge.get("id")
    if not edge_id:
        problems.append("id is missing")
    elif not isinstance(edge_id, str):
        problems.append("id must be a string")

    for end in ("source", "target"):
        value = edge.get(end)
        if not value:
            problems.append(f"{end} is missing")
        elif value not in node_ids:
            problems.append(f"{end} node does not exist: \"{value}\"")

    return problems


def correct_edge(edge: Any, node_ids: Set[str]) -> Optional[Dict[str, Any]]:
    """Repair an edge, or None when an endpoint does not resolve."""
    if not isinstance(edge, dict):
        return None
    source, target = edge.get("source"), edge.get("target")
    if not source or not target or source not in node_ids or target not in node_ids:
        return None

    corrected = copy.deepcopy(edge)
    edge_id = edge.get("id")
    corrected["id"] = edge_id if edge_id and isinstance(edge_id, str) else _new_id("edge")
    corrected["type"] = edge.get("type") or EdgeType.DEFAULT.value
    corrected["data"] = copy.deepcopy(edge.get("data")) if isinstance(edge.get("data"), dict) else {}
    return corrected


def _sanitize_edges(edges: List[Any], node_ids: Set[str], result: ValidationResult) -> List[Dict[str, Any]]:
    valid: List[Dict[str, Any]] = []
    seen: Set[str] = set()

    for index, edge in enumerate(edges):
        problems = validate_edge(edge, node_ids)
        if problems:
            result.warnings.append(f"Edge {index}: {', '.join(problems)}")
            entry = correct_edge(edge, node_ids)
            source = edge if isinstance(edge, dict) else {}
            if entry is None:
                for end in ("source", "target"):
                    value = source.get(end)
                    if value and value not in node_ids:
                        result.corrections.append(
                            f"Edge {index}: removed, {end} node \"{value}\" does not exist"
                        )
                    elif not value:
                        result.corrections.append(f"Edge {index}: removed, {end} is missing")
                continue
            if not source.get("id") or not isinstance(source.get("id"), str):
                result.corrections.append(f"Edge {index}: generated a new id")
        else:
            entry = copy.deepcopy(edge)

        if entry["id"] in seen:
            duplicate = entry["id"]
            entry["id"] = _new_id("edge")
            result.corrections.append(
                f"Edge {index}: renamed duplicate id \"{duplicate}\" to \"{entry['id']}\""
            )
        seen.add(entry["id"])
        valid.append(entry)

    return valid


# =============================================================================
# GAME STATE & VARIABLES
# =============================================================================

def _sanitize_game_state(game_state: Dict[str, Any]) -> Dict[str, Any]:
    def mapping(key: str) -> Dict[str, Any]:
        value = game_state.get(key)
        return copy.deepcopy(value) if isinstance(value, dict) else {}

    def sequence(key: str) -> List[Any]:
        value = game_state.get(key)
        return list(value) if isinstance(value, list) else []

    return {
        "currentNodes": sequence("currentNodes"),
        "revealedNodes": sequence("revealedNodes"),
        "inventory": mapping("inventory"),
        "equipment": mapping("equipment"),
        "knowledge": mapping("knowledge"),
        "skills": mapping("skills"),
        "stats": mapping("stats"),
        "variables": mapping("variables"),
    }


def variable_value_matches(variable_type: str, value: Any) -> bool:
    if variable_type == VariableType.NUMBER.value:
        return _is_number(value) and not (isinstance(value, float) and math.isnan(value))
    if variable_type == VariableType.STRING.value:
        return isinstance(value, str)
    if variable_type == VariableType.BOOLEAN.value:
        return isinstance(value, bool)
    return True


def _parse_float_prefix(value: Any) -> float:
    """Leading numeric prefix of a value's text, or 0."""
    match = _FLOAT_PREFIX.match(str(value))
    return float(match.group(0)) if match else 0.0


def coerce_variable(variable_type: str, value: Any) -> Any:
    if variable_type == VariableType.NUMBER.value:
        if _is_number(value) and not (isinstance(value, float) and math.isnan(value)):
            return value
        number = _parse_float_prefix(value)
        return int(number) if number.is_integer() else number
    if variable_type == VariableType.STRING.value:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)
    if variable_type == VariableType.BOOLEAN.value:
        return value is True or value == "true"
    return value


def _sanitize_variables(variables: Dict[str, Any], result: ValidationResult) -> Dict[str, Any]:
    seen: Set[str] = set()
    corrected: Dict[str, Any] = {}
    valid_types = [t.value for t in VariableType]

    for name, variable in variables.items():
        lowered = name.lower()
        if lowered in seen:
            result.warnings.append(f"Duplicate variable name: \"{name}\"")
            result.corrections.append(f"Removed duplicate variable \"{name}\"")
            continue
        seen.add(lowered)

        if not isinstance(variable, dict):
            result.warnings.append(f"Variable \"{name}\" is not an object")
            result.corrections.append(f"Removed malformed variable \"{name}\"")
            continue

        entry = copy.deepcopy(variable)
        entry.setdefault("name", name)

        variable_type = entry.get("type")
        if variable_type not in valid_types:
            result.warnings.append(f"Variable \"{name}\": unknown type \"{variable_type}\"")
            result.corrections.append(f"Variable \"{name}\": type \"{variable_type}\" replaced with \"string\"")
            entry["type"] = variable_type = VariableType.STRING.value

        value = entry.get("value")
        if "value" in entry and value is not None and not variable_value_matches(variable_type, value):
            fixed = coerce_variable(variable_type, value)
            result.warnings.append(
                f"Variable \"{name}\": type \"{variable_type}\" does not match value \"{value}\""
            )
            result.corrections.append(f"Variable \"{name}\": converted value \"{value}\" to {fixed!r}")
            entry["value"] = fixed

        corrected[name] = entry

    return corrected


# =============================================================================
# ENTRY POINT
# =============================================================================

def _filter_records(
    data: Dict[str, Any],
    key: str,
    model: type,
    result: ValidationResult,
) -> List[Dict[str, Any]]:
    if key not in data or data[key] is None:
        return []

    value = data[key]
    if not isinstance(value, list):
        result.warnings.append(f"{key} is not an array, using an empty array")
        result.corrections.append(f"Replaced {key} with an empty array")
        return []

    kept: List[Dict[str, Any]] = []
    for index, record in enumerate(value):
        try:
            model.model_validate(record)
        except ValidationError as e:
            result.corrections.append(f"Removed invalid {key} entry {index}: {e.error_count()} error(s)")
            continue
        kept.append(copy.deepcopy(record))
    return kept


def validate_scenario_data(data: Any) -> ValidationResult:
    """
    Validate and repair a parsed scenario document.

    Returns:
        ValidationResult; corrected_data is None when the document is
        rejected
    """
    result = ValidationResult()

    if not isinstance(data, dict):
        result.is_valid = False
        result.errors.append("Document is not an object")
        return result

    corrected: Dict[str, Any] = copy.deepcopy(data)

    # Nodes
    if not isinstance(data.get("nodes"), list):
        result.errors.append("nodes is not an array")
        corrected["nodes"] = []
        result.corrections.append("Replaced nodes with an empty array")
    else:
        corrected["nodes"] = _sanitize_nodes(data["nodes"], result)

    # Edges
    if not isinstance(data.get("edges"), list):
        result.errors.append("edges is not an array")
        corrected["edges"] = []
        result.corrections.append("Replaced edges with an empty array")
    else:
        node_ids = {n["id"] for n in corrected["nodes"]}
        corrected["edges"] = _sanitize_edges(data["edges"], node_ids, result)

    # Game state
    game_state = data.get("gameState")
    if not isinstance(game_state, dict):
        result.warnings.append("gameState is invalid, using defaults")
        corrected["gameState"] = default_game_state()
        result.corrections.append("Filled gameState with defaults")
    else:
        corrected["gameState"] = _sanitize_game_state(game_state)

    # References
    corrected["characters"] = _filter_records(data, "characters", CharacterRecord, result)
    corrected["resources"] = _filter_records(data, "resources", ResourceRecord, result)

    # Edge type
    if "edgeType" in data:
        if data["edgeType"] not in VALID_EDGE_TYPES:
            result.warnings.append(
                f"Invalid edgeType \"{data['edgeType']}\" (valid: {', '.join(VALID_EDGE_TYPES)}), using default"
            )
            corrected["edgeType"] = EdgeType.DEFAULT.value
            result.corrections.append(
                f"Replaced invalid edgeType \"{data['edgeType']}\" with \"{EdgeType.DEFAULT.value}\""
            )

    # Variables
    corrected["gameState"]["variables"] = _sanitize_variables(
        corrected["gameState"]["variables"], result
    )

    # Viewport
    if "viewport" in data:
        try:
            ViewportRecord.model_validate(data["viewport"])
        except ValidationError:
            result.warnings.append("viewport is invalid and was ignored")
            corrected.pop("viewport", None)
            result.corrections.append("Removed invalid viewport")

    result.is_valid = not result.errors
    result.corrected_data = corrected if result.is_valid else None

    for note in result.corrections:
        logger.warning(f"Scenario corrected: {note}")
    if result.errors:
        logger.error(f"Scenario rejected: {'; '.join(result.errors)}")

    return result
