"""
ARKHAM Derived Game-State Calculator

Re-derives the five category totals (inventory, equipment, knowledge,
skills, stats) from the element nodes of a scenario graph.

Phase 1 seeds every name referenced by an element node with 0, revealed
or not, so the play-mode panels list everything the scenario can grant.
Phase 2 applies obtain/consume for revealed element nodes only.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import logging
import math

from arkham.core.constants import INFO_TYPE_CATEGORIES, RESOURCE_TYPE_CATEGORIES
from arkham.core.dataclasses import GameState, Node, ResourceRef
from arkham.core.enums import ActionType, GameCategory, InfoType, NodeType

logger = logging.getLogger(__name__)


@dataclass
class ElementEntry:
    """Resolved category, display name and signed effect of an element node."""
    category: GameCategory
    name: str
    quantity: float
    action: ActionType


def parse_quantity(value: Any) -> float:
    """Missing, zero and non-numeric quantities count as 1."""
    if isinstance(value, bool):
        return 1
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 1
    if number == 0 or not math.isfinite(number):
        return 1
    return int(number) if number.is_integer() else number


def resolve_element(
    node: Node,
    resources: Mapping[str, ResourceRef],
) -> Optional[ElementEntry]:
    """
    Resolve an element node to its category entry.

    A node referencing a known resource takes the resource's name and the
    category of the resource's type; otherwise the inline infoType and
    infoValue are used. Returns None for nodes with no resolvable name.
    """
    if node.type != NodeType.ELEMENT:
        return None

    data = node.data
    resource = resources.get(data.reference_id) if data.reference_id else None
    if resource is not None:
        name = resource.name
        category = RESOURCE_TYPE_CATEGORIES.get(resource.type, GameCategory.KNOWLEDGE)
    else:
        name = data.info_value
        category = INFO_TYPE_CATEGORIES.get(
            data.info_type or InfoType.KNOWLEDGE.value, GameCategory.KNOWLEDGE
        )

    if not name:
        return None

    try:
        action = ActionType(data.action_type or ActionType.OBTAIN.value)
    except ValueError:
        action = ActionType.OBTAIN

    return ElementEntry(
        category=category,
        name=str(name),
        quantity=parse_quantity(data.quantity),
        action=action,
    )


def calculate_totals(
    nodes: Iterable[Node],
    resources: Mapping[str, ResourceRef],
) -> Dict[GameCategory, Dict[str, float]]:
    """Run both phases and return the five category mappings."""
    totals: Dict[GameCategory, Dict[str, float]] = {c: {} for c in GameCategory}
    entries: List[Tuple[Node, ElementEntry]] = []

    # Phase 1: key discovery
    for node in nodes:
        entry = resolve_element(node, resources)
        if entry is None:
            continue
        totals[entry.category].setdefault(entry.name, 0)
        entries.append((node, entry))

    # Phase 2: accumulation over revealed nodes
    for node, entry in entries:
        if not node.data.is_revealed:
            continue
        bucket = totals[entry.category]
        current = bucket.get(entry.name, 0)
        if entry.action == ActionType.CONSUME:
            bucket[entry.name] = max(0, current - entry.quantity)
        else:
            bucket[entry.name] = current + entry.quantity

    return totals


def recalculate_game_state(
    nodes: Iterable[Node],
    game_state: GameState,
    resources: Mapping[str, ResourceRef],
) -> GameState:
    """
    Return a new GameState with re-derived category totals.

    Variables and the legacy id lists are carried over unchanged.
    """
    node_list = list(nodes)
    totals = calculate_totals(node_list, resources)
    new_state = GameState(
        variables=game_state.variables,
        current_nodes=list(game_state.current_nodes),
        revealed_nodes=list(game_state.revealed_nodes),
    )
    for category, bucket in totals.items():
        setattr(new_state, category.value, bucket)

    logger.debug(
        "Game state recalculated: "
        + ", ".join(f"{c.value}={len(b)}" for c, b in totals.items())
    )
    return new_state


def refresh_sticky_flags(nodes: Mapping[str, Node]) -> List[str]:
    """
    Recompute hasSticky on every node.

    Only nodes whose flag actually changes are touched. Returns their ids.
    """
    targets = {
        node.data.target_node_id
        for node in nodes.values()
        if node.type == NodeType.STICKY and node.data.target_node_id
    }

    changed: List[str] = []
    for node_id, node in nodes.items():
        has_sticky = node_id in targets
        if bool(node.data.has_sticky) != has_sticky:
            node.data.has_sticky = has_sticky
            changed.append(node_id)
    return changed
