"""
ARKHAM Reveal State Machine

Applies revealed/unrevealed transitions to a node and its descendants.

Variable nodes carry side effects: revealing one evaluates its assignment
against the in-progress variable table and stores the variable's prior
value on the node; unrevealing writes that value back and clears it.
Unreveal walks the nodes in reverse so chained assignments to the same
variable unwind to the original value.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Mapping
import logging

from arkham.core.dataclasses import Node, Variable
from arkham.core.enums import NodeType
from arkham.core.hierarchy import HierarchyIndex
from arkham.formula.evaluator import coerce_variable_value, evaluate_formula
from arkham.formula.substitution import find_variable

logger = logging.getLogger(__name__)


@dataclass
class RevealResult:
    """Nodes whose flag flipped and the resulting variable table."""
    changed: List[str] = field(default_factory=list)
    variables: Dict[str, Variable] = field(default_factory=dict)
    touched_variables: List[str] = field(default_factory=list)

    @property
    def changed_any(self) -> bool:
        return bool(self.changed)


def cascade_order(hierarchy: HierarchyIndex, node_id: str) -> List[str]:
    """The node followed by its descendants, parents before children."""
    return [node_id] + hierarchy.descendants_preorder(node_id)


class RevealStateMachine:
    """
    Reveal transitions over a node table.

    Mutates node data in place; the variable table passed in is never
    mutated, the updated one is returned on the result.
    """

    def __init__(self, nodes: Mapping[str, Node], hierarchy: HierarchyIndex):
        self._nodes = nodes
        self._hierarchy = hierarchy

    def toggle(self, node_id: str, variables: Mapping[str, Variable]) -> RevealResult:
        """Flip a node's flag and apply the same state to its descendants."""
        node = self._nodes.get(node_id)
        if node is None:
            return RevealResult(variables=dict(variables))
        target = not node.data.is_revealed
        return self.apply(cascade_order(self._hierarchy, node_id), target, variables)

    def set_revealed(
        self,
        node_id: str,
        revealed: bool,
        variables: Mapping[str, Variable],
        cascade: bool = True,
    ) -> RevealResult:
        if node_id not in self._nodes:
            return RevealResult(variables=dict(variables))
        order = cascade_order(self._hierarchy, node_id) if cascade else [node_id]
        return self.apply(order, revealed, variables)

    def reveal_all(self, variables: Mapping[str, Variable]) -> RevealResult:
        return self.apply(list(self._nodes.keys()), True, variables)

    def unreveal_all(self, variables: Mapping[str, Variable]) -> RevealResult:
        return self.apply(list(self._nodes.keys()), False, variables)

    def apply(
        self,
        order: Iterable[str],
        revealed: bool,
        variables: Mapping[str, Variable],
    ) -> RevealResult:
        """
        Move every node in order to the target state.

        Nodes already in the target state are skipped. Unreveal processes
        the order back to front.
        """
        result = RevealResult(variables=dict(variables))
        sequence = list(order)
        if not revealed:
            sequence.reverse()

        for node_id in sequence:
            node = self._nodes.get(node_id)
            if node is None or node.data.is_revealed == revealed:
                continue

            node.data.revealed = revealed
            result.changed.append(node_id)

            if node.type == NodeType.VARIABLE:
                if revealed:
                    self._assign(node, result)
                else:
                    self._restore(node, result)

        logger.debug(
            f"{'Revealed' if revealed else 'Unrevealed'} {len(result.changed)} node(s)"
        )
        return result

    def _assign(self, node: Node, result: RevealResult) -> None:
        name = node.data.target_variable
        variable = find_variable(result.variables, name) if name else None
        if variable is None:
            return

        node.data.previous_value = variable.value
        expression = node.data.variable_value
        if isinstance(expression, str):
            resolved = evaluate_formula(expression, result.variables)
            value = coerce_variable_value(variable.type, resolved, raw=expression)
        else:
            value = expression

        result.variables[variable.name] = replace(variable, value=value)
        result.touched_variables.append(variable.name)
        logger.debug(f"Variable node {node.id} set {variable.name}={value!r}")

    def _restore(self, node: Node, result: RevealResult) -> None:
        name = node.data.target_variable
        variable = find_variable(result.variables, name) if name else None
        if variable is not None and node.data.previous_value is not None:
            result.variables[variable.name] = replace(variable, value=node.data.previous_value)
            result.touched_variables.append(variable.name)
        node.data.previous_value = None
