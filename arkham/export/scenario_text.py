"""
arkham/export/scenario_text.py - Readable scenario script export.

Traces the scenario flow from its start nodes and writes it out section by
section. A section runs along the edges until it ends, loops back, or
reaches a merge node (a node with more than one incoming edge); merge nodes
start sections of their own so shared passages are written only once.
Nodes no flow reaches are listed at the end.
"""

from __future__ import annotations
from collections import deque
from typing import Dict, Iterable, List, Mapping, Optional, Set, Union
import logging

from arkham.core.dataclasses import Edge, Node, Variable
from arkham.core.enums import BranchType, ExportFormat, NodeType
from arkham.export.formatters import BaseFormatter, get_formatter
from arkham.formula import substitute_variables

logger = logging.getLogger(__name__)


class ScenarioTextExporter:
    """
    One export run over a fixed graph.

    Usage:
        exporter = ScenarioTextExporter(nodes, edges, variables, ExportFormat.MARKDOWN)
        text = exporter.export()
    """

    def __init__(
        self,
        nodes: Iterable[Node],
        edges: Iterable[Edge],
        variables: Mapping[str, Variable],
        format: Union[ExportFormat, str] = ExportFormat.TEXT,
    ):
        self._nodes: Dict[str, Node] = {n.id: n for n in nodes}
        # Virtual edges are a display artefact of collapsed groups
        self._edges: List[Edge] = [e for e in edges if not e.virtual]
        self._variables = variables
        self._formatter: BaseFormatter = get_formatter(format)

        self._incoming: Dict[str, int] = {node_id: 0 for node_id in self._nodes}
        self._outgoing: Dict[str, List[Edge]] = {node_id: [] for node_id in self._nodes}
        for edge in self._edges:
            self._incoming[edge.target] = self._incoming.get(edge.target, 0) + 1
            self._outgoing.setdefault(edge.source, []).append(edge)

        self._lines: List[str] = []
        self._visited: Set[str] = set()
        self._visited_sections: Set[str] = set()
        self._queue: deque = deque()

    def export(self) -> str:
        fmt = self._formatter
        self._lines.extend(fmt.header())

        for node in self._start_nodes():
            self._enqueue(node.id)

        while self._queue:
            node_id = self._queue.popleft()
            if node_id in self._visited_sections:
                continue
            self._visited_sections.add(node_id)
            node = self._nodes.get(node_id)
            if node is None:
                continue
            self._lines.extend(fmt.section(f"Flow Starting at: {self._label(node)}"))
            self._trace(node_id)
            self._lines.extend(fmt.section_end())

        remaining = [
            n for n in self._nodes.values()
            if n.id not in self._visited and n.type != NodeType.GROUP
        ]
        if remaining:
            self._lines.extend(fmt.section(fmt.disconnected_title))
            for node in sorted(remaining, key=lambda n: n.position.y):
                self._lines.extend(fmt.node(node, self._process))

        logger.debug(
            f"Exported {len(self._visited)} traced node(s), {len(remaining)} disconnected"
        )
        return "\n".join(self._lines)

    # ==================== Traversal ====================

    def _start_nodes(self) -> List[Node]:
        starts = [
            n for n in self._nodes.values()
            if (n.type == NodeType.EVENT and n.data.is_start)
            or (self._incoming.get(n.id, 0) == 0 and n.type != NodeType.GROUP)
        ]
        return sorted(starts, key=lambda n: (not n.data.is_start, n.position.y))

    def _enqueue(self, node_id: str) -> None:
        if node_id not in self._visited_sections and node_id not in self._queue:
            self._queue.append(node_id)

    def _is_merge(self, node_id: str) -> bool:
        return self._incoming.get(node_id, 0) > 1

    def _trace(self, node_id: str) -> None:
        """Write a chain of nodes, following single successors iteratively."""
        fmt = self._formatter
        current: Optional[str] = node_id
        while current is not None:
            node = self._nodes.get(current)
            if node is None:
                return
            self._visited.add(current)
            self._lines.extend(fmt.node(node, self._process))

            outgoing = self._outgoing.get(current, [])
            if not outgoing:
                self._lines.extend(fmt.end_of_path())
                return
            if len(outgoing) > 1:
                self._branch(node, outgoing)
                return
            current = self._follow(outgoing[0].target)

    def _branch(self, node: Node, outgoing: List[Edge]) -> None:
        fmt = self._formatter
        cases = [self._case_label(node, edge, index) for index, edge in enumerate(outgoing)]

        for case, edge in zip(cases, outgoing):
            self._lines.append(fmt.option(case, self._target_label(edge.target)))
        self._lines.append("")

        for case, edge in zip(cases, outgoing):
            self._lines.append(fmt.path(case, self._target_label(edge.target)))
            next_id = self._follow(edge.target)
            if next_id is not None:
                self._trace(next_id)

    def _follow(self, target_id: str) -> Optional[str]:
        """
        Decide how to continue into target_id.

        Returns the id to keep tracing, or None after writing a jump.
        """
        fmt = self._formatter
        label = self._target_label(target_id)
        if self._is_merge(target_id):
            self._lines.extend(fmt.jump(label))
            self._enqueue(target_id)
            return None
        if target_id in self._visited:
            self._lines.extend(fmt.jump(label, loop=True))
            return None
        return target_id

    # ==================== Labels ====================

    def _process(self, text: Optional[str]) -> str:
        return substitute_variables(text or "", self._variables)

    def _label(self, node: Node) -> str:
        return self._process(node.data.label)

    def _target_label(self, node_id: str) -> str:
        node = self._nodes.get(node_id)
        return self._label(node) if node is not None else "Unknown"

    def _case_label(self, node: Node, edge: Edge, index: int) -> str:
        label = f"Option {index + 1}"
        if node.type != NodeType.BRANCH:
            return label
        if node.data.branch_type == BranchType.SWITCH.value and node.data.branches:
            for branch in node.data.branches:
                if branch.id == edge.source_handle:
                    return self._process(branch.label)
        elif node.data.branch_type == BranchType.IF_ELSE.value:
            if edge.source_handle == "true":
                return "True"
            if edge.source_handle == "false":
                return "False"
        return label


def generate_scenario_text(
    nodes: Iterable[Node],
    edges: Iterable[Edge],
    variables: Mapping[str, Variable],
    format: Union[ExportFormat, str] = ExportFormat.TEXT,
) -> str:
    """Render the scenario flow as plain text or Markdown."""
    return ScenarioTextExporter(nodes, edges, variables, format).export()


def export_to_file(
    filepath: str,
    nodes: Iterable[Node],
    edges: Iterable[Edge],
    variables: Mapping[str, Variable],
    format: Union[ExportFormat, str] = ExportFormat.TEXT,
) -> None:
    content = generate_scenario_text(nodes, edges, variables, format)
    with open(filepath, "w", encoding="utf-8") as f:
        f.write(content)
    logger.info(f"Scenario text exported to {filepath}")
