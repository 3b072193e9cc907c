"""
arkham/export/formatters.py - Line formatters for scenario text export.

Each formatter turns the pieces of a traced flow (section headers, nodes,
branch options, jumps) into lines of one output format.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Type

from arkham.core.dataclasses import Node
from arkham.core.enums import ActionType, BranchType, ExportFormat, NodeType
from arkham.formula import stringify_value

TextProcessor = Callable[[str], str]

SEPARATOR = "=" * 40
NODE_RULE = "-" * 40


def signed_quantity(node: Node) -> str:
    """Quantity as shown in exports; consumption is negative."""
    quantity = node.data.quantity
    if node.data.action_type != ActionType.CONSUME.value:
        return stringify_value(quantity)
    if isinstance(quantity, (int, float)) and not isinstance(quantity, bool):
        return stringify_value(-quantity)
    return f"-{stringify_value(quantity)}"


def _value_text(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else stringify_value(value)


class BaseFormatter(ABC):
    """Abstract base class for scenario text formatters."""

    format: ExportFormat

    @abstractmethod
    def header(self) -> List[str]:
        pass

    @abstractmethod
    def section(self, title: str) -> List[str]:
        pass

    @abstractmethod
    def section_end(self) -> List[str]:
        pass

    @abstractmethod
    def node(self, node: Node, process: TextProcessor) -> List[str]:
        pass

    @abstractmethod
    def end_of_path(self) -> List[str]:
        pass

    @abstractmethod
    def jump(self, label: str, loop: bool = False) -> List[str]:
        pass

    @abstractmethod
    def option(self, case_label: str, target_label: str) -> str:
        pass

    @abstractmethod
    def path(self, case_label: str, target_label: str) -> str:
        pass

    disconnected_title = "Disconnected Nodes / Remarks"

    def details(self, node: Node, process: TextProcessor) -> List[tuple]:
        """(key, value) detail pairs for type-specific node fields."""
        data = node.data
        pairs = []
        if node.type == NodeType.ELEMENT:
            pairs.append(("type", data.info_type or ""))
            pairs.append(("value", process(data.info_value or "")))
            if data.quantity is not None:
                pairs.append(("quantity", signed_quantity(node)))
        elif node.type == NodeType.BRANCH:
            pairs.append(("branch_type", data.branch_type or ""))
            if data.branch_type == BranchType.SWITCH.value:
                pairs.append(("target", data.condition_value or data.condition_variable or ""))
            else:
                pairs.append(("condition", process(data.condition_value or "")))
        elif node.type == NodeType.VARIABLE:
            pairs.append((
                "set",
                f"{data.target_variable or ''} = {process(_value_text(data.variable_value))}",
            ))
        return pairs


class TextFormatter(BaseFormatter):
    """Plain text with bracketed section titles."""

    format = ExportFormat.TEXT
    disconnected_title = "DISCONNECTED NODES / REMARKS"

    _LABELS = {
        "type": "Type",
        "value": "Value",
        "quantity": "Quantity",
        "branch_type": "Branch Type",
        "target": "Target",
        "condition": "Condition",
        "set": "Set Variable",
    }

    def header(self) -> List[str]:
        return ["SCENARIO EXPORT", "Generated by ARKHAM", SEPARATOR, ""]

    def section(self, title: str) -> List[str]:
        return [f"[{title}]"]

    def section_end(self) -> List[str]:
        return [f"\n{SEPARATOR}\n"]

    def node(self, node: Node, process: TextProcessor) -> List[str]:
        lines = [NODE_RULE, f"Node: {process(node.data.label)} [{node.type.value}]"]
        description = process(node.data.description or "")
        if description:
            lines.append(f"Description: {description}")
        for key, value in self.details(node, process):
            lines.append(f"{self._LABELS[key]}: {value}")
        lines.append("")
        return lines

    def end_of_path(self) -> List[str]:
        return ["(End of path)\n"]

    def jump(self, label: str, loop: bool = False) -> List[str]:
        return [f"-> Jump to: {label}{' (Loop)' if loop else ''}\n"]

    def option(self, case_label: str, target_label: str) -> str:
        return f"[{case_label}] -> {target_label}"

    def path(self, case_label: str, target_label: str) -> str:
        return f"--- Path: {case_label} (-> {target_label}) ---"


class MarkdownFormatter(BaseFormatter):
    """GitHub-flavoured Markdown."""

    format = ExportFormat.MARKDOWN

    _LABELS = {
        "type": "Type",
        "value": "Value",
        "quantity": "Quantity",
        "branch_type": "Type",
        "target": "Target",
        "condition": "Condition",
        "set": "Set",
    }

    def header(self) -> List[str]:
        return ["# Scenario Export", "*Generated by ARKHAM*", ""]

    def section(self, title: str) -> List[str]:
        return [f"## {title}"]

    def section_end(self) -> List[str]:
        return ["\n---\n"]

    def node(self, node: Node, process: TextProcessor) -> List[str]:
        lines = [f"### {process(node.data.label)} ({node.type.value})"]
        description = process(node.data.description or "")
        if description:
            lines.append(description)
        for key, value in self.details(node, process):
            lines.append(f"- **{self._LABELS[key]}:** {value}")
        lines.append("")
        return lines

    def end_of_path(self) -> List[str]:
        return ["> *(End of path)*\n"]

    def jump(self, label: str, loop: bool = False) -> List[str]:
        return [f"> **Jump to:** {label}{' (Loop)' if loop else ''}\n"]

    def option(self, case_label: str, target_label: str) -> str:
        return f"- **{case_label}** -> {target_label}"

    def path(self, case_label: str, target_label: str) -> str:
        return f"#### Path: {case_label} (-> {target_label})"


_FORMATTER_REGISTRY: Dict[ExportFormat, Type[BaseFormatter]] = {
    ExportFormat.TEXT: TextFormatter,
    ExportFormat.MARKDOWN: MarkdownFormatter,
}


def get_formatter(format: ExportFormat) -> BaseFormatter:
    """
    Get formatter instance for format.

    Raises:
        ValueError: Unknown export format
    """
    format = ExportFormat(format)
    return _FORMATTER_REGISTRY[format]()
