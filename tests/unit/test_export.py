"""
Unit tests for the scenario text export.
"""

import pytest

from arkham.core.dataclasses import BranchCase, Edge, Variable
from arkham.core.enums import ExportFormat, NodeType, VariableType
from arkham.export import (
    MarkdownFormatter,
    TextFormatter,
    export_to_file,
    generate_scenario_text,
    get_formatter,
)


def _edge(source, target, handle=None, virtual=False):
    return Edge(id=f"{source}-{target}", source=source, target=target, source_handle=handle, virtual=virtual)


def _export(loaded_store, format=ExportFormat.TEXT):
    return generate_scenario_text(
        loaded_store.nodes, loaded_store.edges, loaded_store.variables, format
    )


class TestFormatterRegistry:
    """Tests for get_formatter."""

    def test_known_formats(self):
        assert isinstance(get_formatter("text"), TextFormatter)
        assert isinstance(get_formatter(ExportFormat.MARKDOWN), MarkdownFormatter)

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            get_formatter("pdf")


class TestTextExport:
    """Plain text export of the sample scenario."""

    def test_header_and_start_section(self, loaded_store):
        lines = _export(loaded_store).splitlines()

        assert lines[0] == "SCENARIO EXPORT"
        assert lines[1] == "Generated by ARKHAM"
        assert "[Flow Starting at: Opening]" in lines

    def test_nodes_in_flow_order(self, loaded_store):
        text = _export(loaded_store)

        positions = [
            text.index(f"Node: {label}")
            for label in ("Opening [event]", "Find key [element]", "Gain gold [variable]", "Open the door? [branch]")
        ]
        assert positions == sorted(positions)
        assert "Description: You wake up." in text

    def test_element_and_variable_details(self, loaded_store):
        text = _export(loaded_store)

        assert "Type: item" in text
        assert "Value: Key" in text
        assert "Quantity: 1" in text
        assert "Set Variable: gold = 0 + 10" in text
        assert "Condition: 0 > 5" in text

    def test_branch_options_and_paths(self, loaded_store):
        text = _export(loaded_store)

        assert "[True] -> Door opens" in text
        assert "[False] -> Door stays shut" in text
        assert "--- Path: True (-> Door opens) ---" in text
        assert text.count("(End of path)") >= 2

    def test_markdown(self, loaded_store):
        text = _export(loaded_store, ExportFormat.MARKDOWN)

        assert text.startswith("# Scenario Export")
        assert "## Flow Starting at: Opening" in text
        assert "### Find key (element)" in text
        assert "- **True** -> Door opens" in text


class TestFlowTracing:
    """Merges, loops and disconnected nodes."""

    def test_merge_node_gets_own_section(self, make_node):
        nodes = [
            make_node("s", label="Start", is_start=True),
            make_node("a", label="Left", y=100),
            make_node("b", label="Right", y=100),
            make_node("m", label="Meet", y=200),
        ]
        edges = [_edge("s", "a"), _edge("s", "b"), _edge("a", "m"), _edge("b", "m")]

        text = generate_scenario_text(nodes, edges, {})

        assert text.count("-> Jump to: Meet") == 2
        assert text.count("Node: Meet [event]") == 1
        assert "[Flow Starting at: Meet]" in text

    def test_loop(self, make_node):
        nodes = [
            make_node("s", label="Start", is_start=True),
            make_node("a", label="Again", y=100),
        ]
        edges = [_edge("s", "a"), _edge("a", "s")]

        text = generate_scenario_text(nodes, edges, {})

        assert "-> Jump to: Start (Loop)" in text
        assert "DISCONNECTED NODES / REMARKS" not in text

    def test_unreachable_cycle_is_disconnected(self, make_node):
        nodes = [
            make_node("s", label="Start", is_start=True),
            make_node("p", label="Ping", y=100),
            make_node("q", label="Pong", y=200),
        ]
        edges = [_edge("p", "q"), _edge("q", "p")]

        text = generate_scenario_text(nodes, edges, {})

        remarks = text.split("[DISCONNECTED NODES / REMARKS]")[1]
        assert "Node: Ping [event]" in remarks
        assert "Node: Pong [event]" in remarks

    def test_consume_quantity_is_negative(self, make_node):
        nodes = [
            make_node("e", NodeType.ELEMENT, label="Use potion", info_type="item",
                      info_value="Potion", quantity=2, action_type="consume"),
        ]

        text = generate_scenario_text(nodes, [], {})

        assert "Quantity: -2" in text

    def test_switch_case_labels(self, make_node):
        branch = make_node("b", NodeType.BRANCH, label="Which way?", branch_type="switch",
                           condition_variable="dir", branches=[BranchCase("c1", "North")])
        nodes = [branch, make_node("n", label="North road", y=100), make_node("o", label="Other", y=100)]
        edges = [_edge("b", "n", handle="c1"), _edge("b", "o", handle="zz")]

        text = generate_scenario_text(nodes, edges, {})

        assert "[North] -> North road" in text
        assert "[Option 2] -> Other" in text

    def test_variables_substituted(self, make_node):
        nodes = [make_node("s", label="Gold: ${gold}", is_start=True)]
        variables = {"gold": Variable("gold", VariableType.NUMBER, 12)}

        text = generate_scenario_text(nodes, [], variables)

        assert "Node: Gold: 12 [event]" in text

    def test_virtual_edges_ignored(self, make_node):
        nodes = [make_node("s", label="Start", is_start=True), make_node("x", label="Elsewhere", y=100)]

        text = generate_scenario_text(nodes, [_edge("s", "x", virtual=True)], {})

        assert "(End of path)" in text
        assert "[Flow Starting at: Elsewhere]" in text


class TestExportToFile:
    """Tests for export_to_file."""

    def test_writes_file(self, loaded_store, tmp_path):
        path = tmp_path / "scenario.md"

        export_to_file(str(path), loaded_store.nodes, loaded_store.edges,
                       loaded_store.variables, ExportFormat.MARKDOWN)

        assert path.read_text(encoding="utf-8").startswith("# Scenario Export")
