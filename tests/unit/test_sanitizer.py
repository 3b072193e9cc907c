"""
Unit tests for the scenario sanitizer.
"""

import pytest

from arkham.validators import (
    coerce_variable,
    correct_edge,
    correct_node,
    validate_edge,
    validate_node,
    validate_scenario_data,
)


def _doc(nodes=None, edges=None, **extra):
    data = {"nodes": nodes or [], "edges": edges or []}
    data.update(extra)
    return data


def _node(node_id, node_type="event", **extra):
    node = {"id": node_id, "type": node_type, "position": {"x": 0, "y": 0}, "data": {}}
    node.update(extra)
    return node


class TestRejection:
    """Only structural problems reject a document."""

    @pytest.mark.parametrize("data", [None, [], "scenario", 42])
    def test_non_object(self, data):
        result = validate_scenario_data(data)

        assert result.is_valid is False
        assert result.errors == ["Document is not an object"]
        assert result.corrected_data is None

    def test_nodes_not_array(self):
        result = validate_scenario_data({"nodes": {}, "edges": []})

        assert not result.is_valid
        assert "nodes is not an array" in result.errors

    def test_edges_not_array(self):
        result = validate_scenario_data({"nodes": [], "edges": None})
        assert "edges is not an array" in result.errors

    def test_to_dict_keys(self):
        data = validate_scenario_data(_doc()).to_dict()
        assert set(data) == {"isValid", "errors", "warnings", "correctedData", "corrections"}


class TestNodeRepair:
    """Tests for node validation and correction."""

    def test_valid_node(self):
        assert validate_node(_node("a")) == []

    def test_problems_listed(self):
        problems = validate_node({"type": "dragon", "position": {"x": "1"}, "data": 3})

        assert "id is missing" in problems
        assert any(p.startswith('invalid type "dragon"') for p in problems)
        assert "position x and y must be numbers" in problems
        assert "data must be an object" in problems

    def test_correct_node_fills_defaults(self):
        corrected = correct_node({"type": "dragon", "parentNode": "g", "style": {"width": 10}})

        assert corrected["id"].startswith("node-")
        assert corrected["type"] == "event"
        assert corrected["position"] == {"x": 0, "y": 0}
        assert corrected["data"] == {}
        assert corrected["parentNode"] == "g"
        assert corrected["style"] == {"width": 10}

    def test_invalid_type_reported(self):
        result = validate_scenario_data(_doc([_node("a", "dragon")]))

        assert result.is_valid
        assert result.corrected_data["nodes"][0]["type"] == "event"
        assert 'Node 0: replaced invalid type "dragon" with "event"' in result.corrections

    def test_duplicate_ids_renamed(self):
        result = validate_scenario_data(_doc([_node("a"), _node("a")]))

        ids = [n["id"] for n in result.corrected_data["nodes"]]
        assert ids[0] == "a"
        assert ids[1].startswith("node-")
        assert any("duplicate id" in w for w in result.warnings)


class TestEdgeRepair:
    """Tests for edge validation and correction."""

    def test_dangling_edge_removed(self):
        result = validate_scenario_data(_doc(
            [_node("a")],
            [{"id": "e", "source": "a", "target": "x"}],
        ))

        assert result.corrected_data["edges"] == []
        assert 'Edge 0: removed, target node "x" does not exist' in result.corrections

    def test_edge_without_id_repaired(self):
        result = validate_scenario_data(_doc(
            [_node("a"), _node("b")],
            [{"source": "a", "target": "b"}],
        ))

        edge = result.corrected_data["edges"][0]
        assert edge["id"].startswith("edge-")
        assert edge["type"] == "default"
        assert "Edge 0: generated a new id" in result.corrections

    def test_validate_edge(self):
        assert validate_edge({"id": "e", "source": "a", "target": "b"}, {"a", "b"}) == []
        assert validate_edge("e", set()) == ["edge is not an object"]
        assert correct_edge({"id": "e", "source": "a"}, {"a"}) is None


class TestDocumentRepair:
    """Game state, variables, references, edge type and viewport."""

    def test_missing_game_state(self):
        result = validate_scenario_data(_doc())

        assert result.corrected_data["gameState"]["variables"] == {}
        assert "gameState is invalid, using defaults" in result.warnings

    def test_invalid_edge_type(self):
        result = validate_scenario_data(_doc(edgeType="curvy"))
        assert result.corrected_data["edgeType"] == "default"

    def test_duplicate_variable_case_insensitive(self):
        result = validate_scenario_data(_doc(gameState={"variables": {
            "Gold": {"type": "number", "value": 1},
            "gold": {"type": "number", "value": 2},
        }}))

        assert list(result.corrected_data["gameState"]["variables"]) == ["Gold"]
        assert 'Removed duplicate variable "gold"' in result.corrections

    def test_unknown_variable_type(self):
        result = validate_scenario_data(_doc(gameState={"variables": {
            "when": {"type": "date", "value": "today"},
        }}))

        assert result.corrected_data["gameState"]["variables"]["when"]["type"] == "string"

    def test_variable_value_coerced(self):
        result = validate_scenario_data(_doc(gameState={"variables": {
            "gold": {"name": "gold", "type": "number", "value": "12abc"},
        }}))

        assert result.corrected_data["gameState"]["variables"]["gold"]["value"] == 12

    def test_invalid_viewport_removed(self):
        result = validate_scenario_data(_doc(viewport={"x": 0.0, "y": 0.0, "zoom": "big"}))

        assert "viewport" not in result.corrected_data
        assert "Removed invalid viewport" in result.corrections

    def test_valid_viewport_kept(self):
        result = validate_scenario_data(_doc(viewport={"x": 10.5, "y": -3.0, "zoom": 1.0}))
        assert result.corrected_data["viewport"]["zoom"] == 1.0

    def test_invalid_references_removed(self):
        result = validate_scenario_data(_doc(
            characters=[{"id": "c1", "type": "Person", "name": "Ada"}, {"id": 5, "name": "Bad"}],
            resources="lots",
        ))

        assert [c["id"] for c in result.corrected_data["characters"]] == ["c1"]
        assert result.corrected_data["resources"] == []
        assert "resources is not an array, using an empty array" in result.warnings

    def test_input_not_mutated(self, sample_scenario):
        sample_scenario["nodes"][0]["type"] = "dragon"

        validate_scenario_data(sample_scenario)

        assert sample_scenario["nodes"][0]["type"] == "dragon"

    def test_sample_is_clean(self, sample_scenario):
        result = validate_scenario_data(sample_scenario)

        assert result.is_valid
        assert result.corrections == []


class TestCoerceVariable:
    """Tests for coerce_variable."""

    @pytest.mark.parametrize("variable_type,value,expected", [
        ("number", "3.5 apples", 3.5),
        ("number", "none", 0),
        ("number", True, 0),
        ("string", False, "false"),
        ("string", 7, "7"),
        ("boolean", "true", True),
        ("boolean", 1, False),
    ])
    def test_coercion(self, variable_type, value, expected):
        assert coerce_variable(variable_type, value) == expected
