"""
Unit tests for the graph dataclasses and the scenario document.

Tests camelCase serialization, unknown-key passthrough and virtual edge
bookkeeping.
"""

from arkham.core.dataclasses import (
    BranchCase,
    Edge,
    GameState,
    Node,
    NodeData,
    Variable,
)
from arkham.core.document import ScenarioDocument
from arkham.core.enums import GameCategory, NodeType, VariableType


class TestNodeData:
    """Tests for NodeData."""

    def test_from_dict_maps_document_keys(self):
        data = NodeData.from_dict({
            "label": "Pick",
            "branchType": "switch",
            "branches": [{"id": "c1", "label": "North"}],
            "conditionVariable": "dir",
        })

        assert data.branch_type == "switch"
        assert data.branches == [BranchCase("c1", "North")]
        assert data.condition_variable == "dir"

    def test_to_dict_omits_unset_fields(self):
        assert NodeData(label="Hi", is_start=True).to_dict() == {"label": "Hi", "isStart": True}

    def test_unknown_keys_round_trip(self):
        data = NodeData.from_dict({"label": "x", "color": "#fff"})

        assert data.extra == {"color": "#fff"}
        assert data.to_dict()["color"] == "#fff"

    def test_null_label_becomes_empty(self):
        assert NodeData.from_dict({"label": None}).label == ""

    def test_update_accepts_both_spellings(self):
        data = NodeData()
        data.update({"targetVariable": "gold", "variable_value": "1"})

        assert data.target_variable == "gold"
        assert data.variable_value == "1"


class TestNode:
    """Tests for Node."""

    def test_from_dict(self):
        node = Node.from_dict({
            "id": "inner",
            "type": "event",
            "position": {"x": 40, "y": 60},
            "parentNode": "chapter",
            "width": 150,
            "style": {"width": 150},
            "selected": True,
            "data": {"label": "Inside"},
        })

        assert node.type == NodeType.EVENT
        assert node.parent_node == "chapter"
        assert node.extra == {"selected": True}
        assert node.to_dict()["selected"] is True

    def test_to_dict_minimal(self):
        node = Node("a", NodeType.MEMO)

        assert node.to_dict() == {
            "id": "a",
            "type": "memo",
            "position": {"x": 0.0, "y": 0.0},
            "data": {"label": ""},
        }

    def test_copy_is_deep(self):
        node = Node("a", NodeType.EVENT, style={"width": 100})
        clone = node.copy()

        clone.style["width"] = 5
        clone.data.label = "changed"

        assert node.style["width"] == 100
        assert node.data.label == ""

    def test_flags(self):
        group = Node("g", NodeType.GROUP, data=NodeData(expanded=True))
        assert group.is_group and group.is_expanded
        assert Node("s", NodeType.STICKY).is_sticky


class TestEdge:
    """Tests for Edge."""

    def test_virtual_bookkeeping_in_data(self):
        edge = Edge("v", "x", "G", virtual=True, original_edge_ids=["e1", "e2"], group_id="G")

        data = edge.to_dict()["data"]

        assert data == {"isVirtual": True, "originalEdgeIds": ["e1", "e2"], "groupId": "G"}
        restored = Edge.from_dict(edge.to_dict())
        assert restored.virtual
        assert restored.original_edge_ids == ["e1", "e2"]
        assert restored.data == {}

    def test_single_original_id(self):
        edge = Edge.from_dict({
            "id": "v", "source": "a", "target": "b",
            "data": {"isVirtual": True, "originalEdgeId": "e1"},
        })

        assert edge.original_edge_ids == ["e1"]

    def test_handles_and_marker(self):
        edge = Edge("e", "a", "b", source_handle="true", marker_end={"type": "arrowclosed"})

        data = edge.to_dict()

        assert data["sourceHandle"] == "true"
        assert "targetHandle" not in data
        assert data["markerEnd"] == {"type": "arrowclosed"}


class TestGameState:
    """Tests for GameState."""

    def test_round_trip(self):
        state = GameState(
            inventory={"Key": 1},
            variables={"gold": Variable("gold", VariableType.NUMBER, 5)},
        )

        restored = GameState.from_dict(state.to_dict())

        assert restored.inventory == {"Key": 1}
        assert restored.variables["gold"].type == VariableType.NUMBER
        assert restored.category(GameCategory.INVENTORY) is restored.inventory

    def test_variable_name_from_key(self):
        state = GameState.from_dict({"variables": {"gold": {"type": "number", "value": 1}}})
        assert state.variables["gold"].name == "gold"


class TestScenarioDocument:
    """Tests for ScenarioDocument."""

    def test_sample_round_trip(self, sample_scenario):
        document = ScenarioDocument.from_dict(sample_scenario)

        assert document.node_count == 9
        assert document.edge_count == 5
        data = document.to_dict()
        assert data["nodes"][1]["data"]["infoValue"] == "Key"
        assert data["edges"][3]["sourceHandle"] == "true"
        assert "viewport" not in data

    def test_to_json(self):
        text = ScenarioDocument(viewport={"x": 0, "y": 0, "zoom": 1}).to_json()
        assert '"viewport"' in text
