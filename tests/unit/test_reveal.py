"""
Unit tests for the reveal state machine and play-mode store commands.
"""

import pytest

from arkham.core.dataclasses import Variable
from arkham.core.enums import GameCategory, NodeType, VariableType
from arkham.core.hierarchy import HierarchyIndex
from arkham.reveal import RevealStateMachine, cascade_order


def _machine(*nodes):
    table = {n.id: n for n in nodes}
    return RevealStateMachine(table, HierarchyIndex.from_nodes(table)), table


def _gold(value=0):
    return {"gold": Variable("gold", VariableType.NUMBER, value)}


class TestVariableAssignment:
    """Reveal evaluates, unreveal restores."""

    def test_reveal_evaluates_formula(self, make_node):
        machine, nodes = _machine(
            make_node("v", NodeType.VARIABLE, target_variable="gold", variable_value="${gold} + 10"),
        )
        variables = _gold(5)

        result = machine.set_revealed("v", True, variables)

        assert result.variables["gold"].value == 15
        assert nodes["v"].data.previous_value == 5
        assert result.touched_variables == ["gold"]
        assert variables["gold"].value == 5

    def test_reveal_all_then_unreveal_all_restores(self, make_node):
        machine, nodes = _machine(
            make_node("v1", NodeType.VARIABLE, target_variable="gold", variable_value="${gold} + 10"),
            make_node("v2", NodeType.VARIABLE, target_variable="GOLD", variable_value="${gold} * 2"),
        )

        revealed = machine.reveal_all(_gold(0))
        assert revealed.variables["gold"].value == 20

        hidden = machine.unreveal_all(revealed.variables)

        assert hidden.variables["gold"].value == 0
        assert hidden.changed == ["v2", "v1"]
        assert nodes["v1"].data.previous_value is None
        assert nodes["v2"].data.previous_value is None

    def test_boolean_coercion(self, make_node):
        machine, _ = _machine(
            make_node("v", NodeType.VARIABLE, target_variable="flag", variable_value="true"),
        )
        variables = {"flag": Variable("flag", VariableType.BOOLEAN, False)}

        result = machine.set_revealed("v", True, variables)

        assert result.variables["flag"].value is True

    def test_string_substitution(self, make_node):
        machine, _ = _machine(
            make_node("v", NodeType.VARIABLE, target_variable="greeting", variable_value="Hello ${name}"),
        )
        variables = {
            "greeting": Variable("greeting", VariableType.STRING, ""),
            "name": Variable("name", VariableType.STRING, "Ann"),
        }

        result = machine.set_revealed("v", True, variables)

        assert result.variables["greeting"].value == "Hello Ann"

    def test_number_keeps_unparseable_raw_text(self, make_node):
        machine, _ = _machine(
            make_node("v", NodeType.VARIABLE, target_variable="gold", variable_value="lots"),
        )

        result = machine.set_revealed("v", True, _gold(1))

        assert result.variables["gold"].value == "lots"

    def test_literal_value_used_as_is(self, make_node):
        machine, _ = _machine(
            make_node("v", NodeType.VARIABLE, target_variable="gold", variable_value=7),
        )

        result = machine.set_revealed("v", True, _gold(1))

        assert result.variables["gold"].value == 7

    def test_missing_target_variable(self, make_node):
        machine, nodes = _machine(
            make_node("v", NodeType.VARIABLE, target_variable="ghost", variable_value="1"),
        )

        result = machine.set_revealed("v", True, _gold(1))

        assert result.changed == ["v"]
        assert result.touched_variables == []
        assert nodes["v"].data.previous_value is None


class TestCascade:
    """Tests for cascading reveal."""

    def _family(self, make_node):
        return _machine(
            make_node("g", NodeType.GROUP, expanded=True),
            make_node("a", parent="g"),
            make_node("b", parent="g"),
            make_node("outside"),
        )

    def test_toggle_cascades_to_descendants(self, make_node):
        machine, nodes = self._family(make_node)

        result = machine.toggle("g", {})

        assert result.changed[0] == "g"
        assert set(result.changed) == {"g", "a", "b"}
        assert nodes["outside"].data.is_revealed is False

    def test_without_cascade(self, make_node):
        machine, nodes = self._family(make_node)

        result = machine.set_revealed("g", True, {}, cascade=False)

        assert result.changed == ["g"]
        assert nodes["a"].data.is_revealed is False

    def test_already_revealed_nodes_are_skipped(self, make_node):
        machine, _ = self._family(make_node)
        machine.set_revealed("a", True, {})

        result = machine.reveal_all({})

        assert "a" not in result.changed
        assert len(result.changed) == 3

    def test_cascade_order_parent_first(self, make_node):
        table = {
            n.id: n for n in (
                make_node("g", NodeType.GROUP),
                make_node("a", parent="g"),
            )
        }
        assert cascade_order(HierarchyIndex.from_nodes(table), "g") == ["g", "a"]


class TestStoreReveal:
    """Play-mode commands on GraphStore."""

    def test_toggle_reveal_updates_totals(self, loaded_store):
        assert loaded_store.game_state.inventory == {"Key": 0}

        assert loaded_store.toggle_reveal("key") is True

        assert loaded_store.game_state.inventory == {"Key": 1}
        assert loaded_store.get_node("key").data.revealed is True

    def test_reveal_all_and_unreveal_all(self, loaded_store):
        count = loaded_store.reveal_all()

        assert count == len(loaded_store.nodes)
        assert loaded_store.get_variable("gold").value == 10
        assert loaded_store.game_state.category(GameCategory.INVENTORY)["Key"] == 1

        assert loaded_store.unreveal_all() == count
        assert loaded_store.get_variable("gold").value == 0
        assert loaded_store.game_state.inventory["Key"] == 0

    def test_reveal_all_when_everything_revealed(self, loaded_store):
        loaded_store.reveal_all()
        depth = loaded_store.history.undo_depth

        assert loaded_store.reveal_all() == 0
        assert loaded_store.history.undo_depth == depth

    def test_undo_reveal_restores_variables(self, loaded_store):
        loaded_store.toggle_reveal("gain-gold")
        assert loaded_store.get_variable("gold").value == 10

        loaded_store.undo()

        assert loaded_store.get_variable("gold").value == 0
        assert loaded_store.get_node("gain-gold").data.is_revealed is False

    def test_set_revealed_noop(self, loaded_store):
        assert loaded_store.set_revealed("start", False) is False
        assert loaded_store.set_revealed("missing", True) is False

    def test_reset_game_keeps_variables(self, loaded_store):
        loaded_store.toggle_reveal("gain-gold")

        loaded_store.reset_game()

        node = loaded_store.get_node("gain-gold")
        assert node.data.is_revealed is False
        assert node.data.previous_value is None
        assert loaded_store.get_variable("gold").value == 10

    def test_toggle_unknown_node(self, loaded_store):
        assert loaded_store.toggle_reveal("missing") is False
