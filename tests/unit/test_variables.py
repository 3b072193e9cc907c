"""
Unit tests for variable commands on GraphStore.

Tests declaration rules, typed updates, rename with reference rewriting
and batch rename as a single undo step.
"""

import pytest

from arkham.core.enums import NodeType, VariableType


class TestAddVariable:
    """Tests for add_variable."""

    def test_defaults_by_type(self, store):
        assert store.add_variable("name") is True
        assert store.add_variable("score", "number") is True
        assert store.add_variable("flag", VariableType.BOOLEAN) is True

        assert store.get_variable("name").value == ""
        assert store.get_variable("score").value == 0
        assert store.get_variable("flag").value is False

    def test_initial_value(self, store):
        store.add_variable("score", "number", 12.5)
        assert store.get_variable("SCORE").value == 12.5

    @pytest.mark.parametrize("name", ["", "   ", "__proto__", "constructor", "prototype"])
    def test_rejected_names(self, store, name):
        assert store.add_variable(name) is False
        assert store.variables == {}

    def test_duplicate_is_case_insensitive(self, store):
        store.add_variable("Gold", "number")
        assert store.add_variable("gold", "number") is False

    def test_unknown_type(self, store):
        assert store.add_variable("x", "date") is False

    @pytest.mark.parametrize("variable_type,value", [
        ("number", True),
        ("boolean", "yes"),
        ("string", 5),
    ])
    def test_type_mismatch(self, store, variable_type, value):
        assert store.add_variable("x", variable_type, value) is False
        assert not store.can_undo

    def test_assigns_untargeted_variable_nodes(self, store, make_node):
        store.add_node(make_node("v", NodeType.VARIABLE))
        store.add_node(make_node("w", NodeType.VARIABLE, target_variable="other"))

        store.add_variable("gold", "number")

        assert store.get_node("v").data.target_variable == "gold"
        assert store.get_node("w").data.target_variable == "other"


class TestUpdateAndDelete:
    """Tests for update_variable and delete_variable."""

    def test_update(self, loaded_store):
        assert loaded_store.update_variable("GOLD", 7) is True
        assert loaded_store.get_variable("gold").value == 7

    def test_update_type_checked(self, loaded_store):
        assert loaded_store.update_variable("gold", False) is False
        assert loaded_store.update_variable("missing", 1) is False

    def test_delete_is_undoable(self, loaded_store):
        assert loaded_store.delete_variable("gold") is True
        assert loaded_store.get_variable("gold") is None

        loaded_store.undo()

        assert loaded_store.get_variable("gold").value == 0


class TestRenameVariable:
    """Tests for rename_variable."""

    def test_rewrites_references(self, loaded_store):
        assert loaded_store.rename_variable("gold", "coins") is True

        assert loaded_store.get_variable("gold") is None
        assert loaded_store.get_variable("coins").value == 0
        gain = loaded_store.get_node("gain-gold").data
        assert gain.target_variable == "coins"
        assert gain.variable_value == "${coins} + 10"
        assert loaded_store.get_node("choice").data.condition_value == "${coins} > 5"

    def test_reference_match_is_case_insensitive(self, store, make_node):
        store.add_variable("gold", "number")
        store.add_node(make_node("e", label="You have ${GOLD} gold"))

        store.rename_variable("gold", "coins")

        assert store.get_node("e").data.label == "You have ${coins} gold"

    def test_rewrites_string_variable_values(self, store):
        store.add_variable("gold", "number")
        store.add_variable("summary", "string", "Gold: ${gold}")

        store.rename_variable("gold", "coins")

        assert store.get_variable("summary").value == "Gold: ${coins}"

    def test_bare_condition_value(self, store, make_node):
        store.add_variable("lit", "boolean")
        store.add_node(make_node("b", NodeType.BRANCH, condition_value="lit", condition_variable="lit"))

        store.rename_variable("lit", "torch_lit")

        data = store.get_node("b").data
        assert data.condition_value == "torch_lit"
        assert data.condition_variable == "torch_lit"

    def test_case_only_rename(self, loaded_store):
        assert loaded_store.rename_variable("gold", "Gold") is True
        assert list(loaded_store.variables) == ["Gold"]

    def test_clash_rejected(self, loaded_store):
        loaded_store.add_variable("coins", "number")

        assert loaded_store.rename_variable("gold", "COINS") is False
        assert loaded_store.get_variable("gold") is not None

    def test_unknown_or_unchanged(self, loaded_store):
        assert loaded_store.rename_variable("missing", "x") is False
        assert loaded_store.rename_variable("gold", "gold") is False
        assert loaded_store.rename_variable("gold", "  ") is False

    def test_undo_restores_references(self, loaded_store):
        loaded_store.rename_variable("gold", "coins")

        loaded_store.undo()

        assert loaded_store.get_node("gain-gold").data.variable_value == "${gold} + 10"
        assert loaded_store.get_variable("gold") is not None


class TestVariableMetadata:
    """Tests for update_variable_metadata."""

    def test_rename_and_retype_in_one_step(self, loaded_store):
        depth = loaded_store.history.undo_depth

        assert loaded_store.update_variable_metadata("gold", "wealth", "string") is True

        variable = loaded_store.get_variable("wealth")
        assert variable.type == VariableType.STRING
        assert variable.value == "0"
        assert loaded_store.get_variable("gold") is None
        assert loaded_store.get_node("gain-gold").data.variable_value == "${wealth} + 10"
        assert loaded_store.history.undo_depth == depth + 1

        loaded_store.undo()
        assert loaded_store.get_variable("gold").type == VariableType.NUMBER
        assert loaded_store.get_variable("gold").value == 0

    @pytest.mark.parametrize("old_type,value,new_type,expected", [
        ("string", "12abc", "number", 12),
        ("string", "true", "boolean", True),
        ("number", 5, "boolean", False),
        ("boolean", True, "string", "true"),
        ("number", 2.5, "string", "2.5"),
    ])
    def test_retype_coerces_value(self, store, old_type, value, new_type, expected):
        store.add_variable("v", old_type, value)

        assert store.update_variable_metadata("v", variable_type=new_type) is True

        variable = store.get_variable("v")
        assert variable.type == VariableType(new_type)
        assert variable.value == expected

    def test_rejections_leave_no_history(self, loaded_store):
        depth = loaded_store.history.undo_depth

        assert loaded_store.update_variable_metadata("missing", "x") is False
        assert loaded_store.update_variable_metadata("gold", variable_type="date") is False
        assert loaded_store.update_variable_metadata("gold", "gold", "number") is False
        assert loaded_store.update_variable_metadata("gold", "prototype", "string") is False

        assert loaded_store.history.undo_depth == depth
        assert loaded_store.get_variable("gold").type == VariableType.NUMBER


class TestBatchRename:
    """Tests for batch_rename_variables."""

    def test_single_undo_step(self, loaded_store):
        loaded_store.add_variable("name", "string")
        depth = loaded_store.history.undo_depth

        applied = loaded_store.batch_rename_variables({"gold": "coins", "name": "hero"})

        assert applied == ["coins", "hero"]
        assert loaded_store.history.undo_depth == depth + 1
        loaded_store.undo()
        assert set(loaded_store.variables) == {"gold", "name"}

    def test_invalid_entries_skipped(self, loaded_store):
        applied = loaded_store.batch_rename_variables({"missing": "x", "gold": "coins"})
        assert applied == ["coins"]

    def test_nothing_applied(self, loaded_store):
        depth = loaded_store.history.undo_depth
        assert loaded_store.batch_rename_variables({"missing": "x"}) == []
        assert loaded_store.history.undo_depth == depth
