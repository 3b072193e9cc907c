"""
Tests for node data key aliases.
"""

import pytest

from arkham.core.dataclasses import NodeData
from arkham.core.field_aliases import NODE_DATA_ALIASES, document_key, normalize_key


class TestFieldAliases:
    """camelCase <-> snake_case key mapping."""

    @pytest.mark.parametrize("key,attribute", [
        ("targetVariable", "target_variable"),
        ("isStart", "is_start"),
        ("targetNodeId", "target_node_id"),
        ("label", "label"),
    ])
    def test_normalize(self, key, attribute):
        assert normalize_key(key) == attribute
        assert document_key(attribute) == key

    def test_attribute_names_pass_through(self):
        assert normalize_key("target_variable") == "target_variable"
        assert normalize_key("unknownKey") == "unknownKey"

    def test_every_attribute_has_an_alias(self):
        assert set(NODE_DATA_ALIASES.values()) == set(NodeData.attribute_names())
