"""
ARKHAM Field Aliases

Maps the camelCase keys of the persisted document to the snake_case
attribute names used by the node data payload.
"""

from typing import Dict

# ==================== Node Data Aliases ====================
# Format: "documentKey" -> "attribute_name"

NODE_DATA_ALIASES: Dict[str, str] = {
    "label": "label",
    "description": "description",
    "revealed": "revealed",
    "isStart": "is_start",

    # Element
    "infoType": "info_type",
    "infoValue": "info_value",
    "quantity": "quantity",
    "actionType": "action_type",
    "referenceId": "reference_id",

    # Branch
    "branchType": "branch_type",
    "branches": "branches",
    "conditionVariable": "condition_variable",
    "conditionValue": "condition_value",

    # Variable
    "targetVariable": "target_variable",
    "variableValue": "variable_value",
    "previousValue": "previous_value",

    # Jump
    "jumpTarget": "jump_target",

    # Group
    "expanded": "expanded",
    "contentWidth": "content_width",
    "contentHeight": "content_height",

    # Sticky
    "targetNodeId": "target_node_id",
    "hidden": "hidden",
    "hasSticky": "has_sticky",
}

DOCUMENT_KEYS: Dict[str, str] = {v: k for k, v in NODE_DATA_ALIASES.items()}


def normalize_key(key: str) -> str:
    """
    Return the attribute name for a node data key.

    Accepts either the document key ("targetVariable") or the attribute
    name ("target_variable"). Unknown keys are returned unchanged.
    """
    return NODE_DATA_ALIASES.get(key, key)


def document_key(attribute: str) -> str:
    """Return the persisted document key for a node data attribute."""
    return DOCUMENT_KEYS.get(attribute, attribute)
