"""
ARKHAM Core Module

Contains the foundation layer:
- Enumerations and constants
- Node, Edge, Variable and GameState dataclasses
- ScenarioDocument (persisted document container)
"""

from arkham.core.enums import (
    NodeType,
    VariableType,
    InfoType,
    ActionType,
    GameCategory,
    EdgeType,
    EditorMode,
    StickyScope,
)

__all__ = [
    "NodeType",
    "VariableType",
    "InfoType",
    "ActionType",
    "GameCategory",
    "EdgeType",
    "EditorMode",
    "StickyScope",
]
