"""
ARKHAM Scenario Graph Engine

Editing and play-mode engine for branching narrative scenarios:
- Graph store with undo/redo history
- Spatial layout of nested groups
- Reveal state machine with variable formulas
- Derived game state
"""

from arkham.config import EditorConfig, load_config
from arkham.errors import ArkhamError, ScenarioValidationError, AssertionRuleError
from arkham.store import GraphStore

__version__ = "1.0.0"

__all__ = [
    "EditorConfig",
    "load_config",
    "ArkhamError",
    "ScenarioValidationError",
    "AssertionRuleError",
    "GraphStore",
    "__version__",
]
