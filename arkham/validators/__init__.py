"""
ARKHAM Validators Module

Document sanitizer and the authoring assertion engine.
"""

from arkham.validators.sanitizer import (
    ValidationResult,
    validate_scenario_data,
    validate_node,
    correct_node,
    validate_edge,
    correct_edge,
    coerce_variable,
    default_game_state,
)
from arkham.validators.assertions import (
    AssertionSnapshot,
    AssertionRule,
    AssertionResult,
    AssertionEngine,
    builtin_rules,
    compile_rule,
    run_assertions,
)

__all__ = [
    "ValidationResult",
    "validate_scenario_data",
    "validate_node",
    "correct_node",
    "validate_edge",
    "correct_edge",
    "coerce_variable",
    "default_game_state",
    "AssertionSnapshot",
    "AssertionRule",
    "AssertionResult",
    "AssertionEngine",
    "builtin_rules",
    "compile_rule",
    "run_assertions",
]
