"""
ARKHAM Game State Module

Derived category totals recomputed from element nodes.
"""

from arkham.gamestate.calculator import (
    ElementEntry,
    parse_quantity,
    resolve_element,
    calculate_totals,
    recalculate_game_state,
    refresh_sticky_flags,
)

__all__ = [
    "ElementEntry",
    "parse_quantity",
    "resolve_element",
    "calculate_totals",
    "recalculate_game_state",
    "refresh_sticky_flags",
]
