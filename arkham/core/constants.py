"""
ARKHAM Layout, History and Formula Constants

Numeric limits shared by the layout resolver, the formula engine and the
history manager.
"""

from typing import Dict, FrozenSet

from arkham.core.enums import GameCategory, InfoType, ResourceType

# ==================== Default Node Geometry ====================

DEFAULT_NODE_WIDTH = 150.0
DEFAULT_NODE_HEIGHT = 50.0

# Size assumed for nodes without a measurement when wrapping them in a new group
GROUPING_FALLBACK_WIDTH = 200.0
GROUPING_FALLBACK_HEIGHT = 100.0

# Size assumed for a group that has never been measured or resized
DEFAULT_GROUP_WIDTH = 300.0
DEFAULT_GROUP_HEIGHT = 300.0

# ==================== Group Auto-Resize ====================

GROUP_PADDING = 40.0               # Around children and content when expanded
GROUP_COLLAPSED_PADDING = 20.0     # Around content when collapsed
GROUP_WRAP_PADDING = 20.0          # Margin used by group_nodes around its selection
GROUP_EMPTY_MIN_WIDTH = 300.0
GROUP_EMPTY_MIN_HEIGHT = 300.0
GROUP_MIN_WIDTH = 150.0
GROUP_MIN_HEIGHT = 50.0

# Where children land after a negative-coordinate shift
NEGATIVE_SHIFT_PADDING_X = 20.0
NEGATIVE_SHIFT_PADDING_Y = 50.0    # Leaves room for the group header

# ==================== Overlap Resolution ====================

OVERLAP_MARGIN = 20.0
OVERLAP_MAX_ITERATIONS = 500

# ==================== Sticky Notes ====================

STICKY_OFFSET_X = 20.0             # Gap between a target's right edge and its new sticky
DETACH_OFFSET_X = 50.0             # Gap used when detaching a node from its top-level group
DUPLICATE_OFFSET = 20.0

# ==================== History ====================

HISTORY_LIMIT = 50

# ==================== Formula Engine ====================

SUBSTITUTION_MAX_DEPTH = 10
SUBSTITUTION_MAX_LENGTH = 100_000
FORMULA_MAX_LENGTH = 10_000
TEXT_TOO_LONG_SENTINEL = "#ERROR: Text too long#"

# ==================== Variables ====================

RESERVED_VARIABLE_NAMES: FrozenSet[str] = frozenset([
    "__proto__", "constructor", "prototype",
])

# ==================== Category Resolution ====================

INFO_TYPE_CATEGORIES: Dict[str, GameCategory] = {
    InfoType.ITEM.value: GameCategory.INVENTORY,
    InfoType.EQUIPMENT.value: GameCategory.EQUIPMENT,
    InfoType.KNOWLEDGE.value: GameCategory.KNOWLEDGE,
    InfoType.SKILL.value: GameCategory.SKILLS,
    InfoType.STAT.value: GameCategory.STATS,
}

RESOURCE_TYPE_CATEGORIES: Dict[str, GameCategory] = {
    ResourceType.ITEM.value: GameCategory.INVENTORY,
    ResourceType.EQUIPMENT.value: GameCategory.EQUIPMENT,
    ResourceType.KNOWLEDGE.value: GameCategory.KNOWLEDGE,
    ResourceType.SKILL.value: GameCategory.SKILLS,
    ResourceType.STATUS.value: GameCategory.STATS,
}

# ==================== Assertion Rules ====================

LONG_DESCRIPTION_LIMIT = 400
