"""
ARKHAM Core Enumerations

All enumeration types used throughout the scenario graph engine.
"""

from enum import Enum


class NodeType(str, Enum):
    """
    Type tag of a scenario node.

    Values are the tags written to the persisted document.
    """
    EVENT = "event"
    ELEMENT = "element"
    BRANCH = "branch"
    VARIABLE = "variable"
    GROUP = "group"
    JUMP = "jump"
    MEMO = "memo"
    CHARACTER_REF = "character"
    RESOURCE_REF = "resource"
    STICKY = "sticky"


class VariableType(str, Enum):
    """Declared type of a scenario variable."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


class InfoType(str, Enum):
    """Inline category of an element node."""
    KNOWLEDGE = "knowledge"
    ITEM = "item"
    EQUIPMENT = "equipment"
    SKILL = "skill"
    STAT = "stat"


class ActionType(str, Enum):
    """What revealing an element node does to its category total."""
    OBTAIN = "obtain"
    CONSUME = "consume"


class BranchType(str, Enum):
    IF_ELSE = "if_else"
    SWITCH = "switch"


class ResourceType(str, Enum):
    """Declared type of an external resource entity."""
    ITEM = "Item"
    EQUIPMENT = "Equipment"
    KNOWLEDGE = "Knowledge"
    SKILL = "Skill"
    STATUS = "Status"


class CharacterType(str, Enum):
    PERSON = "Person"
    PARTICIPANT = "Participant"
    MONSTER = "Monster"
    OTHER = "Other"


class GameCategory(str, Enum):
    """
    The five derived quantity mappings of the game state.

    Values match the key each mapping is persisted under.
    """
    INVENTORY = "inventory"
    EQUIPMENT = "equipment"
    KNOWLEDGE = "knowledge"
    SKILLS = "skills"
    STATS = "stats"


class EdgeType(str, Enum):
    """Rendering style of an edge."""
    DEFAULT = "default"
    STRAIGHT = "straight"
    STEP = "step"
    SMOOTHSTEP = "smoothstep"


class EditorMode(str, Enum):
    EDIT = "edit"
    PLAY = "play"


class StickyScope(str, Enum):
    """Which sticky notes a bulk sticky command applies to."""
    ALL = "all"
    FREE = "free"          # No target node
    ATTACHED = "attached"  # Bound to a target node


class ExportFormat(str, Enum):
    TEXT = "text"
    MARKDOWN = "markdown"


class RuleSeverity(str, Enum):
    """Severity of an assertion rule finding."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
