"""
ARKHAM Store Events

Typed event schemas emitted by the graph store after a command completes.

Events describe which slices of the store changed so that subscribers
(the canvas, the autosaver, debug panels) only refresh what they need.

INVARIANT: Events are emitted after the mutation and cleanup passes, never
mid-command.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List
import uuid


# =============================================================================
# EVENT TYPES
# =============================================================================

class StoreEventType(str, Enum):
    """Slices of the store a command can change."""

    NODES_CHANGED = "nodes_changed"
    EDGES_CHANGED = "edges_changed"
    VARIABLES_CHANGED = "variables_changed"
    GAME_STATE_CHANGED = "game_state_changed"
    LAYOUT_CHANGED = "layout_changed"
    HISTORY_CHANGED = "history_changed"
    SCENARIO_LOADED = "scenario_loaded"
    MODE_CHANGED = "mode_changed"
    REFERENCES_CHANGED = "references_changed"


# =============================================================================
# EVENT
# =============================================================================

@dataclass
class StoreEvent:
    """
    A single store change notification.

    - command: Name of the store command that produced the change
    - node_ids: Nodes touched by the command (empty when not node-scoped)
    - version: Store version after the command
    """
    event_type: StoreEventType = StoreEventType.NODES_CHANGED
    command: str = ""
    node_ids: List[str] = field(default_factory=list)
    version: int = 0
    event_id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "command": self.command,
            "node_ids": list(self.node_ids),
            "version": self.version,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
