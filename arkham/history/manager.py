"""
history/manager.py - Undo/redo management

Bounded undo stack of full snapshots plus a redo stack.
"""

from __future__ import annotations
from typing import List, Optional
import logging

from arkham.core.constants import HISTORY_LIMIT
from .schemas import HistorySnapshot


class HistoryManager:
    """
    Undo/redo over whole-store snapshots.

    - push() appends to the undo stack, drops the oldest entry past the
      limit and clears the redo stack
    - undo()/redo() swap the live state with the top of the relevant stack
      and are no-ops (returning None) when that stack is empty
    """

    def __init__(self, limit: int = HISTORY_LIMIT):
        self.logger = logging.getLogger("history")
        self._limit = max(1, limit)
        self._past: List[HistorySnapshot] = []
        self._future: List[HistorySnapshot] = []

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    @property
    def undo_depth(self) -> int:
        return len(self._past)

    @property
    def redo_depth(self) -> int:
        return len(self._future)

    def push(self, snapshot: HistorySnapshot) -> None:
        """Record the state before a command."""
        self._past.append(snapshot)
        if len(self._past) > self._limit:
            dropped = len(self._past) - self._limit
            self._past = self._past[-self._limit:]
            self.logger.debug(f"History limit {self._limit} reached, dropped {dropped} snapshot(s)")
        self._future.clear()

    def undo(self, current: HistorySnapshot) -> Optional[HistorySnapshot]:
        """
        Step back one snapshot.

        Args:
            current: Snapshot of the live state, moved onto the redo stack

        Returns:
            The snapshot to install, or None if there is nothing to undo
        """
        if not self._past:
            self.logger.debug("Nothing to undo")
            return None

        previous = self._past.pop()
        self._future.insert(0, current)
        self.logger.debug(f"Undo to snapshot {previous.snapshot_id} ({previous.label})")
        return previous.restore()

    def redo(self, current: HistorySnapshot) -> Optional[HistorySnapshot]:
        """Mirror of undo()."""
        if not self._future:
            self.logger.debug("Nothing to redo")
            return None

        following = self._future.pop(0)
        self._past.append(current)
        if len(self._past) > self._limit:
            self._past = self._past[-self._limit:]
        self.logger.debug(f"Redo to snapshot {following.snapshot_id} ({following.label})")
        return following.restore()

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()

    def labels(self) -> List[str]:
        """Command labels on the undo stack, oldest first."""
        return [s.label for s in self._past]
