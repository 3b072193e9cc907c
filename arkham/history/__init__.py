"""
History module - Undo/redo snapshots.
"""

from .schemas import HistorySnapshot
from .manager import HistoryManager

__all__ = [
    "HistorySnapshot",
    "HistoryManager",
]
