"""
arkham/scheduling.py - Deferred geometry work

Work that depends on measurements the renderer has not reported yet is
queued under a key and drained by the host from its event loop. Queuing
a key again replaces the earlier task.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional
import logging

logger = logging.getLogger("scheduling")


@dataclass
class DeferredTask:
    """A queued callable."""

    key: str
    callback: Callable[[], None]
    created_at: datetime = field(default_factory=datetime.utcnow)


class DeferredTaskQueue:
    """
    Keyed, cancellable FIFO of deferred callbacks.

    Usage:
        queue = DeferredTaskQueue()
        queue.schedule("fit-view", lambda: ...)
        queue.run_pending()
    """

    def __init__(self):
        self._tasks: Dict[str, DeferredTask] = {}

    def schedule(self, key: str, callback: Callable[[], None]) -> None:
        """Queue callback under key, replacing any pending task with that key."""
        if key in self._tasks:
            logger.debug(f"Superseding deferred task {key}")
            del self._tasks[key]
        self._tasks[key] = DeferredTask(key=key, callback=callback)

    def cancel(self, key: str) -> bool:
        return self._tasks.pop(key, None) is not None

    def clear(self) -> None:
        self._tasks.clear()

    def is_pending(self, key: str) -> bool:
        return key in self._tasks

    @property
    def pending(self) -> List[str]:
        return list(self._tasks.keys())

    def run_pending(self) -> int:
        """
        Run every task queued so far, in queue order.

        Tasks scheduled while draining wait for the next call. A failing
        task is logged and does not stop the others.

        Returns:
            Number of tasks run
        """
        tasks = list(self._tasks.values())
        self._tasks.clear()

        for task in tasks:
            try:
                task.callback()
            except Exception as e:
                logger.error(f"Deferred task {task.key} failed: {e}")
        return len(tasks)
