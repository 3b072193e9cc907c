"""
arkham/persistence.py - Scenario files and debounced autosave

Reads and writes scenario documents as JSON. The autosaver writes the
latest document once edits have been quiet for the configured delay,
on a timer thread outside the command path.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Optional
import json
import logging
import threading

logger = logging.getLogger("persistence")


def read_document(filepath: str) -> Any:
    """Parse a scenario file. Raises json.JSONDecodeError on bad JSON."""
    with open(filepath, encoding="utf-8") as f:
        return json.load(f)


def write_document(filepath: str, data: Dict[str, Any], indent: int = 2) -> None:
    """Write a scenario document, replacing the file atomically."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=False, default=str)
    tmp_path.replace(path)
    logger.info(f"Scenario saved to {filepath}")


class ScenarioAutosaver:
    """
    Debounced writer for a single scenario file.

    Each call to schedule() replaces the pending document and restarts the
    timer, so only the latest state reaches disk.

    Usage:
        autosaver = ScenarioAutosaver("scenario.json", delay_ms=1000)
        autosaver.schedule(store.to_dict())
    """

    def __init__(self, filepath: str, delay_ms: int = 1000):
        self.filepath = filepath
        self._delay = max(0, delay_ms) / 1000.0
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._document: Optional[Dict[str, Any]] = None
        self._save_count = 0

    @property
    def save_count(self) -> int:
        return self._save_count

    @property
    def is_pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self, document: Dict[str, Any]) -> None:
        """Queue a document and restart the debounce window."""
        with self._lock:
            self._document = document
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._document = None

    def flush(self) -> bool:
        """Write immediately if a save is pending. Returns True if written."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is None:
            return False
        timer.cancel()
        return self._save()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        self._save()

    def _save(self) -> bool:
        with self._lock:
            document, self._document = self._document, None
        if document is None:
            return False
        try:
            write_document(self.filepath, document)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Autosave to {self.filepath} failed: {e}")
            return False
        self._save_count += 1
        return True
