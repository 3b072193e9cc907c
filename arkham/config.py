"""
arkham/config.py - Editor configuration

Provides configuration loading from files, environment variables, and defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

from arkham.core.constants import HISTORY_LIMIT, OVERLAP_MARGIN, OVERLAP_MAX_ITERATIONS
from arkham.core.enums import EdgeType

logger = logging.getLogger("arkham.config")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("ARKHAM_LOG_LEVEL", "INFO"),
            format=os.getenv("ARKHAM_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("ARKHAM_LOG_FILE"),
            json_logs=os.getenv("ARKHAM_JSON_LOGS", "false").lower() == "true",
        )


@dataclass
class EditorConfig:
    """Root configuration for a scenario editor session."""

    history_limit: int = HISTORY_LIMIT
    overlap_margin: float = OVERLAP_MARGIN
    overlap_max_iterations: int = OVERLAP_MAX_ITERATIONS

    # Autosave (disabled when no path is set)
    autosave_delay_ms: int = 1000
    autosave_path: Optional[str] = None

    default_edge_type: str = EdgeType.DEFAULT.value

    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def autosave_enabled(self) -> bool:
        return bool(self.autosave_path)

    @classmethod
    def from_env(cls) -> "EditorConfig":
        """Create configuration from environment variables."""
        return cls(
            history_limit=int(os.getenv("ARKHAM_HISTORY_LIMIT", str(HISTORY_LIMIT))),
            overlap_margin=float(os.getenv("ARKHAM_OVERLAP_MARGIN", str(OVERLAP_MARGIN))),
            overlap_max_iterations=int(
                os.getenv("ARKHAM_OVERLAP_MAX_ITERATIONS", str(OVERLAP_MAX_ITERATIONS))
            ),
            autosave_delay_ms=int(os.getenv("ARKHAM_AUTOSAVE_DELAY_MS", "1000")),
            autosave_path=os.getenv("ARKHAM_AUTOSAVE_PATH") or None,
            default_edge_type=os.getenv("ARKHAM_DEFAULT_EDGE_TYPE", EdgeType.DEFAULT.value),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "EditorConfig":
        """Load configuration from JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "EditorConfig":
        """Create config from dictionary."""
        config = cls.from_env()

        # Override with file values
        for key, value in data.items():
            if key == "logging":
                for log_key, log_value in (value or {}).items():
                    if hasattr(config.logging, log_key):
                        setattr(config.logging, log_key, log_value)
            elif hasattr(config, key):
                setattr(config, key, value)
            else:
                logger.debug(f"Ignoring unknown config key: {key}")

        if config.default_edge_type not in {e.value for e in EdgeType}:
            logger.warning(
                f"Unknown edge type '{config.default_edge_type}', using 'default'"
            )
            config.default_edge_type = EdgeType.DEFAULT.value

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "history_limit": self.history_limit,
            "overlap_margin": self.overlap_margin,
            "overlap_max_iterations": self.overlap_max_iterations,
            "autosave_delay_ms": self.autosave_delay_ms,
            "autosave_path": self.autosave_path,
            "default_edge_type": self.default_edge_type,
            "logging": {
                "level": self.logging.level,
                "log_file": self.logging.log_file,
                "json_logs": self.logging.json_logs,
            },
        }


def load_config(filepath: str = None) -> EditorConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        EditorConfig instance
    """
    if filepath:
        return EditorConfig.from_file(filepath)

    default_paths = [
        "./arkham.json",
        os.path.expanduser("~/.arkham/config.json"),
    ]
    for path in default_paths:
        if Path(path).exists():
            logger.info(f"Loading config from: {path}")
            return EditorConfig.from_file(path)

    return EditorConfig.from_env()
