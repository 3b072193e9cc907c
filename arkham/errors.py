"""
arkham/errors.py - Scenario engine exceptions

Exceptions raised at the edges of the engine: document loading and
assertion rule registration. Commands inside the store never raise; they
return False/None and log instead.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ArkhamError(Exception):
    """Base exception for scenario engine errors."""

    code: str = "ARK_000"

    def __init__(
        self,
        message: str = "",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.__class__.__doc__ or "Scenario engine error"
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ScenarioValidationError(ArkhamError):
    """Scenario document failed structural validation."""

    code = "ARK_001"

    def __init__(
        self,
        errors: List[str],
        warnings: Optional[List[str]] = None,
        source: str = "",
    ):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        self.source = source

        message = "Invalid scenario document"
        if source:
            message += f" ({source})"
        if self.errors:
            message += ": " + "; ".join(self.errors)

        super().__init__(
            message,
            details={"errors": self.errors, "warnings": self.warnings},
        )


class AssertionRuleError(ArkhamError):
    """Assertion rule expression could not be parsed."""

    code = "ARK_002"

    def __init__(self, rule_id: str, reason: str, position: Optional[int] = None):
        self.rule_id = rule_id
        self.reason = reason
        self.position = position

        message = f"Invalid assertion rule '{rule_id}': {reason}"
        if position is not None:
            message += f" (at offset {position})"

        super().__init__(message, details={"rule_id": rule_id, "position": position})
