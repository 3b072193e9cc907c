"""
ARKHAM Variable Substitution

Replaces ${Name} references in text with the string form of the named
variable's value.
"""

import math
import re
from typing import Any, Dict, Mapping, Optional

from arkham.core.constants import (
    SUBSTITUTION_MAX_DEPTH,
    SUBSTITUTION_MAX_LENGTH,
    TEXT_TOO_LONG_SENTINEL,
)
from arkham.core.dataclasses import Variable

# Innermost reference: no braces inside the name
VARIABLE_REFERENCE = re.compile(r"\$\{([^{}]+)\}")


def stringify_value(value: Any) -> str:
    """
    Render a variable value the way the persisted document writes it.

    Booleans become "true"/"false", integral floats lose their fractional
    part and None becomes "null".
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def find_variable(variables: Mapping[str, Variable], name: str) -> Optional[Variable]:
    """Case-insensitive lookup of a variable by name."""
    if name in variables:
        return variables[name]
    lowered = name.lower()
    for key, variable in variables.items():
        if key.lower() == lowered:
            return variable
    return None


def substitute_variables(text: Optional[str], variables: Mapping[str, Variable]) -> str:
    """
    Expand ${Name} references until the text stops changing.

    Unknown names are left verbatim. Expansion is capped at
    SUBSTITUTION_MAX_DEPTH passes; if the text ever grows beyond
    SUBSTITUTION_MAX_LENGTH the sentinel "#ERROR: Text too long#" is
    returned instead.
    """
    if not text:
        return ""

    result = str(text)
    lookup: Dict[str, Variable] = {name.lower(): v for name, v in variables.items()}

    def replace(match: "re.Match[str]") -> str:
        variable = lookup.get(match.group(1).lower())
        if variable is None:
            return match.group(0)
        return stringify_value(variable.value)

    depth = 0
    while "${" in result and depth < SUBSTITUTION_MAX_DEPTH:
        previous = result
        result = VARIABLE_REFERENCE.sub(replace, result)

        if len(result) > SUBSTITUTION_MAX_LENGTH:
            return TEXT_TOO_LONG_SENTINEL

        if result == previous:
            break
        depth += 1

    return result


def references_in(text: Any) -> list:
    """Names referenced as ${Name} in text, in order of appearance."""
    if not isinstance(text, str):
        return []
    return VARIABLE_REFERENCE.findall(text)


def replace_variable_reference(text: Any, old_name: str, new_name: str) -> Any:
    """
    Rewrite every ${old_name} reference (case-insensitive) to ${new_name}.

    Non-string values are returned unchanged.
    """
    if not isinstance(text, str) or "${" not in text:
        return text
    pattern = re.compile(r"\$\{" + re.escape(old_name) + r"\}", re.IGNORECASE)
    return pattern.sub(lambda _m: "${" + new_name + "}", text)
