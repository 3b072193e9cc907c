"""
ARKHAM Formula Module

Variable substitution and sandboxed arithmetic evaluation.
"""

from arkham.formula.substitution import (
    substitute_variables,
    stringify_value,
    find_variable,
    references_in,
    replace_variable_reference,
)
from arkham.formula.evaluator import (
    evaluate_formula,
    evaluate_arithmetic,
    coerce_variable_value,
    FormulaSyntaxError,
)

__all__ = [
    "substitute_variables",
    "stringify_value",
    "find_variable",
    "references_in",
    "replace_variable_reference",
    "evaluate_formula",
    "evaluate_arithmetic",
    "coerce_variable_value",
    "FormulaSyntaxError",
]
