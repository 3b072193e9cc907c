"""
ARKHAM Formula Evaluator

Sandboxed arithmetic over substituted formula text.

The grammar is deliberately small:

    expression := term (("+" | "-") term)*
    term       := unary (("*" | "/") unary)*
    unary      := ("+" | "-") unary | power
    power      := primary ("**" unary)?
    primary    := NUMBER | "(" expression ")"

Anything else is a syntax error and the substituted text is returned
unevaluated. No dynamic code execution takes place.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Union

from arkham.core.constants import FORMULA_MAX_LENGTH
from arkham.core.dataclasses import Variable
from arkham.core.enums import VariableType
from arkham.formula.substitution import stringify_value, substitute_variables

# Only digits, dots, the four operators, parentheses and whitespace
ARITHMETIC_TEXT = re.compile(r"^[\d.+\-*/()\s]+$")

_TOKEN = re.compile(r"\s*(?:(\d+\.?\d*|\.\d+)|(\*\*|\+\+|--|[+\-*/()]))")

Number = Union[int, float]


class FormulaSyntaxError(ValueError):
    """Arithmetic text that does not parse."""


@dataclass
class _Token:
    kind: str   # "num" | "op" | "end"
    text: str
    position: int


def tokenize(text: str) -> List[_Token]:
    tokens: List[_Token] = []
    position = 0
    length = len(text)
    while position < length:
        if text[position].isspace():
            position += 1
            continue
        match = _TOKEN.match(text, position)
        if not match:
            raise FormulaSyntaxError(f"Unexpected character at {position}: {text[position]!r}")
        number, operator = match.group(1), match.group(2)
        start = match.start(1) if number else match.start(2)
        if number:
            # "1.2.3" tokenizes as "1.2" followed by ".3"
            if match.end() < length and text[match.end()] == ".":
                raise FormulaSyntaxError(f"Malformed number at {start}")
            tokens.append(_Token("num", number, start))
        else:
            if operator in ("++", "--"):
                # Increment/decrement on a literal is not valid arithmetic
                raise FormulaSyntaxError(f"Invalid operator {operator!r} at {start}")
            tokens.append(_Token("op", operator, start))
        position = match.end()
    tokens.append(_Token("end", "", length))
    return tokens


class _Parser:
    """Recursive-descent parser evaluating as it goes."""

    def __init__(self, tokens: List[_Token]):
        self.tokens = tokens
        self.index = 0

    @property
    def current(self) -> _Token:
        return self.tokens[self.index]

    def _accept(self, *operators: str) -> str:
        token = self.current
        if token.kind == "op" and token.text in operators:
            self.index += 1
            return token.text
        return ""

    def parse(self) -> float:
        value = self.expression()
        if self.current.kind != "end":
            raise FormulaSyntaxError(f"Unexpected token {self.current.text!r} at {self.current.position}")
        return value

    def expression(self) -> float:
        value = self.term()
        while True:
            operator = self._accept("+", "-")
            if not operator:
                return value
            right = self.term()
            value = value + right if operator == "+" else value - right

    def term(self) -> float:
        value = self.unary()
        while True:
            operator = self._accept("*", "/")
            if not operator:
                return value
            right = self.unary()
            if operator == "*":
                value = value * right
            elif right == 0:
                if value == 0 or math.isnan(value):
                    value = math.nan
                else:
                    value = math.copysign(math.inf, value) * math.copysign(1.0, right)
            else:
                value = value / right

    def unary(self) -> float:
        operator = self._accept("+", "-")
        if not operator:
            return self.power()
        if self.current.kind == "op" and self.current.text in ("+", "-"):
            operand = self.unary()
        else:
            operand = self.primary()
            if self.current.kind == "op" and self.current.text == "**":
                # "-2 ** 2" is ambiguous and rejected
                raise FormulaSyntaxError("Unary operator before '**' needs parentheses")
        return -operand if operator == "-" else operand

    def power(self) -> float:
        base = self.primary()
        if self._accept("**"):
            exponent = self.unary()
            try:
                return math.pow(base, exponent)
            except (OverflowError, ValueError):
                return math.inf if base > 0 else math.nan
        return base

    def primary(self) -> float:
        token = self.current
        if token.kind == "num":
            self.index += 1
            return float(token.text)
        if self._accept("("):
            value = self.expression()
            if not self._accept(")"):
                raise FormulaSyntaxError(f"Missing ')' at {self.current.position}")
            return value
        raise FormulaSyntaxError(f"Unexpected token {token.text!r} at {token.position}")


def evaluate_arithmetic(text: str) -> Number:
    """
    Evaluate arithmetic text.

    Raises:
        FormulaSyntaxError: if the text does not parse
    """
    value = _Parser(tokenize(text)).parse()
    if math.isfinite(value) and value.is_integer():
        return int(value)
    return value


def evaluate_formula(formula: Any, variables: Mapping[str, Variable]) -> Any:
    """
    Substitute variables into a formula and evaluate it if it is arithmetic.

    Returns a number when the substituted text is a finite arithmetic
    expression, otherwise the substituted text. Non-string input is
    returned unchanged. Never raises.
    """
    if not isinstance(formula, str):
        return formula

    substituted = substitute_variables(formula, variables)

    if len(substituted) > FORMULA_MAX_LENGTH:
        return substituted

    if not ARITHMETIC_TEXT.match(substituted):
        return substituted

    try:
        result = evaluate_arithmetic(substituted)
    except (FormulaSyntaxError, RecursionError):
        return substituted

    if isinstance(result, float) and not math.isfinite(result):
        return substituted
    return result


def coerce_variable_value(variable_type: VariableType, resolved: Any, raw: Any = None) -> Any:
    """
    Convert an evaluated formula result to a variable's declared type.

    - number: numeric results pass through, numeric strings are parsed,
      an empty string is 0 and anything else keeps the raw value
    - boolean: true only for the text "true" (or a true bool)
    - string: the text form of the result
    """
    if variable_type == VariableType.NUMBER:
        if isinstance(resolved, bool):
            return int(resolved)
        if isinstance(resolved, (int, float)):
            return resolved
        text = str(resolved).strip()
        if text == "":
            return 0
        try:
            number = float(text)
        except ValueError:
            return raw if raw is not None else resolved
        if not math.isfinite(number):
            return raw if raw is not None else resolved
        return int(number) if number.is_integer() else number

    if variable_type == VariableType.BOOLEAN:
        if isinstance(resolved, bool):
            return resolved
        return str(resolved).strip().lower() == "true"

    if isinstance(resolved, str):
        return resolved
    return stringify_value(resolved)
