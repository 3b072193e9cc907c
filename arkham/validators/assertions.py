"""
ARKHAM Assertion Rules

Authoring checks run against a read-only snapshot of a scenario.

Seven built-in rules cover structural problems (missing start node,
orphans, undefined ${var} references, broken jumps, untitled nodes,
dead ends, overly long text). Custom rules are written in a small
expression language:

    count_nodes("event") > 0 and not has_variable("debug")
    quantity("inventory", "Key") <= 1
    count_revealed() * 2 >= count_nodes()

Only literals, and/or/not, comparisons, + - * / and the whitelisted
functions below are accepted. Sources are parsed once when the rule is
added; nothing is ever executed as code.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
import logging
import re
import uuid

from arkham.core.constants import INFO_TYPE_CATEGORIES, LONG_DESCRIPTION_LIMIT
from arkham.core.dataclasses import Edge, GameState, Node, Variable
from arkham.core.document import ScenarioDocument
from arkham.core.enums import GameCategory, NodeType, RuleSeverity
from arkham.errors import AssertionRuleError
from arkham.formula import find_variable, references_in

logger = logging.getLogger(__name__)


# =============================================================================
# SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class AssertionSnapshot:
    """Frozen copy of the parts of a scenario the rules may read."""

    nodes: Tuple[Node, ...] = ()
    edges: Tuple[Edge, ...] = ()
    variables: Mapping[str, Variable] = field(default_factory=lambda: MappingProxyType({}))
    game_state: GameState = field(default_factory=GameState)

    @classmethod
    def from_document(cls, document: ScenarioDocument) -> "AssertionSnapshot":
        return cls(
            nodes=tuple(document.nodes),
            edges=tuple(e for e in document.edges if not e.virtual),
            variables=MappingProxyType(dict(document.game_state.variables)),
            game_state=document.game_state,
        )

    @classmethod
    def from_store(cls, store: Any) -> "AssertionSnapshot":
        """Any object with export_document() (normally a GraphStore)."""
        return cls.from_document(store.export_document())


# =============================================================================
# RULES & RESULTS
# =============================================================================

# A check returns either a bool or the ids of the offending nodes
RuleCheck = Callable[[AssertionSnapshot], Union[bool, List[str]]]


@dataclass
class AssertionRule:
    rule_id: str
    name: str
    description: str
    check: RuleCheck
    severity: RuleSeverity = RuleSeverity.WARNING
    enabled: bool = True
    source: Optional[str] = None  # DSL text for custom rules

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "name": self.name,
            "description": self.description,
            "severity": self.severity.value,
            "enabled": self.enabled,
            "source": self.source,
        }


@dataclass
class AssertionResult:
    """Outcome of one rule on one snapshot."""

    rule_id: str
    name: str
    passed: bool
    severity: RuleSeverity
    message: str
    node_ids: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "name": self.name,
            "passed": self.passed,
            "severity": self.severity.value,
            "message": self.message,
            "node_ids": list(self.node_ids),
            "timestamp": self.timestamp,
        }


# =============================================================================
# BUILT-IN RULES
# =============================================================================

_UNTITLED_EXEMPT = {NodeType.STICKY, NodeType.MEMO, NodeType.GROUP}


def _connected_ids(snapshot: AssertionSnapshot) -> set:
    connected = set()
    for edge in snapshot.edges:
        connected.add(edge.source)
        connected.add(edge.target)
    return connected


def check_start_node(snapshot: AssertionSnapshot) -> bool:
    return any(node.data.is_start for node in snapshot.nodes)


def check_orphan_nodes(snapshot: AssertionSnapshot) -> List[str]:
    connected = _connected_ids(snapshot)
    return [
        node.id for node in snapshot.nodes
        if node.id not in connected and node.type not in _UNTITLED_EXEMPT
    ]


def check_undefined_variables(snapshot: AssertionSnapshot) -> List[str]:
    """Nodes whose text references a variable that is not declared."""
    defined = {name.lower() for name in snapshot.variables}
    offenders = []
    for node in snapshot.nodes:
        data = node.data
        texts = [data.label, data.description, data.info_value, data.condition_value]
        if data.variable_value is not None:
            texts.append(str(data.variable_value))
        for text in texts:
            if any(name.strip().lower() not in defined for name in references_in(text)):
                offenders.append(node.id)
                break
    return offenders


def check_jump_targets(snapshot: AssertionSnapshot) -> List[str]:
    node_ids = {node.id for node in snapshot.nodes}
    return [
        node.id for node in snapshot.nodes
        if node.type == NodeType.JUMP
        and node.data.jump_target
        and node.data.jump_target not in node_ids
    ]


def check_empty_titles(snapshot: AssertionSnapshot) -> List[str]:
    return [
        node.id for node in snapshot.nodes
        if node.type not in _UNTITLED_EXEMPT
        and not (node.data.label or "").strip()
    ]


def check_dead_ends(snapshot: AssertionSnapshot) -> List[str]:
    sources = {edge.source for edge in snapshot.edges}
    return [
        node.id for node in snapshot.nodes
        if node.type not in _UNTITLED_EXEMPT and node.id not in sources
    ]


def check_long_descriptions(snapshot: AssertionSnapshot) -> List[str]:
    return [
        node.id for node in snapshot.nodes
        if isinstance(node.data.description, str)
        and len(node.data.description) >= LONG_DESCRIPTION_LIMIT
    ]


def builtin_rules() -> List[AssertionRule]:
    """Fresh instances of the default rule set."""
    return [
        AssertionRule(
            "start-node-exists", "Start node exists",
            "At least one node should be marked as a start node",
            check_start_node, RuleSeverity.WARNING,
        ),
        AssertionRule(
            "orphan-nodes", "Orphan nodes",
            "Nodes not connected to any edge (sticky notes, memos and groups excluded)",
            check_orphan_nodes, RuleSeverity.INFO,
        ),
        AssertionRule(
            "undefined-variables", "Undefined variable references",
            "Text references a ${variable} that is not declared",
            check_undefined_variables, RuleSeverity.ERROR,
        ),
        AssertionRule(
            "jump-target-validity", "Jump target validity",
            "Jump nodes must point at an existing node",
            check_jump_targets, RuleSeverity.ERROR,
        ),
        AssertionRule(
            "empty-title", "Empty title",
            "Nodes without a title (sticky notes, memos and groups excluded)",
            check_empty_titles, RuleSeverity.WARNING,
        ),
        AssertionRule(
            "dead-end-nodes", "Dead-end nodes",
            "Nodes with no outgoing edge (possibly endings)",
            check_dead_ends, RuleSeverity.INFO,
        ),
        AssertionRule(
            "long-description", "Long description",
            f"Descriptions of {LONG_DESCRIPTION_LIMIT} characters or more",
            check_long_descriptions, RuleSeverity.WARNING,
        ),
    ]


# =============================================================================
# RULE EXPRESSION LANGUAGE
# =============================================================================

_TOKEN = re.compile(
    r"""
    (?P<number>\d+(?:\.\d+)?|\.\d+)
    | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    | (?P<op>==|!=|<=|>=|[<>+\-*/(),])
    | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
    """,
    re.VERBOSE,
)

_KEYWORDS = {"and", "or", "not", "true", "false"}

_COMPARISONS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
}

_ARITHMETIC: Dict[str, Callable[[Any, Any], Any]] = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": lambda a, b: a / b,
}

Evaluator = Callable[[AssertionSnapshot], Any]


def _fn_count_nodes(snapshot: AssertionSnapshot, node_type: Optional[str] = None) -> int:
    if node_type is None:
        return len(snapshot.nodes)
    return sum(1 for node in snapshot.nodes if node.type.value == node_type)


def _fn_count_edges(snapshot: AssertionSnapshot) -> int:
    return len(snapshot.edges)


def _fn_count_revealed(snapshot: AssertionSnapshot) -> int:
    return sum(1 for node in snapshot.nodes if node.data.is_revealed)


def _fn_variable(snapshot: AssertionSnapshot, name: str) -> Any:
    variable = find_variable(snapshot.variables, str(name))
    return variable.value if variable is not None else None


def _fn_has_variable(snapshot: AssertionSnapshot, name: str) -> bool:
    return find_variable(snapshot.variables, str(name)) is not None


def _fn_quantity(snapshot: AssertionSnapshot, category: str, name: str) -> float:
    key = str(category).lower()
    if key in INFO_TYPE_CATEGORIES:
        resolved = INFO_TYPE_CATEGORIES[key]
    else:
        resolved = GameCategory(key)
    return snapshot.game_state.category(resolved).get(str(name), 0)


def _fn_count_stickies(snapshot: AssertionSnapshot) -> int:
    return sum(1 for node in snapshot.nodes if node.is_sticky)


# name -> (function, min args, max args)
FUNCTIONS: Dict[str, Tuple[Callable[..., Any], int, int]] = {
    "count_nodes": (_fn_count_nodes, 0, 1),
    "count_edges": (_fn_count_edges, 0, 0),
    "count_revealed": (_fn_count_revealed, 0, 0),
    "variable": (_fn_variable, 1, 1),
    "has_variable": (_fn_has_variable, 1, 1),
    "quantity": (_fn_quantity, 2, 2),
    "count_stickies": (_fn_count_stickies, 0, 0),
}


@dataclass
class _Token:
    kind: str  # number, string, op, name, keyword, end
    value: Any
    position: int


def tokenize_rule(source: str, rule_id: str = "") -> List[_Token]:
    tokens: List[_Token] = []
    pos = 0
    while pos < len(source):
        if source[pos].isspace():
            pos += 1
            continue
        match = _TOKEN.match(source, pos)
        if match is None:
            raise AssertionRuleError(rule_id, f"unexpected character {source[pos]!r}", pos)
        kind = match.lastgroup
        text = match.group(kind)
        if kind == "number":
            value: Any = float(text) if "." in text else int(text)
        elif kind == "string":
            value = re.sub(r"\\(.)", r"\1", text[1:-1])
        elif kind == "name" and text in _KEYWORDS:
            kind, value = "keyword", text
        else:
            value = text
        tokens.append(_Token(kind, value, pos))
        pos = match.end()
    tokens.append(_Token("end", None, len(source)))
    return tokens


class _RuleParser:
    """Recursive-descent compiler from tokens to a snapshot evaluator."""

    def __init__(self, tokens: List[_Token], rule_id: str):
        self._tokens = tokens
        self._index = 0
        self._rule_id = rule_id

    @property
    def current(self) -> _Token:
        return self._tokens[self._index]

    def _advance(self) -> _Token:
        token = self.current
        self._index += 1
        return token

    def _error(self, reason: str) -> AssertionRuleError:
        return AssertionRuleError(self._rule_id, reason, self.current.position)

    def _is(self, kind: str, *values: Any) -> bool:
        token = self.current
        return token.kind == kind and (not values or token.value in values)

    def _expect_op(self, op: str) -> None:
        if not self._is("op", op):
            raise self._error(f"expected '{op}'")
        self._advance()

    def compile(self) -> Evaluator:
        if self._is("end"):
            raise self._error("empty expression")
        evaluator = self.or_expr()
        if not self._is("end"):
            raise self._error(f"unexpected token {self.current.value!r}")
        return evaluator

    def or_expr(self) -> Evaluator:
        left = self.and_expr()
        while self._is("keyword", "or"):
            self._advance()
            right = self.and_expr()
            left = (lambda l, r: lambda s: bool(l(s)) or bool(r(s)))(left, right)
        return left

    def and_expr(self) -> Evaluator:
        left = self.not_expr()
        while self._is("keyword", "and"):
            self._advance()
            right = self.not_expr()
            left = (lambda l, r: lambda s: bool(l(s)) and bool(r(s)))(left, right)
        return left

    def not_expr(self) -> Evaluator:
        if self._is("keyword", "not"):
            self._advance()
            operand = self.not_expr()
            return lambda s: not operand(s)
        return self.comparison()

    def comparison(self) -> Evaluator:
        left = self.additive()
        if self._is("op", *_COMPARISONS):
            compare = _COMPARISONS[self._advance().value]
            right = self.additive()
            if self._is("op", *_COMPARISONS):
                raise self._error("chained comparisons are not supported")
            return lambda s: compare(left(s), right(s))
        return left

    def additive(self) -> Evaluator:
        left = self.term()
        while self._is("op", "+", "-"):
            apply = _ARITHMETIC[self._advance().value]
            right = self.term()
            left = (lambda f, l, r: lambda s: f(l(s), r(s)))(apply, left, right)
        return left

    def term(self) -> Evaluator:
        left = self.unary()
        while self._is("op", "*", "/"):
            apply = _ARITHMETIC[self._advance().value]
            right = self.unary()
            left = (lambda f, l, r: lambda s: f(l(s), r(s)))(apply, left, right)
        return left

    def unary(self) -> Evaluator:
        if self._is("op", "-"):
            self._advance()
            operand = self.unary()
            return lambda s: -operand(s)
        return self.primary()

    def primary(self) -> Evaluator:
        token = self.current
        if token.kind in ("number", "string"):
            self._advance()
            value = token.value
            return lambda s: value
        if token.kind == "keyword" and token.value in ("true", "false"):
            self._advance()
            flag = token.value == "true"
            return lambda s: flag
        if token.kind == "op" and token.value == "(":
            self._advance()
            inner = self.or_expr()
            self._expect_op(")")
            return inner
        if token.kind == "name":
            return self.call()
        if token.kind == "end":
            raise self._error("unexpected end of expression")
        raise self._error(f"unexpected token {token.value!r}")

    def call(self) -> Evaluator:
        name_token = self._advance()
        name = name_token.value
        if name not in FUNCTIONS:
            raise AssertionRuleError(self._rule_id, f"unknown function '{name}'", name_token.position)
        self._expect_op("(")
        args: List[Evaluator] = []
        if not self._is("op", ")"):
            args.append(self.or_expr())
            while self._is("op", ","):
                self._advance()
                args.append(self.or_expr())
        self._expect_op(")")

        function, min_args, max_args = FUNCTIONS[name]
        if not min_args <= len(args) <= max_args:
            raise AssertionRuleError(
                self._rule_id,
                f"{name}() takes {min_args}-{max_args} argument(s), got {len(args)}",
                name_token.position,
            )
        return lambda s: function(s, *(arg(s) for arg in args))


def compile_rule(source: str, rule_id: str = "") -> Evaluator:
    """
    Compile rule source into an evaluator.

    Raises:
        AssertionRuleError: on any syntax error, unknown function or arity mismatch
    """
    if not isinstance(source, str):
        raise AssertionRuleError(rule_id, "rule source must be a string")
    return _RuleParser(tokenize_rule(source, rule_id), rule_id).compile()


# =============================================================================
# ENGINE
# =============================================================================

class AssertionEngine:
    """
    Holds the rule set and runs it against scenario snapshots.

    Usage:
        engine = AssertionEngine()
        engine.add_rule("Has events", 'count_nodes("event") > 0', severity="error")
        for result in engine.run(store):
            ...
    """

    def __init__(self, include_builtin: bool = True):
        self._rules: Dict[str, AssertionRule] = {}
        if include_builtin:
            for rule in builtin_rules():
                self._rules[rule.rule_id] = rule
        self._last_results: List[AssertionResult] = []

    @property
    def rules(self) -> List[AssertionRule]:
        return list(self._rules.values())

    @property
    def last_results(self) -> List[AssertionResult]:
        return list(self._last_results)

    def get_rule(self, rule_id: str) -> Optional[AssertionRule]:
        return self._rules.get(rule_id)

    def add_rule(
        self,
        name: str,
        source: str,
        description: str = "",
        severity: Union[RuleSeverity, str] = RuleSeverity.WARNING,
    ) -> str:
        """
        Compile and register a custom rule.

        Returns:
            The new rule id

        Raises:
            AssertionRuleError: if the source does not compile
        """
        rule_id = f"custom-rule-{uuid.uuid4().hex[:8]}"
        if not name or not str(name).strip():
            raise AssertionRuleError(rule_id, "rule name is required")
        try:
            severity = RuleSeverity(severity)
        except ValueError:
            raise AssertionRuleError(rule_id, f"unknown severity '{severity}'")

        evaluator = compile_rule(source, rule_id)
        self._rules[rule_id] = AssertionRule(
            rule_id=rule_id,
            name=name,
            description=description or source,
            check=lambda snapshot: bool(evaluator(snapshot)),
            severity=severity,
            source=source,
        )
        logger.info(f"Custom assertion rule added: {name}")
        return rule_id

    def register(self, rule: AssertionRule) -> None:
        self._rules[rule.rule_id] = rule

    def remove_rule(self, rule_id: str) -> bool:
        return self._rules.pop(rule_id, None) is not None

    def toggle_rule(self, rule_id: str) -> Optional[bool]:
        """Flip a rule's enabled flag. Returns the new flag, None if unknown."""
        rule = self._rules.get(rule_id)
        if rule is None:
            return None
        rule.enabled = not rule.enabled
        return rule.enabled

    def run(self, target: Any) -> List[AssertionResult]:
        """
        Run every enabled rule.

        Args:
            target: An AssertionSnapshot, a ScenarioDocument, or a store
        """
        snapshot = self._snapshot(target)
        timestamp = datetime.now(timezone.utc).isoformat()
        results: List[AssertionResult] = []

        for rule in self._rules.values():
            if not rule.enabled:
                continue
            results.append(self._evaluate(rule, snapshot, timestamp))

        for result in results:
            if not result.passed:
                level = {
                    RuleSeverity.INFO: logging.INFO,
                    RuleSeverity.WARNING: logging.WARNING,
                    RuleSeverity.ERROR: logging.ERROR,
                }[result.severity]
                logger.log(level, f"[Assertion] {result.message}")

        self._last_results = results
        return results

    @staticmethod
    def _snapshot(target: Any) -> AssertionSnapshot:
        if isinstance(target, AssertionSnapshot):
            return target
        if isinstance(target, ScenarioDocument):
            return AssertionSnapshot.from_document(target)
        return AssertionSnapshot.from_store(target)

    @staticmethod
    def _evaluate(rule: AssertionRule, snapshot: AssertionSnapshot, timestamp: str) -> AssertionResult:
        try:
            outcome = rule.check(snapshot)
        except (ArithmeticError, LookupError, TypeError, ValueError) as e:
            return AssertionResult(
                rule_id=rule.rule_id,
                name=rule.name,
                passed=False,
                severity=RuleSeverity.ERROR,
                message=f"Error: {e}",
                timestamp=timestamp,
            )

        if isinstance(outcome, list):
            passed, node_ids = not outcome, outcome
        else:
            passed, node_ids = bool(outcome), []

        if passed:
            message = f"{rule.name}: passed"
        elif node_ids:
            message = f"{rule.description} ({', '.join(node_ids)})"
        else:
            message = rule.description
        return AssertionResult(
            rule_id=rule.rule_id,
            name=rule.name,
            passed=passed,
            severity=rule.severity,
            message=message,
            node_ids=list(node_ids),
            timestamp=timestamp,
        )


def run_assertions(target: Any, engine: Optional[AssertionEngine] = None) -> List[AssertionResult]:
    """Run the built-in rule set (or a given engine) against a store or snapshot."""
    return (engine or AssertionEngine()).run(target)
