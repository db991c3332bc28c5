"""
LawPilot Condition Evaluator

Evaluates rule-table condition strings against a flat stage context without
executing code.

Key features:
- Tokenizer and recursive-descent parser for a fixed grammar
- Identifiers resolve only against the evaluator's declared context keys
- Parsed conditions are cached per condition string
- evaluate() never raises: failures are logged, recorded and read as False

Grammar:
    expr       := or_expr
    or_expr    := and_expr ( "||" and_expr )*
    and_expr   := comparison ( "&&" comparison )*
    comparison := "(" expr ")" | operand OP operand
    operand    := IDENT | STRING | NUMBER
    OP         := "==" | "!=" | "===" | "!==" | "<" | "<=" | ">" | ">="
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Iterable, Mapping, NoReturn, Optional, Union

from ..exceptions import ConditionError, ConditionSyntaxError, UnknownIdentifierError


logger = logging.getLogger(__name__)


# Context keys each evaluating stage exposes to conditions
DOCTRINE_CONTEXT_KEYS = (
    "tier1_status",
    "tier2_scope_status",
    "tier3_preemption_status",
    "tier4_const_status",
    "funding_risk",
    "driver_type",
    "law_category",
)

VALIDITY_CONTEXT_KEYS = DOCTRINE_CONTEXT_KEYS + (
    "divergence_score",
    "fidelity_score",
)


# =============================================================================
# Tokenizer
# =============================================================================

EQUALITY_OPS = {"==": "==", "===": "==", "!=": "!=", "!==": "!="}

_TOKEN_SPEC = [
    ("SPACE", r"\s+"),
    ("STRING", r'"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\''),
    ("NUMBER", r"-?\d+(?:\.\d+)?"),
    ("IDENT", r"[A-Za-z_][A-Za-z0-9_]*"),
    ("OP", r"===|!==|==|!=|<=|>=|<|>"),
    ("AND", r"&&"),
    ("OR", r"\|\|"),
    ("LPAREN", r"\("),
    ("RPAREN", r"\)"),
]
_TOKEN_RE = re.compile("|".join(f"(?P<{name}>{pattern})" for name, pattern in _TOKEN_SPEC))
_ESCAPE_RE = re.compile(r"\\(.)")


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int


def tokenize(text: str) -> list[Token]:
    """
    Split a condition string into tokens.

    Raises:
        ConditionSyntaxError: On any character outside the grammar
    """
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ConditionSyntaxError(
                message=f"Unexpected character {text[pos]!r} at position {pos}",
                details={"condition": text, "position": pos},
            )
        kind = match.lastgroup or ""
        if kind != "SPACE":
            tokens.append(Token(kind=kind, text=match.group(), pos=pos))
        pos = match.end()
    return tokens


# =============================================================================
# Syntax Tree
# =============================================================================

@dataclass(frozen=True)
class Literal:
    value: Union[str, int, float]


@dataclass(frozen=True)
class Identifier:
    name: str


Operand = Union[Literal, Identifier]


@dataclass(frozen=True)
class Comparison:
    left: Operand
    op: str
    right: Operand


@dataclass(frozen=True)
class BoolOp:
    """Short-circuit && / || over two or more operands."""
    op: str
    operands: tuple[Node, ...]


Node = Union[Comparison, BoolOp]


def identifiers(node: Node) -> set[str]:
    """All identifier names referenced by a parsed condition."""
    if isinstance(node, BoolOp):
        names: set[str] = set()
        for child in node.operands:
            names |= identifiers(child)
        return names
    return {o.name for o in (node.left, node.right) if isinstance(o, Identifier)}


# =============================================================================
# Parser
# =============================================================================

class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, text: str, tokens: list[Token]):
        self.text = text
        self.tokens = tokens
        self.index = 0

    def parse(self) -> Node:
        if not self.tokens:
            self._fail("Empty condition")
        node = self._or_expr()
        if self.index < len(self.tokens):
            tok = self.tokens[self.index]
            self._fail(f"Unexpected {tok.text!r} at position {tok.pos}")
        return node

    def _peek(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _at(self, kind: str) -> bool:
        tok = self._peek()
        return tok is not None and tok.kind == kind

    def _advance(self) -> Token:
        tok = self._peek()
        if tok is None:
            self._fail("Unexpected end of condition")
        self.index += 1
        return tok

    def _fail(self, message: str) -> NoReturn:
        raise ConditionSyntaxError(message=message, details={"condition": self.text})

    def _or_expr(self) -> Node:
        operands = [self._and_expr()]
        while self._at("OR"):
            self.index += 1
            operands.append(self._and_expr())
        return operands[0] if len(operands) == 1 else BoolOp("||", tuple(operands))

    def _and_expr(self) -> Node:
        operands = [self._comparison()]
        while self._at("AND"):
            self.index += 1
            operands.append(self._comparison())
        return operands[0] if len(operands) == 1 else BoolOp("&&", tuple(operands))

    def _comparison(self) -> Node:
        tok = self._peek()
        if tok is not None and tok.kind == "LPAREN":
            self.index += 1
            node = self._or_expr()
            closing = self._advance()
            if closing.kind != "RPAREN":
                self._fail(f"Expected ')' at position {closing.pos}, got {closing.text!r}")
            return node

        left = self._operand()
        op_tok = self._advance()
        if op_tok.kind != "OP":
            self._fail(f"Expected comparison operator at position {op_tok.pos}, got {op_tok.text!r}")
        right = self._operand()
        op = EQUALITY_OPS.get(op_tok.text, op_tok.text)
        return Comparison(left=left, op=op, right=right)

    def _operand(self) -> Operand:
        tok = self._advance()
        if tok.kind == "IDENT":
            return Identifier(tok.text)
        if tok.kind == "STRING":
            return Literal(_ESCAPE_RE.sub(r"\1", tok.text[1:-1]))
        if tok.kind == "NUMBER":
            return Literal(float(tok.text) if "." in tok.text else int(tok.text))
        self._fail(f"Expected identifier, string or number at position {tok.pos}, got {tok.text!r}")


@lru_cache(maxsize=1024)
def parse_condition(text: str) -> Node:
    """
    Parse a condition string into a syntax tree.

    Results are cached per string; parse errors are not.

    Raises:
        ConditionSyntaxError: If the condition does not match the grammar
    """
    return _Parser(text, tokenize(text)).parse()


# =============================================================================
# Evaluation
# =============================================================================

def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _compare(left: Any, op: str, right: Any, text: str) -> bool:
    if op == "==":
        return left == right
    if op == "!=":
        return left != right
    if not (_is_number(left) and _is_number(right)):
        raise ConditionError(
            message=f"Operator {op} requires numeric operands, got {left!r} and {right!r}",
            details={"condition": text},
        )
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    return left >= right


@dataclass(frozen=True)
class ConditionFailure:
    """A condition that could not be evaluated and was read as False."""
    condition: str
    code: str
    message: str
    rule_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "condition": self.condition,
            "code": self.code,
            "message": self.message,
            "rule_id": self.rule_id,
        }


@dataclass
class ConditionEvaluator:
    """
    Evaluates condition strings against a flat context.

    Usage:
        evaluator = ConditionEvaluator(keys=DOCTRINE_CONTEXT_KEYS)
        if evaluator.evaluate('tier1_status == "ultra_vires"', context):
            ...
        for failure in evaluator.failures:
            print(failure.code, failure.condition)
    """

    keys: tuple[str, ...] = DOCTRINE_CONTEXT_KEYS
    failures: list[ConditionFailure] = field(default_factory=list)

    def evaluate_strict(self, condition: str, context: Mapping[str, Any]) -> bool:
        """
        Evaluate a condition, raising on failure.

        Raises:
            ConditionSyntaxError: If the condition is malformed
            UnknownIdentifierError: If it names a key outside self.keys
            ConditionError: If an ordering operator meets a non-number
        """
        node = parse_condition(condition)
        unknown = sorted(identifiers(node) - set(self.keys))
        if unknown:
            raise UnknownIdentifierError(
                message=f"Unknown identifier(s) in condition: {', '.join(unknown)}",
                details={"condition": condition, "unknown": unknown, "allowed": list(self.keys)},
            )
        return self._eval(node, context, condition)

    def evaluate(
        self,
        condition: str,
        context: Mapping[str, Any],
        rule_id: Optional[str] = None,
    ) -> bool:
        """
        Evaluate a condition; any ConditionError is logged, recorded in
        self.failures, and the result is False.
        """
        try:
            return self.evaluate_strict(condition, context)
        except ConditionError as e:
            logger.warning(
                "Condition evaluation failed for rule %s: %s",
                rule_id or "<inline>",
                e,
                extra={"condition": condition},
            )
            self.failures.append(ConditionFailure(
                condition=condition,
                code=e.code,
                message=e.message,
                rule_id=rule_id,
            ))
            return False

    def _eval(self, node: Node, context: Mapping[str, Any], text: str) -> bool:
        if isinstance(node, BoolOp):
            if node.op == "&&":
                return all(self._eval(child, context, text) for child in node.operands)
            return any(self._eval(child, context, text) for child in node.operands)
        left = self._resolve(node.left, context)
        right = self._resolve(node.right, context)
        return _compare(left, node.op, right, text)

    def _resolve(self, operand: Operand, context: Mapping[str, Any]) -> Any:
        if isinstance(operand, Literal):
            return operand.value
        return _plain(context.get(operand.name))


# =============================================================================
# Convenience Functions
# =============================================================================

def evaluate_condition(
    condition: str,
    context: Mapping[str, Any],
    keys: Iterable[str] = DOCTRINE_CONTEXT_KEYS,
) -> bool:
    """
    Evaluate a condition with a temporary evaluator.

    Returns False for any condition that cannot be evaluated.
    """
    return ConditionEvaluator(keys=tuple(keys)).evaluate(condition, context)
