"""
Aperture macro bodies and their arithmetic expressions.

An aperture macro (%AM<name>*<body>*%) is a list of '*'-separated statements:

    0 <text>                         comment
    $<n>=<expression>                variable assignment
    <code>,<modifier>,<modifier>...  primitive with expression modifiers

Modifier expressions use decimal literals, $n variables, unary +/-, the
binary operators + - x / (x or X is multiplication) and parentheses.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from mutcap_exceptions import GerberParseError


_TOKEN_RE = re.compile(r'\s*(?:(\d+(?:\.\d*)?|\.\d+)|\$(\d+)|([-+xX/()]))')

_COMMENT_RE = re.compile(r'^0(?: (.*))?$')
_VARIABLE_RE = re.compile(r'^\$(\d+)=(.+)$')
_PRIMITIVE_RE = re.compile(r'^([1-9][0-9]*),(.*)$')


@dataclass(frozen=True)
class Number:
    value: float

    def evaluate(self, bindings: Dict[int, float]) -> float:
        return self.value


@dataclass(frozen=True)
class Variable:
    """Reference to $index; unbound variables evaluate to 0."""
    index: int

    def evaluate(self, bindings: Dict[int, float]) -> float:
        return bindings.get(self.index, 0.0)


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: 'Expression'

    def evaluate(self, bindings: Dict[int, float]) -> float:
        value = self.operand.evaluate(bindings)
        return -value if self.op == '-' else value


@dataclass(frozen=True)
class BinaryOp:
    op: str  # one of + - x /
    left: 'Expression'
    right: 'Expression'

    def evaluate(self, bindings: Dict[int, float]) -> float:
        a = self.left.evaluate(bindings)
        b = self.right.evaluate(bindings)
        if self.op == '+':
            return a + b
        if self.op == '-':
            return a - b
        if self.op == 'x':
            return a * b
        return a / b


Expression = Union[Number, Variable, UnaryOp, BinaryOp]


@dataclass(frozen=True)
class MacroComment:
    text: str


@dataclass(frozen=True)
class MacroVariable:
    index: int
    expression: Expression


@dataclass(frozen=True)
class MacroPrimitive:
    code: int
    modifiers: Tuple[Expression, ...]

    def evaluate(self, bindings: Dict[int, float]) -> Tuple[float, ...]:
        return tuple(m.evaluate(bindings) for m in self.modifiers)


MacroStatement = Union[MacroComment, MacroVariable, MacroPrimitive]


@dataclass(frozen=True)
class EvaluatedPrimitive:
    """A macro primitive with all modifiers reduced to numbers."""
    code: int
    values: Tuple[float, ...]


def _tokenize(text: str) -> List[Tuple[str, str]]:
    tokens = []
    pos = 0
    stripped_len = len(text.rstrip())
    while pos < stripped_len:
        m = _TOKEN_RE.match(text, pos)
        if not m:
            raise GerberParseError(text, f"Malformed macro expression: {text!r}")
        number, variable, op = m.groups()
        if number is not None:
            tokens.append(('num', number))
        elif variable is not None:
            tokens.append(('var', variable))
        else:
            tokens.append(('op', 'x' if op == 'X' else op))
        pos = m.end()
    return tokens


class _ExpressionParser:
    """Recursive-descent parser over a token list."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def _peek(self) -> Optional[Tuple[str, str]]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _fail(self):
        raise GerberParseError(self.text, f"Malformed macro expression: {self.text!r}")

    def parse(self) -> Expression:
        if not self.tokens:
            self._fail()
        expr = self._expression()
        if self.pos != len(self.tokens):
            self._fail()
        return expr

    def _expression(self) -> Expression:
        node = self._term()
        while True:
            tok = self._peek()
            if tok is None or tok not in (('op', '+'), ('op', '-')):
                return node
            self.pos += 1
            node = BinaryOp(tok[1], node, self._term())

    def _term(self) -> Expression:
        node = self._factor()
        while True:
            tok = self._peek()
            if tok is None or tok not in (('op', 'x'), ('op', '/')):
                return node
            self.pos += 1
            node = BinaryOp(tok[1], node, self._factor())

    def _factor(self) -> Expression:
        tok = self._peek()
        if tok is None:
            self._fail()
        self.pos += 1
        kind, value = tok
        if kind == 'num':
            return Number(float(value))
        if kind == 'var':
            return Variable(int(value))
        if value in ('+', '-'):
            return UnaryOp(value, self._factor())
        if value == '(':
            node = self._expression()
            if self._peek() != ('op', ')'):
                self._fail()
            self.pos += 1
            return node
        self._fail()


def parse_expression(text: str) -> Expression:
    """Parse a macro modifier expression.

    Raises:
        GerberParseError: if the expression is malformed
    """
    return _ExpressionParser(text).parse()


def parse_macro_body(body: str) -> Optional[Tuple[MacroStatement, ...]]:
    """Parse the '*'-separated statements of an aperture macro body.

    Returns None if any statement has an unrecognized shape, so the caller
    can keep the whole block as an unknown command.

    Raises:
        GerberParseError: if a recognized statement has a malformed expression
    """
    statements: List[MacroStatement] = []
    for raw in body.split('*'):
        stmt = raw.strip()
        if not stmt:
            continue
        m = _COMMENT_RE.match(stmt)
        if m:
            statements.append(MacroComment(m.group(1) or ''))
            continue
        m = _VARIABLE_RE.match(stmt)
        if m:
            statements.append(MacroVariable(int(m.group(1)), parse_expression(m.group(2))))
            continue
        m = _PRIMITIVE_RE.match(stmt)
        if m:
            modifiers = tuple(parse_expression(part) for part in m.group(2).split(','))
            statements.append(MacroPrimitive(int(m.group(1)), modifiers))
            continue
        return None
    return tuple(statements)


def evaluate_macro(statements: Sequence[MacroStatement],
                   params: Sequence[float]) -> List[EvaluatedPrimitive]:
    """Evaluate a macro body for one aperture instantiation.

    Args:
        statements: Parsed macro body
        params: Aperture definition parameters, bound to $1, $2, ...

    Returns:
        The primitives in body order with numeric modifier values
    """
    bindings: Dict[int, float] = {i + 1: float(p) for i, p in enumerate(params)}
    primitives = []
    for stmt in statements:
        if isinstance(stmt, MacroVariable):
            bindings[stmt.index] = stmt.expression.evaluate(bindings)
        elif isinstance(stmt, MacroPrimitive):
            primitives.append(EvaluatedPrimitive(stmt.code, stmt.evaluate(bindings)))
    return primitives
