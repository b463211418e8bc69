"""
Restricted AST for calculated-row expressions.

Calculated layout items carry a small arithmetic language. This module
tokenizes and parses it into immutable node objects. Nothing here is
evaluated with Python's ``eval``; the grammar is closed.

Grammar (ascending precedence, left-associative):
    expression     := additive
    additive       := multiplicative (('+' | '-') multiplicative)*
    multiplicative := unary (('*' | '/') unary)*
    unary          := ('+' | '-') unary | primary
    primary        := NUMBER | IDENTIFIER | ORDER_REF | '(' expression ')'

Tokens:
  - NUMBER:      a digit followed by digits and dots (``12``, ``0.5``)
  - IDENTIFIER:  ``[A-Za-z_][A-Za-z0-9_]*`` -- a named report variable
  - ORDER_REF:   ``@`` followed by digits -- an earlier layout row
  - operators:   ``+ - * / ( )``

Rejected:
  - functions, strings, comparisons, boolean logic, any other character
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Union

from report_kernel.exceptions import ExpressionSyntaxError

OPERATORS: frozenset[str] = frozenset("+-*/()")
ADDITIVE: frozenset[str] = frozenset("+-")
MULTIPLICATIVE: frozenset[str] = frozenset("*/")


# Tokens


@dataclass(frozen=True, slots=True)
class Token:
    """A lexical token with its offset in the source text."""

    kind: str  # "number" | "variable" | "order" | "operator"
    value: str
    position: int


def tokenize(expression: str) -> list[Token]:
    """Split an expression into tokens.

    Raises:
        ExpressionSyntaxError: on a character outside the grammar or a bare ``@``.
    """
    tokens: list[Token] = []
    i = 0
    n = len(expression)

    while i < n:
        char = expression[i]

        if char.isspace():
            i += 1
            continue

        if char.isdigit():
            start = i
            while i < n and (expression[i].isdigit() or expression[i] == "."):
                i += 1
            tokens.append(Token("number", expression[start:i], start))
            continue

        if char == "@":
            start = i
            i += 1
            while i < n and expression[i].isdigit():
                i += 1
            if i == start + 1:
                raise ExpressionSyntaxError(
                    f"Invalid order reference at position {start}",
                    expression=expression,
                    position=start,
                )
            tokens.append(Token("order", expression[start:i], start))
            continue

        if char.isascii() and (char.isalpha() or char == "_"):
            start = i
            while i < n and expression[i].isascii() and (
                expression[i].isalnum() or expression[i] == "_"
            ):
                i += 1
            tokens.append(Token("variable", expression[start:i], start))
            continue

        if char in OPERATORS:
            tokens.append(Token("operator", char, i))
            i += 1
            continue

        raise ExpressionSyntaxError(
            f"Unexpected character '{char}' at position {i}",
            expression=expression,
            position=i,
        )

    return tokens


# AST nodes


@dataclass(frozen=True, slots=True)
class NumberNode:
    value: Decimal


@dataclass(frozen=True, slots=True)
class VariableNode:
    name: str


@dataclass(frozen=True, slots=True)
class OrderRefNode:
    """Reference to an already-rendered row, ``name`` keeps the ``@N`` form."""

    name: str

    @property
    def order(self) -> int:
        return int(self.name[1:])


@dataclass(frozen=True, slots=True)
class UnaryNode:
    op: str
    operand: "ExpressionNode"


@dataclass(frozen=True, slots=True)
class BinaryNode:
    op: str
    left: "ExpressionNode"
    right: "ExpressionNode"


ExpressionNode = Union[NumberNode, VariableNode, OrderRefNode, UnaryNode, BinaryNode]


# Parser

MAX_EXPRESSION_DEPTH = 100


class _Parser:
    """Recursive-descent parser over a token list.

    Each parse method returns the node together with its tree depth. Parsing
    fails with a syntax error once the tree depth or the parenthesis and sign
    nesting exceeds ``MAX_EXPRESSION_DEPTH``.
    """

    def __init__(self, expression: str, tokens: list[Token]):
        self.expression = expression
        self.tokens = tokens
        self.position = 0
        self.nesting = 0

    def parse(self) -> ExpressionNode:
        node, _ = self._additive()
        if self.position < len(self.tokens):
            token = self.tokens[self.position]
            raise self._error(
                f"Unexpected token '{token.value}' at position {token.position}",
                token.position,
            )
        return node

    def _peek(self) -> Token | None:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def _check_depth(self, depth: int, token: Token | None = None) -> int:
        if depth > MAX_EXPRESSION_DEPTH or self.nesting > MAX_EXPRESSION_DEPTH:
            position = token.position if token is not None else None
            raise self._error(
                f"Expression is nested too deeply (maximum depth {MAX_EXPRESSION_DEPTH})",
                position,
            )
        return depth

    def _additive(self) -> tuple[ExpressionNode, int]:
        left, depth = self._multiplicative()
        token = self._peek()
        while token is not None and token.kind == "operator" and token.value in ADDITIVE:
            self.position += 1
            right, right_depth = self._multiplicative()
            left = BinaryNode(token.value, left, right)
            depth = self._check_depth(max(depth, right_depth) + 1, token)
            token = self._peek()
        return left, depth

    def _multiplicative(self) -> tuple[ExpressionNode, int]:
        left, depth = self._unary()
        token = self._peek()
        while (
            token is not None
            and token.kind == "operator"
            and token.value in MULTIPLICATIVE
        ):
            self.position += 1
            right, right_depth = self._unary()
            left = BinaryNode(token.value, left, right)
            depth = self._check_depth(max(depth, right_depth) + 1, token)
            token = self._peek()
        return left, depth

    def _unary(self) -> tuple[ExpressionNode, int]:
        token = self._peek()
        if token is not None and token.kind == "operator" and token.value in ADDITIVE:
            self.position += 1
            self.nesting += 1
            self._check_depth(0, token)
            operand, depth = self._unary()
            self.nesting -= 1
            return UnaryNode(token.value, operand), self._check_depth(depth + 1, token)
        return self._primary()

    def _primary(self) -> tuple[ExpressionNode, int]:
        token = self._peek()
        if token is None:
            raise self._error("Unexpected end of expression")

        if token.kind == "number":
            self.position += 1
            try:
                value = Decimal(token.value)
            except InvalidOperation:
                raise self._error(
                    f"Invalid number '{token.value}' at position {token.position}",
                    token.position,
                ) from None
            return NumberNode(value), 1

        if token.kind == "variable":
            self.position += 1
            return VariableNode(token.value), 1

        if token.kind == "order":
            self.position += 1
            # "@007" and "@7" name the same row
            return OrderRefNode(f"@{int(token.value[1:])}"), 1

        if token.value == "(":
            self.position += 1
            self.nesting += 1
            self._check_depth(0, token)
            node, depth = self._additive()
            closing = self._peek()
            if closing is None:
                raise self._error("Missing closing parenthesis")
            if closing.value != ")":
                raise self._error(
                    f"Expected ')' but found '{closing.value}' at position {closing.position}",
                    closing.position,
                )
            self.position += 1
            self.nesting -= 1
            return node, depth

        raise self._error(
            f"Unexpected token '{token.value}' at position {token.position}",
            token.position,
        )

    def _error(self, message: str, position: int | None = None) -> ExpressionSyntaxError:
        return ExpressionSyntaxError(message, expression=self.expression, position=position)


def parse_expression(expression: str) -> ExpressionNode:
    """Parse an expression into an AST.

    Raises:
        ExpressionSyntaxError: if the text is not in the grammar.
    """
    return _Parser(expression, tokenize(expression)).parse()


def validate_expression(expression: object) -> list[str]:
    """Validate expression syntax.

    Returns a list of error messages. Empty list means the expression is valid.
    Undefined names are not checked here.
    """
    if not isinstance(expression, str) or not expression:
        return ["Expression must be a non-empty string"]
    try:
        parse_expression(expression)
    except ExpressionSyntaxError as e:
        return [str(e)]
    return []


def collect_references(node: ExpressionNode) -> list[str]:
    """Unique variable names and ``@N`` order references, first-seen order."""
    found: dict[str, None] = {}
    _collect(node, found)
    return list(found)


def _collect(node: ExpressionNode, found: dict[str, None]) -> None:
    if isinstance(node, (VariableNode, OrderRefNode)):
        found.setdefault(node.name, None)
    elif isinstance(node, UnaryNode):
        _collect(node.operand, found)
    elif isinstance(node, BinaryNode):
        _collect(node.left, found)
        _collect(node.right, found)
    elif isinstance(node, NumberNode):
        pass
    else:
        raise TypeError(f"Unknown expression node: {type(node).__name__}")


def extract_variable_names(expression: str) -> list[str]:
    """Identifiers in an expression, in first-seen order, without parsing.

    Lexical errors yield an empty list; syntax validation reports them.
    """
    try:
        tokens = tokenize(expression)
    except ExpressionSyntaxError:
        return []
    return list(dict.fromkeys(t.value for t in tokens if t.kind == "variable"))


def extract_order_numbers(expression: str) -> list[int]:
    """Order numbers referenced as ``@N``, in first-seen order, without parsing."""
    try:
        tokens = tokenize(expression)
    except ExpressionSyntaxError:
        return []
    return list(dict.fromkeys(int(t.value[1:]) for t in tokens if t.kind == "order"))
