"""
Module: report_engines.expression_evaluator
Responsibility:
    Evaluate calculated-row arithmetic expressions against a flat
    name -> amount context.  Parsing is delegated to the restricted grammar
    in ``report_config.expression_ast``; this engine adds the AST cache and
    Decimal evaluation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - DIVISION_BY_ZERO_IS_BLANK: a zero denominator anywhere in the
      expression makes the whole result ``None``; it is never raised.
    - DETERMINISTIC_RENDERING: the AST cache is keyed by the exact
      expression text (no normalization) and only stores immutable nodes,
      so cold and warm evaluations agree.
    - Decimal-only arithmetic; context floats are converted through str().

Failure modes:
    - InvalidExpressionError: expression is not a non-empty string.
    - InvalidContextError: context is not a mapping.
    - ExpressionSyntaxError: text is not in the grammar.
    - UndefinedVariableError / UndefinedOrderReferenceError: a name or
      ``@N`` is missing from the context.

Usage:
    evaluator = ExpressionEvaluator()
    evaluator.evaluate("revenue + cogs", {"revenue": 100, "cogs": -60})
    # Decimal("40")
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from report_config.expression_ast import (
    BinaryNode,
    ExpressionNode,
    NumberNode,
    OrderRefNode,
    UnaryNode,
    VariableNode,
    collect_references,
    parse_expression,
)
from report_config.results import CheckResult
from report_kernel.domain.values import amount_or_zero
from report_kernel.exceptions import (
    ExpressionSyntaxError,
    InvalidContextError,
    InvalidExpressionError,
    UndefinedOrderReferenceError,
    UndefinedVariableError,
)
from report_kernel.logging_config import get_logger

logger = get_logger("engines.expression_evaluator")


class _DivisionByZero(Exception):
    """Internal signal: the expression has no value."""


class ExpressionEvaluator:
    """
    Arithmetic expression evaluator with an instance-owned AST cache.

    Contract:
        ``evaluate`` returns a Decimal, or None when a division by zero
        occurs.  The same instance must not be shared across threads.
    """

    def __init__(self) -> None:
        self._ast_cache: dict[str, ExpressionNode] = {}

    def evaluate(self, expression: Any, context: Any) -> Decimal | None:
        if not isinstance(expression, str) or not expression:
            raise InvalidExpressionError(expression)
        if not isinstance(context, Mapping):
            raise InvalidContextError(type(context).__name__)

        node = self.parse(expression)
        try:
            return self._evaluate_node(node, context)
        except _DivisionByZero:
            logger.warning(
                "expression_division_by_zero",
                extra={"expression": expression},
            )
            return None

    def parse(self, expression: str) -> ExpressionNode:
        """Parse ``expression``, returning the cached AST when present.

        Raises:
            ExpressionSyntaxError: if the text is not in the grammar.
        """
        cached = self._ast_cache.get(expression)
        if cached is not None:
            return cached
        node = parse_expression(expression)
        self._ast_cache[expression] = node
        return node

    def validate(self, expression: Any) -> CheckResult:
        """Syntax-only check; names are not resolved."""
        if not isinstance(expression, str) or not expression:
            return CheckResult(("Expression must be a non-empty string",))
        try:
            self.parse(expression)
        except ExpressionSyntaxError as e:
            return CheckResult((str(e),))
        return CheckResult()

    def get_dependencies(self, expression: str) -> list[str]:
        """Unique variable names and ``@N`` references used by ``expression``.

        Raises:
            ExpressionSyntaxError: "Failed to get dependencies: ..." when the
                expression cannot be parsed.
        """
        try:
            node = self.parse(expression)
        except ExpressionSyntaxError as e:
            raise ExpressionSyntaxError(
                f"Failed to get dependencies: {e}",
                expression=expression,
                position=e.position,
            ) from e
        return collect_references(node)

    def clear_cache(self) -> None:
        self._ast_cache.clear()

    def get_cache_size(self) -> int:
        return len(self._ast_cache)

    def _evaluate_node(self, node: ExpressionNode, context: Mapping[str, Any]) -> Decimal:
        if isinstance(node, NumberNode):
            return node.value

        if isinstance(node, VariableNode):
            if node.name not in context:
                raise UndefinedVariableError(node.name)
            return amount_or_zero(context[node.name])

        if isinstance(node, OrderRefNode):
            if node.name not in context:
                raise UndefinedOrderReferenceError(node.name)
            return amount_or_zero(context[node.name])

        if isinstance(node, UnaryNode):
            operand = self._evaluate_node(node.operand, context)
            return -operand if node.op == "-" else operand

        if isinstance(node, BinaryNode):
            left = self._evaluate_node(node.left, context)
            right = self._evaluate_node(node.right, context)
            if node.op == "+":
                return left + right
            if node.op == "-":
                return left - right
            if node.op == "*":
                return left * right
            if node.op == "/":
                if right == 0:
                    raise _DivisionByZero()
                return left / right
            raise ValueError(f"Unknown operator: {node.op}")

        raise TypeError(f"Unknown expression node: {type(node).__name__}")
