"""Tests for the calculated-row expression grammar (report_config/expression_ast.py)."""

import re
from decimal import Decimal

import pytest

from report_config.expression_ast import (
    MAX_EXPRESSION_DEPTH,
    BinaryNode,
    NumberNode,
    OrderRefNode,
    UnaryNode,
    VariableNode,
    collect_references,
    extract_order_numbers,
    extract_variable_names,
    parse_expression,
    tokenize,
    validate_expression,
)
from report_kernel.exceptions import ExpressionSyntaxError


class TestTokenize:

    def test_token_kinds_and_positions(self):
        tokens = tokenize("@10 + revenue * 2.5")
        assert [(t.kind, t.value, t.position) for t in tokens] == [
            ("order", "@10", 0),
            ("operator", "+", 4),
            ("variable", "revenue", 6),
            ("operator", "*", 14),
            ("number", "2.5", 16),
        ]

    def test_bare_at_rejected(self):
        with pytest.raises(ExpressionSyntaxError, match="Invalid order reference at position 2"):
            tokenize("1 @ 2")

    def test_unexpected_character(self):
        with pytest.raises(ExpressionSyntaxError, match="Unexpected character '%' at position 2") as exc:
            tokenize("10%")
        assert exc.value.position == 2

    def test_non_ascii_identifier_rejected(self):
        with pytest.raises(ExpressionSyntaxError, match="Unexpected character"):
            tokenize("omzét")


class TestParseExpression:

    def test_precedence(self):
        node = parse_expression("1 + 2 * 3")
        assert node == BinaryNode(
            "+",
            NumberNode(Decimal("1")),
            BinaryNode("*", NumberNode(Decimal("2")), NumberNode(Decimal("3"))),
        )

    def test_left_associative(self):
        node = parse_expression("8 - 4 - 2")
        assert node == BinaryNode(
            "-",
            BinaryNode("-", NumberNode(Decimal("8")), NumberNode(Decimal("4"))),
            NumberNode(Decimal("2")),
        )

    def test_unary_and_parentheses(self):
        node = parse_expression("-(revenue)")
        assert node == UnaryNode("-", VariableNode("revenue"))

    def test_order_reference(self):
        node = parse_expression("@300")
        assert node == OrderRefNode("@300")
        assert node.order == 300

    @pytest.mark.parametrize(
        "expression, message",
        [
            ("1 +", "Unexpected end of expression"),
            ("(1 + 2", "Missing closing parenthesis"),
            ("(1 2)", "Expected ')' but found '2' at position 3"),
            ("1 2", "Unexpected token '2' at position 2"),
            ("* 2", "Unexpected token '*' at position 0"),
            ("1..2", "Invalid number '1..2' at position 0"),
        ],
    )
    def test_syntax_errors(self, expression, message):
        with pytest.raises(ExpressionSyntaxError, match=re.escape(message)):
            parse_expression(expression)

    def test_order_reference_leading_zeros_normalized(self):
        assert parse_expression("@007 + @7") == BinaryNode("+", OrderRefNode("@7"), OrderRefNode("@7"))

    def test_nesting_at_limit_parses(self):
        depth = MAX_EXPRESSION_DEPTH - 1
        node = parse_expression("(" * depth + "1" + ")" * depth)
        assert node == NumberNode(Decimal("1"))

    @pytest.mark.parametrize(
        "expression",
        [
            "(" * 400 + "1" + ")" * 400,
            "-" * 1200 + "1",
            " + ".join(["1"] * 300),
            "+-" * 300 + "(" * 300 + "x" + ")" * 300,
        ],
    )
    def test_excessive_nesting_is_a_syntax_error(self, expression):
        with pytest.raises(ExpressionSyntaxError, match="Expression is nested too deeply"):
            parse_expression(expression)


class TestValidateExpression:

    def test_valid(self):
        assert validate_expression("(@100 + @200) / revenue * 100") == []

    def test_non_string(self):
        assert validate_expression(None) == ["Expression must be a non-empty string"]
        assert validate_expression("") == ["Expression must be a non-empty string"]

    def test_doubled_operator(self):
        [message] = validate_expression("1 + * 2")
        assert "Unexpected token '*'" in message


class TestReferences:

    def test_collect_references_first_seen_unique(self):
        node = parse_expression("a + @10 + a * @20 + b")
        assert collect_references(node) == ["a", "@10", "@20", "b"]

    def test_extract_variable_names(self):
        assert extract_variable_names("revenue - cogs + revenue") == ["revenue", "cogs"]

    def test_extract_order_numbers(self):
        assert extract_order_numbers("@10 + @20 - @10") == [10, 20]

    def test_extractors_tolerate_lexical_errors(self):
        assert extract_variable_names("a $ b") == []
        assert extract_order_numbers("@ + 1") == []
