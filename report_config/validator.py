"""
Report Definition Validator (``report_config.validator``).

Responsibility
--------------
Statically checks a raw report definition mapping for internal
consistency without evaluating it against any movements.  Four
independent passes each return a ``ValidationResult``; ``validate`` runs
all four and concatenates their messages so an author sees every problem
at once.

Architecture position
---------------------
**Config layer** -- build-time validation.  Shares the expression grammar
(``expression_ast``) and filter rules (``filter_rules``) with the engines
so diagnostics match render-time behaviour.  No dependency on engines or
modules.

Invariants enforced
-------------------
* Layout order values are unique (one combined message per definition).
* Subtotal ranges satisfy ``from <= to``.
* Calculated expressions parse under the evaluator's grammar.
* Variable names, ``@N`` order references and subtotal bounds resolve.

Failure modes
-------------
* The validator never raises on malformed input; every problem becomes a
  ``ValidationResult`` error.
* Warnings (unused variables, forward order references) do not affect
  ``is_valid``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from report_config.expression_ast import (
    extract_order_numbers,
    extract_variable_names,
    validate_expression,
)
from report_config.filter_rules import validate_filter_spec
from report_config.results import ValidationResult
from report_config.schema import (
    AggregateFunction,
    FormatType,
    LayoutType,
    StatementType,
    StyleType,
)
from report_kernel.logging_config import get_logger

logger = get_logger("config.validator")

REPORT_ID_PATTERN = re.compile(r"^[a-z0-9_-]+$")
VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")

REQUIRED_FIELDS: tuple[str, ...] = ("reportId", "name", "version", "statementType", "layout")

_STATEMENT_TYPES = tuple(t.value for t in StatementType)
_LAYOUT_TYPES = tuple(t.value for t in LayoutType)
_FORMAT_TYPES = tuple(t.value for t in FormatType)
_STYLE_TYPES = tuple(t.value for t in StyleType)
_AGGREGATES = tuple(a.value for a in AggregateFunction)

_FORMAT_KEYS: dict[str, tuple[str, ...]] = {
    "currency": ("decimals", "thousands", "symbol"),
    "percent": ("decimals", "symbol"),
    "integer": ("thousands",),
    "decimal": ("decimals", "thousands"),
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _layout(report_def: Any) -> list[Any] | None:
    if not isinstance(report_def, Mapping):
        return None
    layout = report_def.get("layout")
    return layout if isinstance(layout, list) else None


def _variables(report_def: Mapping[str, Any]) -> Mapping[str, Any]:
    variables = report_def.get("variables")
    return variables if isinstance(variables, Mapping) else {}


def extract_order_references(expression: str) -> list[int]:
    """Order numbers referenced as ``@N`` in an expression."""
    return extract_order_numbers(expression)


def extract_variable_references(expression: str) -> list[str]:
    """Variable identifiers referenced in an expression."""
    return extract_variable_names(expression)


class ReportValidator:
    """
    Multi-pass report definition validator.

    Contract
    --------
    * Every pass accepts any object and never raises.
    * Business-rule, expression and reference passes return an empty
      result when there is no layout list to inspect; the structural pass
      is the one that reports it.
    """

    def validate(self, report_def: Any) -> ValidationResult:
        result = ValidationResult.combine([
            self.validate_structure(report_def),
            self.validate_business_rules(report_def),
            self.validate_expressions(report_def),
            self.validate_references(report_def),
        ])
        report_id = report_def.get("reportId") if isinstance(report_def, Mapping) else None
        logger.info(
            "report_validation_completed",
            extra={
                "report_id": report_id,
                "is_valid": result.is_valid,
                "error_count": len(result.errors),
                "warning_count": len(result.warnings),
            },
        )
        return result

    # ------------------------------------------------------------------
    # Pass 1: structure
    # ------------------------------------------------------------------

    def validate_structure(self, report_def: Any) -> ValidationResult:
        result = ValidationResult()

        if not isinstance(report_def, Mapping):
            result.add_error("reportDef", "Report definition must be an object")
            return result

        for name in REQUIRED_FIELDS:
            if report_def.get(name) in (None, ""):
                result.add_error(name, f"Required field '{name}' is missing")
        if result.errors:
            return result

        _check_identity(report_def, result)

        layout = report_def["layout"]
        if not isinstance(layout, list):
            result.add_error("layout", "layout must be an array")
        elif not layout:
            result.add_error("layout", "layout must contain at least one item")
        else:
            for index, item in enumerate(layout):
                _check_layout_item(item, index, result)

        variables = report_def.get("variables")
        if variables is not None:
            if not isinstance(variables, Mapping):
                result.add_error("variables", "variables must be an object")
            else:
                for name, var_def in variables.items():
                    _check_variable(str(name), var_def, result)

        formatting = report_def.get("formatting")
        if formatting is not None:
            _check_formatting(formatting, result)

        return result

    # ------------------------------------------------------------------
    # Pass 2: business rules
    # ------------------------------------------------------------------

    def validate_business_rules(self, report_def: Any) -> ValidationResult:
        result = ValidationResult()
        layout = _layout(report_def)
        if layout is None:
            return result

        seen: set[int] = set()
        duplicates: dict[int, None] = {}
        for item in layout:
            order = item.get("order") if isinstance(item, Mapping) else None
            if _is_int(order):
                if order in seen:
                    duplicates.setdefault(order, None)
                seen.add(order)
        if duplicates:
            result.add_error(
                "layout",
                "Duplicate order numbers found: " + ", ".join(str(o) for o in duplicates),
            )

        for index, item in enumerate(layout):
            if not isinstance(item, Mapping) or item.get("type") != LayoutType.SUBTOTAL.value:
                continue
            start, end = item.get("from"), item.get("to")
            if _is_int(start) and _is_int(end) and start > end:
                result.add_error(
                    f"layout[{index}]",
                    f"Subtotal 'from' ({start}) must be less than or equal to 'to' ({end})",
                )

        return result

    # ------------------------------------------------------------------
    # Pass 3: expressions
    # ------------------------------------------------------------------

    def validate_expressions(self, report_def: Any) -> ValidationResult:
        result = ValidationResult()
        layout = _layout(report_def)
        if layout is None:
            return result

        for index, item in enumerate(layout):
            if not isinstance(item, Mapping) or item.get("type") != LayoutType.CALCULATED.value:
                continue
            expression = item.get("expression")
            if expression is None:
                continue
            field_path = f"layout[{index}].expression"
            if not isinstance(expression, str) or not expression.strip():
                result.add_error(field_path, "Expression must be a non-empty string")
                continue
            for message in validate_expression(expression):
                result.add_error(field_path, message)

        return result

    # ------------------------------------------------------------------
    # Pass 4: references
    # ------------------------------------------------------------------

    def validate_references(self, report_def: Any) -> ValidationResult:
        result = ValidationResult()
        layout = _layout(report_def)
        if layout is None:
            return result

        defined_variables = set(_variables(report_def))
        defined_orders = {
            item["order"]
            for item in layout
            if isinstance(item, Mapping) and _is_int(item.get("order"))
        }
        used_variables: set[str] = set()

        for index, item in enumerate(layout):
            if not isinstance(item, Mapping):
                continue
            item_type = item.get("type")
            own_order = item.get("order") if _is_int(item.get("order")) else None

            if item_type == LayoutType.VARIABLE.value and isinstance(item.get("variable"), str):
                name = item["variable"]
                used_variables.add(name)
                if name not in defined_variables:
                    result.add_error(
                        f"layout[{index}].variable",
                        f"Variable '{name}' is not defined in variables section",
                    )

            elif item_type == LayoutType.CALCULATED.value and isinstance(item.get("expression"), str):
                expression = item["expression"]
                field_path = f"layout[{index}].expression"
                for ref in extract_order_references(expression):
                    if ref not in defined_orders:
                        result.add_error(field_path, f"Order reference @{ref} does not exist")
                    elif own_order is not None and ref >= own_order:
                        result.add_warning(
                            field_path,
                            f"Order reference @{ref} is not rendered before order {own_order}",
                        )
                for name in extract_variable_references(expression):
                    used_variables.add(name)
                    if name not in defined_variables:
                        result.add_error(
                            field_path,
                            f"Variable '{name}' is not defined in variables section",
                        )

            elif item_type == LayoutType.SUBTOTAL.value:
                for key in ("from", "to"):
                    bound = item.get(key)
                    if not _is_int(bound):
                        continue
                    if bound not in defined_orders:
                        result.add_error(
                            f"layout[{index}].{key}", f"Order number {bound} does not exist"
                        )
                    elif key == "to" and own_order is not None and bound >= own_order:
                        result.add_warning(
                            f"layout[{index}].to",
                            f"Subtotal range ends at order {bound}, "
                            f"which is not rendered before order {own_order}",
                        )

        for name in _variables(report_def):
            if name not in used_variables:
                result.add_warning(f"variables.{name}", f"Variable '{name}' is never used in layout")

        return result


# ----------------------------------------------------------------------
# Structural helpers
# ----------------------------------------------------------------------


def _check_identity(report_def: Mapping[str, Any], result: ValidationResult) -> None:
    report_id = report_def["reportId"]
    if not isinstance(report_id, str) or not REPORT_ID_PATTERN.match(report_id):
        result.add_error(
            "reportId",
            "reportId must contain only lowercase letters, numbers, hyphens, and underscores",
        )
    if isinstance(report_id, str) and not 1 <= len(report_id) <= 100:
        result.add_error("reportId", "reportId must be between 1 and 100 characters")

    name = report_def["name"]
    if not isinstance(name, str) or not 1 <= len(name) <= 200:
        result.add_error("name", "name must be a string between 1 and 200 characters")

    version = report_def["version"]
    if not isinstance(version, str) or not VERSION_PATTERN.match(version):
        result.add_error(
            "version", 'version must follow semantic versioning format (e.g., "1.0.0")'
        )

    if report_def["statementType"] not in _STATEMENT_TYPES:
        result.add_error(
            "statementType", f"statementType must be one of: {', '.join(_STATEMENT_TYPES)}"
        )


def _check_layout_item(item: Any, index: int, result: ValidationResult) -> None:
    prefix = f"layout[{index}]"
    if not isinstance(item, Mapping):
        result.add_error(prefix, "Layout item must be an object")
        return

    order = item.get("order")
    if not _is_int(order):
        result.add_error(f"{prefix}.order", "order must be an integer")
    elif order < 0:
        result.add_error(f"{prefix}.order", "order must be >= 0")

    item_type = item.get("type")
    if not item_type:
        result.add_error(f"{prefix}.type", "type is required")
    elif item_type not in _LAYOUT_TYPES:
        result.add_error(f"{prefix}.type", f"type must be one of: {', '.join(_LAYOUT_TYPES)}")

    if item_type == LayoutType.VARIABLE.value and not item.get("variable"):
        result.add_error(f"{prefix}.variable", 'variable field is required for type="variable"')
    if item_type == LayoutType.CALCULATED.value and not item.get("expression"):
        result.add_error(
            f"{prefix}.expression", 'expression field is required for type="calculated"'
        )
    if item_type == LayoutType.CATEGORY.value and item.get("filter") is None:
        result.add_error(f"{prefix}.filter", 'filter field is required for type="category"')
    if item_type == LayoutType.SUBTOTAL.value:
        for key in ("from", "to"):
            bound = item.get(key)
            if bound is None:
                result.add_error(f"{prefix}.{key}", f'{key} field is required for type="subtotal"')
            elif not _is_int(bound):
                result.add_error(f"{prefix}.{key}", f"{key} must be an integer")

    fmt = item.get("format")
    if fmt is not None and fmt not in _FORMAT_TYPES:
        result.add_error(f"{prefix}.format", f"format must be one of: {', '.join(_FORMAT_TYPES)}")

    style = item.get("style")
    if style is not None and style not in _STYLE_TYPES:
        result.add_error(f"{prefix}.style", f"style must be one of: {', '.join(_STYLE_TYPES)}")

    if "indent" in item:
        indent = item["indent"]
        if not _is_int(indent) or not 0 <= indent <= 3:
            result.add_error(f"{prefix}.indent", "indent must be an integer between 0 and 3")

    if item.get("filter") is not None:
        _check_filter(item["filter"], f"{prefix}.filter", result, allow_empty=True)


def _check_variable(name: str, var_def: Any, result: ValidationResult) -> None:
    prefix = f"variables.{name}"
    if not isinstance(var_def, Mapping):
        result.add_error(prefix, "Variable definition must be an object")
        return

    if var_def.get("filter") is None:
        result.add_error(f"{prefix}.filter", "filter is required")
    else:
        _check_filter(var_def["filter"], f"{prefix}.filter", result, allow_empty=False)

    aggregate = var_def.get("aggregate")
    if not aggregate:
        result.add_error(f"{prefix}.aggregate", "aggregate is required")
    elif not isinstance(aggregate, str) or aggregate.lower() not in _AGGREGATES:
        result.add_error(
            f"{prefix}.aggregate", f"aggregate must be one of: {', '.join(_AGGREGATES)}"
        )


def _check_filter(spec: Any, prefix: str, result: ValidationResult, *, allow_empty: bool) -> None:
    if not isinstance(spec, Mapping):
        result.add_error(prefix, "Filter must be an object")
        return
    if not spec and not allow_empty:
        result.add_error(prefix, "Filter must have at least one property")
        return

    for message in validate_filter_spec(spec):
        result.add_error(prefix, message)

    statement_type = spec.get("statement_type")
    if statement_type is not None:
        values = statement_type if isinstance(statement_type, (list, tuple)) else [statement_type]
        if isinstance(statement_type, Mapping) or not all(isinstance(v, str) for v in values):
            result.add_error(
                f"{prefix}.statement_type",
                "statement_type must be a string or array of strings",
            )


def _check_formatting(formatting: Any, result: ValidationResult) -> None:
    if not isinstance(formatting, Mapping):
        result.add_error("formatting", "Formatting must be an object")
        return

    for fmt, rules in formatting.items():
        prefix = f"formatting.{fmt}"
        if fmt not in _FORMAT_KEYS:
            result.add_error(prefix, f"Unknown format type. Valid types are: {', '.join(_FORMAT_TYPES)}")
            continue
        if rules is None:
            continue
        if not isinstance(rules, Mapping):
            result.add_error(prefix, "Format rules must be an object")
            continue

        allowed = _FORMAT_KEYS[fmt]
        for key in rules:
            if key not in allowed:
                result.add_error(
                    f"{prefix}.{key}", f"Unknown option. Valid options are: {', '.join(allowed)}"
                )

        if "decimals" in rules and "decimals" in allowed:
            decimals = rules["decimals"]
            if not _is_int(decimals) or not 0 <= decimals <= 4:
                result.add_error(f"{prefix}.decimals", "decimals must be an integer between 0 and 4")
        if "thousands" in rules and "thousands" in allowed:
            if not isinstance(rules["thousands"], bool):
                result.add_error(f"{prefix}.thousands", "thousands must be a boolean")
        if "symbol" in rules and "symbol" in allowed:
            symbol = rules["symbol"]
            if not isinstance(symbol, str) or len(symbol) > 5:
                result.add_error(f"{prefix}.symbol", "symbol must be a string with max length 5")
