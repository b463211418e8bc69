"""
Filter specification rules and compilation.

A filter specification maps a movement field to one of:
  - an exact scalar          {"code1": "700"}
  - a list of scalars (OR)   {"code2": ["10", "20"]}
  - a range (AND of bounds)  {"code3": {"gte": "100", "lt": "200"}}

Several fields are combined with AND. ``validate_filter_spec`` checks a raw
specification statically; ``compile_filter_spec`` turns a valid one into a
``CompiledFilter`` that can be rendered as an in-memory predicate, as
predicate source text, or as a SQLAlchemy clause.

Values are compared as text: ``str(filter_value) == str(row_value)``. Range
bounds therefore compare lexicographically, the way account codes sort. A
row whose field is ``None`` never matches.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy import and_, true
from sqlalchemy.sql.elements import ColumnElement

FILTER_FIELDS: tuple[str, ...] = (
    "code1",
    "code2",
    "code3",
    "name1",
    "name2",
    "name3",
    "statement_type",
    "account_code",
)

RANGE_OPERATORS: tuple[str, ...] = ("gte", "lte", "gt", "lt")

_SCALAR_TYPES = (str, int, float, Decimal)

_SOURCE_OPERATORS: dict[str, str] = {
    "eq": "==",
    "gte": ">=",
    "lte": "<=",
    "gt": ">",
    "lt": "<",
}


def _is_scalar(value: Any) -> bool:
    return isinstance(value, _SCALAR_TYPES) and not isinstance(value, bool)


def validate_filter_spec(spec: Any) -> list[str]:
    """Validate a raw filter specification.

    Returns a list of error messages. Empty list means the specification is
    valid. An empty mapping is valid and selects every row.
    """
    if not isinstance(spec, Mapping):
        return ["Filter specification must be an object"]

    errors: list[str] = []
    for field, value in spec.items():
        if field not in FILTER_FIELDS:
            errors.append(
                f"Invalid filter field: {field}. "
                f"Valid fields are: {', '.join(FILTER_FIELDS)}"
            )
            continue

        if value is None:
            errors.append(f"Filter value for {field} cannot be null or undefined")
            continue

        if isinstance(value, (list, tuple)):
            if not value:
                errors.append(f"Filter array for {field} cannot be empty")
                continue
            if any(v is None for v in value):
                errors.append(f"Filter array for {field} contains null or undefined values")
            elif not all(_is_scalar(v) for v in value):
                errors.append(f"Filter array for {field} must contain only strings or numbers")

        elif isinstance(value, Mapping):
            if not value:
                errors.append(f"Range filter for {field} cannot be empty")
                continue
            invalid = [str(k) for k in value if k not in RANGE_OPERATORS]
            if invalid:
                errors.append(
                    f"Invalid range operators for {field}: {', '.join(invalid)}. "
                    f"Valid operators are: {', '.join(RANGE_OPERATORS)}"
                )
            for operator, bound in value.items():
                if bound is None:
                    errors.append(
                        f"Range value for {field}.{operator} cannot be null or undefined"
                    )
                elif not _is_scalar(bound):
                    errors.append(
                        f"Range value for {field}.{operator} must be a string or number"
                    )

        elif not _is_scalar(value):
            errors.append(
                f"Filter value for {field} must be a string, number, array or range"
            )

    return errors


@dataclass(frozen=True, slots=True)
class FilterCondition:
    """One comparison against one movement field.

    ``values`` holds the text forms of the filter values: one entry for
    ``eq`` and the range operators, one or more for ``in``.
    """

    field: str
    operator: str  # "eq" | "in" | "gte" | "lte" | "gt" | "lt"
    values: tuple[str, ...]

    def matches(self, row_value: Any) -> bool:
        if row_value is None:
            return False
        text = str(row_value)
        if self.operator == "eq":
            return text == self.values[0]
        if self.operator == "in":
            return text in self.values
        if self.operator == "gte":
            return text >= self.values[0]
        if self.operator == "lte":
            return text <= self.values[0]
        if self.operator == "gt":
            return text > self.values[0]
        if self.operator == "lt":
            return text < self.values[0]
        raise ValueError(f"Unknown filter operator: {self.operator}")

    def to_source(self) -> str:
        if self.operator == "in":
            joined = ", ".join(repr(v) for v in self.values)
            if len(self.values) == 1:
                joined += ","
            return f"row.{self.field} in ({joined})"
        return f"row.{self.field} {_SOURCE_OPERATORS[self.operator]} {self.values[0]!r}"

    def to_clause(self, column: Any) -> ColumnElement[bool]:
        if self.operator == "eq":
            return column == self.values[0]
        if self.operator == "in":
            return column.in_(self.values)
        if self.operator == "gte":
            return column >= self.values[0]
        if self.operator == "lte":
            return column <= self.values[0]
        if self.operator == "gt":
            return column > self.values[0]
        if self.operator == "lt":
            return column < self.values[0]
        raise ValueError(f"Unknown filter operator: {self.operator}")


@dataclass(frozen=True, slots=True)
class CompiledFilter:
    """Conjunction of filter conditions. No conditions selects every row."""

    conditions: tuple[FilterCondition, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.conditions

    def matches(self, row: Any) -> bool:
        return all(c.matches(getattr(row, c.field)) for c in self.conditions)

    def __call__(self, row: Any) -> bool:
        return self.matches(row)

    def to_source(self) -> str:
        if not self.conditions:
            return "True"
        return " and ".join(c.to_source() for c in self.conditions)

    def to_clause(self, columns: Mapping[str, Any]) -> ColumnElement[bool]:
        """Render as a SQLAlchemy clause against ``columns[field]``."""
        if not self.conditions:
            return true()
        return and_(*(c.to_clause(columns[c.field]) for c in self.conditions))


def compile_filter_spec(spec: Mapping[str, Any]) -> CompiledFilter:
    """Compile a specification already accepted by ``validate_filter_spec``."""
    conditions: list[FilterCondition] = []
    for field, value in spec.items():
        if isinstance(value, (list, tuple)):
            conditions.append(
                FilterCondition(field, "in", tuple(str(v) for v in value))
            )
        elif isinstance(value, Mapping):
            for operator in RANGE_OPERATORS:
                if operator in value:
                    conditions.append(
                        FilterCondition(field, operator, (str(value[operator]),))
                    )
        else:
            conditions.append(FilterCondition(field, "eq", (str(value),)))
    return CompiledFilter(tuple(conditions))
