"""
Module: report_engines.variable_resolver
Responsibility:
    Resolve named report variables to per-year amounts: filter the
    movements table with the variable's filter specification, group the
    remaining rows by fiscal year and apply the aggregate function.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Uses FilterEngine.

Invariants enforced:
    - Years come from the unfiltered table, in first-seen order.  An empty
      table yields ``{}``; a filter that matches nothing yields ``0`` for
      every year present in the table.
    - ``None`` amounts count as zero.
    - The resolution stack is empty after every call, successful or not.
    - The value cache is instance-owned and cleared at the start of every
      ``resolve_variables`` batch.

Failure modes:
    - VariablesMustBeObjectError / MovementsDataRequiredError for
      malformed batch inputs.
    - InvalidVariableDefinitionError for a definition that fails
      ``validate_variable``.
    - UnsupportedAggregateFunctionError for an aggregate outside the set.
    - CircularDependencyError if a variable is re-entered.
    - VariableResolutionError wraps any per-variable failure in a batch.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from decimal import Decimal
from typing import Any

from report_config.results import CheckResult
from report_config.schema import AggregateFunction, VariableDefinition
from report_engines.filter_engine import FilterEngine
from report_engines.tracer import traced_engine
from report_kernel.domain.movements import MovementsTable
from report_kernel.domain.values import ZERO, amount_or_zero
from report_kernel.exceptions import (
    CircularDependencyError,
    InvalidVariableDefinitionError,
    MovementsDataRequiredError,
    ReportEngineError,
    UnsupportedAggregateFunctionError,
    VariableResolutionError,
    VariablesMustBeObjectError,
)
from report_kernel.logging_config import get_logger

logger = get_logger("engines.variable_resolver")

AGGREGATE_FUNCTIONS: tuple[str, ...] = tuple(a.value for a in AggregateFunction)

ResolvedValues = dict[int, Decimal]


def aggregate_amounts(amounts: Sequence[Decimal | None], aggregate: Any) -> Decimal:
    """Apply an aggregate function to a year's amounts (row order matters).

    Raises:
        UnsupportedAggregateFunctionError: if ``aggregate`` is not supported.
    """
    name = aggregate.value if isinstance(aggregate, AggregateFunction) else str(aggregate).lower()
    values = [amount_or_zero(a) for a in amounts]

    if name == "count":
        return Decimal(len(values))
    if name not in AGGREGATE_FUNCTIONS:
        raise UnsupportedAggregateFunctionError(aggregate)
    if not values:
        return ZERO
    if name == "sum":
        return sum(values, ZERO)
    if name == "average":
        return sum(values, ZERO) / len(values)
    if name == "min":
        return min(values)
    if name == "max":
        return max(values)
    if name == "first":
        return values[0]
    return values[-1]


class VariableResolver:
    """
    Resolves variable definitions against a movements table.

    Contract:
        Not thread-safe; the cache and resolution stack are instance state.
    """

    def __init__(
        self,
        filter_engine: FilterEngine | None = None,
        amount_field: str = "movement_amount",
    ) -> None:
        self._filter_engine = filter_engine or FilterEngine()
        self._amount_field = amount_field
        self._cache: dict[str, ResolvedValues] = {}
        self._resolution_stack: list[str] = []

    # ------------------------------------------------------------------
    # Single variable
    # ------------------------------------------------------------------

    def validate_variable(self, var_def: Any) -> CheckResult:
        if isinstance(var_def, VariableDefinition):
            var_def = {"filter": var_def.filter, "aggregate": var_def.aggregate.value}
        if not isinstance(var_def, Mapping):
            return CheckResult(("Variable definition must be an object",))

        errors: list[str] = []
        if "filter" not in var_def:
            errors.append("Missing required field: filter")
        if "aggregate" not in var_def:
            errors.append("Missing required field: aggregate")

        if "filter" in var_def:
            if not isinstance(var_def["filter"], Mapping):
                errors.append("Filter must be an object")
            else:
                errors.extend(self._filter_engine.validate_filter(var_def["filter"]).errors)

        if "aggregate" in var_def:
            aggregate = var_def["aggregate"]
            if not isinstance(aggregate, str):
                errors.append("Aggregate must be a string")
            elif aggregate.lower() not in AGGREGATE_FUNCTIONS:
                errors.append(
                    f"Invalid aggregate function: {aggregate}. "
                    f"Valid functions are: {', '.join(AGGREGATE_FUNCTIONS)}"
                )

        return CheckResult.of(errors)

    def resolve_variable(
        self,
        var_def: VariableDefinition | Mapping[str, Any],
        table: MovementsTable | None,
        period_options: Any = None,
    ) -> ResolvedValues:
        """Resolve one definition to ``{year: amount}``.

        ``period_options`` does not narrow the years; callers restrict the
        table beforehand when they need fewer periods.
        """
        validation = self.validate_variable(var_def)
        if not validation.is_valid:
            raise InvalidVariableDefinitionError(list(validation.errors))
        if table is None:
            raise MovementsDataRequiredError()

        if isinstance(var_def, VariableDefinition):
            spec, aggregate = var_def.filter, var_def.aggregate
        else:
            spec, aggregate = var_def["filter"], var_def["aggregate"]

        years = [y for y in table.unique("year") if y is not None]
        if not years:
            return {}

        filtered = self._filter_engine.apply_filter(table, spec)
        if filtered.num_rows() == 0:
            logger.warning(
                "variable_filter_empty",
                extra={"filter_spec": dict(spec)},
            )

        by_year: dict[int, list[Decimal | None]] = {year: [] for year in years}
        for row in filtered:
            if row.year in by_year:
                by_year[row.year].append(row.value(self._amount_field))

        return {
            year: aggregate_amounts(amounts, aggregate) if amounts else ZERO
            for year, amounts in by_year.items()
        }

    def get_dependencies(self, var_def: Any) -> list[str]:
        """Names of other variables ``var_def`` depends on.

        Variable definitions cannot reference other variables, so this is
        always empty.
        """
        return []

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    @traced_engine("variable_resolver", "1.0", fingerprint_fields=("variables", "table"))
    def resolve_variables(
        self,
        variables: Any,
        table: MovementsTable | None,
        period_options: Any = None,
    ) -> dict[str, ResolvedValues]:
        if not isinstance(variables, Mapping):
            raise VariablesMustBeObjectError()
        if table is None:
            raise MovementsDataRequiredError()

        self._cache.clear()
        self._resolution_stack.clear()

        resolved: dict[str, ResolvedValues] = {}
        for name, var_def in variables.items():
            try:
                resolved[name] = self._resolve_named(name, var_def, table, period_options)
            except (ReportEngineError, ValueError, TypeError) as exc:
                raise VariableResolutionError(name, str(exc)) from exc

        logger.info(
            "variables_resolved",
            extra={"variable_count": len(resolved), "row_count": table.num_rows()},
        )
        return resolved

    def _resolve_named(
        self,
        name: str,
        var_def: Any,
        table: MovementsTable,
        period_options: Any,
    ) -> ResolvedValues:
        cached = self._cache.get(name)
        if cached is not None:
            return cached
        with self._resolving(name):
            value = self.resolve_variable(var_def, table, period_options)
        self._cache[name] = value
        logger.debug("variable_resolved", extra={"variable": name, "years": list(value)})
        return value

    @contextmanager
    def _resolving(self, name: str) -> Iterator[None]:
        if name in self._resolution_stack:
            raise CircularDependencyError([*self._resolution_stack, name])
        self._resolution_stack.append(name)
        try:
            yield
        finally:
            self._resolution_stack.pop()

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_cache_size(self) -> int:
        return len(self._cache)
