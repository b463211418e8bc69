"""
Module: report_engines.filter_engine
Responsibility:
    Apply filter specifications to a ``MovementsTable``.  Validation and
    compilation rules live in ``report_config.filter_rules`` so the report
    validator and this engine agree on what a valid filter is.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - MOVEMENTS_READ_ONLY: filtering returns a new table; input untouched.
    - Empty specification is the identity.
    - Result size never exceeds input size; row order is preserved.
    - Filtering is idempotent.

Failure modes:
    - TableRequiredError: table is None.
    - InvalidFilterSpecificationError: specification failed validation.
    - FilterApplicationError: the predicate failed on a row.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from report_config.filter_rules import (
    FILTER_FIELDS,
    RANGE_OPERATORS,
    CompiledFilter,
    compile_filter_spec,
    validate_filter_spec,
)
from report_config.results import CheckResult
from report_kernel.domain.movements import MovementsTable
from report_kernel.exceptions import (
    FilterApplicationError,
    InvalidFilterSpecificationError,
    TableRequiredError,
)
from report_kernel.logging_config import get_logger

logger = get_logger("engines.filter_engine")


class FilterEngine:
    """Validates, compiles and applies filter specifications."""

    VALID_FIELDS: tuple[str, ...] = FILTER_FIELDS
    RANGE_OPERATORS: tuple[str, ...] = RANGE_OPERATORS

    def validate_filter(self, spec: Any) -> CheckResult:
        return CheckResult.of(validate_filter_spec(spec))

    def compile_filter(self, spec: Mapping[str, Any]) -> CompiledFilter:
        """Validate and compile ``spec``.

        Raises:
            InvalidFilterSpecificationError: if ``spec`` is invalid.
        """
        errors = validate_filter_spec(spec)
        if errors:
            raise InvalidFilterSpecificationError(errors)
        return compile_filter_spec(spec)

    def build_filter_expression(self, spec: Mapping[str, Any]) -> str:
        """Predicate source text for ``spec``, e.g. ``row.code1 == '700'``."""
        return self.compile_filter(spec).to_source()

    def apply_filter(self, table: MovementsTable | None, spec: Mapping[str, Any] | None) -> MovementsTable:
        if table is None:
            raise TableRequiredError()
        if not spec:
            return table

        compiled = self.compile_filter(spec)
        try:
            filtered = table.filter(compiled.matches)
        except (AttributeError, TypeError) as exc:
            raise FilterApplicationError(compiled.to_source(), str(exc)) from exc

        logger.debug(
            "filter_applied",
            extra={
                "filter_source": compiled.to_source(),
                "input_rows": table.num_rows(),
                "output_rows": filtered.num_rows(),
            },
        )
        return filtered
