"""
Module: report_modules.statements.renderer
Responsibility:
    Render a report definition against a movements table: resolve the
    variables, process layout items in ascending order, then add
    period-over-period variances and display-formatted values.

Architecture position:
    Modules -- orchestrates the pure engines; no I/O.  The injected clock
    supplies the only timestamp (``generated_at``).

Invariants enforced:
    - Layout items are processed in ascending ``order``.  A calculated
      item or subtotal only sees rows with a lower order; an ``@N`` to a
      later row is undefined and fails that item.
    - Spacer rows carry no amounts.  Spacer and subtotal rows never count
      toward a subtotal.
    - A division by zero blanks that year's amount (``None``).
    - The movements table is never mutated.

Failure modes:
    - MissingFieldError: report, table or period options missing.
    - LayoutProcessingError: wraps the failure of a single layout item,
      naming its order and type.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from decimal import Decimal
from typing import Any

from report_config.loader import REQUIRED_REPORT_FIELDS, parse_layout_item, parse_report_definition
from report_config.schema import (
    CalculatedItem,
    CategoryItem,
    FormatOptions,
    FormatType,
    LayoutItem,
    LayoutType,
    ReportDefinition,
    SpacerItem,
    SubtotalItem,
    VariableItem,
)
from report_engines.expression_evaluator import ExpressionEvaluator
from report_engines.filter_engine import FilterEngine
from report_engines.formatting import apply_formatting
from report_engines.tracer import traced_engine
from report_engines.variable_resolver import VariableResolver
from report_engines.variance import period_variance, variance_years
from report_kernel.domain.clock import Clock, SystemClock
from report_kernel.domain.movements import MovementsTable
from report_kernel.domain.values import ZERO, amount_or_zero
from report_kernel.exceptions import (
    ExpressionEvaluationError,
    InvalidSubtotalRangeError,
    LayoutProcessingError,
    MissingFieldError,
    ReportDefinitionError,
    ReportEngineError,
    VariableNotFoundError,
)
from report_kernel.logging_config import LogContext, get_logger
from report_modules.statements.config import PeriodOptions, ReportingConfig
from report_modules.statements.models import (
    RenderedRow,
    RenderingContext,
    StatementData,
    StatementMetadata,
)

logger = get_logger("modules.statements.renderer")

_NON_SUMMING = frozenset({LayoutType.SPACER.value, LayoutType.SUBTOTAL.value})


def _row_type(row: Any) -> str:
    if isinstance(row, RenderedRow):
        return row.type.value
    return str(row.get("type", ""))


def _row_amounts(row: Any) -> dict[int, Decimal | None]:
    """Per-year amounts of a rendered row or a plain ``amount_<year>`` dict."""
    if isinstance(row, RenderedRow):
        return dict(row.amounts)
    amounts: dict[int, Decimal | None] = {}
    for key, value in row.items():
        if isinstance(key, str) and key.startswith("amount_") and key[7:].isdigit():
            amounts[int(key[7:])] = value
    return amounts


class ReportRenderer:
    """
    Statement renderer.

    Contract:
        ``render_statement`` is deterministic for a fixed clock: the same
        definition, table and period options give an equal StatementData.

    Non-goals:
        Does NOT load definitions or movements; see StatementService.
    """

    def __init__(
        self,
        variable_resolver: VariableResolver | None = None,
        expression_evaluator: ExpressionEvaluator | None = None,
        filter_engine: FilterEngine | None = None,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
    ):
        self._config = config or ReportingConfig()
        self._filter_engine = filter_engine or FilterEngine()
        self._resolver = variable_resolver or VariableResolver(
            filter_engine=self._filter_engine,
            amount_field=self._config.amount_field,
        )
        self._evaluator = expression_evaluator or ExpressionEvaluator()
        self._clock = clock or SystemClock()

    # =========================================================================
    # Statement
    # =========================================================================

    @traced_engine("report_renderer", "1.0", fingerprint_fields=("report", "period_options"))
    def render_statement(
        self,
        report: ReportDefinition | Mapping[str, Any] | None,
        table: MovementsTable | None,
        period_options: PeriodOptions | Mapping[str, Any] | None,
    ) -> StatementData:
        """
        Render ``report`` for the years in ``period_options``.

        Args:
            report: Typed definition, or a raw camelCase document.
            table: Movements to report on.
            period_options: ``PeriodOptions`` or ``{"years": [...]}``.
        """
        definition = self._coerce_definition(report)
        if table is None:
            raise MissingFieldError("table", "render_statement")
        if period_options is None:
            raise MissingFieldError("period_options", "render_statement")
        if not isinstance(period_options, PeriodOptions):
            period_options = PeriodOptions.from_dict(period_options)

        with LogContext.bind(
            report_id=definition.report_id,
            statement_type=definition.statement_type.value,
        ):
            scoped = self._restrict_periods(table, period_options)
            context = RenderingContext(
                definition=definition,
                table=scoped,
                period_options=period_options,
            )
            context.variables = self._resolver.resolve_variables(
                definition.variables, scoped, period_options
            )

            rows = self.process_layout_items(definition.layout, context)
            if self._config.calculate_variances:
                rows = self.calculate_variances(rows, period_options.years)
            if self._config.include_formatted_values:
                rows = self.format_rows(rows, period_options.years, definition.formatting)

            logger.info(
                "statement_rendered",
                extra={
                    "row_count": len(rows),
                    "years": list(period_options.years),
                    "input_rows": scoped.num_rows(),
                },
            )

        return StatementData(
            report_id=definition.report_id,
            report_name=definition.name,
            report_version=definition.version,
            statement_type=definition.statement_type.value,
            generated_at=self._clock.generated_at(),
            rows=tuple(rows),
            metadata=StatementMetadata(
                period_options=period_options,
                variable_count=len(definition.variables),
                layout_item_count=len(definition.layout),
                checksum=definition.checksum,
            ),
        )

    def _coerce_definition(self, report: Any) -> ReportDefinition:
        if report is None:
            raise MissingFieldError("report", "render_statement")
        if isinstance(report, ReportDefinition):
            return report
        if not isinstance(report, Mapping):
            raise ReportDefinitionError("unknown", "report definition must be a mapping")
        for field_name in REQUIRED_REPORT_FIELDS:
            if field_name not in report:
                raise MissingFieldError(field_name, "report definition")
        return parse_report_definition(report)

    def _restrict_periods(self, table: MovementsTable, period_options: PeriodOptions) -> MovementsTable:
        if not period_options.restricts_periods:
            return table
        periods = set(period_options.periods)
        return table.filter(lambda row: row.period in periods)

    # =========================================================================
    # Layout
    # =========================================================================

    def process_layout_items(
        self,
        layout: Iterable[LayoutItem | Mapping[str, Any]],
        context: RenderingContext,
    ) -> list[RenderedRow]:
        """
        Process ``layout`` in ascending order, threading rendered rows.

        Raises:
            LayoutProcessingError: the first item that fails.
        """
        items = [
            item if isinstance(item, LayoutItem) else parse_layout_item(item)
            for item in layout
        ]
        rendered: list[RenderedRow] = []
        for item in sorted(items, key=lambda i: i.order):
            with LogContext.bind(layout_order=item.order):
                try:
                    row = self.process_layout_item(item, context)
                except (ReportEngineError, ArithmeticError, ValueError, TypeError) as exc:
                    logger.error(
                        "layout_item_failed",
                        extra={
                            "layout_type": item.type.value,
                            "error_code": getattr(exc, "code", type(exc).__name__),
                            "reason": str(exc),
                        },
                    )
                    raise LayoutProcessingError(item.order, item.type.value, str(exc)) from exc
            context.rows[row.order] = row
            rendered.append(row)
        return rendered

    def process_layout_item(
        self,
        item: LayoutItem | Mapping[str, Any],
        context: RenderingContext,
    ) -> RenderedRow:
        """Render a single layout item against ``context``."""
        if not isinstance(item, LayoutItem):
            item = parse_layout_item(item)

        years = context.years
        metadata: dict[str, Any] = {}

        if isinstance(item, VariableItem):
            amounts = self._variable_amounts(item, context)
            metadata["variable"] = item.variable
        elif isinstance(item, CalculatedItem):
            amounts = self._calculated_amounts(item, context)
            metadata["expression"] = item.expression
        elif isinstance(item, CategoryItem):
            amounts = self._category_amounts(item, context)
            metadata["filter"] = dict(item.filter or {})
        elif isinstance(item, SubtotalItem):
            amounts = self.calculate_subtotal(item.from_order, item.to_order, context.rows, years)
            metadata["calculated_from"] = [item.from_order, item.to_order]
        elif isinstance(item, SpacerItem):
            amounts = {year: None for year in years}
        else:
            raise TypeError(f"Unknown layout item: {type(item).__name__}")

        return RenderedRow(
            order=item.order,
            type=item.type,
            label="" if isinstance(item, SpacerItem) else item.label,
            style=item.style,
            indent=item.indent,
            format=item.format,
            amounts=amounts,
            metadata=metadata,
        )

    def _variable_amounts(self, item: VariableItem, context: RenderingContext) -> dict[int, Decimal | None]:
        values = context.variables.get(item.variable)
        if values is None:
            raise VariableNotFoundError(item.variable, context.definition.report_id)
        return {year: values.get(year, ZERO) for year in context.years}

    def _calculated_amounts(self, item: CalculatedItem, context: RenderingContext) -> dict[int, Decimal | None]:
        amounts: dict[int, Decimal | None] = {}
        for year in context.years:
            scope: dict[str, Any] = {
                name: values.get(year, ZERO) for name, values in context.variables.items()
            }
            for order, row in context.rows.items():
                scope[f"@{order}"] = row.amount(year)
            try:
                amounts[year] = self._evaluator.evaluate(item.expression, scope)
            except ReportEngineError as exc:
                raise ExpressionEvaluationError(item.expression, str(exc)) from exc
        return amounts

    def _category_amounts(self, item: CategoryItem, context: RenderingContext) -> dict[int, Decimal | None]:
        filtered = self._filter_engine.apply_filter(context.table, item.filter)
        field = self._config.amount_field
        amounts: dict[int, Decimal | None] = {year: ZERO for year in context.years}
        for row in filtered:
            if row.year in amounts:
                amounts[row.year] += amount_or_zero(row.value(field))
        return amounts

    def calculate_subtotal(
        self,
        from_order: int,
        to_order: int,
        rows: Mapping[int, Any],
        years: Iterable[int] | None = None,
    ) -> dict[int, Decimal]:
        """
        Sum of rows with ``from_order <= order <= to_order``, skipping
        spacer and subtotal rows.

        ``rows`` maps order to a RenderedRow or a plain dict with
        ``type`` and ``amount_<year>`` keys.  Without ``years`` the result
        covers every year seen on any row of ``rows``, so a range that
        selects nothing still yields 0 per year.
        """
        if from_order > to_order:
            raise InvalidSubtotalRangeError(from_order, to_order)
        selected = [
            row
            for order, row in rows.items()
            if from_order <= order <= to_order and _row_type(row) not in _NON_SUMMING
        ]
        row_amounts = [_row_amounts(row) for row in selected]

        if years is None:
            seen: list[int] = []
            for amounts in map(_row_amounts, rows.values()):
                seen.extend(y for y in amounts if y not in seen)
            years = sorted(seen)

        totals: dict[int, Decimal] = {}
        for year in years:
            totals[year] = sum(
                (amount_or_zero(amounts.get(year)) for amounts in row_amounts),
                ZERO,
            )
        return totals

    # =========================================================================
    # Post-passes
    # =========================================================================

    def calculate_variances(self, rows: list[RenderedRow], years: Iterable[int]) -> list[RenderedRow]:
        """Attach earlier-to-later variance when exactly two years render."""
        pair = variance_years(list(years))
        if pair is None:
            return rows
        earlier, later = pair
        result: list[RenderedRow] = []
        for row in rows:
            if row.is_spacer:
                result.append(row)
                continue
            variance = period_variance(row.amount(earlier), row.amount(later), earlier, later)
            result.append(
                replace(row, variance_amount=variance.amount, variance_percent=variance.percent)
            )
        return result

    def format_rows(
        self,
        rows: list[RenderedRow],
        years: Iterable[int],
        report_formatting: Mapping[FormatType, FormatOptions] | None = None,
    ) -> list[RenderedRow]:
        """Add display strings per year and for the variance columns."""
        defaults = dict(self._config.formatting)
        for fmt, options in (report_formatting or {}).items():
            defaults[fmt] = options.merged_over(defaults.get(fmt, FormatOptions()))

        years = list(years)
        result: list[RenderedRow] = []
        for row in rows:
            if row.is_spacer:
                result.append(row)
                continue
            row_format = row.format or FormatType.DECIMAL
            formatted = {
                str(year): self.apply_formatting(row.amount(year), row_format, defaults)
                for year in years
            }
            formatted["variance_amount"] = self.apply_formatting(
                row.variance_amount, row_format, defaults
            )
            formatted["variance_percent"] = self.apply_formatting(
                row.variance_percent, FormatType.PERCENT, defaults
            )
            result.append(replace(row, formatted=formatted))
        return result

    def apply_formatting(
        self,
        value: Any,
        format_spec: Any,
        defaults: Mapping[Any, Any] | None = None,
    ) -> str:
        return apply_formatting(value, format_spec, defaults)
