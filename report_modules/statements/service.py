"""
Statement Rendering Service (``report_modules.statements.service``).

Responsibility
--------------
Orchestrates statement rendering: validate the report definition, select
movements (from the database through ``MovementSelector`` or from a
caller-supplied table) and delegate to ``ReportRenderer``.

Architecture position
---------------------
**Modules layer** -- the only place where the kernel selectors and the
pure engines meet.  Constructor: ``session`` + ``clock`` + ``config``.

Invariants enforced
-------------------
* Read-only -- movements are selected, never written.
* Invalid definitions are refused before any movement is read.

Failure modes
-------------
* Validation errors  -> ``InvalidReportDefinitionError`` carrying the
  ``ValidationResult``.
* Render-time failures propagate from ``ReportRenderer`` unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy.orm import Session

from report_config import load_bundled_report
from report_config.loader import dump_report_definition
from report_config.results import ValidationResult
from report_config.schema import ReportDefinition
from report_config.validator import ReportValidator
from report_engines.filter_engine import FilterEngine
from report_kernel.domain.clock import Clock, SystemClock
from report_kernel.domain.movements import MovementsTable
from report_kernel.exceptions import InvalidReportDefinitionError
from report_kernel.logging_config import get_logger
from report_kernel.selectors.movement_selector import MovementSelector
from report_modules.statements.config import PeriodOptions, ReportingConfig
from report_modules.statements.models import StatementData
from report_modules.statements.renderer import ReportRenderer

logger = get_logger("modules.statements.service")


class StatementService:
    """
    Financial statement rendering service.

    Contract
    --------
    * Every public render method returns a ``StatementData``.
    * All methods are **read-only** -- no mutations to the database.

    Guarantees
    ----------
    * Definitions are re-validated (all four passes) before rendering.
    * Clock is injectable for deterministic testing.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._filter_engine = FilterEngine()
        self._validator = ReportValidator()
        self._renderer = ReportRenderer(
            filter_engine=self._filter_engine,
            clock=self._clock,
            config=self._config,
        )
        self._movements = MovementSelector(session)

        logger.info(
            "statement_service_initialized",
            extra={
                "amount_field": self._config.amount_field,
                "default_years": list(self._config.default_years),
            },
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def validate(self, report: ReportDefinition | Mapping[str, Any]) -> ValidationResult:
        """Run all validator passes over ``report``."""
        document = dump_report_definition(report) if isinstance(report, ReportDefinition) else report
        return self._validator.validate(document)

    def render(
        self,
        report: ReportDefinition | Mapping[str, Any],
        table: MovementsTable,
        period_options: PeriodOptions | Mapping[str, Any] | None = None,
    ) -> StatementData:
        """Validate ``report`` and render it against ``table``."""
        self._ensure_valid(report)
        return self._renderer.render_statement(
            report, table, self._period_options(period_options)
        )

    def render_from_database(
        self,
        report: ReportDefinition | Mapping[str, Any],
        period_options: PeriodOptions | Mapping[str, Any] | None = None,
    ) -> StatementData:
        """Validate ``report`` and render it against the stored movements."""
        self._ensure_valid(report)
        options = self._period_options(period_options)
        table = self.load_movements(options)
        return self._renderer.render_statement(report, table, options)

    def render_bundled(
        self,
        report_id: str,
        period_options: PeriodOptions | Mapping[str, Any] | None = None,
    ) -> StatementData:
        """Render one of the bundled definitions against stored movements."""
        return self.render_from_database(load_bundled_report(report_id), period_options)

    def load_movements(
        self,
        period_options: PeriodOptions,
        filter_spec: Mapping[str, Any] | None = None,
    ) -> MovementsTable:
        """
        Select movements for the requested years.

        ``filter_spec`` is compiled and pushed down into the query.
        """
        where = None
        if filter_spec:
            compiled = self._filter_engine.compile_filter(filter_spec)
            where = compiled.to_clause(MovementSelector.columns())
        return self._movements.load_table(years=period_options.years, where=where)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _ensure_valid(self, report: ReportDefinition | Mapping[str, Any]) -> None:
        result = self.validate(report)
        if not result.is_valid:
            if isinstance(report, ReportDefinition):
                report_id = report.report_id
            elif isinstance(report, Mapping):
                report_id = str(report.get("reportId", "unknown"))
            else:
                report_id = "unknown"
            raise InvalidReportDefinitionError(report_id, result)

    def _period_options(self, period_options: PeriodOptions | Mapping[str, Any] | None) -> PeriodOptions:
        if period_options is None:
            return self._config.default_period_options()
        if isinstance(period_options, PeriodOptions):
            return period_options
        return PeriodOptions.from_dict(period_options)
