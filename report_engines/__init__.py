"""
Module: report_engines
Responsibility:
    Package entrypoint that re-exports the pure calculation engines used
    to render a report definition: expression evaluation, filtering,
    variable resolution, formatting and period variance.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import report_kernel (exceptions, logging, domain) and report_config.
    MUST NOT import report_kernel.db, report_kernel.models,
    report_kernel.selectors or report_modules.

Invariants enforced:
    - Purity: engines never read the clock, the environment or the database.
    - Decimal-only arithmetic: floats are converted at the boundary.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Batch entry points are traced via ``@traced_engine`` (see
    ``report_engines.tracer``), emitting REPORT_ENGINE_TRACE records.
"""

from report_engines.expression_evaluator import ExpressionEvaluator
from report_engines.filter_engine import FilterEngine
from report_engines.formatting import (
    DEFAULT_FORMAT_OPTIONS,
    apply_formatting,
    format_number,
)
from report_engines.tracer import compute_input_fingerprint, traced_engine
from report_engines.variable_resolver import (
    AGGREGATE_FUNCTIONS,
    VariableResolver,
    aggregate_amounts,
)
from report_engines.variance import PeriodVariance, period_variance, variance_years

__all__ = [
    "AGGREGATE_FUNCTIONS",
    "DEFAULT_FORMAT_OPTIONS",
    "ExpressionEvaluator",
    "FilterEngine",
    "PeriodVariance",
    "VariableResolver",
    "aggregate_amounts",
    "apply_formatting",
    "compute_input_fingerprint",
    "format_number",
    "period_variance",
    "traced_engine",
    "variance_years",
]
