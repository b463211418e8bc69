"""
Financial Statements Module (``report_modules.statements``).

Responsibility
--------------
Renders report definitions into financial statements (balance sheet,
income statement, cash flow): resolved variables, calculated rows,
category sums, subtotals, period variances and formatted values.

Architecture position
---------------------
**Modules layer** -- ``StatementService`` is the public entry point;
``ReportRenderer`` can be used directly with an in-memory movements table.
"""

from report_modules.statements.config import PeriodOptions, ReportingConfig
from report_modules.statements.models import (
    RenderedRow,
    RenderingContext,
    StatementData,
    StatementMetadata,
)
from report_modules.statements.renderer import ReportRenderer
from report_modules.statements.service import StatementService

__all__ = [
    "PeriodOptions",
    "RenderedRow",
    "RenderingContext",
    "ReportRenderer",
    "ReportingConfig",
    "StatementData",
    "StatementMetadata",
    "StatementService",
]
