"""
Statement Rendering Models (``report_modules.statements.models``).

Responsibility
--------------
Value objects produced by the renderer: one ``RenderedRow`` per layout
item, wrapped in a ``StatementData`` envelope with generation metadata.
``RenderingContext`` is the mutable working state threaded through one
render.

Invariants enforced
-------------------
* Rows are ``frozen=True``; post-passes derive new rows with ``replace``.
* Amounts are ``Decimal`` or ``None`` (spacer rows, division by zero).
* Spacer rows never carry variance columns.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from report_config.schema import FormatType, LayoutType, ReportDefinition, StyleType
from report_kernel.domain.movements import MovementsTable
from report_modules.statements.config import PeriodOptions


@dataclass(frozen=True)
class RenderedRow:
    """A single rendered statement row."""

    order: int
    type: LayoutType
    label: str
    style: StyleType
    indent: int
    format: FormatType | None
    amounts: Mapping[int, Decimal | None]
    variance_amount: Decimal | None = None
    variance_percent: Decimal | None = None
    formatted: Mapping[str, str] = field(default_factory=dict)
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_spacer(self) -> bool:
        return self.type is LayoutType.SPACER

    def amount(self, year: int) -> Decimal | None:
        return self.amounts.get(year)

    def to_dict(self) -> dict[str, Any]:
        """Plain row dictionary: ``amount_<year>``, variance and formatted columns."""
        data: dict[str, Any] = {
            "order": self.order,
            "label": self.label,
            "type": self.type.value,
            "style": self.style.value,
            "indent": self.indent,
            "format": self.format.value if self.format is not None else None,
        }
        for year, value in self.amounts.items():
            data[f"amount_{year}"] = value
        if not self.is_spacer:
            data["variance_amount"] = self.variance_amount
            data["variance_percent"] = self.variance_percent
        for key, text in self.formatted.items():
            data[f"formatted_{key}"] = text
        data["_metadata"] = dict(self.metadata)
        return data


@dataclass(frozen=True)
class StatementMetadata:
    period_options: PeriodOptions
    variable_count: int
    layout_item_count: int
    checksum: str = ""


@dataclass(frozen=True)
class StatementData:
    """A rendered financial statement."""

    report_id: str
    report_name: str
    report_version: str
    statement_type: str
    generated_at: str  # ISO format timestamp from injected clock
    rows: tuple[RenderedRow, ...]
    metadata: StatementMetadata

    def row(self, order: int) -> RenderedRow | None:
        for r in self.rows:
            if r.order == order:
                return r
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "report_id": self.report_id,
            "report_name": self.report_name,
            "report_version": self.report_version,
            "statement_type": self.statement_type,
            "generated_at": self.generated_at,
            "rows": [r.to_dict() for r in self.rows],
            "metadata": {
                "period_options": self.metadata.period_options.to_dict(),
                "variable_count": self.metadata.variable_count,
                "layout_item_count": self.metadata.layout_item_count,
                "checksum": self.metadata.checksum,
            },
        }


@dataclass
class RenderingContext:
    """Working state for one render; ``rows`` grows as items are processed."""

    definition: ReportDefinition
    table: MovementsTable
    period_options: PeriodOptions
    variables: dict[str, dict[int, Decimal]] = field(default_factory=dict)
    rows: dict[int, RenderedRow] = field(default_factory=dict)

    @property
    def years(self) -> tuple[int, ...]:
        return self.period_options.years
