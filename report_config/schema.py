"""
ReportDefinition schema.

Defines the typed form of a report definition. Authors write YAML or JSON
documents (camelCase keys: ``reportId``, ``statementType``, ...); the loader
parses those documents into these frozen types and the renderer consumes
them.

Layout items form a closed family: ``VariableItem``, ``CalculatedItem``,
``CategoryItem``, ``SubtotalItem`` and ``SpacerItem``. Each enforces its
type-specific required field on construction.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from report_kernel.exceptions import InvalidLayoutItemError, MissingFieldError

# ---------------------------------------------------------------------------
# Closed vocabularies
# ---------------------------------------------------------------------------


class StatementType(str, Enum):
    BALANCE = "balance"
    INCOME = "income"
    CASHFLOW = "cashflow"


class LayoutType(str, Enum):
    VARIABLE = "variable"
    CALCULATED = "calculated"
    CATEGORY = "category"
    SUBTOTAL = "subtotal"
    SPACER = "spacer"


class FormatType(str, Enum):
    CURRENCY = "currency"
    PERCENT = "percent"
    INTEGER = "integer"
    DECIMAL = "decimal"


class StyleType(str, Enum):
    NORMAL = "normal"
    METRIC = "metric"
    SUBTOTAL = "subtotal"
    TOTAL = "total"
    SPACER = "spacer"


class AggregateFunction(str, Enum):
    SUM = "sum"
    AVERAGE = "average"
    COUNT = "count"
    MIN = "min"
    MAX = "max"
    FIRST = "first"
    LAST = "last"

    @classmethod
    def parse(cls, value: Any) -> AggregateFunction:
        """Case-insensitive lookup.

        Raises:
            ValueError: if ``value`` is not a supported aggregate name.
        """
        if isinstance(value, AggregateFunction):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unsupported aggregate function: {value}")
        return cls(value.lower())


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VariableDefinition:
    """A named, per-year aggregate over filtered movements."""

    filter: Mapping[str, Any]
    aggregate: AggregateFunction = AggregateFunction.SUM
    description: str = ""


# ---------------------------------------------------------------------------
# Layout items
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LayoutItem:
    """Fields shared by every layout item."""

    type: ClassVar[LayoutType]

    order: int
    label: str = ""
    format: FormatType | None = None
    style: StyleType = StyleType.NORMAL
    indent: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.order, bool) or not isinstance(self.order, int) or self.order < 0:
            raise InvalidLayoutItemError("order", self.order, "a non-negative integer")
        if isinstance(self.indent, bool) or not isinstance(self.indent, int) or not 0 <= self.indent <= 3:
            raise InvalidLayoutItemError("indent", self.indent, "an integer between 0 and 3")

    def _require(self, field_name: str, present: bool) -> None:
        if not present:
            type_name = self.type.value.capitalize()
            raise MissingFieldError(
                field_name,
                f"layout item {self.order}",
                f"{type_name} layout item must have a '{field_name}' field",
            )


@dataclass(frozen=True)
class VariableItem(LayoutItem):
    type: ClassVar[LayoutType] = LayoutType.VARIABLE

    variable: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require("variable", bool(self.variable))


@dataclass(frozen=True)
class CalculatedItem(LayoutItem):
    type: ClassVar[LayoutType] = LayoutType.CALCULATED

    expression: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require("expression", bool(self.expression))


@dataclass(frozen=True)
class CategoryItem(LayoutItem):
    type: ClassVar[LayoutType] = LayoutType.CATEGORY

    filter: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require("filter", self.filter is not None)


@dataclass(frozen=True)
class SubtotalItem(LayoutItem):
    type: ClassVar[LayoutType] = LayoutType.SUBTOTAL

    from_order: int | None = None
    to_order: int | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require("from", self.from_order is not None)
        self._require("to", self.to_order is not None)


@dataclass(frozen=True)
class SpacerItem(LayoutItem):
    type: ClassVar[LayoutType] = LayoutType.SPACER


LAYOUT_ITEM_CLASSES: dict[LayoutType, type[LayoutItem]] = {
    LayoutType.VARIABLE: VariableItem,
    LayoutType.CALCULATED: CalculatedItem,
    LayoutType.CATEGORY: CategoryItem,
    LayoutType.SUBTOTAL: SubtotalItem,
    LayoutType.SPACER: SpacerItem,
}


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FormatOptions:
    """Options for one format type. ``None`` means "use the default"."""

    decimals: int | None = None
    thousands: bool | None = None
    symbol: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> FormatOptions:
        data = data or {}
        return cls(
            decimals=data.get("decimals"),
            thousands=data.get("thousands"),
            symbol=data.get("symbol"),
        )

    def merged_over(self, base: FormatOptions) -> FormatOptions:
        """Return options where set fields of ``self`` override ``base``."""
        return FormatOptions(
            decimals=self.decimals if self.decimals is not None else base.decimals,
            thousands=self.thousands if self.thousands is not None else base.thousands,
            symbol=self.symbol if self.symbol is not None else base.symbol,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            k: v
            for k, v in (
                ("decimals", self.decimals),
                ("thousands", self.thousands),
                ("symbol", self.symbol),
            )
            if v is not None
        }


# ---------------------------------------------------------------------------
# Report definition
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReportDefinition:
    """A complete, typed report definition."""

    report_id: str
    name: str
    version: str
    statement_type: StatementType
    layout: tuple[LayoutItem, ...]
    variables: Mapping[str, VariableDefinition] = field(default_factory=dict)
    formatting: Mapping[FormatType, FormatOptions] = field(default_factory=dict)
    description: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)
    checksum: str = ""

    def sorted_layout(self) -> tuple[LayoutItem, ...]:
        return tuple(sorted(self.layout, key=lambda item: item.order))

    def item_by_order(self, order: int) -> LayoutItem | None:
        for item in self.layout:
            if item.order == order:
                return item
        return None
