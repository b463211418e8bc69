"""
report_engines.formatting -- Display formatting of statement amounts.

Responsibility:
    Render a Decimal amount as text for one of the four format types
    (currency, percent, integer, decimal) with optional symbol, thousands
    grouping and fixed decimals.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``None`` formats to ``""``.
    - Rounding is ROUND_HALF_UP on the absolute value; the sign is kept
      unless the rounded value is zero.
    - Percent values are already percentages and are never multiplied.
    - Unknown format types fall back to decimal, 2 places, grouped.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any

from report_config.schema import FormatOptions, FormatType
from report_kernel.domain.values import to_decimal

DEFAULT_FORMAT_OPTIONS: dict[FormatType, FormatOptions] = {
    FormatType.CURRENCY: FormatOptions(decimals=0, thousands=True, symbol="€"),
    FormatType.PERCENT: FormatOptions(decimals=1, thousands=False, symbol="%"),
    FormatType.INTEGER: FormatOptions(decimals=0, thousands=True),
    FormatType.DECIMAL: FormatOptions(decimals=2, thousands=True),
}

_FALLBACK = FormatOptions(decimals=2, thousands=True)


def format_number(value: Decimal, decimals: int, thousands: bool) -> str:
    """Fixed-point text with optional ``,`` grouping."""
    exponent = Decimal(1).scaleb(-decimals)
    with localcontext() as ctx:
        # room for every integer digit plus the requested decimals
        ctx.prec = max(ctx.prec, value.adjusted() + decimals + 2)
        rounded = abs(value).quantize(exponent, rounding=ROUND_HALF_UP)
        text = f"{rounded:,.{decimals}f}" if thousands else f"{rounded:.{decimals}f}"
    if value < 0 and rounded != 0:
        text = "-" + text
    return text


def _as_options(value: Any) -> FormatOptions:
    if isinstance(value, FormatOptions):
        return value
    return FormatOptions.from_dict(value)


def _resolve_format(format_spec: Any) -> tuple[FormatType | None, FormatOptions]:
    """Split a format spec (name, FormatType or mapping) into type and options."""
    if isinstance(format_spec, Mapping):
        options = {k: v for k, v in format_spec.items() if k != "type"}
        raw_type = format_spec.get("type")
        spec_options = FormatOptions.from_dict(options)
    else:
        raw_type = format_spec
        spec_options = FormatOptions()
    try:
        return FormatType(raw_type), spec_options
    except ValueError:
        return None, spec_options


def apply_formatting(
    value: Any,
    format_spec: Any,
    defaults: Mapping[Any, Any] | None = None,
) -> str:
    """
    Format ``value`` for display.

    Args:
        value: Amount (Decimal, int, float, numeric str) or None.
        format_spec: A format name (``"currency"``), a ``FormatType``, or a
            mapping like ``{"type": "currency", "symbol": "$"}``.
        defaults: Per-format options (keyed by FormatType or its value)
            that override the built-in defaults; spec options override both.
    """
    amount = to_decimal(value)
    if amount is None:
        return ""

    format_type, spec_options = _resolve_format(format_spec)
    if format_type is None:
        return format_number(amount, _FALLBACK.decimals, _FALLBACK.thousands)

    options = DEFAULT_FORMAT_OPTIONS[format_type]
    if defaults:
        override = defaults.get(format_type, defaults.get(format_type.value))
        if override is not None:
            options = _as_options(override).merged_over(options)
    options = spec_options.merged_over(options)

    decimals = options.decimals if options.decimals is not None else 2
    thousands = bool(options.thousands)

    if format_type is FormatType.CURRENCY:
        return f"{options.symbol or '€'} {format_number(amount, decimals, thousands)}"
    if format_type is FormatType.PERCENT:
        return f"{format_number(amount, decimals, False)}{options.symbol or '%'}"
    if format_type is FormatType.INTEGER:
        return format_number(amount, 0, thousands)
    return format_number(amount, decimals, thousands)
