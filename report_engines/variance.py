"""
report_engines.variance -- Period-over-period variance.

Responsibility:
    Compute the absolute and relative change of a row amount between two
    fiscal years.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Missing amounts (``None``) count as zero.
    - variance_percent = (later - earlier) / |earlier| * 100, and exactly
      ``Decimal("0")`` when earlier is zero.
    - Variance is only defined for exactly two years.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from report_kernel.domain.values import ZERO, amount_or_zero

HUNDRED = Decimal("100")


@dataclass(frozen=True, slots=True)
class PeriodVariance:
    """Change between an earlier and a later year."""

    earlier_year: int
    later_year: int
    amount: Decimal
    percent: Decimal


def variance_years(years: Sequence[int]) -> tuple[int, int] | None:
    """(earlier, later) when exactly two distinct years are configured."""
    distinct = sorted(set(years))
    if len(distinct) != 2:
        return None
    return distinct[0], distinct[1]


def period_variance(
    earlier: Decimal | None,
    later: Decimal | None,
    earlier_year: int,
    later_year: int,
) -> PeriodVariance:
    base = amount_or_zero(earlier)
    current = amount_or_zero(later)
    amount = current - base
    percent = ZERO if base == 0 else amount / abs(base) * HUNDRED
    return PeriodVariance(
        earlier_year=earlier_year,
        later_year=later_year,
        amount=amount,
        percent=percent,
    )
