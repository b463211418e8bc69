"""Tests for period-over-period variance."""

from decimal import Decimal

from report_engines.variance import period_variance, variance_years


class TestVarianceYears:

    def test_two_years_sorted(self):
        assert variance_years([2025, 2024]) == (2024, 2025)

    def test_not_two_distinct_years(self):
        assert variance_years([2024]) is None
        assert variance_years([2024, 2024]) is None
        assert variance_years([2023, 2024, 2025]) is None


class TestPeriodVariance:

    def test_growth(self):
        variance = period_variance(Decimal("100"), Decimal("150"), 2024, 2025)
        assert variance.amount == Decimal("50")
        assert variance.percent == Decimal("50")
        assert (variance.earlier_year, variance.later_year) == (2024, 2025)

    def test_negative_base_uses_absolute_value(self):
        variance = period_variance(Decimal("-200"), Decimal("-100"), 2024, 2025)
        assert variance.amount == Decimal("100")
        assert variance.percent == Decimal("50")

    def test_zero_base(self):
        variance = period_variance(Decimal("0"), Decimal("80"), 2024, 2025)
        assert variance.amount == Decimal("80")
        assert variance.percent == Decimal("0")

    def test_none_counts_as_zero(self):
        variance = period_variance(None, Decimal("10"), 2024, 2025)
        assert variance.amount == Decimal("10")
        assert variance.percent == Decimal("0")
        assert period_variance(Decimal("10"), None, 2024, 2025).percent == Decimal("-100")
