"""Tests for period options and rendering configuration."""

import pytest

from report_config.schema import FormatOptions, FormatType
from report_kernel.exceptions import InvalidPeriodOptionsError
from report_modules.statements.config import PeriodOptions, ReportingConfig


class TestPeriodOptions:

    def test_defaults_to_all_periods(self):
        options = PeriodOptions(years=(2024, 2025))
        assert options.periods == "all"
        assert not options.restricts_periods

    def test_restricted_periods(self):
        assert PeriodOptions(years=(2024,), periods=("01", "02")).restricts_periods

    @pytest.mark.parametrize(
        "kwargs, reason",
        [
            ({"years": ()}, "at least one year is required"),
            ({"years": (2024, "2025")}, "year must be an integer"),
            ({"years": (True,)}, "year must be an integer"),
            ({"years": (2024,), "periods": "some"}, "periods must be 'all' or a list"),
            ({"years": (2024,), "periods": ()}, "periods list must not be empty"),
        ],
    )
    def test_invalid(self, kwargs, reason):
        with pytest.raises(InvalidPeriodOptionsError, match=reason):
            PeriodOptions(**kwargs)

    def test_from_dict(self):
        options = PeriodOptions.from_dict({"years": [2024, 2025], "periods": [1, "02"]})
        assert options == PeriodOptions(years=(2024, 2025), periods=("1", "02"))

    def test_from_dict_requires_year_list(self):
        with pytest.raises(InvalidPeriodOptionsError, match="years must be a list"):
            PeriodOptions.from_dict({"years": 2024})
        with pytest.raises(InvalidPeriodOptionsError, match="must be an object"):
            PeriodOptions.from_dict([2024])

    def test_to_dict(self):
        assert PeriodOptions(years=(2024,), periods=("03",)).to_dict() == {
            "years": [2024],
            "periods": ["03"],
        }


class TestReportingConfig:

    def test_defaults(self):
        config = ReportingConfig.with_defaults()
        assert config.amount_field == "movement_amount"
        assert config.default_years == (2024, 2025)
        assert config.formatting[FormatType.CURRENCY] == FormatOptions(decimals=0, thousands=True, symbol="€")
        assert config.default_period_options() == PeriodOptions(years=(2024, 2025))

    def test_defaults_not_shared(self):
        first = ReportingConfig()
        first.formatting[FormatType.DECIMAL] = FormatOptions(decimals=4)
        assert ReportingConfig().formatting[FormatType.DECIMAL].decimals == 2

    def test_unknown_amount_field(self):
        with pytest.raises(ValueError, match="amount_field must be one of"):
            ReportingConfig(amount_field="amount")

    def test_empty_default_years(self):
        with pytest.raises(ValueError, match="default_years cannot be empty"):
            ReportingConfig(default_years=())

    def test_from_dict_merges_formatting(self, captured_logs):
        config = ReportingConfig.from_dict({
            "default_years": [2023],
            "formatting": {"currency": {"symbol": "$"}},
            "calculate_variances": False,
        })
        assert config.default_years == (2023,)
        assert config.formatting[FormatType.CURRENCY] == FormatOptions(decimals=0, thousands=True, symbol="$")
        assert config.formatting[FormatType.PERCENT].decimals == 1
        assert not config.calculate_variances
        record = next(r for r in captured_logs() if r["message"] == "reporting_config_loading_from_dict")
        assert record["keys"] == ["calculate_variances", "default_years", "formatting"]
