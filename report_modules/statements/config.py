"""
Statement Rendering Configuration.

Defines the period selection for one render (``PeriodOptions``) and the
module-wide rendering defaults (``ReportingConfig``): which movement column
holds amounts, default years, formatting defaults and the optional
post-passes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Self

from report_config.schema import FormatOptions, FormatType
from report_engines.formatting import DEFAULT_FORMAT_OPTIONS
from report_kernel.domain.movements import COLUMNS
from report_kernel.exceptions import InvalidPeriodOptionsError
from report_kernel.logging_config import get_logger

logger = get_logger("modules.statements.config")

ALL_PERIODS = "all"


@dataclass(frozen=True)
class PeriodOptions:
    """
    Fiscal years (and optionally periods) to render.

    ``periods`` is ``"all"`` or a tuple of period labels; when it is a
    tuple, only movements in those periods contribute.
    """

    years: tuple[int, ...]
    periods: str | tuple[str, ...] = ALL_PERIODS

    def __post_init__(self):
        if not self.years:
            raise InvalidPeriodOptionsError("at least one year is required")
        for year in self.years:
            if isinstance(year, bool) or not isinstance(year, int):
                raise InvalidPeriodOptionsError(f"year must be an integer, got {year!r}")
        if isinstance(self.periods, str):
            if self.periods != ALL_PERIODS:
                raise InvalidPeriodOptionsError(
                    f"periods must be '{ALL_PERIODS}' or a list, got {self.periods!r}"
                )
        elif not self.periods:
            raise InvalidPeriodOptionsError("periods list must not be empty")

    @property
    def restricts_periods(self) -> bool:
        return self.periods != ALL_PERIODS

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build from ``{"years": [...], "periods": "all" | [...]}``."""
        if not isinstance(data, Mapping):
            raise InvalidPeriodOptionsError("period options must be an object")
        years = data.get("years")
        if not isinstance(years, (list, tuple)):
            raise InvalidPeriodOptionsError("years must be a list of integers")
        periods = data.get("periods", ALL_PERIODS)
        if isinstance(periods, (list, tuple)):
            periods = tuple(str(p) for p in periods)
        return cls(years=tuple(years), periods=periods)

    def to_dict(self) -> dict[str, Any]:
        return {
            "years": list(self.years),
            "periods": self.periods if isinstance(self.periods, str) else list(self.periods),
        }


def _default_formatting() -> dict[FormatType, FormatOptions]:
    return dict(DEFAULT_FORMAT_OPTIONS)


@dataclass
class ReportingConfig:
    """
    Configuration schema for statement rendering.

    Report-level ``formatting`` blocks override ``formatting`` here per
    format type; field-level settings win over these defaults.
    """

    # Movement column summed by variables and category rows
    amount_field: str = "movement_amount"

    # Years rendered when the caller gives none
    default_years: tuple[int, ...] = (2024, 2025)

    # Formatting defaults per format type
    formatting: dict[FormatType, FormatOptions] = field(default_factory=_default_formatting)

    # Add formatted_* columns to every row
    include_formatted_values: bool = True

    # Add variance_amount / variance_percent when exactly two years render
    calculate_variances: bool = True

    def __post_init__(self):
        if self.amount_field not in COLUMNS:
            raise ValueError(f"amount_field must be one of: {', '.join(COLUMNS)}")
        if not self.default_years:
            raise ValueError("default_years cannot be empty")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        data = dict(data)
        if "default_years" in data:
            data["default_years"] = tuple(data["default_years"])
        if "formatting" in data and isinstance(data["formatting"], Mapping):
            formatting = _default_formatting()
            for key, options in data["formatting"].items():
                fmt = FormatType(key)
                formatting[fmt] = FormatOptions.from_dict(options).merged_over(formatting[fmt])
            data["formatting"] = formatting
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    def default_period_options(self) -> PeriodOptions:
        return PeriodOptions(years=tuple(self.default_years))
