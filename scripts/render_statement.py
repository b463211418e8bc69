#!/usr/bin/env python3
"""
Validate or render a report definition from the command line.

Usage:
    python3 -m scripts.render_statement validate <definition.yaml>
    python3 -m scripts.render_statement render <definition.yaml> --movements <movements.csv>
    python3 -m scripts.render_statement render <definition.yaml> --database-url <url>

Examples:
    # Check a definition, print every error and warning
    python3 -m scripts.render_statement validate report_config/sets/income_statement.yaml

    # Render against a CSV export of the movements table
    python3 -m scripts.render_statement render report_config/sets/income_statement.yaml \\
        --movements movements.csv --years 2024 2025

    # Render from the database (or set REPORT_DATABASE_URL)
    python3 -m scripts.render_statement render report_config/sets/balance_sheet.yaml \\
        --database-url sqlite:///movements.db --format json
"""

import argparse
import csv
import json
import logging
import os
import sys
from pathlib import Path

import yaml

from report_config import load_report_definition
from report_config.loader import load_report_file
from report_config.validator import ReportValidator
from report_kernel.domain.clock import SystemClock
from report_kernel.domain.movements import MovementsTable
from report_kernel.exceptions import InvalidReportDefinitionError, ReportEngineError
from report_kernel.logging_config import configure_logging
from report_modules.statements.config import PeriodOptions, ReportingConfig
from report_modules.statements.models import StatementData
from report_modules.statements.renderer import ReportRenderer

DATABASE_URL_ENV = "REPORT_DATABASE_URL"

W = 80


# =============================================================================
# Output helpers
# =============================================================================


def banner(title: str) -> None:
    print()
    print("=" * W)
    print(f"  {title}")
    print("=" * W)


def print_table(statement: StatementData) -> None:
    years = list(statement.metadata.period_options.years)
    banner(f"{statement.report_name} ({statement.report_id} v{statement.report_version})")
    print(f"  generated_at: {statement.generated_at}")
    print()

    header = f"  {'':<40}" + "".join(f"{year:>14}" for year in years)
    if len(years) == 2:
        header += f"{'Variance':>14}{'%':>10}"
    print(header)
    print("  " + "-" * (W - 2))

    for row in statement.rows:
        if row.is_spacer:
            print()
            continue
        label = ("  " * row.indent + row.label)[:40]
        line = f"  {label:<40}" + "".join(
            f"{row.formatted.get(str(year), ''):>14}" for year in years
        )
        if len(years) == 2:
            line += f"{row.formatted.get('variance_amount', ''):>14}"
            line += f"{row.formatted.get('variance_percent', ''):>10}"
        print(line)


def read_movements_csv(path: Path) -> MovementsTable:
    """Load a movements export; blank cells read as missing values."""
    with open(path, newline="", encoding="utf-8") as f:
        return MovementsTable.from_records(csv.DictReader(f))


# =============================================================================
# Commands
# =============================================================================


def cmd_validate(args: argparse.Namespace) -> int:
    data = load_report_file(Path(args.definition))
    result = ReportValidator().validate(data)
    print(result.format_messages())
    return 0 if result.is_valid else 1


def cmd_render(args: argparse.Namespace) -> int:
    definition = load_report_definition(args.definition)
    periods = tuple(args.periods) if args.periods else "all"
    config = ReportingConfig()
    period_options = (
        PeriodOptions(years=tuple(args.years), periods=periods)
        if args.years
        else config.default_period_options()
    )

    if args.movements:
        table = read_movements_csv(Path(args.movements))
        renderer = ReportRenderer(clock=SystemClock(), config=config)
        statement = renderer.render_statement(definition, table, period_options)
    else:
        database_url = args.database_url or os.environ.get(DATABASE_URL_ENV)
        if not database_url:
            print(
                f"  ERROR: --movements, --database-url or {DATABASE_URL_ENV} is required",
                file=sys.stderr,
            )
            return 2

        from report_kernel.db.engine import get_session, init_engine_from_url
        from report_modules.statements.service import StatementService

        init_engine_from_url(database_url, echo=False)
        session = get_session()
        try:
            service = StatementService(session, clock=SystemClock(), config=config)
            statement = service.render_from_database(definition, period_options)
        finally:
            session.close()

    if args.format == "json":
        print(json.dumps(statement.to_dict(), indent=2, default=str, ensure_ascii=False))
    else:
        print_table(statement)
    return 0


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="render_statement",
        description="Validate or render a financial statement report definition.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Emit structured JSON logs to stderr",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Validate a report definition")
    validate.add_argument("definition", help="Path to a YAML or JSON report definition")
    validate.set_defaults(func=cmd_validate)

    render = sub.add_parser("render", help="Render a report definition")
    render.add_argument("definition", help="Path to a YAML or JSON report definition")
    render.add_argument("--movements", help="CSV export of the movements table")
    render.add_argument(
        "--database-url",
        help=f"SQLAlchemy database URL (default: ${DATABASE_URL_ENV})",
    )
    render.add_argument("--years", type=int, nargs="+", help="Fiscal years to render")
    render.add_argument("--periods", nargs="+", help="Restrict to these periods")
    render.add_argument(
        "--format", choices=("table", "json"), default="table",
        help="Output format (default: table)",
    )
    render.set_defaults(func=cmd_render)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        return args.func(args)
    except InvalidReportDefinitionError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        print(exc.validation_result.format_messages(), file=sys.stderr)
        return 1
    except (ReportEngineError, OSError, yaml.YAMLError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
