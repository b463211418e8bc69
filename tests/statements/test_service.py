"""Tests for StatementService against an in-memory SQLite database."""

from decimal import Decimal

import pytest

from report_kernel.exceptions import InvalidReportDefinitionError, ReportNotFoundError
from report_modules.statements.config import PeriodOptions, ReportingConfig
from report_modules.statements.service import StatementService


@pytest.fixture
def service(seeded_session, deterministic_clock) -> StatementService:
    return StatementService(seeded_session, clock=deterministic_clock)


class TestRender:

    def test_render_in_memory_table(self, service, report_document, movements_table):
        statement = service.render(report_document, movements_table, {"years": [2024, 2025]})
        assert statement.row(60).amounts == {2024: Decimal("1000"), 2025: Decimal("1200")}

    def test_render_from_database_matches_in_memory(self, service, report_document, movements_table):
        from_db = service.render_from_database(report_document)
        in_memory = service.render(report_document, movements_table)
        assert from_db == in_memory

    def test_default_years_from_config(self, seeded_session, deterministic_clock, report_document):
        service = StatementService(
            seeded_session,
            clock=deterministic_clock,
            config=ReportingConfig(default_years=(2025,)),
        )
        statement = service.render_from_database(report_document)
        assert statement.metadata.period_options.years == (2025,)
        assert statement.row(10).amounts == {2025: Decimal("1800")}

    def test_only_requested_years_loaded(self, service, report_document):
        statement = service.render_from_database(report_document, PeriodOptions(years=(2024,)))
        assert statement.row(30).amounts == {2024: Decimal("1100")}

    def test_invalid_definition_refused(self, service, report_document, movements_table):
        report_document["layout"][1]["order"] = 10
        with pytest.raises(InvalidReportDefinitionError) as exc:
            service.render(report_document, movements_table)
        assert exc.value.report_id == "test_income"
        assert "Duplicate order numbers found: 10" in exc.value.validation_result.error_messages()


class TestBundled:

    def test_render_bundled(self, service):
        statement = service.render_bundled("income_statement")
        assert statement.report_id == "income_statement"
        # Bundled codes differ from the seeded data: every amount is zero
        assert statement.row(100).amounts == {2024: Decimal("0"), 2025: Decimal("0")}
        assert statement.row(310).amounts == {2024: None, 2025: None}

    def test_unknown_bundled_report(self, service):
        with pytest.raises(ReportNotFoundError):
            service.render_bundled("missing_report")


class TestValidateAndLoad:

    def test_validate_parsed_definition(self, service):
        from report_config import load_bundled_report

        assert service.validate(load_bundled_report("balance_sheet")).is_valid

    def test_load_movements_pushes_filter_down(self, service):
        table = service.load_movements(PeriodOptions(years=(2024,)), {"code1": "700"})
        assert table.column("movement_amount") == [Decimal("1000"), Decimal("500")]

    def test_load_movements_without_filter(self, service):
        assert service.load_movements(PeriodOptions(years=(2024, 2025))).num_rows() == 8

    def test_initialization_logged(self, seeded_session, captured_logs):
        StatementService(seeded_session)
        record = next(r for r in captured_logs() if r["message"] == "statement_service_initialized")
        assert record["default_years"] == [2024, 2025]
