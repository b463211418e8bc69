"""
Pytest fixtures for the report engine test suite.

Provides:
- Structured logging setup and log capture
- A deterministic clock
- A small two-year movements table and a matching report definition
- In-memory SQLite engine and sessions for selector/service tests
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from report_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from report_kernel.domain.clock import DeterministicClock
from report_kernel.domain.movements import MovementsTable
from report_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from report_kernel.models.movement import Movement


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture report_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, renderer):
            renderer.render_statement(...)
            logs = captured_logs()
            assert any(r["message"] == "statement_rendered" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("report_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


MOVEMENT_RECORDS = [
    {"code1": "700", "code2": "10", "name1": "Revenue", "statement_type": "income",
     "account_code": "7000", "year": 2024, "period": "01", "movement_amount": Decimal("1000")},
    {"code1": "700", "code2": "20", "name1": "Revenue", "statement_type": "income",
     "account_code": "7010", "year": 2024, "period": "02", "movement_amount": Decimal("500")},
    {"code1": "600", "code2": "10", "name1": "Cost of sales", "statement_type": "income",
     "account_code": "6000", "year": 2024, "period": "01", "movement_amount": Decimal("-400")},
    {"code1": "610", "code2": "10", "name1": "Operating expenses", "statement_type": "income",
     "account_code": "6100", "year": 2024, "period": "02", "movement_amount": Decimal("-100")},
    {"code1": "700", "code2": "10", "name1": "Revenue", "statement_type": "income",
     "account_code": "7000", "year": 2025, "period": "01", "movement_amount": Decimal("1200")},
    {"code1": "700", "code2": "20", "name1": "Revenue", "statement_type": "income",
     "account_code": "7010", "year": 2025, "period": "02", "movement_amount": Decimal("600")},
    {"code1": "600", "code2": "10", "name1": "Cost of sales", "statement_type": "income",
     "account_code": "6000", "year": 2025, "period": "01", "movement_amount": Decimal("-450")},
    {"code1": "610", "code2": "10", "name1": "Operating expenses", "statement_type": "income",
     "account_code": "6100", "year": 2025, "period": "02", "movement_amount": Decimal("-150")},
]


@pytest.fixture
def movement_records() -> list[dict]:
    return [dict(r) for r in MOVEMENT_RECORDS]


@pytest.fixture
def movements_table(movement_records) -> MovementsTable:
    """Two years of income movements.

    Totals per year (2024 / 2025):
        700 revenue             1500 / 1800
        600 cost of sales       -400 / -450
        610 operating expenses  -100 / -150
    """
    return MovementsTable.from_records(movement_records)


@pytest.fixture
def report_document() -> dict:
    """Raw (camelCase) income statement definition matching movements_table."""
    return {
        "reportId": "test_income",
        "name": "Test Income Statement",
        "version": "1.0.0",
        "statementType": "income",
        "variables": {
            "revenue": {"filter": {"code1": "700"}, "aggregate": "sum"},
            "cogs": {"filter": {"code1": "600"}, "aggregate": "sum"},
        },
        "layout": [
            {"order": 10, "type": "variable", "label": "Revenue", "variable": "revenue",
             "format": "currency"},
            {"order": 20, "type": "variable", "label": "Cost of sales", "variable": "cogs",
             "format": "currency", "indent": 1},
            {"order": 30, "type": "subtotal", "label": "Gross profit", "from": 10, "to": 20,
             "format": "currency", "style": "subtotal"},
            {"order": 40, "type": "spacer"},
            {"order": 50, "type": "category", "label": "Operating expenses",
             "filter": {"code1": "610"}, "format": "currency"},
            {"order": 60, "type": "calculated", "label": "Operating result",
             "expression": "@30 + @50", "format": "currency", "style": "total"},
            {"order": 70, "type": "calculated", "label": "Gross margin",
             "expression": "@30 / revenue * 100", "format": "percent", "style": "metric"},
        ],
        "formatting": {"currency": {"decimals": 0, "thousands": True, "symbol": "€"}},
    }


# =============================================================================
# Database fixtures (in-memory SQLite)
# =============================================================================


@pytest.fixture
def db_engine():
    engine = init_engine_from_url("sqlite://", echo=False)
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine):
    s = get_session()
    yield s
    s.close()


@pytest.fixture
def seeded_session(session, movement_records):
    """Session with MOVEMENT_RECORDS stored in insertion order."""
    session.add_all(Movement(**record) for record in movement_records)
    session.commit()
    return session
