"""Tests for the read-only movements table (report_kernel/domain/movements.py)."""

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from report_kernel.domain.movements import COLUMNS, MovementRow, MovementsTable
from report_kernel.domain.values import ZERO, amount_or_zero, normalize_amount, to_decimal
from report_kernel.exceptions import UnknownColumnError


class TestToDecimal:
    """Boundary coercion of raw amounts."""

    def test_none_and_blank_are_missing(self):
        assert to_decimal(None) is None
        assert to_decimal("") is None
        assert to_decimal("   ") is None

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_numeric_string(self):
        assert to_decimal(" -12.50 ") == Decimal("-12.50")

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            to_decimal(True)

    def test_non_numeric_string_rejected(self):
        with pytest.raises(ValueError, match="Not a numeric amount"):
            to_decimal("abc")

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError, match="finite"):
            to_decimal("NaN")

    def test_amount_or_zero(self):
        assert amount_or_zero(None) == ZERO
        assert amount_or_zero(5) == Decimal("5")

    @pytest.mark.parametrize(
        "raw, text",
        [
            ("1800.000000000", "1800"),
            ("-450.500000000", "-450.5"),
            ("0.000000000", "0"),
            ("0.000000100", "1E-7"),
            ("12345678901234567890123456789.000000000", "12345678901234567890123456789"),
        ],
    )
    def test_normalize_amount(self, raw, text):
        assert str(normalize_amount(Decimal(raw))) == text
        assert normalize_amount(None) is None


class TestMovementRow:

    def test_from_mapping_coerces_types(self):
        row = MovementRow.from_mapping(
            {"code1": 700, "year": "2024", "period": 1, "movement_amount": "10.5", "extra": "x"}
        )
        assert row.code1 == "700"
        assert row.year == 2024
        assert row.period == "1"
        assert row.movement_amount == Decimal("10.5")

    def test_blank_cells_are_none(self):
        row = MovementRow.from_mapping({"year": "", "period": "", "movement_amount": ""})
        assert row.year is None
        assert row.period is None
        assert row.movement_amount is None

    def test_value_by_column(self):
        row = MovementRow(code1="700")
        assert row.value("code1") == "700"

    def test_unknown_column(self):
        with pytest.raises(UnknownColumnError, match="Column 'amount' not found"):
            MovementRow().value("amount")

    def test_rows_are_frozen(self):
        row = MovementRow(code1="700")
        with pytest.raises(FrozenInstanceError):
            row.code1 = "710"


class TestMovementsTable:

    def test_len_and_num_rows(self, movements_table):
        assert len(movements_table) == 8
        assert movements_table.num_rows() == 8

    def test_filter_returns_new_table_in_order(self, movements_table):
        filtered = movements_table.filter(lambda r: r.code1 == "700")
        assert filtered is not movements_table
        assert filtered.column("movement_amount") == [
            Decimal("1000"), Decimal("500"), Decimal("1200"), Decimal("600"),
        ]
        assert movements_table.num_rows() == 8

    def test_column_and_unique(self, movements_table):
        assert movements_table.unique("year") == [2024, 2025]
        assert movements_table.unique("code1") == ["700", "600", "610"]

    def test_unknown_column(self, movements_table):
        with pytest.raises(UnknownColumnError):
            movements_table.column("nope")

    def test_to_dicts(self):
        table = MovementsTable.from_records([{"code1": "700", "year": 2024}])
        [record] = table.to_dicts()
        assert set(record) == set(COLUMNS)
        assert record["code1"] == "700"
        assert record["movement_amount"] is None

    def test_empty(self):
        table = MovementsTable.empty()
        assert len(table) == 0
        assert table.unique("year") == []
        assert repr(table) == "MovementsTable(num_rows=0)"

    def test_equality(self, movement_records):
        assert MovementsTable.from_records(movement_records) == MovementsTable.from_records(
            movement_records
        )
