"""Tests for the render_statement command line."""

import csv
import json

import pytest
import yaml

from report_kernel.db.engine import create_tables, init_engine_from_url, reset_engine, session_scope
from report_kernel.models.movement import Movement
from scripts.render_statement import main

CSV_COLUMNS = [
    "code1", "code2", "name1", "statement_type", "account_code",
    "year", "period", "movement_amount",
]


@pytest.fixture
def definition_path(tmp_path, report_document):
    path = tmp_path / "income.yaml"
    path.write_text(yaml.safe_dump(report_document, allow_unicode=True), encoding="utf-8")
    return path


@pytest.fixture
def movements_csv(tmp_path, movement_records):
    path = tmp_path / "movements.csv"
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        writer.writerows(movement_records)
    return path


class TestValidateCommand:

    def test_valid(self, definition_path, capsys):
        assert main(["validate", str(definition_path)]) == 0
        assert "Errors" not in capsys.readouterr().out

    def test_invalid(self, tmp_path, report_document, capsys):
        report_document["layout"][2]["from"] = 40
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump(report_document, allow_unicode=True), encoding="utf-8")
        assert main(["validate", str(path)]) == 1
        assert "must be less than or equal to 'to' (20)" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        assert main(["validate", str(tmp_path / "nope.yaml")]) == 1
        assert "ERROR" in capsys.readouterr().err


class TestRenderCommand:

    def test_json_from_csv(self, definition_path, movements_csv, capsys):
        code = main([
            "render", str(definition_path),
            "--movements", str(movements_csv),
            "--years", "2024", "2025",
            "--format", "json",
        ])
        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["report_id"] == "test_income"
        operating = next(r for r in data["rows"] if r["order"] == 60)
        assert operating["amount_2024"] == "1000"
        assert operating["formatted_2025"] == "€ 1,200"

    def test_table_from_csv(self, definition_path, movements_csv, capsys):
        assert main(["render", str(definition_path), "--movements", str(movements_csv)]) == 0
        out = capsys.readouterr().out
        assert "Test Income Statement" in out
        assert "Gross profit" in out
        assert "€ 1,100" in out
        assert "Variance" in out

    def test_periods_restrict(self, definition_path, movements_csv, capsys):
        main([
            "render", str(definition_path),
            "--movements", str(movements_csv),
            "--years", "2024", "--periods", "01",
            "--format", "json",
        ])
        data = json.loads(capsys.readouterr().out)
        assert data["rows"][0]["amount_2024"] == "1000"

    def test_requires_a_source(self, definition_path, monkeypatch, capsys):
        monkeypatch.delenv("REPORT_DATABASE_URL", raising=False)
        assert main(["render", str(definition_path)]) == 2
        assert "REPORT_DATABASE_URL" in capsys.readouterr().err

    def test_from_database(self, tmp_path, definition_path, movement_records, monkeypatch, capsys):
        url = f"sqlite:///{tmp_path / 'movements.db'}"
        init_engine_from_url(url)
        try:
            create_tables()
            with session_scope() as session:
                session.add_all(Movement(**record) for record in movement_records)
            monkeypatch.setenv("REPORT_DATABASE_URL", url)
            assert main(["render", str(definition_path), "--years", "2025", "--format", "json"]) == 0
        finally:
            reset_engine()
        data = json.loads(capsys.readouterr().out)
        assert data["rows"][0]["amount_2025"] == "1800"

    def test_invalid_definition_reported(self, tmp_path, report_document, movements_csv, capsys):
        del report_document["variables"]["cogs"]
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump(report_document, allow_unicode=True), encoding="utf-8")
        assert main(["render", str(path), "--movements", str(movements_csv)]) == 1
        assert "ERROR" in capsys.readouterr().err
