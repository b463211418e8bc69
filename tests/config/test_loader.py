"""Tests for report definition parsing and loading (report_config/loader.py)."""

import json

import pytest

from report_config import (
    list_bundled_reports,
    load_bundled_report,
    load_report_definition,
)
from report_config.loader import (
    compute_checksum,
    dump_report_definition,
    load_report_file,
    parse_layout_item,
    parse_report_definition,
    parse_variable,
)
from report_config.schema import (
    AggregateFunction,
    CategoryItem,
    FormatOptions,
    FormatType,
    LayoutType,
    SpacerItem,
    StatementType,
    StyleType,
    SubtotalItem,
    VariableItem,
)
from report_kernel.exceptions import (
    InvalidLayoutItemError,
    InvalidReportDefinitionError,
    MissingFieldError,
    ReportDefinitionError,
    ReportNotFoundError,
)


class TestParseLayoutItem:

    def test_variable_item_defaults(self):
        item = parse_layout_item({"order": 10, "type": "variable", "variable": "revenue"})
        assert isinstance(item, VariableItem)
        assert item.type is LayoutType.VARIABLE
        assert item.style is StyleType.NORMAL
        assert item.indent == 0
        assert item.format is None
        assert item.label == ""

    def test_subtotal_bounds(self):
        item = parse_layout_item({"order": 30, "type": "subtotal", "from": 10, "to": 20})
        assert isinstance(item, SubtotalItem)
        assert (item.from_order, item.to_order) == (10, 20)

    def test_category_filter_copied(self):
        raw = {"code1": "700"}
        item = parse_layout_item({"order": 5, "type": "category", "filter": raw})
        assert isinstance(item, CategoryItem)
        assert item.filter == raw
        assert item.filter is not raw

    def test_spacer(self):
        assert isinstance(parse_layout_item({"order": 40, "type": "spacer"}), SpacerItem)

    @pytest.mark.parametrize(
        "data, message",
        [
            ({"order": 10, "type": "variable"}, "Variable layout item must have a 'variable' field"),
            ({"order": 10, "type": "calculated"}, "Calculated layout item must have a 'expression' field"),
            ({"order": 10, "type": "category"}, "Category layout item must have a 'filter' field"),
            ({"order": 10, "type": "subtotal", "to": 20}, "Subtotal layout item must have a 'from' field"),
        ],
    )
    def test_missing_type_specific_field(self, data, message):
        with pytest.raises(MissingFieldError, match=message):
            parse_layout_item(data)

    def test_missing_type(self):
        with pytest.raises(MissingFieldError):
            parse_layout_item({"order": 10})

    def test_invalid_enum(self):
        with pytest.raises(InvalidLayoutItemError):
            parse_layout_item({"order": 10, "type": "chart"})

    def test_indent_out_of_range(self):
        with pytest.raises(InvalidLayoutItemError):
            parse_layout_item({"order": 10, "type": "spacer", "indent": 4})

    def test_negative_order(self):
        with pytest.raises(InvalidLayoutItemError):
            parse_layout_item({"order": -1, "type": "spacer"})


class TestParseVariable:

    def test_aggregate_defaults_to_sum(self):
        var = parse_variable("revenue", {"filter": {"code1": "700"}})
        assert var.aggregate is AggregateFunction.SUM

    def test_aggregate_case_insensitive(self):
        assert parse_variable("x", {"filter": {}, "aggregate": "AVERAGE"}).aggregate is AggregateFunction.AVERAGE

    def test_unknown_aggregate(self):
        with pytest.raises(InvalidLayoutItemError):
            parse_variable("x", {"filter": {}, "aggregate": "median"})

    def test_filter_required(self):
        with pytest.raises(MissingFieldError):
            parse_variable("x", {"aggregate": "sum"})


class TestParseReportDefinition:

    def test_typed_definition(self, report_document):
        definition = parse_report_definition(report_document)
        assert definition.report_id == "test_income"
        assert definition.statement_type is StatementType.INCOME
        assert len(definition.layout) == 7
        assert set(definition.variables) == {"revenue", "cogs"}
        assert definition.formatting[FormatType.CURRENCY] == FormatOptions(
            decimals=0, thousands=True, symbol="€"
        )
        assert definition.item_by_order(30).label == "Gross profit"
        assert definition.item_by_order(999) is None

    def test_sorted_layout(self, report_document):
        report_document["layout"].reverse()
        definition = parse_report_definition(report_document)
        assert [i.order for i in definition.sorted_layout()] == [10, 20, 30, 40, 50, 60, 70]

    def test_missing_required_field(self, report_document):
        del report_document["statementType"]
        with pytest.raises(MissingFieldError, match="statementType"):
            parse_report_definition(report_document)

    def test_layout_must_be_list(self, report_document):
        report_document["layout"] = {"order": 10}
        with pytest.raises(ReportDefinitionError, match="layout must be a list"):
            parse_report_definition(report_document)

    def test_checksum_is_stable(self, report_document):
        first = parse_report_definition(report_document)
        second = parse_report_definition(dict(reversed(list(report_document.items()))))
        assert first.checksum == second.checksum == compute_checksum(report_document)
        assert len(first.checksum) == 64

    def test_dump_round_trips_through_parser(self, report_document):
        definition = parse_report_definition(report_document)
        document = dump_report_definition(definition)
        assert document["reportId"] == "test_income"
        assert document["layout"][2]["from"] == 10
        reparsed = parse_report_definition(document)
        assert reparsed.layout == definition.layout
        assert reparsed.variables == definition.variables


class TestLoadReportFile:

    def test_yaml(self, tmp_path):
        path = tmp_path / "report.yaml"
        path.write_text("reportId: x\nlayout: []\n", encoding="utf-8")
        assert load_report_file(path) == {"reportId": "x", "layout": []}

    def test_json_through_yaml_parser(self, tmp_path, report_document):
        path = tmp_path / "report.json"
        path.write_text(json.dumps(report_document), encoding="utf-8")
        assert load_report_file(path) == report_document

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_report_file(path) == {}

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ReportDefinitionError, match="document must be a mapping"):
            load_report_file(path)


class TestLoadReportDefinition:

    def test_valid_file_emits_trace(self, tmp_path, report_document, captured_logs):
        path = tmp_path / "test_income.json"
        path.write_text(json.dumps(report_document), encoding="utf-8")

        definition = load_report_definition(path)

        assert definition.report_id == "test_income"
        trace = next(r for r in captured_logs() if r["message"] == "REPORT_DEFINITION_TRACE")
        assert trace["report_id"] == "test_income"
        assert trace["checksum"] == definition.checksum
        assert trace["layout_item_count"] == 7

    def test_invalid_file_carries_result(self, tmp_path, report_document):
        report_document["layout"][1]["order"] = 10
        path = tmp_path / "broken.json"
        path.write_text(json.dumps(report_document), encoding="utf-8")

        with pytest.raises(InvalidReportDefinitionError) as exc:
            load_report_definition(path)
        assert any("10" in m for m in exc.value.validation_result.error_messages())


class TestBundledReports:

    def test_list(self):
        assert list_bundled_reports() == ["balance_sheet", "cash_flow", "income_statement"]

    @pytest.mark.parametrize("report_id", ["balance_sheet", "cash_flow", "income_statement"])
    def test_bundled_definitions_load(self, report_id):
        definition = load_bundled_report(report_id)
        assert definition.report_id == report_id

    def test_unknown(self):
        with pytest.raises(ReportNotFoundError):
            load_bundled_report("nope")

    def test_custom_directory(self, tmp_path):
        assert list_bundled_reports(tmp_path) == []
