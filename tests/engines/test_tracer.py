"""Tests for the engine invocation tracer."""

from decimal import Decimal

import pytest

from report_engines.tracer import compute_input_fingerprint, traced_engine


@traced_engine("sample_engine", "2.1", fingerprint_fields=("amounts", "label"))
def _sample(amounts, label="x", fail=False):
    if fail:
        raise ValueError("boom")
    return sum(amounts, Decimal("0"))


def _traces(captured_logs):
    return [r for r in captured_logs() if r["message"] == "REPORT_ENGINE_TRACE"]


class TestFingerprint:

    def test_deterministic_and_short(self):
        fp = compute_input_fingerprint(("a",), {"a": {"x": 1, "y": [Decimal("1.0")]}})
        assert fp == compute_input_fingerprint(("a",), {"a": {"y": [Decimal("1.0")], "x": 1}})
        assert len(fp) == 16
        int(fp, 16)

    def test_sequence_order_matters(self):
        assert compute_input_fingerprint(("a",), {"a": [1, 2]}) != compute_input_fingerprint(("a",), {"a": [2, 1]})

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("a",), {}) == compute_input_fingerprint(("a",), {"a": None})


class TestTracedEngine:

    def test_return_value_and_trace(self, captured_logs):
        assert _sample([Decimal("1"), Decimal("2")]) == Decimal("3")
        [trace] = _traces(captured_logs)
        assert trace["engine_name"] == "sample_engine"
        assert trace["engine_version"] == "2.1"
        assert trace["outcome"] == "ok"
        assert trace["function"] == "_sample"
        assert trace["duration_ms"] >= 0

    def test_positional_and_keyword_binding_agree(self, captured_logs):
        _sample([Decimal("1")], "y")
        _sample(amounts=[Decimal("1")], label="y")
        first, second = _traces(captured_logs)
        assert first["input_fingerprint"] == second["input_fingerprint"]

    def test_error_outcome_and_propagation(self, captured_logs):
        with pytest.raises(ValueError, match="boom"):
            _sample([], fail=True)
        [trace] = _traces(captured_logs)
        assert trace["outcome"] == "error"

    def test_wraps_metadata(self):
        assert _sample.__name__ == "_sample"
