"""Tests for mapping version tabs onto engine input records."""

from decimal import Decimal

from planner_services.tab_mapping import build_inputs_for_years, extract_metrics_from_tabs


class TestExtractMetricsFromTabs:

    def test_sample_tabs(self, sample_tabs):
        record = extract_metrics_from_tabs(sample_tabs)

        assert record["revenue"] == Decimal("1000000")
        assert record["other_income"] == Decimal("15000")
        assert record["cash"] == Decimal("500000")
        assert record["cf_operating"] == Decimal("250000")
        assert record["cf_investing"] == Decimal("-100000")
        assert record["cf_financing"] == Decimal("-50000")
        assert record["cash_beginning"] == Decimal("500000")

    def test_missing_tabs_give_nulls(self):
        record = extract_metrics_from_tabs({})

        assert record["revenue"] is None
        assert record["cf_operating"] is None
        assert record["cash_beginning"] is None

    def test_non_numeric_values_become_null(self):
        record = extract_metrics_from_tabs({"pnl": {"revenue": "lots", "depreciation": True}})

        assert record["revenue"] is None
        assert record["depreciation"] is None

    def test_net_figure_wins_over_components(self):
        record = extract_metrics_from_tabs({
            "cf": {"financing": 10, "financing_cash_in": 500, "financing_cash_out": 100},
        })
        assert record["cf_financing"] == Decimal("10")

    def test_half_known_components_give_null(self):
        record = extract_metrics_from_tabs({"cf": {"operating_cash_in": 500}})
        assert record["cf_operating"] is None

    def test_other_income_lines_ignore_non_numbers(self):
        record = extract_metrics_from_tabs({"pnl": {"other_income": {"a": 5, "b": "n/a"}}})
        assert record["other_income"] == Decimal("5")

    def test_null_tab_payload(self):
        record = extract_metrics_from_tabs({"pnl": None, "bs": {"debt": 3}})
        assert record["debt"] == Decimal("3")


class TestBuildInputsForYears:

    def test_every_year_gets_the_base_record(self, sample_tabs):
        base = extract_metrics_from_tabs(sample_tabs)

        inputs = build_inputs_for_years(base, 2025, 2027)

        assert list(inputs) == [2025, 2026, 2027]
        assert all(record == base for record in inputs.values())
        assert inputs[2027]["cash_beginning"] == Decimal("500000")

    def test_records_are_independent_copies(self):
        inputs = build_inputs_for_years({"revenue": Decimal("1")}, 2025, 2026)

        inputs[2025]["revenue"] = Decimal("2")

        assert inputs[2026]["revenue"] == Decimal("1")
