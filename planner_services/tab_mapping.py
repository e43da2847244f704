"""
Mapping helpers from free-form version tabs to engine input records.

The P&L, balance-sheet and cash-flow tabs are JSON documents edited by an
external UI.  Missing or non-numeric fields become None; nothing here raises
on bad data.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from planner_kernel.domain.metrics import MetricRecord
from planner_kernel.domain.values import decimal_or_none
from planner_kernel.domain.years import years_in_range

PNL_FIELDS = (
    "revenue",
    "students_count",
    "avg_tuition_fee",
    "cost_of_sales",
    "operating_expenses",
    "depreciation",
    "interest_income",
    "interest_expense",
)

BALANCE_SHEET_FIELDS = (
    "assets_current",
    "cash",
    "receivables",
    "assets_fixed",
    "liabilities_current",
    "debt",
)

# metric key -> tab field prefix
CASH_FLOW_LEGS = {
    "cf_operating": "operating",
    "cf_investing": "investing",
    "cf_financing": "financing",
}


def _other_income(value: Any) -> Decimal | None:
    """A mapping of income lines is summed (non-numbers count as 0)."""
    if isinstance(value, Mapping):
        return sum(
            (decimal_or_none(v) or Decimal("0") for v in value.values()),
            Decimal("0"),
        )
    return decimal_or_none(value)


def _cash_flow_leg(cf_data: Mapping[str, Any], prefix: str) -> Decimal | None:
    """Net figure if present, else cash_in - cash_out when both are numbers."""
    net = decimal_or_none(cf_data.get(prefix))
    if net is not None:
        return net
    cash_in = decimal_or_none(cf_data.get(f"{prefix}_cash_in"))
    cash_out = decimal_or_none(cf_data.get(f"{prefix}_cash_out"))
    if cash_in is not None and cash_out is not None:
        return cash_in - cash_out
    return None


def extract_metrics_from_tabs(tabs: Mapping[str, Mapping[str, Any] | None]) -> MetricRecord:
    """Build the base input record from ``{"pnl": {...}, "bs": {...}, "cf": {...}}``."""
    pnl = tabs.get("pnl") or {}
    bs = tabs.get("bs") or {}
    cf = tabs.get("cf") or {}

    record: MetricRecord = {key: decimal_or_none(pnl.get(key)) for key in PNL_FIELDS}
    record["other_income"] = _other_income(pnl.get("other_income"))
    record.update({key: decimal_or_none(bs.get(key)) for key in BALANCE_SHEET_FIELDS})
    for metric_key, prefix in CASH_FLOW_LEGS.items():
        record[metric_key] = _cash_flow_leg(cf, prefix)
    record["cash_beginning"] = decimal_or_none(cf.get("beginning_cash"))
    return record


def build_inputs_for_years(
    base: Mapping[str, Decimal | None], start_year: int, end_year: int,
) -> dict[int, MetricRecord]:
    """
    Copy ``base`` unchanged into every year of ``start_year..end_year``.

    Every year sees the same inputs, opening cash included; only retained
    earnings and values a year leaves null follow from the previous year.
    """
    # TODO: per-year overrides once the tabs carry year-specific figures.
    return {year: dict(base) for year in years_in_range(start_year, end_year)}
