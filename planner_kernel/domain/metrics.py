"""
Metrics -- the closed set of metric keys and the MetricRecord shape.

A MetricRecord maps metric keys to nullable Decimals for one
(version, year).  ``None`` means "unknown" and propagates through every
derivation; it is never silently turned into zero.
"""

from decimal import Decimal
from typing import Any

from planner_kernel.domain.values import to_decimal
from planner_kernel.exceptions import UnknownMetricKeyError

MetricRecord = dict[str, Decimal | None]

REVENUE_KEYS: tuple[str, ...] = (
    "revenue",
    "students_count",
    "avg_tuition_fee",
    "other_income",
)

PNL_KEYS: tuple[str, ...] = (
    "cost_of_sales",
    "gross_profit",
    "operating_expenses",
    "ebitda",
    "depreciation",
    "ebit",
    "interest_income",
    "interest_expense",
    "net_income",
)

BALANCE_SHEET_KEYS: tuple[str, ...] = (
    "assets",
    "assets_current",
    "cash",
    "receivables",
    "assets_fixed",
    "liabilities",
    "liabilities_current",
    "debt",
    "equity",
    "retained_earnings",
)

CASH_FLOW_KEYS: tuple[str, ...] = (
    "cf_operating",
    "cf_investing",
    "cf_financing",
    "cf_net_change",
    "cash_beginning",
    "cash_ending",
)

PROVISION_KEYS: tuple[str, ...] = (
    "provision_operational",
    "provision_contingency",
)

OTHER_KEYS: tuple[str, ...] = (
    "capex_total",
    "rent_expense",
    "lease_expense",
)

METRIC_KEYS: frozenset[str] = frozenset(
    REVENUE_KEYS + PNL_KEYS + BALANCE_SHEET_KEYS + CASH_FLOW_KEYS
    + PROVISION_KEYS + OTHER_KEYS
)

# Written to version_metrics after every engine run, in this order.
PERSISTED_METRIC_KEYS: tuple[str, ...] = (
    # P&L
    "revenue",
    "gross_profit",
    "ebitda",
    "ebit",
    "net_income",
    # Balance sheet
    "assets",
    "assets_current",
    "cash",
    "receivables",
    "assets_fixed",
    "liabilities",
    "liabilities_current",
    "debt",
    "equity",
    "retained_earnings",
    # Cash flow
    "cf_operating",
    "cf_investing",
    "cf_financing",
    "cf_net_change",
    "cash_beginning",
    "cash_ending",
)


def make_record(**values: Any) -> MetricRecord:
    """Build a MetricRecord, converting numbers to Decimal.

    Raises:
        UnknownMetricKeyError: if a key is outside METRIC_KEYS.
    """
    record: MetricRecord = {}
    for key, value in values.items():
        if key not in METRIC_KEYS:
            raise UnknownMetricKeyError(key)
        record[key] = None if value is None else to_decimal(value)
    return record
