"""
planner_engines.metrics -- Derived P&L, provision, balance-sheet and cash-flow metrics.

Responsibility:
    Derive the calculated fields of a MetricRecord from its input fields,
    optionally referencing the previous year's converged record for
    cumulative and carry-forward values (retained earnings, opening cash).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import planner_kernel domain/logging/exceptions.
    Consumed by the cash engine on every convergence iteration.

Invariants enforced:
    - Null propagation: a derived field is None whenever a required operand
      is None, unless an explicit fallback is documented on the function.
    - Interest legs are never zero: a leg whose amount is not strictly
      positive is reported as None.
    - Rates are explicit parameters (``InterestRates``); nothing here reads
      configuration or storage.
    - Decimal-only arithmetic.

Failure modes:
    - None.  Missing data is represented as None, never raised.

Usage:
    from planner_engines.metrics import calculate_all_metrics

    derived = calculate_all_metrics(record, previous_year_metrics=prior)
    record.update(derived)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from planner_kernel.domain.metrics import MetricRecord
from planner_kernel.domain.values import to_decimal
from planner_kernel.exceptions import EngineConfigError
from planner_kernel.logging_config import get_logger
from planner_engines.tracer import traced_engine

logger = get_logger("engines.metrics")

OPERATIONAL_PROVISION_RATE = Decimal("0.02")  # of operating expenses
CONTINGENCY_PROVISION_RATE = Decimal("0.05")  # of net income, else revenue

_ZERO = Decimal("0")
_TWO = Decimal("2")


@dataclass(frozen=True)
class InterestRates:
    """Deposit and overdraft rates applied to the average cash balance."""

    deposit_rate: Decimal = Decimal("0.05")
    overdraft_rate: Decimal = Decimal("0.12")

    def __post_init__(self) -> None:
        for name in ("deposit_rate", "overdraft_rate"):
            value = to_decimal(getattr(self, name))
            if value < _ZERO:
                raise EngineConfigError(name, value, "rate cannot be negative")
            object.__setattr__(self, name, value)


DEFAULT_INTEREST_RATES = InterestRates()


def _value(metrics: Mapping[str, Decimal | None], key: str) -> Decimal | None:
    return metrics.get(key)


# ---------------------------------------------------------------------------
# P&L
# ---------------------------------------------------------------------------


def calculate_pnl_metrics(metrics: Mapping[str, Decimal | None]) -> MetricRecord:
    """
    Derive gross profit, EBITDA, EBIT and net income.

    Formulas:
        gross_profit = revenue - cost_of_sales
        ebitda       = gross_profit - operating_expenses
        ebit         = ebitda - depreciation   (ebitda when depreciation is None)
        net_income   = ebit + interest_income - interest_expense
                       (missing interest legs count as 0; None when ebit is None)
    """
    revenue = _value(metrics, "revenue")
    cost_of_sales = _value(metrics, "cost_of_sales")
    operating_expenses = _value(metrics, "operating_expenses")
    depreciation = _value(metrics, "depreciation")
    interest_income = _value(metrics, "interest_income")
    interest_expense = _value(metrics, "interest_expense")

    gross_profit = (
        revenue - cost_of_sales
        if revenue is not None and cost_of_sales is not None
        else None
    )

    ebitda = (
        gross_profit - operating_expenses
        if gross_profit is not None and operating_expenses is not None
        else None
    )

    if ebitda is not None and depreciation is not None:
        ebit = ebitda - depreciation
    else:
        ebit = ebitda

    net_income = (
        ebit + (interest_income or _ZERO) - (interest_expense or _ZERO)
        if ebit is not None
        else None
    )

    return {
        "gross_profit": gross_profit,
        "ebitda": ebitda,
        "ebit": ebit,
        "net_income": net_income,
    }


def calculate_interest_from_cash(
    cash_beginning: Decimal | None,
    cash_ending: Decimal | None,
    rates: InterestRates = DEFAULT_INTEREST_RATES,
) -> MetricRecord:
    """
    Interest on the average cash balance of the year.

    average = (cash_beginning + cash_ending) / 2
    interest_income  = average * deposit_rate     when average > 0
    interest_expense = |average| * overdraft_rate when average < 0

    Postconditions:
        Both legs are None when either cash operand is None.  A leg whose
        amount is not strictly positive is None, never zero.
    """
    if cash_beginning is None or cash_ending is None:
        return {"interest_income": None, "interest_expense": None}

    average = (cash_beginning + cash_ending) / _TWO

    income = average * rates.deposit_rate if average > _ZERO else _ZERO
    expense = abs(average) * rates.overdraft_rate if average < _ZERO else _ZERO

    return {
        "interest_income": income if income > _ZERO else None,
        "interest_expense": expense if expense > _ZERO else None,
    }


# ---------------------------------------------------------------------------
# Provisions
# ---------------------------------------------------------------------------


def calculate_provision_metrics(metrics: Mapping[str, Decimal | None]) -> MetricRecord:
    """
    Operational provision = 2% of operating expenses.
    Contingency provision = 5% of net income, falling back to revenue.
    """
    operating_expenses = _value(metrics, "operating_expenses")
    net_income = _value(metrics, "net_income")
    revenue = _value(metrics, "revenue")

    provision_operational = (
        operating_expenses * OPERATIONAL_PROVISION_RATE
        if operating_expenses is not None
        else None
    )

    contingency_base = net_income if net_income is not None else revenue
    provision_contingency = (
        contingency_base * CONTINGENCY_PROVISION_RATE
        if contingency_base is not None
        else None
    )

    return {
        "provision_operational": provision_operational,
        "provision_contingency": provision_contingency,
    }


# ---------------------------------------------------------------------------
# Balance sheet
# ---------------------------------------------------------------------------


def _sum_with_fallback(a: Decimal | None, b: Decimal | None) -> Decimal | None:
    """a + b when both are known, else whichever one is known."""
    if a is not None and b is not None:
        return a + b
    return a if a is not None else b


def calculate_balance_sheet_metrics(
    metrics: Mapping[str, Decimal | None],
    previous_year_metrics: Mapping[str, Decimal | None] | None = None,
) -> MetricRecord:
    """
    assets            = assets_current + assets_fixed (either alone as fallback)
    liabilities       = liabilities_current + debt    (either alone as fallback)
    equity            = assets - liabilities          (None unless both known)
    retained_earnings = previous retained_earnings + net_income
                        (either alone as fallback)
    """
    assets = _sum_with_fallback(
        _value(metrics, "assets_current"), _value(metrics, "assets_fixed")
    )
    liabilities = _sum_with_fallback(
        _value(metrics, "liabilities_current"), _value(metrics, "debt")
    )
    equity = (
        assets - liabilities
        if assets is not None and liabilities is not None
        else None
    )

    previous_retained = (
        previous_year_metrics.get("retained_earnings")
        if previous_year_metrics is not None
        else None
    )
    retained_earnings = _sum_with_fallback(previous_retained, _value(metrics, "net_income"))

    return {
        "assets": assets,
        "liabilities": liabilities,
        "equity": equity,
        "retained_earnings": retained_earnings,
    }


# ---------------------------------------------------------------------------
# Cash flow
# ---------------------------------------------------------------------------


def calculate_cash_flow_metrics(
    metrics: Mapping[str, Decimal | None],
    previous_year_metrics: Mapping[str, Decimal | None] | None = None,
) -> MetricRecord:
    """
    cf_net_change  = cf_operating + cf_investing + cf_financing
                     (missing legs count as 0; None when all three are None)
    cash_beginning = input cash_beginning, else previous year's cash_ending
    cash_ending    = cash_beginning + cf_net_change (None without cash_beginning)
    """
    legs = [
        _value(metrics, "cf_operating"),
        _value(metrics, "cf_investing"),
        _value(metrics, "cf_financing"),
    ]
    if all(leg is None for leg in legs):
        cf_net_change = None
    else:
        cf_net_change = sum((leg for leg in legs if leg is not None), _ZERO)

    cash_beginning = _value(metrics, "cash_beginning")
    if cash_beginning is None and previous_year_metrics is not None:
        cash_beginning = previous_year_metrics.get("cash_ending")

    cash_ending = (
        cash_beginning + (cf_net_change or _ZERO)
        if cash_beginning is not None
        else None
    )

    return {
        "cf_net_change": cf_net_change,
        "cash_beginning": cash_beginning,
        "cash_ending": cash_ending,
    }


# ---------------------------------------------------------------------------
# All metrics
# ---------------------------------------------------------------------------


@traced_engine("metrics", "1.0")
def calculate_all_metrics(
    metrics: Mapping[str, Decimal | None],
    previous_year_metrics: Mapping[str, Decimal | None] | None = None,
) -> MetricRecord:
    """
    Run every derivation over one record.

    Provisions and retained earnings read the net income derived in this
    same call, so a single pass is internally consistent.  A P&L figure the
    call cannot derive leaves the record's own value in place.

    Returns:
        The derived fields only; callers merge them into their record.
    """
    pnl = calculate_pnl_metrics(metrics)
    with_pnl = {**metrics, **{k: v for k, v in pnl.items() if v is not None}}

    derived: MetricRecord = {}
    derived.update(pnl)
    derived.update(calculate_provision_metrics(with_pnl))
    derived.update(calculate_balance_sheet_metrics(with_pnl, previous_year_metrics))
    derived.update(calculate_cash_flow_metrics(metrics, previous_year_metrics))
    return derived
