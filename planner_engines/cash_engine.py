"""
planner_engines.cash_engine -- Per-year cash/balance convergence and the multi-year driver.

Responsibility:
    Reconcile the three interdependent statements of one year by fixed-point
    iteration: derive metrics, check the balance sheet and the cash position,
    adjust, repeat.  Chain years strictly in order so each year starts from the
    previous year's converged record.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import planner_kernel domain/logging/exceptions and sibling
    engines (metrics, tracer).
    Consumed by planner_services.cash_engine_service.

Invariants enforced:
    - Bounded loop: at most ``config.max_iterations`` iterations per year.
    - Convergence: a year reported converged satisfies
      |assets - liabilities - equity| < tolerance and |cash - cash_ending| < tolerance.
    - Check history accumulates across every iteration, two checks per
      iteration, in the order balance_sheet, cash_balance.
    - Sequential chaining: year N receives year N-1's converged record; the
      driver never reorders or parallelizes years.
    - Stateless: all continuity is passed explicitly as arguments.
    - Decimal-only arithmetic.

Failure modes:
    - Non-convergence is NOT an error: the output carries converged=False
      with the full check history and ``last_error``.
    - EngineConfigError from ``EngineConfig`` on invalid settings.
    - InvalidYearRangeError from ``run_cash_engine_for_years`` on a bad range.

Usage:
    from planner_engines.cash_engine import EngineConfig, run_cash_engine_for_years

    outputs = run_cash_engine_for_years(2025, 2052, inputs_by_year, EngineConfig())
    for year, output in outputs.items():
        print(year, output.convergence.converged, output.metrics["cash_ending"])
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from planner_kernel.domain.metrics import MetricRecord
from planner_kernel.domain.values import (
    INFINITY,
    decimal_from_json,
    decimal_to_json,
    to_decimal,
)
from planner_kernel.domain.years import validate_year_range, years_in_range
from planner_kernel.exceptions import EngineConfigError
from planner_kernel.logging_config import get_logger
from planner_engines.metrics import (
    DEFAULT_INTEREST_RATES,
    InterestRates,
    calculate_all_metrics,
    calculate_interest_from_cash,
)
from planner_engines.tracer import traced_engine

logger = get_logger("engines.cash_engine")

_ZERO = Decimal("0")

BALANCE_SHEET_CHECK = "balance_sheet"
CASH_BALANCE_CHECK = "cash_balance"


class ConvergenceCheck(str, Enum):
    """Which checks must pass for a year to count as converged."""

    BS_CF_BALANCE = "bs_cf_balance"  # balance sheet and cash
    CASH_BALANCE = "cash_balance"  # cash only


@dataclass(frozen=True)
class EngineConfig:
    """
    Cash engine settings.

    Contract:
        max_iterations >= 1, tolerance >= 0.  ``convergence_check`` accepts
        the enum or its string value.  ``tolerance`` is normalized to Decimal.
    """

    max_iterations: int = 3
    tolerance: Decimal = Decimal("0.01")
    convergence_check: ConvergenceCheck = ConvergenceCheck.BS_CF_BALANCE
    rates: InterestRates = DEFAULT_INTEREST_RATES

    def __post_init__(self) -> None:
        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, int):
            raise EngineConfigError(
                "max_iterations", self.max_iterations, "must be an integer",
            )
        if self.max_iterations < 1:
            raise EngineConfigError(
                "max_iterations", self.max_iterations, "must be at least 1",
            )

        try:
            tolerance = to_decimal(self.tolerance)
        except (TypeError, ValueError) as exc:
            raise EngineConfigError("tolerance", self.tolerance, str(exc)) from exc
        if tolerance.is_nan() or tolerance < _ZERO:
            raise EngineConfigError("tolerance", self.tolerance, "must be >= 0")
        object.__setattr__(self, "tolerance", tolerance)

        try:
            check = ConvergenceCheck(self.convergence_check)
        except ValueError as exc:
            raise EngineConfigError(
                "convergence_check", self.convergence_check,
                "must be one of " + ", ".join(c.value for c in ConvergenceCheck),
            ) from exc
        object.__setattr__(self, "convergence_check", check)


@dataclass(frozen=True)
class CheckResult:
    """One balance check evaluated in one iteration."""

    name: str
    passed: bool
    value: Decimal
    target: Decimal = _ZERO

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "value": decimal_to_json(self.value),
            "target": decimal_to_json(self.target),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CheckResult:
        return cls(
            name=data["name"],
            passed=bool(data["passed"]),
            value=to_decimal(data["value"]),
            target=to_decimal(data.get("target", "0")),
        )


@dataclass(frozen=True)
class ConvergenceStatus:
    """Outcome of the convergence loop for one year."""

    converged: bool
    iterations: int
    max_iterations: int
    tolerance: Decimal
    last_error: Decimal | None
    checks: tuple[CheckResult, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "converged": self.converged,
            "iterations": self.iterations,
            "max_iterations": self.max_iterations,
            "tolerance": decimal_to_json(self.tolerance),
            "last_error": decimal_to_json(self.last_error),
            "checks": [check.to_dict() for check in self.checks],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ConvergenceStatus:
        return cls(
            converged=bool(data["converged"]),
            iterations=int(data["iterations"]),
            max_iterations=int(data["max_iterations"]),
            tolerance=to_decimal(data["tolerance"]),
            last_error=decimal_from_json(data.get("last_error")),
            checks=tuple(CheckResult.from_dict(c) for c in data.get("checks", ())),
        )


@dataclass(frozen=True)
class CashEngineOutput:
    """Final record and convergence diagnostics for one year."""

    year: int
    metrics: MetricRecord = field(default_factory=dict)
    convergence: ConvergenceStatus | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "metrics": {k: decimal_to_json(v) for k, v in self.metrics.items()},
            "convergence": self.convergence.to_dict() if self.convergence else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CashEngineOutput:
        convergence = data.get("convergence")
        return cls(
            year=int(data["year"]),
            metrics={k: decimal_from_json(v) for k, v in data.get("metrics", {}).items()},
            convergence=ConvergenceStatus.from_dict(convergence) if convergence else None,
        )


# ---------------------------------------------------------------------------
# Checks and adjustments
# ---------------------------------------------------------------------------


def _zero_if_none(value: Decimal | None) -> Decimal:
    return value if value is not None else _ZERO


def balance_sheet_difference(record: Mapping[str, Decimal | None]) -> Decimal:
    """|(assets - liabilities) - equity| with missing operands counted as 0."""
    assets = _zero_if_none(record.get("assets"))
    liabilities = _zero_if_none(record.get("liabilities"))
    equity = _zero_if_none(record.get("equity"))
    return abs((assets - liabilities) - equity)


def cash_difference(record: Mapping[str, Decimal | None]) -> Decimal:
    """|cash - cash_ending|, or Infinity when either side is unknown."""
    cash = record.get("cash")
    cash_ending = record.get("cash_ending")
    if cash is None or cash_ending is None:
        return INFINITY
    return abs(cash - cash_ending)


def _merge_derived(working: MetricRecord, derived: Mapping[str, Decimal | None]) -> None:
    for key, value in derived.items():
        if value is not None or key not in working:
            working[key] = value


def _adjust(working: MetricRecord, balance_sheet_passed: bool, cash_passed: bool) -> None:
    """
    Move cash to cash_ending and carry the same delta into assets, then
    rebalance equity against the adjusted assets.

    The delta lands where the next pass reads assets from: assets_current
    when the sheet has asset components, otherwise the ``assets`` total.
    A sheet that already balanced keeps its difference: equity moves with
    the cash delta.  A sheet that failed gets equity = assets - liabilities.
    """
    delta = _ZERO
    adjusted_assets = _zero_if_none(working.get("assets"))
    cash_ending = working.get("cash_ending")
    if not cash_passed and cash_ending is not None:
        delta = cash_ending - _zero_if_none(working.get("cash"))
        adjusted_assets += delta
        working["cash"] = cash_ending
        has_components = (
            working.get("assets_current") is not None
            or working.get("assets_fixed") is not None
        )
        if has_components:
            working["assets_current"] = _zero_if_none(working.get("assets_current")) + delta
        else:
            working["assets"] = adjusted_assets

    if not balance_sheet_passed:
        working["equity"] = adjusted_assets - _zero_if_none(working.get("liabilities"))
    elif delta != _ZERO:
        working["equity"] = _zero_if_none(working.get("equity")) + delta


# ---------------------------------------------------------------------------
# Engine entry points
# ---------------------------------------------------------------------------


@traced_engine("cash_engine", "1.0", fingerprint_fields=("year", "input_metrics"))
def run_cash_engine_for_year(
    *,
    year: int,
    input_metrics: Mapping[str, Decimal | None],
    previous_year_metrics: Mapping[str, Decimal | None] | None = None,
    config: EngineConfig | None = None,
) -> CashEngineOutput:
    """
    Converge one year.

    Preconditions:
        ``input_metrics`` may be partial; missing keys are treated as null.
    Postconditions:
        ``input_metrics`` and ``previous_year_metrics`` are not mutated.
        The returned status holds two CheckResults per iteration run.
    """
    config = config or EngineConfig()
    tolerance = config.tolerance
    working: MetricRecord = dict(input_metrics)
    checks: list[CheckResult] = []
    interest_memo: dict[tuple[Decimal | None, Decimal | None], MetricRecord] = {}

    iterations = 0
    converged = False
    bs_diff = cash_diff = INFINITY

    while iterations < config.max_iterations:
        iterations += 1

        if working.get("interest_income") is None and working.get("interest_expense") is None:
            cash_pair = (working.get("cash_beginning"), working.get("cash_ending"))
            if cash_pair not in interest_memo:
                interest_memo[cash_pair] = calculate_interest_from_cash(
                    cash_pair[0], cash_pair[1], config.rates,
                )
            working.update(interest_memo[cash_pair])

        _merge_derived(working, calculate_all_metrics(working, previous_year_metrics))

        bs_diff = balance_sheet_difference(working)
        cash_diff = cash_difference(working)
        bs_passed = bs_diff < tolerance
        cash_passed = cash_diff < tolerance
        checks.append(CheckResult(BALANCE_SHEET_CHECK, bs_passed, bs_diff))
        checks.append(CheckResult(CASH_BALANCE_CHECK, cash_passed, cash_diff))

        if config.convergence_check is ConvergenceCheck.BS_CF_BALANCE:
            converged = bs_passed and cash_passed
        else:
            converged = cash_passed

        if converged:
            break

        _adjust(working, bs_passed, cash_passed)

    if converged:
        last_error = None
    elif config.convergence_check is ConvergenceCheck.BS_CF_BALANCE:
        last_error = max(bs_diff, cash_diff)
    else:
        last_error = cash_diff

    status = ConvergenceStatus(
        converged=converged,
        iterations=iterations,
        max_iterations=config.max_iterations,
        tolerance=tolerance,
        last_error=last_error,
        checks=tuple(checks),
    )

    if converged:
        logger.debug(
            "cash_engine_year_converged",
            extra={"year": year, "iterations": iterations},
        )
    else:
        logger.warning(
            "cash_engine_year_not_converged",
            extra={
                "year": year,
                "iterations": iterations,
                "last_error": str(last_error),
                "convergence_check": config.convergence_check.value,
            },
        )

    return CashEngineOutput(year=year, metrics=working, convergence=status)


@traced_engine("cash_engine_years", "1.0", fingerprint_fields=("start_year", "end_year"))
def run_cash_engine_for_years(
    start_year: int,
    end_year: int,
    input_by_year: Mapping[int, Mapping[str, Decimal | None]],
    config: EngineConfig | None = None,
) -> dict[int, CashEngineOutput]:
    """
    Run the engine for every year in ``start_year..end_year`` inclusive.

    Years missing from ``input_by_year`` run on an empty record, so they still
    carry the previous year's closing cash forward.

    Raises:
        InvalidYearRangeError: when the range is inverted or outside 2023-2052.
    """
    validate_year_range(start_year, end_year)
    config = config or EngineConfig()

    results: dict[int, CashEngineOutput] = {}
    previous: MetricRecord | None = None

    for year in years_in_range(start_year, end_year):
        output = run_cash_engine_for_year(
            year=year,
            input_metrics=input_by_year.get(year, {}),
            previous_year_metrics=previous,
            config=config,
        )
        results[year] = output
        previous = output.metrics

    converged_years = sum(
        1 for o in results.values() if o.convergence is not None and o.convergence.converged
    )
    logger.info(
        "cash_engine_years_completed",
        extra={
            "start_year": start_year,
            "end_year": end_year,
            "years": len(results),
            "converged_years": converged_years,
        },
    )
    return results
