"""
Module: planner_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    planner_services and scripts.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import planner_kernel domain/logging/exceptions (and sibling
    engine modules).
    MUST NOT import planner_config or planner_services.

Invariants enforced:
    - Purity: engines never read configuration, storage or the clock.
      Interest rates and convergence settings arrive as explicit arguments.
    - Decimal-only arithmetic: all amounts and rates use ``Decimal``.
    - Determinism: identical inputs always produce identical outputs.

Failure modes:
    - Typed PlannerError subclasses propagated from individual engines on
      structural violations.  Missing data is never an error.

Usage:
    from planner_engines import EngineConfig, run_cash_engine_for_years
    from planner_engines import RentModel, calculate_rent
    from planner_engines import aggregate_curricula
"""

from planner_kernel.logging_config import get_logger

logger = get_logger("engines")

from planner_engines.cash_engine import (
    CashEngineOutput,
    CheckResult,
    ConvergenceCheck,
    ConvergenceStatus,
    EngineConfig,
    run_cash_engine_for_year,
    run_cash_engine_for_years,
)
from planner_engines.curriculum import (
    AggregateFinancials,
    CurriculumData,
    CurriculumFinancials,
    CurriculumType,
    StaffCosts,
    aggregate_curricula,
    aggregate_curricula_multi_year,
    apply_tuition_cpi,
    calculate_curriculum_financials,
    calculate_revenue,
    calculate_salary_with_cpi,
    calculate_staff_costs,
    validate_curriculum_data,
)
from planner_engines.metrics import (
    InterestRates,
    calculate_all_metrics,
    calculate_balance_sheet_metrics,
    calculate_cash_flow_metrics,
    calculate_interest_from_cash,
    calculate_pnl_metrics,
    calculate_provision_metrics,
)
from planner_engines.rent import (
    FixedEscalationConfig,
    PartnerModelConfig,
    RentModel,
    RentModelType,
    RentProjection,
    RevenueShareConfig,
    calculate_npv,
    calculate_rent,
    calculate_rent_load_percent,
    calculate_rent_npv,
    calculate_rent_projection,
    validate_rent_model,
)
from planner_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Cash engine
    "CashEngineOutput",
    "CheckResult",
    "ConvergenceCheck",
    "ConvergenceStatus",
    "EngineConfig",
    "run_cash_engine_for_year",
    "run_cash_engine_for_years",
    # Curriculum
    "AggregateFinancials",
    "CurriculumData",
    "CurriculumFinancials",
    "CurriculumType",
    "StaffCosts",
    "aggregate_curricula",
    "aggregate_curricula_multi_year",
    "apply_tuition_cpi",
    "calculate_curriculum_financials",
    "calculate_revenue",
    "calculate_salary_with_cpi",
    "calculate_staff_costs",
    "validate_curriculum_data",
    # Metrics
    "InterestRates",
    "calculate_all_metrics",
    "calculate_balance_sheet_metrics",
    "calculate_cash_flow_metrics",
    "calculate_interest_from_cash",
    "calculate_pnl_metrics",
    "calculate_provision_metrics",
    # Rent
    "FixedEscalationConfig",
    "PartnerModelConfig",
    "RentModel",
    "RentModelType",
    "RentProjection",
    "RevenueShareConfig",
    "calculate_npv",
    "calculate_rent",
    "calculate_rent_load_percent",
    "calculate_rent_npv",
    "calculate_rent_projection",
    "validate_rent_model",
    # Tracer
    "compute_input_fingerprint",
    "traced_engine",
]
