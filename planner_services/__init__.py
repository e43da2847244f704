"""
planner_services -- orchestration over the planner engines and kernel.

Responsibility:
    Load version inputs from storage, drive the cash engine, persist its
    output and run recalculations in the background.

Architecture position:
    Services -- the top layer.  May import planner_kernel, planner_engines
    and planner_config.  Nothing imports planner_services except scripts.

Usage:
    from planner_services import CashEngineService, RecalculationTrigger
"""

from planner_services._cash_engine_types import (
    CashEngineRunResult,
    EngineStatus,
    RecalculationStatus,
    RecalculationTask,
    RetryPolicy,
    YearConvergence,
)
from planner_services.cash_engine_service import CashEngineService
from planner_services.metric_store import MetricStore
from planner_services.recalculation import RecalculationTrigger
from planner_services.tab_mapping import build_inputs_for_years, extract_metrics_from_tabs

__all__ = [
    "CashEngineRunResult",
    "CashEngineService",
    "EngineStatus",
    "MetricStore",
    "RecalculationStatus",
    "RecalculationTask",
    "RecalculationTrigger",
    "RetryPolicy",
    "YearConvergence",
    "build_inputs_for_years",
    "extract_metrics_from_tabs",
]
