"""
planner_services.cash_engine_service -- Runs the cash engine for a model version.

Responsibility:
    Orchestrate one full engine run: read admin configuration, load the
    version's P&L/BS/CF tabs, build per-year inputs, drive the multi-year
    cash engine, persist the metric whitelist and cache the full result.
    Serve cached results unless a recalculation is forced.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes VersionSelector and AdminConfigSelector (reads),
    planner_config.get_admin_config (settings), the pure cash engine
    (planner_engines.cash_engine) and MetricStore (writes).

Invariants enforced:
    - Engine settings are read once per run and passed explicitly down to
      the engine; the engine itself never reads configuration.
    - Years run strictly in ascending order (delegated to the driver).
    - ``run_for_version`` never raises: every failure becomes a
      ``CashEngineRunResult`` with ``success=False`` and the error message.

Failure modes (all converted to a failed result):
    - VersionNotFoundError -- unknown version id.
    - InvalidYearRangeError -- requested range outside 2023-2052.
    - ConfigurationError / EngineConfigError -- bad admin settings.
    - MetricPersistenceError / CacheWriteError -- storage failures.  Batches
      committed before the failure are not rolled back.

Audit relevance:
    Each run is logged under a run_id bound into LogContext together with
    the version_id, so every engine trace record of the run carries both.

Usage:
    from planner_kernel.db.engine import get_session_factory
    from planner_services.cash_engine_service import CashEngineService

    service = CashEngineService(get_session_factory())
    result = service.run_for_version(version_id, force_recalculation=True)
    if not result.success:
        print(result.errors)
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from planner_config import AdminConfig, get_admin_config
from planner_engines.cash_engine import CashEngineOutput, run_cash_engine_for_years
from planner_kernel.domain.clock import Clock, SystemClock
from planner_kernel.domain.years import FORECAST_END, FORECAST_START, validate_year_range
from planner_kernel.logging_config import LogContext, get_logger
from planner_kernel.selectors.admin_config_selector import AdminConfigSelector
from planner_kernel.selectors.version_selector import VersionSelector
from planner_services._cash_engine_types import (
    CashEngineRunResult,
    EngineStatus,
    YearConvergence,
)
from planner_services.metric_store import MetricStore
from planner_services.tab_mapping import build_inputs_for_years, extract_metrics_from_tabs

logger = get_logger("services.cash_engine")


def as_version_id(version_id: UUID | str) -> UUID:
    return version_id if isinstance(version_id, UUID) else UUID(str(version_id))


def summarize_convergence(
    results: Mapping[int, CashEngineOutput],
) -> dict[int, YearConvergence]:
    return {
        year: YearConvergence(
            converged=output.convergence.converged,
            iterations=output.convergence.iterations,
            last_error=output.convergence.last_error,
        )
        for year, output in results.items()
        if output.convergence is not None
    }


class CashEngineService:
    """
    Entry point for cash engine runs.

    Contract:
        Receives a session factory (not a session) because persistence
        commits each metric batch in its own transaction.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        metric_store: MetricStore | None = None,
        config_provider: Callable[[], AdminConfig] | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._store = metric_store or MetricStore(session_factory, clock=self._clock)
        self._config_provider = config_provider or self._load_admin_config

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def run_for_version(
        self,
        version_id: UUID | str,
        force_recalculation: bool = False,
        year_range: tuple[int, int] | None = None,
    ) -> CashEngineRunResult:
        """
        Run (or serve from cache) the cash engine for one version.

        Args:
            version_id: Model version to compute.
            force_recalculation: Ignore any cached result.
            year_range: Inclusive (start, end); defaults to the forecast
                years 2025-2052.  Ignored when a cached result is served.

        Returns:
            CashEngineRunResult -- never raises.
        """
        run_id = str(uuid4())
        with LogContext.bind(version_id=str(version_id), run_id=run_id):
            try:
                return self._run(as_version_id(version_id), force_recalculation, year_range)
            except Exception as exc:
                logger.error(
                    "cash_engine_run_failed",
                    extra={"version_id": str(version_id)},
                    exc_info=True,
                )
                return CashEngineRunResult.failure(version_id, str(exc))

    def get_status(self, version_id: UUID | str) -> EngineStatus:
        """Summarize the cached result; ``has_results=False`` when none exists."""
        version_uuid = as_version_id(version_id)
        cached = self._store.get_cached_results(version_uuid)
        if cached is None:
            return EngineStatus(version_id=version_uuid, has_results=False)

        results, artifact = cached
        by_year = summarize_convergence(results)
        return EngineStatus(
            version_id=version_uuid,
            has_results=True,
            computed_at=artifact.computed_at,
            converged=all(s.converged for s in by_year.values()),
            years_processed=len(results),
            total_iterations=sum(s.iterations for s in by_year.values()),
            convergence_by_year=by_year,
        )

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run(
        self,
        version_id: UUID,
        force_recalculation: bool,
        year_range: tuple[int, int] | None,
    ) -> CashEngineRunResult:
        logger.info(
            "cash_engine_run_started",
            extra={
                "version_id": str(version_id),
                "force_recalculation": force_recalculation,
                "year_range": list(year_range) if year_range else None,
            },
        )

        if not force_recalculation:
            cached = self._store.get_cached_results(version_id)
            if cached is not None:
                results, artifact = cached
                logger.info(
                    "cash_engine_cache_hit",
                    extra={
                        "version_id": str(version_id),
                        "computed_at": str(artifact.computed_at),
                    },
                )
                return self._summarize(version_id, results, from_cache=True)

        start_year, end_year = year_range or (FORECAST_START, FORECAST_END)
        validate_year_range(start_year, end_year)

        admin_config = self._config_provider()

        session = self._session_factory()
        try:
            selector = VersionSelector(session)
            selector.get_status(version_id)
            tabs = selector.load_tabs(version_id)
        finally:
            session.close()

        base = extract_metrics_from_tabs(tabs)
        inputs = build_inputs_for_years(base, start_year, end_year)

        t0 = time.monotonic()
        results = run_cash_engine_for_years(
            start_year=start_year,
            end_year=end_year,
            input_by_year=inputs,
            config=admin_config.cash_engine,
        )
        engine_ms = round((time.monotonic() - t0) * 1000, 2)

        self._store.persist_metrics(version_id, results)
        self._store.cache_results(version_id, results)

        result = self._summarize(version_id, results, from_cache=False)
        logger.info(
            "cash_engine_run_completed",
            extra={
                "version_id": str(version_id),
                "converged": result.converged,
                "total_iterations": result.total_iterations,
                "years_processed": result.years_processed,
                "tabs_loaded": sorted(tabs),
                "engine_ms": engine_ms,
            },
        )
        return result

    def _load_admin_config(self) -> AdminConfig:
        session = self._session_factory()
        try:
            overrides = AdminConfigSelector(session).load_overrides()
        finally:
            session.close()
        return get_admin_config(overrides)

    @staticmethod
    def _summarize(
        version_id: UUID,
        results: Mapping[int, CashEngineOutput],
        from_cache: bool,
    ) -> CashEngineRunResult:
        by_year = summarize_convergence(results)
        return CashEngineRunResult(
            success=True,
            version_id=version_id,
            converged=all(s.converged for s in by_year.values()),
            total_iterations=sum(s.iterations for s in by_year.values()),
            years_processed=len(results),
            convergence_by_year=by_year,
            from_cache=from_cache,
        )
