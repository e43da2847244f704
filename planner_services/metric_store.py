"""
MetricStore -- persistence of engine output: metric rows and the cached result.

Responsibility:
    Flatten a multi-year engine result into metric rows for the persisted
    whitelist, upsert them in batches, and store or read back the full
    result as the ``cash_engine_convergence`` computed artifact.

Architecture position:
    Services -- owns its transactions.  Each metric batch is committed in
    its own ``session_scope`` so a failure aborts only the remaining batches.

Invariants enforced:
    - Upsert on the natural key (version_id, year, metric_key); concurrent
      writers are last-write-wins.
    - is_historical is true exactly for the historical years.
    - The cached artifact round-trips through ``CashEngineOutput.to_dict``.

Failure modes:
    - MetricPersistenceError naming the failing batch; earlier batches stay
      committed.
    - CacheWriteError when the computed artifact cannot be written.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from planner_engines.cash_engine import CashEngineOutput
from planner_kernel.db.engine import session_scope
from planner_kernel.domain.clock import Clock, SystemClock
from planner_kernel.domain.metrics import PERSISTED_METRIC_KEYS
from planner_kernel.domain.years import is_historical_year
from planner_kernel.exceptions import CacheWriteError, MetricPersistenceError
from planner_kernel.logging_config import get_logger
from planner_kernel.models.version_computed import CASH_ENGINE_COMPUTED_KEY, VersionComputed
from planner_kernel.models.version_metric import VersionMetric
from planner_kernel.selectors.version_selector import ComputedArtifact, VersionSelector

logger = get_logger("services.metric_store")

DEFAULT_BATCH_SIZE = 100


@dataclass(frozen=True)
class MetricRowData:
    """One row to upsert into version_metrics."""

    version_id: UUID
    year: int
    metric_key: str
    value: Decimal | None
    is_historical: bool


class MetricStore:
    """Writes engine output for one version at a time."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._batch_size = batch_size

    # -------------------------------------------------------------------------
    # Metric rows
    # -------------------------------------------------------------------------

    @staticmethod
    def build_metric_rows(
        version_id: UUID, results: Mapping[int, CashEngineOutput],
    ) -> list[MetricRowData]:
        """Whitelisted metrics for every year, in year then whitelist order."""
        rows = []
        for year, output in results.items():
            historical = is_historical_year(year)
            for key in PERSISTED_METRIC_KEYS:
                rows.append(MetricRowData(
                    version_id=version_id,
                    year=year,
                    metric_key=key,
                    value=output.metrics.get(key),
                    is_historical=historical,
                ))
        return rows

    def persist_metrics(
        self, version_id: UUID, results: Mapping[int, CashEngineOutput],
    ) -> int:
        """
        Upsert all whitelisted metrics in batches.

        Returns:
            Number of rows written.

        Raises:
            MetricPersistenceError: a batch failed; later batches were not attempted.
        """
        rows = self.build_metric_rows(version_id, results)

        for start in range(0, len(rows), self._batch_size):
            batch = rows[start:start + self._batch_size]
            batch_index = start // self._batch_size + 1
            try:
                with session_scope(self._session_factory) as session:
                    self._upsert_batch(session, batch)
            except SQLAlchemyError as exc:
                logger.error(
                    "metrics_batch_failed",
                    extra={
                        "version_id": str(version_id),
                        "batch_index": batch_index,
                        "batch_size": len(batch),
                    },
                    exc_info=True,
                )
                raise MetricPersistenceError(
                    str(version_id), batch_index, len(batch), str(exc),
                ) from exc

        logger.info(
            "metrics_persisted",
            extra={
                "version_id": str(version_id),
                "total_metrics": len(rows),
                "years_processed": len(results),
            },
        )
        return len(rows)

    @staticmethod
    def _upsert_batch(session: Session, batch: list[MetricRowData]) -> None:
        first = batch[0]
        years = {row.year for row in batch}
        keys = {row.metric_key for row in batch}
        existing = {
            (m.year, m.metric_key): m
            for m in session.execute(
                select(VersionMetric).where(
                    VersionMetric.version_id == first.version_id,
                    VersionMetric.year.in_(years),
                    VersionMetric.metric_key.in_(keys),
                )
            ).scalars()
        }

        for row in batch:
            model = existing.get((row.year, row.metric_key))
            if model is None:
                session.add(VersionMetric(
                    version_id=row.version_id,
                    year=row.year,
                    metric_key=row.metric_key,
                    value=row.value,
                    is_historical=row.is_historical,
                ))
            else:
                model.value = row.value
                model.is_historical = row.is_historical
        session.flush()

    # -------------------------------------------------------------------------
    # Cached result
    # -------------------------------------------------------------------------

    def cache_results(
        self, version_id: UUID, results: Mapping[int, CashEngineOutput],
    ) -> None:
        """
        Store the full result under ``cash_engine_convergence``.

        Raises:
            CacheWriteError: the artifact could not be written.
        """
        payload = {str(year): output.to_dict() for year, output in results.items()}
        now = self._clock.now()
        try:
            with session_scope(self._session_factory) as session:
                model = session.execute(
                    select(VersionComputed).where(
                        VersionComputed.version_id == version_id,
                        VersionComputed.computed_key == CASH_ENGINE_COMPUTED_KEY,
                    )
                ).scalar_one_or_none()
                if model is None:
                    session.add(VersionComputed(
                        version_id=version_id,
                        computed_key=CASH_ENGINE_COMPUTED_KEY,
                        computed_value=payload,
                        computed_at=now,
                    ))
                else:
                    model.computed_value = payload
                    model.computed_at = now
        except SQLAlchemyError as exc:
            logger.error(
                "convergence_cache_failed",
                extra={"version_id": str(version_id)},
                exc_info=True,
            )
            raise CacheWriteError(str(version_id), CASH_ENGINE_COMPUTED_KEY, str(exc)) from exc

        logger.info(
            "convergence_cached",
            extra={"version_id": str(version_id), "years": len(results)},
        )

    def get_cached_results(
        self, version_id: UUID,
    ) -> tuple[dict[int, CashEngineOutput], ComputedArtifact] | None:
        """The cached result keyed by year (ascending), or None when absent."""
        session = self._session_factory()
        try:
            artifact = VersionSelector(session).get_computed(
                version_id, CASH_ENGINE_COMPUTED_KEY,
            )
        finally:
            session.close()
        if artifact is None:
            return None

        results = {
            int(year): CashEngineOutput.from_dict(data)
            for year, data in sorted(artifact.computed_value.items(), key=lambda i: int(i[0]))
        }
        return results, artifact
