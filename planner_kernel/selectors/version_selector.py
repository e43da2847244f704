"""
VersionSelector -- read access to version status, tabs, metrics and
computed artifacts.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select

from planner_kernel.exceptions import VersionNotFoundError
from planner_kernel.models.version import ModelVersion, VersionStatus
from planner_kernel.models.version_computed import VersionComputed
from planner_kernel.models.version_metric import VersionMetric
from planner_kernel.models.version_tab import FINANCIAL_TABS, VersionTab
from planner_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ComputedArtifact:
    """A cached computed value with its timestamp."""

    version_id: UUID
    computed_key: str
    computed_value: dict[str, Any]
    computed_at: datetime


@dataclass(frozen=True)
class MetricRow:
    """A persisted metric value."""

    year: int
    metric_key: str
    value: Decimal | None
    is_historical: bool


class VersionSelector(BaseSelector):
    """Read-only queries keyed by version id."""

    def get_status(self, version_id: UUID) -> VersionStatus:
        """
        Raises:
            VersionNotFoundError: if the version does not exist.
        """
        status = self.session.execute(
            select(ModelVersion.status).where(ModelVersion.id == version_id)
        ).scalar_one_or_none()
        if status is None:
            raise VersionNotFoundError(str(version_id))
        return VersionStatus(status)

    def load_tabs(
        self,
        version_id: UUID,
        tabs: tuple[str, ...] = FINANCIAL_TABS,
    ) -> dict[str, dict[str, Any]]:
        """Return ``{tab: data}`` for the requested tabs that exist."""
        rows = self.session.execute(
            select(VersionTab.tab, VersionTab.data).where(
                VersionTab.version_id == version_id,
                VersionTab.tab.in_(tabs),
            )
        ).all()
        return {tab: (data or {}) for tab, data in rows}

    def get_computed(self, version_id: UUID, computed_key: str) -> ComputedArtifact | None:
        row = self.session.execute(
            select(VersionComputed).where(
                VersionComputed.version_id == version_id,
                VersionComputed.computed_key == computed_key,
            )
        ).scalar_one_or_none()
        if row is None:
            return None
        return ComputedArtifact(
            version_id=row.version_id,
            computed_key=row.computed_key,
            computed_value=row.computed_value,
            computed_at=row.computed_at,
        )

    def get_metric_rows(
        self,
        version_id: UUID,
        year: int | None = None,
    ) -> list[MetricRow]:
        """Persisted metric rows ordered by year then key."""
        stmt = select(VersionMetric).where(VersionMetric.version_id == version_id)
        if year is not None:
            stmt = stmt.where(VersionMetric.year == year)
        stmt = stmt.order_by(VersionMetric.year, VersionMetric.metric_key)
        return [
            MetricRow(
                year=m.year,
                metric_key=m.metric_key,
                value=m.value,
                is_historical=m.is_historical,
            )
            for m in self.session.execute(stmt).scalars()
        ]
