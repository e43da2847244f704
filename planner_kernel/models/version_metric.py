"""
VersionMetric -- one persisted metric value per (version, year, metric_key).

Rows are upserted on the natural key; concurrent writers are last-write-wins.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from planner_kernel.db.base import TrackedBase, UUIDString


class VersionMetric(TrackedBase):
    """Time-series metric row."""

    __tablename__ = "version_metrics"

    __table_args__ = (
        UniqueConstraint(
            "version_id", "year", "metric_key", name="uq_version_metrics_natural_key",
        ),
        Index("idx_version_metrics_version_year", "version_id", "year"),
        Index("idx_version_metrics_version_key", "version_id", "metric_key"),
    )

    version_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("model_versions.id", ondelete="CASCADE"), nullable=False,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    metric_key: Mapped[str] = mapped_column(String(50), nullable=False)
    value: Mapped[Decimal | None] = mapped_column(nullable=True)
    is_historical: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<VersionMetric {self.year}:{self.metric_key}={self.value}>"
