"""
VersionComputed -- cached computed artifacts keyed by (version_id, computed_key).

The cash engine stores its full multi-year result under
``cash_engine_convergence``.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from planner_kernel.db.base import Base, UUIDString

CASH_ENGINE_COMPUTED_KEY = "cash_engine_convergence"


class VersionComputed(Base):
    """A cached computed artifact."""

    __tablename__ = "version_computed"

    __table_args__ = (
        UniqueConstraint(
            "version_id", "computed_key", name="uq_version_computed_version_key",
        ),
    )

    version_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("model_versions.id", ondelete="CASCADE"), nullable=False,
    )
    computed_key: Mapped[str] = mapped_column(String(100), nullable=False)
    computed_value: Mapped[dict] = mapped_column(JSON, nullable=False)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
