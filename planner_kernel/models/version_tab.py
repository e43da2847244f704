"""
VersionTab -- free-form JSON payload for one tab of a version.

The pnl, bs and cf tabs are the engine's raw input; other tabs
(overview, capex, controls, assumptions) are ignored by the engine.
"""

from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from planner_kernel.db.base import TrackedBase, UUIDString

FINANCIAL_TABS: tuple[str, ...] = ("pnl", "bs", "cf")


class VersionTab(TrackedBase):
    """One tab payload, unique per (version_id, tab)."""

    __tablename__ = "version_tabs"

    __table_args__ = (
        UniqueConstraint("version_id", "tab", name="uq_version_tabs_version_tab"),
        Index("idx_version_tabs_version_id", "version_id"),
    )

    version_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("model_versions.id", ondelete="CASCADE"), nullable=False,
    )
    tab: Mapped[str] = mapped_column(String(30), nullable=False)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
