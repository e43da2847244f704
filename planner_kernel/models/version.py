"""
ModelVersion -- a scenario version whose tabs feed the cash engine.

Only ``status`` matters to the engine: Locked and Archived versions are
frozen and never recalculated automatically.
"""

from enum import Enum

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from planner_kernel.db.base import TrackedBase


class VersionStatus(str, Enum):
    """Version lifecycle status."""

    DRAFT = "Draft"
    READY = "Ready"
    LOCKED = "Locked"
    ARCHIVED = "Archived"

    @property
    def is_frozen(self) -> bool:
        return self in (VersionStatus.LOCKED, VersionStatus.ARCHIVED)


class ModelVersion(TrackedBase):
    """A model version (scenario) owned by an external CRUD layer."""

    __tablename__ = "model_versions"

    __table_args__ = (Index("idx_model_versions_status", "status"),)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=VersionStatus.DRAFT.value,
    )

    def __repr__(self) -> str:
        return f"<ModelVersion {self.name} [{self.status}]>"
