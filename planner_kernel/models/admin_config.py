"""
AdminConfigEntry -- administrator overrides, one JSON section per key.

Rows are written by the admin settings layer; the planner only reads them
and merges them over the YAML defaults in ``planner_config``.
"""

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from planner_kernel.db.base import TrackedBase


class AdminConfigEntry(TrackedBase):
    """One admin configuration section (e.g. ``cash_engine``)."""

    __tablename__ = "admin_config"

    config_key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    config_value: Mapped[dict] = mapped_column(JSON, nullable=False)
