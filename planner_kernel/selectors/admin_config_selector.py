"""AdminConfigSelector -- reads admin overrides as a plain mapping."""

from typing import Any

from sqlalchemy import select

from planner_kernel.models.admin_config import AdminConfigEntry
from planner_kernel.selectors.base import BaseSelector


class AdminConfigSelector(BaseSelector):

    def load_overrides(self) -> dict[str, Any]:
        """Return ``{config_key: config_value}`` for every stored section."""
        rows = self.session.execute(
            select(AdminConfigEntry.config_key, AdminConfigEntry.config_value)
            .order_by(AdminConfigEntry.config_key)
        ).all()
        return {key: value for key, value in rows}
