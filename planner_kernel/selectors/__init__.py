"""Read-only query selectors."""

from planner_kernel.selectors.admin_config_selector import AdminConfigSelector
from planner_kernel.selectors.version_selector import VersionSelector

__all__ = ["AdminConfigSelector", "VersionSelector"]
