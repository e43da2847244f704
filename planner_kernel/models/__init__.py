"""
ORM models for planner persistence.

Importing this package registers every table on ``Base.metadata``.
"""

from planner_kernel.models.admin_config import AdminConfigEntry
from planner_kernel.models.version import ModelVersion, VersionStatus
from planner_kernel.models.version_computed import VersionComputed
from planner_kernel.models.version_metric import VersionMetric
from planner_kernel.models.version_tab import VersionTab

__all__ = [
    "AdminConfigEntry",
    "ModelVersion",
    "VersionComputed",
    "VersionMetric",
    "VersionStatus",
    "VersionTab",
]
