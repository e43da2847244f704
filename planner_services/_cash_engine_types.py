"""
planner_services._cash_engine_types -- DTOs for the cash engine service and
the background recalculation trigger.

Responsibility:
    Define frozen dataclasses for a service run result, per-year convergence
    summaries, the cached-status view, and the recalculation task lifecycle.

Architecture position:
    Services -- these types live in planner_services/ because the
    orchestrators that produce and consume them live here.  They have no
    kernel dependency beyond plain values.

Invariants enforced:
    - Run results and summaries are frozen dataclasses (immutable).
    - Task status transitions are pending -> running -> succeeded | failed,
      or pending -> skipped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class YearConvergence:
    """Convergence summary for one year."""

    converged: bool
    iterations: int
    last_error: Decimal | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "converged": self.converged,
            "iterations": self.iterations,
            "last_error": str(self.last_error) if self.last_error is not None else None,
        }


@dataclass(frozen=True)
class CashEngineRunResult:
    """Outcome of ``CashEngineService.run_for_version``. Never raised, always returned."""

    success: bool
    version_id: UUID | str
    converged: bool = False
    total_iterations: int = 0
    years_processed: int = 0
    errors: tuple[str, ...] = ()
    convergence_by_year: dict[int, YearConvergence] = field(default_factory=dict)
    from_cache: bool = False

    @classmethod
    def failure(cls, version_id: UUID | str, message: str) -> CashEngineRunResult:
        return cls(success=False, version_id=version_id, errors=(message,))

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "version_id": str(self.version_id),
            "converged": self.converged,
            "total_iterations": self.total_iterations,
            "years_processed": self.years_processed,
            "errors": list(self.errors),
            "convergence_by_year": {
                str(year): summary.to_dict()
                for year, summary in self.convergence_by_year.items()
            },
            "from_cache": self.from_cache,
        }


@dataclass(frozen=True)
class EngineStatus:
    """Cached-result view returned by ``CashEngineService.get_status``."""

    version_id: UUID
    has_results: bool
    computed_at: datetime | None = None
    converged: bool = False
    years_processed: int = 0
    total_iterations: int = 0
    convergence_by_year: dict[int, YearConvergence] = field(default_factory=dict)


class RecalculationStatus(str, Enum):
    """Background recalculation task lifecycle."""

    PENDING = "pending"  # Submitted, waiting for a worker
    RUNNING = "running"  # An attempt is in progress
    SUCCEEDED = "succeeded"  # A run returned success
    FAILED = "failed"  # Every attempt failed
    SKIPPED = "skipped"  # Tab or version status does not warrant a run

    @property
    def is_terminal(self) -> bool:
        return self in (
            RecalculationStatus.SUCCEEDED,
            RecalculationStatus.FAILED,
            RecalculationStatus.SKIPPED,
        )


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently a failed recalculation is retried."""

    max_attempts: int = 3
    backoff_seconds: float = 0.5

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds cannot be negative")

    def delay_before(self, attempt: int) -> float:
        """Linear backoff before ``attempt`` (1-based); no delay before the first."""
        return self.backoff_seconds * (attempt - 1)


@dataclass(frozen=True)
class RecalculationTask:
    """Snapshot of one background recalculation."""

    task_id: UUID
    version_id: UUID
    tab: str
    status: RecalculationStatus
    submitted_at: datetime
    attempts: int = 0
    finished_at: datetime | None = None
    skip_reason: str | None = None
    errors: tuple[str, ...] = ()
    result: CashEngineRunResult | None = None
