"""
RecalculationTrigger -- background cash engine runs when financial tabs change.

Contract:
    ``on_tabs_changed(version_id, tab)`` returns immediately with a
    ``RecalculationTask`` snapshot.  Runs for the P&L, balance-sheet and
    cash-flow tabs of versions that are not Locked or Archived are executed
    on a thread pool with a bounded retry policy; everything else is
    recorded as skipped.  Progress is observable through ``get_task()`` and
    ``wait()``.

Architecture: planner_services.  Wraps CashEngineService, which never
    raises, so an attempt fails only by returning ``success=False``.

Invariants enforced:
    - Every recalculation forces a fresh run (cache bypassed).
    - At most ``retry_policy.max_attempts`` attempts per task.
    - Task snapshots are immutable; the trigger replaces them under a lock.
    - Whenever a task is recorded, finished tasks beyond the newest
      ``max_finished_tasks`` are dropped; futures are dropped as soon as
      their run ends.
    - ``on_tabs_changed`` never raises into the caller.

Non-goals:
    - No locking across concurrent runs of the same version; the cache and
      metric rows are last-write-wins.
    - No cancellation of a running attempt.
"""

from __future__ import annotations

import dataclasses
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from planner_kernel.domain.clock import Clock, SystemClock
from planner_kernel.exceptions import VersionNotFoundError
from planner_kernel.logging_config import LogContext, get_logger
from planner_kernel.models.version_tab import FINANCIAL_TABS
from planner_kernel.selectors.version_selector import VersionSelector
from planner_services._cash_engine_types import (
    RecalculationStatus,
    RecalculationTask,
    RetryPolicy,
)
from planner_services.cash_engine_service import CashEngineService, as_version_id

logger = get_logger("services.recalculation")


class RecalculationTrigger:
    """Submits and tracks background recalculations."""

    def __init__(
        self,
        service: CashEngineService,
        session_factory: Callable[[], Session],
        retry_policy: RetryPolicy | None = None,
        clock: Clock | None = None,
        max_workers: int = 2,
        sleep: Callable[[float], None] = time.sleep,
        max_finished_tasks: int = 1000,
    ):
        self._service = service
        self._session_factory = session_factory
        self._retry_policy = retry_policy or RetryPolicy()
        self._clock = clock or SystemClock()
        self._sleep = sleep
        self._max_finished_tasks = max_finished_tasks
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="cash-engine-recalc",
        )
        self._lock = threading.Lock()
        self._tasks: dict[UUID, RecalculationTask] = {}
        self._futures: dict[UUID, Future] = {}

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def on_tabs_changed(self, version_id: UUID | str, tab: str) -> RecalculationTask:
        """
        Schedule a recalculation if ``tab`` feeds the engine and the version is editable.

        Never raises: a malformed id, a missing version or a database error
        while reading the version's status yields a FAILED task.
        """
        if tab not in FINANCIAL_TABS:
            return self._record_skip(version_id, tab, f"tab '{tab}' does not feed the cash engine")

        try:
            version_id = as_version_id(version_id)
        except ValueError:
            return self._record_failure(version_id, tab, f"Invalid version id: {version_id}")

        session = self._session_factory()
        try:
            status = VersionSelector(session).get_status(version_id)
        except (VersionNotFoundError, SQLAlchemyError) as exc:
            return self._record_failure(version_id, tab, str(exc))
        finally:
            session.close()

        if status.is_frozen:
            return self._record_skip(version_id, tab, f"version is {status.value}")

        return self.submit(version_id, tab)

    def submit(self, version_id: UUID, tab: str = "manual") -> RecalculationTask:
        """Queue a forced recalculation without any gating."""
        task = self._new_task(version_id, tab, RecalculationStatus.PENDING)
        with self._lock:
            self._tasks[task.task_id] = task
            future = self._pool.submit(self._execute, task.task_id)
            self._futures[task.task_id] = future
            self._prune_locked()
        future.add_done_callback(lambda _: self._forget_future(task.task_id))
        logger.info(
            "recalculation_submitted",
            extra={"task_id": str(task.task_id), "version_id": str(version_id), "tab": tab},
        )
        return task

    def get_task(self, task_id: UUID) -> RecalculationTask | None:
        with self._lock:
            return self._tasks.get(task_id)

    def wait(self, task_id: UUID, timeout: float | None = None) -> RecalculationTask:
        """
        Block until the task reaches a terminal status.

        Raises:
            KeyError: unknown task id, or a finished task already pruned.
            concurrent.futures.TimeoutError: not finished within ``timeout``.
        """
        with self._lock:
            if task_id not in self._tasks:
                raise KeyError(task_id)
            future = self._futures.get(task_id)
            task = self._tasks[task_id]
        if future is not None:
            return future.result(timeout=timeout)
        return task

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)
        logger.info("recalculation_trigger_stopped")

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _new_task(
        self, version_id: UUID | str, tab: str, status: RecalculationStatus,
    ) -> RecalculationTask:
        return RecalculationTask(
            task_id=uuid4(),
            version_id=version_id,
            tab=tab,
            status=status,
            submitted_at=self._clock.now(),
        )

    def _store(self, task: RecalculationTask) -> None:
        with self._lock:
            self._tasks[task.task_id] = task
            self._prune_locked()

    def _prune_locked(self) -> None:
        """Drop the oldest finished tasks beyond ``max_finished_tasks``. Caller holds the lock."""
        finished = [
            task_id for task_id, task in self._tasks.items() if task.status.is_terminal
        ]
        for task_id in finished[: max(0, len(finished) - self._max_finished_tasks)]:
            del self._tasks[task_id]

    def _forget_future(self, task_id: UUID) -> None:
        with self._lock:
            self._futures.pop(task_id, None)

    def _update(self, task_id: UUID, **changes) -> RecalculationTask:
        with self._lock:
            task = dataclasses.replace(self._tasks[task_id], **changes)
            self._tasks[task_id] = task
            return task

    def _record_failure(
        self, version_id: UUID | str, tab: str, error: str,
    ) -> RecalculationTask:
        task = dataclasses.replace(
            self._new_task(version_id, tab, RecalculationStatus.FAILED),
            errors=(error,),
            finished_at=self._clock.now(),
        )
        self._store(task)
        logger.warning(
            "recalculation_not_scheduled",
            extra={"version_id": str(version_id), "tab": tab, "error": error},
        )
        return task

    def _record_skip(self, version_id: UUID | str, tab: str, reason: str) -> RecalculationTask:
        task = dataclasses.replace(
            self._new_task(version_id, tab, RecalculationStatus.SKIPPED),
            skip_reason=reason,
            finished_at=self._clock.now(),
        )
        self._store(task)
        logger.info(
            "recalculation_skipped",
            extra={"version_id": str(version_id), "tab": tab, "reason": reason},
        )
        return task

    def _execute(self, task_id: UUID) -> RecalculationTask:
        task = self.get_task(task_id)
        errors: list[str] = []

        with LogContext.bind(task_id=str(task_id), version_id=str(task.version_id)):
            for attempt in range(1, self._retry_policy.max_attempts + 1):
                delay = self._retry_policy.delay_before(attempt)
                if delay > 0:
                    self._sleep(delay)

                self._update(task_id, status=RecalculationStatus.RUNNING, attempts=attempt)
                try:
                    result = self._service.run_for_version(
                        task.version_id, force_recalculation=True,
                    )
                except Exception as exc:
                    logger.exception("recalculation_attempt_crashed")
                    errors.append(str(exc))
                    continue

                if result.success:
                    finished = self._update(
                        task_id,
                        status=RecalculationStatus.SUCCEEDED,
                        result=result,
                        errors=tuple(errors),
                        finished_at=self._clock.now(),
                    )
                    logger.info(
                        "recalculation_succeeded",
                        extra={"attempts": attempt, "converged": result.converged},
                    )
                    return finished

                errors.extend(result.errors)
                self._update(task_id, result=result, errors=tuple(errors))
                logger.warning(
                    "recalculation_attempt_failed",
                    extra={"attempt": attempt, "errors": list(result.errors)},
                )

            finished = self._update(
                task_id,
                status=RecalculationStatus.FAILED,
                errors=tuple(errors),
                finished_at=self._clock.now(),
            )
            logger.error(
                "recalculation_failed",
                extra={"attempts": self._retry_policy.max_attempts, "errors": errors},
            )
            return finished
