"""
Tests for the background RecalculationTrigger.

Covers:
- Gating by tab and version status
- Successful background runs observed through wait()
- Retry policy with a failing service
- Unknown versions, malformed ids, database errors and unknown task ids
- Retention of finished tasks
"""

import threading
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from planner_kernel.models import VersionStatus
from planner_kernel.selectors.version_selector import VersionSelector
from planner_services._cash_engine_types import (
    CashEngineRunResult,
    RecalculationStatus,
    RetryPolicy,
)
from planner_services.cash_engine_service import CashEngineService
from planner_services.recalculation import RecalculationTrigger


class ScriptedService:
    """Returns the scripted outcomes in order; an Exception instance is raised."""

    def __init__(self, outcomes):
        self._outcomes = list(outcomes)
        self.calls = []

    def run_for_version(self, version_id, force_recalculation=False, year_range=None):
        self.calls.append((version_id, force_recalculation))
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def make_trigger(session_factory, deterministic_clock):
    triggers = []

    def _make(service=None, retry_policy=None, sleeps=None, **kwargs):
        trigger = RecalculationTrigger(
            service or CashEngineService(session_factory, clock=deterministic_clock),
            session_factory,
            retry_policy=retry_policy,
            clock=deterministic_clock,
            sleep=(sleeps.append if sleeps is not None else lambda _: None),
            **kwargs,
        )
        triggers.append(trigger)
        return trigger

    yield _make
    for trigger in triggers:
        trigger.shutdown()


class TestGating:

    def test_non_financial_tab_is_skipped(self, make_trigger, create_version):
        trigger = make_trigger()

        task = trigger.on_tabs_changed(create_version(), "capex")

        assert task.status is RecalculationStatus.SKIPPED
        assert "does not feed the cash engine" in task.skip_reason
        assert trigger.get_task(task.task_id) == task

    @pytest.mark.parametrize("status", [VersionStatus.LOCKED, VersionStatus.ARCHIVED])
    def test_frozen_version_is_skipped(self, make_trigger, create_version, sample_tabs, status):
        version_id = create_version(tabs=sample_tabs, status=status)

        task = make_trigger().on_tabs_changed(version_id, "pnl")

        assert task.status is RecalculationStatus.SKIPPED
        assert task.skip_reason == f"version is {status.value}"

    def test_unknown_version_fails_immediately(self, make_trigger):
        missing = uuid4()

        task = make_trigger().on_tabs_changed(missing, "bs")

        assert task.status is RecalculationStatus.FAILED
        assert task.errors == (f"Version not found: {missing}",)
        assert task.finished_at is not None

    def test_string_version_id_accepted(self, make_trigger, create_version, sample_tabs):
        version_id = create_version(tabs=sample_tabs)
        trigger = make_trigger()

        submitted = trigger.on_tabs_changed(str(version_id), "pnl")
        finished = trigger.wait(submitted.task_id, timeout=60)

        assert submitted.version_id == version_id
        assert finished.status is RecalculationStatus.SUCCEEDED

    def test_malformed_version_id_fails_without_raising(self, make_trigger):
        task = make_trigger().on_tabs_changed("not-a-uuid", "pnl")

        assert task.status is RecalculationStatus.FAILED
        assert task.errors == ("Invalid version id: not-a-uuid",)

    def test_database_error_fails_without_raising(self, make_trigger, monkeypatch, captured_logs):
        def locked(self, version_id):
            raise OperationalError("SELECT status", {}, Exception("database is locked"))

        monkeypatch.setattr(VersionSelector, "get_status", locked)

        task = make_trigger().on_tabs_changed(uuid4(), "cf")

        assert task.status is RecalculationStatus.FAILED
        assert "database is locked" in task.errors[0]
        assert "recalculation_not_scheduled" in [r["message"] for r in captured_logs()]


class TestTaskRetention:

    def test_oldest_finished_tasks_pruned(self, make_trigger, create_version):
        trigger = make_trigger(max_finished_tasks=2)
        version_id = create_version()

        first, second, third = (
            trigger.on_tabs_changed(version_id, "notes") for _ in range(3)
        )

        assert trigger.get_task(first.task_id) is None
        assert trigger.get_task(second.task_id) == second
        assert trigger.get_task(third.task_id) == third

    def test_unfinished_task_survives_pruning(self, make_trigger, create_version):
        version_id = uuid4()
        release = threading.Event()

        class GatedService:
            def run_for_version(self, version_id, force_recalculation=False, year_range=None):
                release.wait(timeout=10)
                return CashEngineRunResult(success=True, version_id=version_id, converged=True)

        trigger = make_trigger(service=GatedService(), max_finished_tasks=0)
        submitted = trigger.submit(version_id)

        skipped = trigger.on_tabs_changed(create_version(), "notes")

        assert trigger.get_task(skipped.task_id) is None
        assert trigger.get_task(submitted.task_id) is not None
        release.set()
        assert trigger.wait(submitted.task_id, timeout=10).status is RecalculationStatus.SUCCEEDED
