"""
Shared fixtures: JSON log capture, a throwaway SQLite database per test,
seeded model versions and a frozen clock.
"""

import copy
import json
import logging
from datetime import UTC, datetime
from io import StringIO
from typing import Any
from uuid import UUID

import pytest

from planner_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from planner_kernel.domain.clock import DeterministicClock
from planner_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from planner_kernel.models import ModelVersion, VersionStatus, VersionTab


@pytest.fixture(autouse=True, scope="session")
def _suite_logging():
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _fresh_log_context():
    """No run or version ids carried over from a previous test."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Callable returning every planner record emitted so far, decoded.

        records = captured_logs()
        assert "metrics_persisted" in [r["message"] for r in records]
    """
    buffer = StringIO()
    capture = logging.StreamHandler(buffer)
    capture.setFormatter(StructuredFormatter())
    planner_logger = logging.getLogger("planner_kernel")
    saved_level = planner_logger.level
    planner_logger.setLevel(logging.DEBUG)
    planner_logger.addHandler(capture)

    yield lambda: [json.loads(line) for line in buffer.getvalue().splitlines() if line]

    planner_logger.removeHandler(capture)
    planner_logger.setLevel(saved_level)


@pytest.fixture
def session_factory():
    """In-memory SQLite with the full schema; torn down after the test."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))


SAMPLE_TABS: dict[str, dict[str, Any]] = {
    "pnl": {
        "revenue": 1_000_000,
        "cost_of_sales": 400_000,
        "operating_expenses": 300_000,
        "depreciation": 50_000,
        "other_income": {"cafeteria": 10_000, "transport": 5_000},
    },
    "bs": {
        "assets_current": 600_000,
        "cash": 500_000,
        "assets_fixed": 2_000_000,
        "liabilities_current": 200_000,
        "debt": 800_000,
    },
    "cf": {
        "operating": 250_000,
        "investing_cash_in": 0,
        "investing_cash_out": 100_000,
        "financing": -50_000,
        "beginning_cash": 500_000,
    },
}


@pytest.fixture
def sample_tabs():
    return copy.deepcopy(SAMPLE_TABS)


@pytest.fixture
def create_version(session_factory):
    """Factory creating a ModelVersion with optional tabs; returns its id."""

    def _seed(
        tabs: dict[str, dict[str, Any]] | None = None,
        status: VersionStatus = VersionStatus.DRAFT,
        name: str = "Relocation scenario",
    ) -> UUID:
        with session_scope(session_factory) as session:
            version = ModelVersion(name=name, status=status.value)
            session.add(version)
            session.flush()  # assigns version.id
            for tab, data in (tabs or {}).items():
                session.add(VersionTab(version_id=version.id, tab=tab, data=data))
            return version.id

    return _seed
