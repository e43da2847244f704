"""Tests for planner_kernel.logging_config: JSON records, run context, setup."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from planner_kernel.exceptions import CurriculumYearMismatchError, EngineConfigError
from planner_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def json_stream():
    """Route planner logs (INFO and up) to a fresh stream; restore suite logging after."""
    reset_logging()
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    configure_logging(handler=handler)

    def records() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield records
    reset_logging()
    configure_logging(level=logging.DEBUG)


class TestRecordShape:

    def test_core_fields(self, json_stream):
        get_logger("services.cash_engine").info("cash_engine_run_started")

        (record,) = json_stream()
        assert record["message"] == "cash_engine_run_started"
        assert record["level"] == "INFO"
        assert record["logger"] == "planner_kernel.services.cash_engine"
        assert record["ts"].endswith("+00:00")

    def test_extra_fields_are_top_level(self, json_stream):
        get_logger("services.metric_store").info(
            "metrics_persisted", extra={"total_metrics": 588, "years_processed": 28},
        )

        (record,) = json_stream()
        assert record["total_metrics"] == 588
        assert record["years_processed"] == 28

    def test_uuid_and_decimal_rendered_as_strings(self, json_stream):
        version_id = uuid4()
        get_logger("test").info(
            "cash_engine_year_converged",
            extra={"version": version_id, "last_error": Decimal("0.004")},
        )

        (record,) = json_stream()
        assert record["version"] == str(version_id)
        assert record["last_error"] == "0.004"

    def test_debug_dropped_at_info(self, json_stream):
        logger = get_logger("test")
        logger.debug("hidden")
        logger.warning("shown")

        assert [r["message"] for r in json_stream()] == ["shown"]


class TestExceptionFields:

    def test_planner_error_attributes(self, json_stream):
        try:
            raise CurriculumYearMismatchError(2025, 2026)
        except CurriculumYearMismatchError:
            get_logger("engines.curriculum").error("aggregation_failed", exc_info=True)

        (record,) = json_stream()
        assert record["exc_type"] == "CurriculumYearMismatchError"
        assert record["exc_code"] == "CURRICULUM_YEAR_MISMATCH"
        assert (record["exc_fr_year"], record["exc_ib_year"]) == (2025, 2026)
        assert "Traceback" in record["traceback"]

    def test_decimal_attribute_serializes(self, json_stream):
        try:
            raise EngineConfigError("tolerance", Decimal("-1"), "must be >= 0")
        except EngineConfigError:
            get_logger("config").warning("config_rejected", exc_info=True)

        (record,) = json_stream()
        assert record["exc_value"] == "-1"
        assert record["exc_field"] == "tolerance"

    def test_plain_exception_has_no_code(self, json_stream):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        (record,) = json_stream()
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record


class TestLogContext:

    def test_fields_stamped_on_records(self, json_stream):
        LogContext.set(version_id="v-1", run_id="r-1")
        get_logger("test").info("cash_engine_run_started")

        (record,) = json_stream()
        assert (record["version_id"], record["run_id"]) == ("v-1", "r-1")

    def test_set_ignores_none(self):
        LogContext.set(task_id="t-1")
        LogContext.set(task_id=None, correlation_id="c-1")

        assert LogContext.get_all() == {"task_id": "t-1", "correlation_id": "c-1"}

    def test_clear(self):
        LogContext.set(version_id="x")
        LogContext.clear()

        assert LogContext.get_all() == {}

    def test_bind_restores_outer_value(self):
        LogContext.set(run_id="outer")

        with LogContext.bind(run_id="inner"):
            assert LogContext.get_all()["run_id"] == "inner"

        assert LogContext.get_all()["run_id"] == "outer"

    def test_bind_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(version_id="temp"):
                raise RuntimeError("run failed")

        assert "version_id" not in LogContext.get_all()


class TestSetup:

    def test_configure_is_idempotent(self, json_stream):
        configure_logging(handler=logging.StreamHandler(StringIO()))

        assert len(logging.getLogger("planner_kernel").handlers) == 1

    def test_records_do_not_reach_root(self, json_stream):
        assert logging.getLogger("planner_kernel").propagate is False

    def test_formatter_usable_standalone(self):
        record = logging.makeLogRecord({"name": "x", "levelname": "INFO", "msg": "hi"})

        payload = json.loads(StructuredFormatter().format(record))

        assert payload["message"] == "hi"

    def test_logger_namespace(self):
        assert get_logger("engines.rent").name == "planner_kernel.engines.rent"
