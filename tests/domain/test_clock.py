"""Tests for the injectable clocks."""

from datetime import datetime, timezone

from planner_kernel.domain.clock import DeterministicClock, SystemClock


def test_system_clock_is_utc_aware():
    assert SystemClock().now().tzinfo is timezone.utc


def test_deterministic_clock_is_pinned():
    clock = DeterministicClock(datetime(2030, 6, 1, tzinfo=timezone.utc))

    assert clock.now() == clock.now() == datetime(2030, 6, 1, tzinfo=timezone.utc)


def test_tick_moves_forward():
    clock = DeterministicClock()
    start = clock.now()

    assert clock.tick(90) == clock.now()
    assert (clock.now() - start).total_seconds() == 90
