"""Tests for the model horizon helpers."""

import pytest

from planner_kernel.domain.years import (
    FORECAST_END,
    HISTORY_START,
    PIVOT_YEARS,
    YEARS,
    is_historical_year,
    is_pivot_year,
    validate_year_range,
    years_in_range,
)
from planner_kernel.exceptions import InvalidYearRangeError


def test_horizon_is_thirty_years():
    assert len(YEARS) == 30
    assert YEARS[0] == HISTORY_START == 2023
    assert YEARS[-1] == FORECAST_END == 2052


@pytest.mark.parametrize("year,expected", [(2023, True), (2024, True), (2025, False)])
def test_is_historical_year(year, expected):
    assert is_historical_year(year) is expected


def test_pivot_years():
    assert all(is_pivot_year(y) for y in PIVOT_YEARS)
    assert not is_pivot_year(2030)


class TestValidateYearRange:

    def test_full_horizon_is_valid(self):
        validate_year_range(2023, 2052)

    def test_single_year_is_valid(self):
        validate_year_range(2030, 2030)

    @pytest.mark.parametrize("start,end", [(2022, 2030), (2025, 2053), (2030, 2029)])
    def test_invalid(self, start, end):
        with pytest.raises(InvalidYearRangeError) as exc_info:
            validate_year_range(start, end)

        assert exc_info.value.code == "INVALID_YEAR_RANGE"
        assert (exc_info.value.start_year, exc_info.value.end_year) == (start, end)


def test_years_in_range_is_inclusive():
    assert years_in_range(2050, 2052) == [2050, 2051, 2052]
