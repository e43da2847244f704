"""
Years -- model horizon constants.

The planner models 30 years: 2023-2024 are historical actuals and
2025-2052 are forecast.  Pivot years are singled out by summary and
comparison views; the engine itself never treats them specially.
"""

from planner_kernel.exceptions import InvalidYearRangeError

HISTORY_START = 2023
HISTORY_END = 2024
FORECAST_START = 2025
FORECAST_END = 2052

HISTORY_YEARS: tuple[int, ...] = (2023, 2024)
YEARS: tuple[int, ...] = tuple(range(HISTORY_START, FORECAST_END + 1))
PIVOT_YEARS: tuple[int, ...] = (2024, 2025, 2028, 2038, 2048, 2052)


def is_historical_year(year: int) -> bool:
    return year in HISTORY_YEARS


def is_pivot_year(year: int) -> bool:
    return year in PIVOT_YEARS


def validate_year_range(start_year: int, end_year: int) -> None:
    """Raise InvalidYearRangeError unless ``start..end`` lies inside the horizon."""
    if start_year < HISTORY_START or end_year > FORECAST_END:
        raise InvalidYearRangeError(
            start_year, end_year,
            f"years must lie within {HISTORY_START}-{FORECAST_END}",
        )
    if start_year > end_year:
        raise InvalidYearRangeError(start_year, end_year, "start year is after end year")


def years_in_range(start_year: int, end_year: int) -> list[int]:
    """Inclusive, ascending list of model years between the bounds."""
    return [y for y in YEARS if start_year <= y <= end_year]
