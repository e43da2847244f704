"""
Tests for the curriculum calculator: tuition CPI, staff costs and FR/IB aggregation.
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from planner_engines.curriculum import (
    CurriculumData,
    CurriculumType,
    aggregate_curricula,
    aggregate_curricula_multi_year,
    apply_tuition_cpi,
    calculate_average_tuition,
    calculate_revenue,
    calculate_revenue_per_sqm,
    calculate_salary_with_cpi,
    calculate_staff_cost_per_student,
    calculate_staff_costs,
    validate_curriculum_data,
)
from planner_kernel.exceptions import CurriculumYearMismatchError

SALARIES = dict(
    teacher_salary_fr=Decimal("100000"),
    teacher_salary_ib=Decimal("110000"),
    non_teacher_salary_fr=Decimal("60000"),
    non_teacher_salary_ib=Decimal("60000"),
)


def _fr(year=2025, **overrides):
    values = dict(
        curriculum_type=CurriculumType.FR,
        year=year,
        capacity=600,
        students=500,
        tuition=Decimal("50000"),
        teacher_ratio=Decimal("0.1"),
        non_teacher_ratio=Decimal("0.05"),
        cpi_frequency=2,
        cpi_base_year=2024,
    )
    values.update(overrides)
    return CurriculumData(**values)


def _ib(year=2025, **overrides):
    values = dict(
        curriculum_type=CurriculumType.IB,
        year=year,
        capacity=400,
        students=200,
        tuition=Decimal("60000"),
        teacher_ratio=Decimal("0.12"),
        non_teacher_ratio=Decimal("0.05"),
        cpi_frequency=1,
        cpi_base_year=2024,
    )
    values.update(overrides)
    return CurriculumData(**values)


class TestTuitionCpi:

    def test_gated_by_frequency(self):
        rate = Decimal("0.05")

        assert apply_tuition_cpi(Decimal("50000"), 2024, 2024, 2, rate) == Decimal("50000")
        assert apply_tuition_cpi(Decimal("50000"), 2025, 2024, 2, rate) == Decimal("50000")
        assert apply_tuition_cpi(Decimal("50000"), 2026, 2024, 2, rate) == Decimal("52500")

    def test_annual_frequency(self):
        adjusted = apply_tuition_cpi(Decimal("60000"), 2026, 2024, 1, Decimal("0.05"))
        assert adjusted == Decimal("66150")

    def test_revenue_is_students_times_adjusted_tuition(self):
        revenue = calculate_revenue(_fr(year=2026), Decimal("0.05"))
        assert revenue == Decimal("26250000")

    def test_string_type_tag_is_normalized(self):
        data = _fr(curriculum_type="IB")
        assert data.curriculum_type is CurriculumType.IB


class TestStaffCosts:

    def test_salary_compounds_every_year(self):
        salary = calculate_salary_with_cpi(Decimal("100000"), 2027, 2025, Decimal("0.05"))
        assert salary == Decimal("110250")

    def test_costs_scale_with_students_and_ratio(self):
        costs = calculate_staff_costs(
            _fr(), Decimal("100000"), Decimal("60000"), Decimal("0.05"), salary_base_year=2025,
        )

        assert costs.teacher_costs == Decimal("5000000")
        assert costs.non_teacher_costs == Decimal("1500000")
        assert costs.total_staff_costs == Decimal("6500000")


class TestAggregateCurricula:

    def test_totals(self):
        result = aggregate_curricula(
            fr_data=_fr(), ib_data=_ib(), cpi_rate=Decimal("0.05"), salary_base_year=2025,
            **SALARIES,
        )

        assert result.year == 2025
        assert result.total_revenue == Decimal("37600000")
        assert result.total_students == 700
        assert result.total_capacity == 1000
        assert result.total_utilization_pct == Decimal("70")
        assert result.total_staff_costs == Decimal("9740000")

    def test_breakdown_by_curriculum(self):
        result = aggregate_curricula(
            fr_data=_fr(), ib_data=_ib(), cpi_rate=Decimal("0.05"), salary_base_year=2025,
            **SALARIES,
        )

        assert result.revenue_by_curriculum == {
            CurriculumType.FR: Decimal("25000000"),
            CurriculumType.IB: Decimal("12600000"),
        }
        assert result.students_by_curriculum[CurriculumType.IB] == 200
        assert result.staff_costs_by_curriculum[CurriculumType.IB] == Decimal("3240000")

    def test_year_mismatch_raises(self):
        with pytest.raises(CurriculumYearMismatchError) as exc_info:
            aggregate_curricula(
                fr_data=_fr(year=2025), ib_data=_ib(year=2026),
                cpi_rate=Decimal("0"), salary_base_year=2025, **SALARIES,
            )

        assert (exc_info.value.fr_year, exc_info.value.ib_year) == (2025, 2026)

    def test_zero_capacity_reports_zero_utilization(self):
        result = aggregate_curricula(
            fr_data=_fr(capacity=0, students=0), ib_data=_ib(capacity=0, students=0),
            cpi_rate=Decimal("0"), salary_base_year=2025, **SALARIES,
        )

        assert result.total_utilization_pct == Decimal("0")
        assert result.total_revenue == Decimal("0")


class TestAggregateMultiYear:

    def test_only_years_present_for_both(self):
        results = aggregate_curricula_multi_year(
            {2025: _fr(2025), 2026: _fr(2026)},
            {2026: _ib(2026), 2027: _ib(2027)},
            cpi_rate_by_year={},
            salary_base_year=2025,
            **SALARIES,
        )

        assert [r.year for r in results] == [2026]

    def test_missing_cpi_rate_defaults_to_zero(self):
        results = aggregate_curricula_multi_year(
            {2026: _fr(2026)},
            {2026: _ib(2026)},
            cpi_rate_by_year={2025: Decimal("0.5")},
            salary_base_year=2025,
            **SALARIES,
        )

        assert results[0].total_revenue == Decimal("37000000")

    def test_years_ascending(self):
        results = aggregate_curricula_multi_year(
            {2027: _fr(2027), 2025: _fr(2025)},
            {2025: _ib(2025), 2027: _ib(2027)},
            cpi_rate_by_year={},
            salary_base_year=2025,
            **SALARIES,
        )

        assert [r.year for r in results] == [2025, 2027]


class TestValidation:

    def test_valid_data(self):
        assert validate_curriculum_data(_fr()) == []

    def test_students_exceed_capacity(self):
        errors = validate_curriculum_data(_fr(students=700))
        assert errors == ["Students cannot exceed capacity"]

    def test_ratios_and_frequency(self):
        data = replace(_ib(), teacher_ratio=Decimal("1"), cpi_frequency=4)

        assert validate_curriculum_data(data) == [
            "Teacher ratio must be between 0 and 1",
            "CPI frequency must be 1, 2, or 3 years",
        ]

    def test_year_outside_horizon(self):
        assert validate_curriculum_data(_fr(year=2060)) == [
            "Year must be between 2023 and 2052",
        ]


class TestRatioHelpers:

    def test_average_tuition(self):
        average = calculate_average_tuition(Decimal("300"), 2, Decimal("100"), 2)
        assert average == Decimal("100")

    def test_average_tuition_without_students(self):
        assert calculate_average_tuition(Decimal("300"), 0, Decimal("100"), 0) == Decimal("0")

    def test_staff_cost_per_student(self):
        assert calculate_staff_cost_per_student(Decimal("1000"), 4) == Decimal("250")
        assert calculate_staff_cost_per_student(Decimal("1000"), 0) == Decimal("0")

    def test_revenue_per_sqm(self):
        assert calculate_revenue_per_sqm(Decimal("1000"), Decimal("10")) == Decimal("100")
        assert calculate_revenue_per_sqm(Decimal("1000"), Decimal("0")) == Decimal("0")
