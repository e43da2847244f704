"""
planner_engines.curriculum -- Tuition revenue and staff cost for the FR and IB curricula.

Responsibility:
    Compute CPI-adjusted tuition, revenue, escalated salaries and staff cost
    per curriculum and year, and aggregate the two curricula into a single
    school-level view.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import planner_kernel domain/logging/exceptions.

Invariants enforced:
    - Tuition CPI is gated: the exponent is floor((year - cpi_base_year) / frequency).
    - Salary escalation compounds every year from the salary base year, with
      no frequency gate.
    - Aggregation requires both curricula to describe the same year.
    - students <= capacity is NOT enforced here; ``validate_curriculum_data``
      reports it.

Failure modes:
    - CurriculumYearMismatchError from ``aggregate_curricula`` when the FR and
      IB records carry different years.
    - Division-by-zero safe: utilization and per-unit helpers return 0.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from planner_kernel.domain.values import to_decimal
from planner_kernel.domain.years import FORECAST_END, HISTORY_START
from planner_kernel.exceptions import CurriculumYearMismatchError
from planner_kernel.logging_config import get_logger
from planner_engines.tracer import traced_engine

logger = get_logger("engines.curriculum")

_ZERO = Decimal("0")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")


class CurriculumType(str, Enum):
    FR = "FR"
    IB = "IB"


@dataclass(frozen=True)
class CurriculumData:
    """One curriculum's enrolment and pricing inputs for one year."""

    curriculum_type: CurriculumType
    year: int
    capacity: int
    students: int
    tuition: Decimal  # before CPI
    teacher_ratio: Decimal  # teachers per student, e.g. 0.15
    non_teacher_ratio: Decimal
    cpi_frequency: int  # 1, 2 or 3 years
    cpi_base_year: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "curriculum_type", CurriculumType(self.curriculum_type))
        for name in ("tuition", "teacher_ratio", "non_teacher_ratio"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))


@dataclass(frozen=True)
class StaffCosts:
    teacher_costs: Decimal
    non_teacher_costs: Decimal

    @property
    def total_staff_costs(self) -> Decimal:
        return self.teacher_costs + self.non_teacher_costs


@dataclass(frozen=True)
class CurriculumFinancials:
    curriculum: CurriculumType
    year: int
    students: int
    capacity: int
    utilization_pct: Decimal
    tuition_base: Decimal
    tuition_adjusted: Decimal
    revenue: Decimal
    staff_costs: StaffCosts


@dataclass(frozen=True)
class AggregateFinancials:
    """School-level totals for one year plus the per-curriculum breakdown."""

    year: int
    total_revenue: Decimal
    total_students: int
    total_capacity: int
    total_utilization_pct: Decimal
    total_staff_costs: Decimal
    curricula: tuple[CurriculumFinancials, ...]

    @property
    def revenue_by_curriculum(self) -> dict[CurriculumType, Decimal]:
        return {c.curriculum: c.revenue for c in self.curricula}

    @property
    def students_by_curriculum(self) -> dict[CurriculumType, int]:
        return {c.curriculum: c.students for c in self.curricula}

    @property
    def staff_costs_by_curriculum(self) -> dict[CurriculumType, Decimal]:
        return {c.curriculum: c.staff_costs.total_staff_costs for c in self.curricula}


def _utilization(students: int, capacity: int) -> Decimal:
    if capacity <= 0:
        return _ZERO
    return Decimal(students) / Decimal(capacity) * _HUNDRED


# ---------------------------------------------------------------------------
# Tuition and revenue
# ---------------------------------------------------------------------------


def apply_tuition_cpi(
    base_tuition: Decimal,
    current_year: int,
    base_year: int,
    frequency: int,
    cpi_rate: Decimal,
) -> Decimal:
    """
    base_tuition * (1 + cpi_rate) ** floor((current_year - base_year) / frequency)

    With frequency=2 and base year 2024, 2025 keeps the base tuition and
    2026 receives the first adjustment.
    """
    applications = (current_year - base_year) // frequency
    return to_decimal(base_tuition) * (_ONE + to_decimal(cpi_rate)) ** applications


def calculate_revenue(data: CurriculumData, cpi_rate: Decimal) -> Decimal:
    """students * CPI-adjusted tuition"""
    adjusted = apply_tuition_cpi(
        data.tuition, data.year, data.cpi_base_year, data.cpi_frequency, cpi_rate,
    )
    return data.students * adjusted


# ---------------------------------------------------------------------------
# Staff costs
# ---------------------------------------------------------------------------


def calculate_salary_with_cpi(
    base_salary: Decimal,
    current_year: int,
    base_year: int,
    cpi_rate: Decimal,
) -> Decimal:
    """base_salary * (1 + cpi_rate) ** (current_year - base_year), compounding yearly."""
    return to_decimal(base_salary) * (_ONE + to_decimal(cpi_rate)) ** (current_year - base_year)


def calculate_staff_costs(
    data: CurriculumData,
    teacher_salary_base: Decimal,
    non_teacher_salary_base: Decimal,
    cpi_rate: Decimal,
    salary_base_year: int,
) -> StaffCosts:
    """Teacher and non-teacher cost rows: students * ratio * escalated salary."""
    teacher_salary = calculate_salary_with_cpi(
        teacher_salary_base, data.year, salary_base_year, cpi_rate,
    )
    non_teacher_salary = calculate_salary_with_cpi(
        non_teacher_salary_base, data.year, salary_base_year, cpi_rate,
    )
    return StaffCosts(
        teacher_costs=data.students * data.teacher_ratio * teacher_salary,
        non_teacher_costs=data.students * data.non_teacher_ratio * non_teacher_salary,
    )


def calculate_curriculum_financials(
    data: CurriculumData,
    teacher_salary_base: Decimal,
    non_teacher_salary_base: Decimal,
    cpi_rate: Decimal,
    salary_base_year: int,
) -> CurriculumFinancials:
    tuition_adjusted = apply_tuition_cpi(
        data.tuition, data.year, data.cpi_base_year, data.cpi_frequency, cpi_rate,
    )
    staff_costs = calculate_staff_costs(
        data, teacher_salary_base, non_teacher_salary_base, cpi_rate, salary_base_year,
    )
    return CurriculumFinancials(
        curriculum=data.curriculum_type,
        year=data.year,
        students=data.students,
        capacity=data.capacity,
        utilization_pct=_utilization(data.students, data.capacity),
        tuition_base=data.tuition,
        tuition_adjusted=tuition_adjusted,
        revenue=data.students * tuition_adjusted,
        staff_costs=staff_costs,
    )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


@traced_engine("curriculum", "1.0", fingerprint_fields=("fr_data", "ib_data", "cpi_rate"))
def aggregate_curricula(
    *,
    fr_data: CurriculumData,
    ib_data: CurriculumData,
    teacher_salary_fr: Decimal,
    teacher_salary_ib: Decimal,
    non_teacher_salary_fr: Decimal,
    non_teacher_salary_ib: Decimal,
    cpi_rate: Decimal,
    salary_base_year: int,
) -> AggregateFinancials:
    """
    Sum revenue, students, capacity and staff cost across FR and IB.

    Raises:
        CurriculumYearMismatchError: ``fr_data.year != ib_data.year``.
    """
    if fr_data.year != ib_data.year:
        raise CurriculumYearMismatchError(fr_data.year, ib_data.year)

    fr = calculate_curriculum_financials(
        fr_data, teacher_salary_fr, non_teacher_salary_fr, cpi_rate, salary_base_year,
    )
    ib = calculate_curriculum_financials(
        ib_data, teacher_salary_ib, non_teacher_salary_ib, cpi_rate, salary_base_year,
    )

    total_students = fr.students + ib.students
    total_capacity = fr.capacity + ib.capacity

    return AggregateFinancials(
        year=fr_data.year,
        total_revenue=fr.revenue + ib.revenue,
        total_students=total_students,
        total_capacity=total_capacity,
        total_utilization_pct=_utilization(total_students, total_capacity),
        total_staff_costs=fr.staff_costs.total_staff_costs + ib.staff_costs.total_staff_costs,
        curricula=(fr, ib),
    )


def aggregate_curricula_multi_year(
    fr_data_by_year: Mapping[int, CurriculumData],
    ib_data_by_year: Mapping[int, CurriculumData],
    *,
    teacher_salary_fr: Decimal,
    teacher_salary_ib: Decimal,
    non_teacher_salary_fr: Decimal,
    non_teacher_salary_ib: Decimal,
    cpi_rate_by_year: Mapping[int, Decimal],
    salary_base_year: int,
) -> list[AggregateFinancials]:
    """Aggregate every year present for both curricula, ascending.

    Years without a CPI rate use 0.
    """
    common_years = sorted(set(fr_data_by_year) & set(ib_data_by_year))
    return [
        aggregate_curricula(
            fr_data=fr_data_by_year[year],
            ib_data=ib_data_by_year[year],
            teacher_salary_fr=teacher_salary_fr,
            teacher_salary_ib=teacher_salary_ib,
            non_teacher_salary_fr=non_teacher_salary_fr,
            non_teacher_salary_ib=non_teacher_salary_ib,
            cpi_rate=cpi_rate_by_year.get(year, _ZERO),
            salary_base_year=salary_base_year,
        )
        for year in common_years
    ]


# ---------------------------------------------------------------------------
# Validation and ratios
# ---------------------------------------------------------------------------


def validate_curriculum_data(data: CurriculumData) -> list[str]:
    errors = []
    if data.capacity <= 0:
        errors.append("Capacity must be greater than 0")
    if data.students < 0:
        errors.append("Students cannot be negative")
    if data.students > data.capacity:
        errors.append("Students cannot exceed capacity")
    if data.tuition <= _ZERO:
        errors.append("Tuition must be greater than 0")
    if data.teacher_ratio <= _ZERO or data.teacher_ratio >= _ONE:
        errors.append("Teacher ratio must be between 0 and 1")
    if data.non_teacher_ratio <= _ZERO or data.non_teacher_ratio >= _ONE:
        errors.append("Non-teacher ratio must be between 0 and 1")
    if data.cpi_frequency not in (1, 2, 3):
        errors.append("CPI frequency must be 1, 2, or 3 years")
    if data.year < HISTORY_START or data.year > FORECAST_END:
        errors.append(f"Year must be between {HISTORY_START} and {FORECAST_END}")
    return errors


def calculate_average_tuition(
    fr_revenue: Decimal, fr_students: int, ib_revenue: Decimal, ib_students: int,
) -> Decimal:
    total_students = fr_students + ib_students
    if total_students == 0:
        return _ZERO
    return (to_decimal(fr_revenue) + to_decimal(ib_revenue)) / Decimal(total_students)


def calculate_staff_cost_per_student(total_staff_costs: Decimal, total_students: int) -> Decimal:
    if total_students == 0:
        return _ZERO
    return to_decimal(total_staff_costs) / Decimal(total_students)


def calculate_revenue_per_sqm(total_revenue: Decimal, bua_size: Decimal) -> Decimal:
    bua_size = to_decimal(bua_size)
    if bua_size == _ZERO:
        return _ZERO
    return to_decimal(total_revenue) / bua_size
