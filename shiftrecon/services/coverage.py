from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, time
from typing import Literal

from shiftrecon.models import CoverageStatus, DiscrepancyType, Shift
from shiftrecon.services.discrepancies import DiscrepancyItem, DiscrepancyReport
from shiftrecon.services.reconcile_calc import clamp_percent, planned_labor_hours, round_half_up

CoverageView = Literal["issues", "all"]

_ASSIGNED_TYPES: frozenset[DiscrepancyType] = frozenset(
    {
        DiscrepancyType.NO_SHOW,
        DiscrepancyType.LATE_ARRIVAL,
        DiscrepancyType.EARLY_DEPARTURE,
        DiscrepancyType.OK,
    }
)


@dataclass(frozen=True)
class EmployeeRef:
    employee_id: int
    name: str


@dataclass(frozen=True)
class ClockedEmployee:
    employee_id: int
    name: str
    hours: float


@dataclass(frozen=True)
class ShiftCoverage:
    shift_id: int
    shift_title: str
    shift_code: str | None
    date: date
    start_time: time | None
    end_time: time | None
    client_id: int | None
    slots: int
    assigned_employees: tuple[EmployeeRef, ...]
    clocked_employees: tuple[ClockedEmployee, ...]
    missing_employees: tuple[EmployeeRef, ...]
    extra_employees: tuple[ClockedEmployee, ...]
    total_assigned: int
    total_clocked: int
    coverage_percent: int
    status: CoverageStatus
    scheduled_hours: float
    worked_hours: float

    @property
    def has_issues(self) -> bool:
        return bool(self.missing_employees or self.extra_employees)


@dataclass(frozen=True)
class CoverageSummary:
    total_shifts: int
    status_counts: dict[CoverageStatus, int]
    overall_percent: int
    total_slots: int
    total_clocked: int
    total_scheduled_hours: float
    total_worked_hours: float
    total_no_shows: int
    total_extras: int
    failed_shifts: int = 0
    items: list[ShiftCoverage] = field(default_factory=list)

    @property
    def fully_covered(self) -> int:
        return self.status_counts[CoverageStatus.FULL]

    @property
    def partially_covered(self) -> int:
        return self.status_counts[CoverageStatus.PARTIAL]

    @property
    def uncovered(self) -> int:
        return self.status_counts[CoverageStatus.UNCOVERED]

    @property
    def over_covered(self) -> int:
        return self.status_counts[CoverageStatus.OVER]

    @property
    def empty(self) -> int:
        return self.status_counts[CoverageStatus.EMPTY]


def coverage_status(
    *,
    total_assigned: int,
    total_clocked: int,
    missing_count: int,
    extra_count: int,
) -> CoverageStatus:
    if total_assigned == 0 and total_clocked == 0:
        return CoverageStatus.EMPTY
    if total_assigned > 0 and total_clocked == 0:
        return CoverageStatus.UNCOVERED
    if missing_count > 0:
        return CoverageStatus.PARTIAL
    if extra_count > 0:
        return CoverageStatus.OVER
    return CoverageStatus.FULL


def coverage_percent(total_assigned: int, total_clocked: int) -> int:
    if total_assigned > 0:
        return round_half_up(min(total_clocked, total_assigned) / total_assigned * 100)
    return 100 if total_clocked > 0 else 0


def aggregate_shift(shift: Shift, items: Iterable[DiscrepancyItem]) -> ShiftCoverage:
    shift_items = [item for item in items if item.shift_id == shift.id]

    assigned = [
        EmployeeRef(employee_id=item.employee_id, name=item.employee_name)
        for item in shift_items
        if item.type in _ASSIGNED_TYPES
    ]
    missing = [
        EmployeeRef(employee_id=item.employee_id, name=item.employee_name)
        for item in shift_items
        if item.type == DiscrepancyType.NO_SHOW
    ]
    clocked = [
        ClockedEmployee(employee_id=item.employee_id, name=item.employee_name, hours=item.hours_worked)
        for item in shift_items
        if item.has_clocked
    ]
    extra = [
        ClockedEmployee(employee_id=item.employee_id, name=item.employee_name, hours=item.hours_worked)
        for item in shift_items
        if item.type == DiscrepancyType.EXTRA_CLOCK
    ]

    total_assigned = len({ref.employee_id for ref in assigned})
    total_clocked = len({ref.employee_id for ref in clocked})
    status = coverage_status(
        total_assigned=total_assigned,
        total_clocked=total_clocked,
        missing_count=len(missing),
        extra_count=len(extra),
    )

    if shift.start_time is not None and shift.end_time is not None:
        scheduled = planned_labor_hours(shift.start_time, shift.end_time, shift.slots)
    else:
        scheduled = 0.0

    return ShiftCoverage(
        shift_id=shift.id,
        shift_title=shift.title,
        shift_code=shift.shift_code,
        date=shift.shift_date,
        start_time=shift.start_time,
        end_time=shift.end_time,
        client_id=shift.client_id,
        slots=max(1, shift.slots or 1),
        assigned_employees=tuple(assigned),
        clocked_employees=tuple(clocked),
        missing_employees=tuple(missing),
        extra_employees=tuple(extra),
        total_assigned=total_assigned,
        total_clocked=total_clocked,
        coverage_percent=coverage_percent(total_assigned, total_clocked),
        status=status,
        scheduled_hours=scheduled,
        worked_hours=round(sum(employee.hours for employee in clocked), 2),
    )


def summarize_coverage(
    coverages: Iterable[ShiftCoverage],
    *,
    failed_shift_count: int = 0,
) -> CoverageSummary:
    items = list(coverages)
    status_counts = {status: 0 for status in CoverageStatus}
    for item in items:
        status_counts[item.status] += 1

    total_slots = sum(item.slots for item in items)
    total_clocked = sum(item.total_clocked for item in items)
    if total_slots > 0:
        overall_percent = clamp_percent(round_half_up(total_clocked / total_slots * 100))
    else:
        overall_percent = 100

    return CoverageSummary(
        total_shifts=len(items),
        status_counts=status_counts,
        overall_percent=overall_percent,
        total_slots=total_slots,
        total_clocked=total_clocked,
        total_scheduled_hours=round(sum(item.scheduled_hours for item in items), 2),
        total_worked_hours=round(sum(item.worked_hours for item in items), 2),
        total_no_shows=sum(len(item.missing_employees) for item in items),
        total_extras=sum(len(item.extra_employees) for item in items),
        failed_shifts=failed_shift_count,
        items=items,
    )


def build_coverage_summary(report: DiscrepancyReport) -> CoverageSummary:
    coverages = [
        aggregate_shift(classification.shift, classification.items)
        for classification in report.shifts
        if classification.error is None
    ]
    return summarize_coverage(coverages, failed_shift_count=len(report.failed_shifts))


def filter_coverage_view(summary: CoverageSummary, view: CoverageView) -> list[ShiftCoverage]:
    if view == "all":
        return list(summary.items)
    return [item for item in summary.items if item.has_issues]
