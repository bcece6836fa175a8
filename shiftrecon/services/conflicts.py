from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, time
from typing import Literal

from sqlalchemy import select
from sqlalchemy.orm import Session

from shiftrecon.errors import ApiError
from shiftrecon.models import COUNTED_ASSIGNMENT_STATUSES, Shift, ShiftAssignment
from shiftrecon.services.availability import (
    AvailabilityResult,
    ensure_company_employee,
    resolve_employee_availability,
)
from shiftrecon.services.reconcile_calc import format_hhmm

ConflictMode = Literal["warn", "block"]


@dataclass(frozen=True)
class ConflictInfo:
    shift_id: int
    shift_title: str
    time_label: str


@dataclass(frozen=True)
class AssignmentCheck:
    employee_id: int
    day_date: date
    availability: AvailabilityResult
    conflicts: list[ConflictInfo] = field(default_factory=list)

    @property
    def has_findings(self) -> bool:
        return not self.availability.available or bool(self.conflicts)


def time_range_label(start: time, end: time) -> str:
    return f"{format_hhmm(start)}–{format_hhmm(end)}"


def windows_conflict(start: time, end: time, other_start: time, other_end: time) -> bool:
    # Same-day clock values, half-open [start, end); no wraparound.
    return start < other_end and end > other_start


def find_conflicts(
    employee_id: int,
    day_date: date,
    start: time,
    end: time,
    shifts: Iterable[Shift],
    assignments: Iterable[ShiftAssignment],
    *,
    exclude_shift_id: int | None = None,
) -> list[ConflictInfo]:
    assigned_shift_ids = {
        assignment.shift_id
        for assignment in assignments or []
        if assignment.employee_id == employee_id and assignment.is_counted
    }

    conflicts: list[ConflictInfo] = []
    for shift in sorted(shifts or [], key=lambda item: (item.start_time or time.min, item.id or 0)):
        if shift.id not in assigned_shift_ids or shift.id == exclude_shift_id:
            continue
        if shift.shift_date != day_date:
            continue
        if shift.start_time is None or shift.end_time is None:
            continue
        if windows_conflict(start, end, shift.start_time, shift.end_time):
            conflicts.append(
                ConflictInfo(
                    shift_id=shift.id,
                    shift_title=shift.title,
                    time_label=time_range_label(shift.start_time, shift.end_time),
                )
            )
    return conflicts


def load_employee_day_schedule(
    db: Session,
    *,
    company_id: int,
    employee_id: int,
    day_date: date,
) -> tuple[list[Shift], list[ShiftAssignment]]:
    assignments = list(
        db.scalars(
            select(ShiftAssignment)
            .join(Shift, Shift.id == ShiftAssignment.shift_id)
            .where(
                ShiftAssignment.company_id == company_id,
                ShiftAssignment.employee_id == employee_id,
                ShiftAssignment.status.in_(sorted(COUNTED_ASSIGNMENT_STATUSES)),
                Shift.shift_date == day_date,
                Shift.deleted_at.is_(None),
            )
        ).all()
    )
    shift_ids = {assignment.shift_id for assignment in assignments}
    if not shift_ids:
        return [], []
    shifts = list(
        db.scalars(
            select(Shift).where(Shift.id.in_(shift_ids)).order_by(Shift.start_time.asc(), Shift.id.asc())
        ).all()
    )
    return shifts, assignments


def check_assignment(
    db: Session,
    *,
    company_id: int,
    employee_id: int,
    day_date: date,
    start: time,
    end: time,
    exclude_shift_id: int | None = None,
    mode: ConflictMode = "warn",
) -> AssignmentCheck:
    ensure_company_employee(db, company_id=company_id, employee_id=employee_id)
    availability = resolve_employee_availability(
        db,
        company_id=company_id,
        employee_id=employee_id,
        day_date=day_date,
        start=start,
        end=end,
    )
    shifts, assignments = load_employee_day_schedule(
        db,
        company_id=company_id,
        employee_id=employee_id,
        day_date=day_date,
    )
    result = AssignmentCheck(
        employee_id=employee_id,
        day_date=day_date,
        availability=availability,
        conflicts=find_conflicts(
            employee_id,
            day_date,
            start,
            end,
            shifts,
            assignments,
            exclude_shift_id=exclude_shift_id,
        ),
    )

    if mode == "block" and result.has_findings:
        raise ApiError(
            status_code=409,
            code="ASSIGNMENT_BLOCKED",
            message=availability.reason
            if not availability.available
            else "Employee already has an overlapping shift.",
            details={
                "available": availability.available,
                "reason": availability.reason,
                "conflicts": [
                    {
                        "shift_id": conflict.shift_id,
                        "shift_title": conflict.shift_title,
                        "time": conflict.time_label,
                    }
                    for conflict in result.conflicts
                ],
            },
        )
    return result
