from __future__ import annotations

import logging
from collections import Counter, defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time, tzinfo

from shiftrecon.models import (
    DiscrepancyType,
    Employee,
    Shift,
    ShiftAssignment,
    ShiftPayType,
    TimeEntry,
    TimeEntryStatus,
)
from shiftrecon.services.reconcile_calc import (
    LATE_THRESHOLD_MINUTES,
    evaluate_attendance,
    scheduled_window,
    to_local,
    worked_hours,
)

logger = logging.getLogger("shiftrecon.reconcile")

UNPLANNED_SHIFT_TITLE = "(no scheduled shift)"
UNKNOWN_EMPLOYEE_NAME = "Unknown"

MISSING_START_TIME = "MISSING_START_TIME"
MISSING_END_TIME = "MISSING_END_TIME"

DISCREPANCY_TYPE_ORDER: dict[DiscrepancyType, int] = {
    DiscrepancyType.NO_SHOW: 0,
    DiscrepancyType.LATE_ARRIVAL: 1,
    DiscrepancyType.EARLY_DEPARTURE: 2,
    DiscrepancyType.EXTRA_CLOCK: 3,
    DiscrepancyType.OK: 4,
}


@dataclass(frozen=True)
class DiscrepancyItem:
    shift_id: int | None
    shift_title: str
    shift_code: str | None
    date: date
    pay_type: ShiftPayType
    scheduled_start: time | None
    scheduled_end: time | None
    employee_id: int
    employee_name: str
    type: DiscrepancyType
    clock_in: datetime | None
    clock_out: datetime | None
    minutes_diff: int
    hours_worked: float
    time_entry_id: int | None = None

    @property
    def is_assigned(self) -> bool:
        return self.type != DiscrepancyType.EXTRA_CLOCK

    @property
    def has_clocked(self) -> bool:
        return self.type != DiscrepancyType.NO_SHOW


@dataclass(frozen=True)
class ShiftClassification:
    shift: Shift
    items: tuple[DiscrepancyItem, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class FailedShift:
    shift_id: int
    shift_title: str
    date: date
    error: str


@dataclass(frozen=True)
class DiscrepancyReport:
    items: list[DiscrepancyItem] = field(default_factory=list)
    shifts: list[ShiftClassification] = field(default_factory=list)
    failed_shifts: list[FailedShift] = field(default_factory=list)

    def counts(self) -> dict[DiscrepancyType, int]:
        counter = Counter(item.type for item in self.items)
        return {item_type: counter.get(item_type, 0) for item_type in DiscrepancyType}


def is_counted_entry(entry: TimeEntry) -> bool:
    return entry.status is None or TimeEntryStatus(entry.status) != TimeEntryStatus.REJECTED


def pick_entry(entries: Iterable[TimeEntry]) -> TimeEntry | None:
    """Earliest clock_in wins; ties fall back to the lowest entry id."""
    candidates = list(entries)
    if not candidates:
        return None
    return min(candidates, key=lambda entry: (entry.clock_in, entry.id or 0))


def build_employee_name_map(employees: Iterable[Employee]) -> dict[int, str]:
    return {employee.id: employee.full_name or UNKNOWN_EMPLOYEE_NAME for employee in employees}


def shift_time_error(shift: Shift) -> str | None:
    if shift.start_time is None:
        return MISSING_START_TIME
    if shift.end_time is None:
        return MISSING_END_TIME
    return None


def _pay_type(shift: Shift) -> ShiftPayType:
    if shift.pay_type is None:
        return ShiftPayType.HOURLY
    return ShiftPayType(shift.pay_type)


def _item_sort_key(item: DiscrepancyItem) -> tuple:
    return (
        DISCREPANCY_TYPE_ORDER[item.type],
        item.date,
        item.scheduled_start or time.min,
        item.shift_id or 0,
        item.employee_id,
        item.clock_in.timestamp() if item.clock_in is not None else 0.0,
    )


def sort_items(items: Iterable[DiscrepancyItem]) -> list[DiscrepancyItem]:
    return sorted(items, key=_item_sort_key)


def _shift_item(
    shift: Shift,
    *,
    employee_id: int,
    employee_names: dict[int, str],
    item_type: DiscrepancyType,
    entry: TimeEntry | None = None,
    minutes_diff: int = 0,
) -> DiscrepancyItem:
    return DiscrepancyItem(
        shift_id=shift.id,
        shift_title=shift.title,
        shift_code=shift.shift_code,
        date=shift.shift_date,
        pay_type=_pay_type(shift),
        scheduled_start=shift.start_time,
        scheduled_end=shift.end_time,
        employee_id=employee_id,
        employee_name=employee_names.get(employee_id, UNKNOWN_EMPLOYEE_NAME),
        type=item_type,
        clock_in=entry.clock_in if entry is not None else None,
        clock_out=entry.clock_out if entry is not None else None,
        minutes_diff=minutes_diff,
        hours_worked=worked_hours(entry.clock_in, entry.clock_out, entry.break_minutes) if entry is not None else 0.0,
        time_entry_id=entry.id if entry is not None else None,
    )


def classify_shift(
    shift: Shift,
    assignments: Iterable[ShiftAssignment],
    time_entries: Iterable[TimeEntry],
    employee_names: dict[int, str],
    *,
    tz: tzinfo,
    threshold_minutes: int = LATE_THRESHOLD_MINUTES,
) -> ShiftClassification:
    error = shift_time_error(shift)
    if error is not None:
        logger.warning(
            "shift_classification_failed",
            extra={"shift_id": shift.id, "shift_date": shift.shift_date, "error": error},
        )
        return ShiftClassification(shift=shift, error=error)

    assigned_ids = sorted(
        {
            assignment.employee_id
            for assignment in assignments
            if assignment.shift_id == shift.id and assignment.is_counted
        }
    )
    entries_by_employee: dict[int, list[TimeEntry]] = defaultdict(list)
    for entry in time_entries:
        if entry.shift_id == shift.id and is_counted_entry(entry):
            entries_by_employee[entry.employee_id].append(entry)

    scheduled_start, scheduled_end = scheduled_window(shift.shift_date, shift.start_time, shift.end_time, tz)
    items: list[DiscrepancyItem] = []

    for employee_id in assigned_ids:
        entry = pick_entry(entries_by_employee.get(employee_id, []))
        if entry is None:
            items.append(
                _shift_item(
                    shift,
                    employee_id=employee_id,
                    employee_names=employee_names,
                    item_type=DiscrepancyType.NO_SHOW,
                )
            )
            continue

        verdict = evaluate_attendance(
            pay_type=_pay_type(shift),
            scheduled_start=scheduled_start,
            scheduled_end=scheduled_end,
            clock_in=to_local(entry.clock_in, tz),
            clock_out=to_local(entry.clock_out, tz) if entry.clock_out is not None else None,
            threshold_minutes=threshold_minutes,
        )
        items.append(
            _shift_item(
                shift,
                employee_id=employee_id,
                employee_names=employee_names,
                item_type=verdict.type,
                entry=entry,
                minutes_diff=verdict.minutes_diff,
            )
        )

    assigned_set = set(assigned_ids)
    for employee_id in sorted(entries_by_employee):
        if employee_id in assigned_set:
            continue
        items.append(
            _shift_item(
                shift,
                employee_id=employee_id,
                employee_names=employee_names,
                item_type=DiscrepancyType.EXTRA_CLOCK,
                entry=pick_entry(entries_by_employee[employee_id]),
            )
        )

    return ShiftClassification(shift=shift, items=tuple(items))


def classify_unlinked_entries(
    time_entries: Iterable[TimeEntry],
    employee_names: dict[int, str],
    *,
    tz: tzinfo,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[DiscrepancyItem]:
    items: list[DiscrepancyItem] = []
    for entry in time_entries:
        if entry.shift_id is not None or not is_counted_entry(entry):
            continue
        local_day = to_local(entry.clock_in, tz).date()
        if start_date is not None and local_day < start_date:
            continue
        if end_date is not None and local_day > end_date:
            continue
        items.append(
            DiscrepancyItem(
                shift_id=None,
                shift_title=UNPLANNED_SHIFT_TITLE,
                shift_code=None,
                date=local_day,
                pay_type=ShiftPayType.HOURLY,
                scheduled_start=None,
                scheduled_end=None,
                employee_id=entry.employee_id,
                employee_name=employee_names.get(entry.employee_id, UNKNOWN_EMPLOYEE_NAME),
                type=DiscrepancyType.EXTRA_CLOCK,
                clock_in=entry.clock_in,
                clock_out=entry.clock_out,
                minutes_diff=0,
                hours_worked=worked_hours(entry.clock_in, entry.clock_out, entry.break_minutes),
                time_entry_id=entry.id,
            )
        )
    return items


def _shift_sort_key(shift: Shift) -> tuple:
    return (shift.shift_date, shift.start_time or time.min, shift.id or 0)


def classify_range(
    shifts: Iterable[Shift],
    assignments: Iterable[ShiftAssignment],
    time_entries: Iterable[TimeEntry],
    employees: Iterable[Employee],
    *,
    tz: tzinfo,
    threshold_minutes: int = LATE_THRESHOLD_MINUTES,
    start_date: date | None = None,
    end_date: date | None = None,
) -> DiscrepancyReport:
    """Classify every (shift, employee) pair plus the unplanned entries of the range.

    Inputs may arrive in any order; the output depends only on their content.
    """
    employee_names = build_employee_name_map(employees or [])

    assignments_by_shift: dict[int, list[ShiftAssignment]] = defaultdict(list)
    for assignment in assignments or []:
        assignments_by_shift[assignment.shift_id].append(assignment)

    entries_by_shift: dict[int, list[TimeEntry]] = defaultdict(list)
    unlinked_entries: list[TimeEntry] = []
    for entry in time_entries or []:
        if entry.shift_id is None:
            unlinked_entries.append(entry)
        else:
            entries_by_shift[entry.shift_id].append(entry)

    classifications: list[ShiftClassification] = []
    failed_shifts: list[FailedShift] = []
    items: list[DiscrepancyItem] = []
    for shift in sorted(shifts or [], key=_shift_sort_key):
        classification = classify_shift(
            shift,
            assignments_by_shift.get(shift.id, []),
            entries_by_shift.get(shift.id, []),
            employee_names,
            tz=tz,
            threshold_minutes=threshold_minutes,
        )
        classifications.append(classification)
        if classification.error is not None:
            failed_shifts.append(
                FailedShift(
                    shift_id=shift.id,
                    shift_title=shift.title,
                    date=shift.shift_date,
                    error=classification.error,
                )
            )
            continue
        items.extend(classification.items)

    items.extend(
        classify_unlinked_entries(
            unlinked_entries,
            employee_names,
            tz=tz,
            start_date=start_date,
            end_date=end_date,
        )
    )

    return DiscrepancyReport(
        items=sort_items(items),
        shifts=classifications,
        failed_shifts=failed_shifts,
    )
