from __future__ import annotations

import unittest
from datetime import date, time
from unittest.mock import patch

from shiftrecon.errors import ApiError
from shiftrecon.models import AssignmentStatus, Shift, ShiftAssignment, ShiftPayType
from shiftrecon.services.availability import AvailabilityResult
from shiftrecon.services.conflicts import check_assignment, find_conflicts, time_range_label, windows_conflict

DAY = date(2026, 3, 2)


def _shift(shift_id: int, start: time | None, end: time | None, *, shift_date: date = DAY) -> Shift:
    return Shift(
        id=shift_id,
        company_id=1,
        title=f"Shift {shift_id}",
        shift_date=shift_date,
        start_time=start,
        end_time=end,
        slots=1,
        pay_type=ShiftPayType.HOURLY,
    )


def _assignment(
    assignment_id: int,
    shift_id: int,
    *,
    employee_id: int = 1,
    status: AssignmentStatus = AssignmentStatus.CONFIRMED,
) -> ShiftAssignment:
    return ShiftAssignment(
        id=assignment_id,
        company_id=1,
        shift_id=shift_id,
        employee_id=employee_id,
        status=status,
    )


class WindowConflictTests(unittest.TestCase):
    def test_overlap_boundaries(self) -> None:
        self.assertTrue(windows_conflict(time(9), time(17), time(16), time(20)))
        self.assertTrue(windows_conflict(time(10), time(12), time(9), time(17)))
        self.assertFalse(windows_conflict(time(9), time(17), time(17), time(20)))
        self.assertFalse(windows_conflict(time(17), time(20), time(9), time(17)))

    def test_label(self) -> None:
        self.assertEqual(time_range_label(time(9), time(17, 30)), "09:00–17:30")


class FindConflictsTests(unittest.TestCase):
    def test_reports_overlapping_assigned_shift(self) -> None:
        conflicts = find_conflicts(
            1,
            DAY,
            time(16),
            time(20),
            [_shift(1, time(9), time(17)), _shift(2, time(6), time(8))],
            [_assignment(1, 1), _assignment(2, 2)],
        )

        self.assertEqual(len(conflicts), 1)
        self.assertEqual(conflicts[0].shift_id, 1)
        self.assertEqual(conflicts[0].shift_title, "Shift 1")
        self.assertEqual(conflicts[0].time_label, "09:00–17:00")

    def test_touching_windows_do_not_conflict(self) -> None:
        conflicts = find_conflicts(1, DAY, time(17), time(21), [_shift(1, time(9), time(17))], [_assignment(1, 1)])
        self.assertEqual(conflicts, [])

    def test_exclude_shift_id(self) -> None:
        conflicts = find_conflicts(
            1,
            DAY,
            time(9),
            time(17),
            [_shift(1, time(9), time(17))],
            [_assignment(1, 1)],
            exclude_shift_id=1,
        )
        self.assertEqual(conflicts, [])

    def test_only_counted_assignments_of_the_employee(self) -> None:
        shifts = [_shift(1, time(9), time(17)), _shift(2, time(9), time(17)), _shift(3, time(9), time(17))]
        assignments = [
            _assignment(1, 1, status=AssignmentStatus.REJECTED),
            _assignment(2, 2, status=AssignmentStatus.REMOVED),
            _assignment(3, 3, employee_id=2),
        ]
        self.assertEqual(find_conflicts(1, DAY, time(10), time(12), shifts, assignments), [])

    def test_other_dates_and_missing_times_are_skipped(self) -> None:
        shifts = [
            _shift(1, time(9), time(17), shift_date=date(2026, 3, 3)),
            _shift(2, None, time(17)),
            _shift(3, time(9), None),
        ]
        assignments = [_assignment(1, 1), _assignment(2, 2), _assignment(3, 3)]
        self.assertEqual(find_conflicts(1, DAY, time(10), time(12), shifts, assignments), [])

    def test_conflicts_sorted_by_start(self) -> None:
        shifts = [_shift(5, time(12), time(14)), _shift(4, time(8), time(11))]
        conflicts = find_conflicts(1, DAY, time(7), time(20), shifts, [_assignment(1, 5), _assignment(2, 4)])
        self.assertEqual([conflict.shift_id for conflict in conflicts], [4, 5])


class CheckAssignmentTests(unittest.TestCase):
    def _run(self, *, mode: str, availability: AvailabilityResult, schedule):  # type: ignore[no-untyped-def]
        with (
            patch("shiftrecon.services.conflicts.ensure_company_employee"),
            patch("shiftrecon.services.conflicts.resolve_employee_availability", return_value=availability),
            patch("shiftrecon.services.conflicts.load_employee_day_schedule", return_value=schedule),
        ):
            return check_assignment(
                object(),  # type: ignore[arg-type]
                company_id=1,
                employee_id=1,
                day_date=DAY,
                start=time(16),
                end=time(20),
                mode=mode,  # type: ignore[arg-type]
            )

    def test_warn_mode_returns_findings(self) -> None:
        result = self._run(
            mode="warn",
            availability=AvailabilityResult(available=False, reason="Blocked: Mon", source="config"),
            schedule=([_shift(1, time(9), time(17))], [_assignment(1, 1)]),
        )

        self.assertTrue(result.has_findings)
        self.assertEqual(len(result.conflicts), 1)
        self.assertFalse(result.availability.available)

    def test_clean_check_has_no_findings(self) -> None:
        result = self._run(mode="block", availability=AvailabilityResult(available=True), schedule=([], []))
        self.assertFalse(result.has_findings)

    def test_block_mode_raises_conflict(self) -> None:
        with self.assertRaises(ApiError) as ctx:
            self._run(
                mode="block",
                availability=AvailabilityResult(available=True),
                schedule=([_shift(1, time(9), time(17))], [_assignment(1, 1)]),
            )

        error = ctx.exception
        self.assertEqual(error.status_code, 409)
        self.assertEqual(error.code, "ASSIGNMENT_BLOCKED")
        self.assertTrue(error.details["available"])
        self.assertEqual(error.details["conflicts"][0]["time"], "09:00–17:00")

    def test_block_mode_uses_availability_reason(self) -> None:
        with self.assertRaises(ApiError) as ctx:
            self._run(
                mode="block",
                availability=AvailabilityResult(available=False, reason="Doctor", source="override"),
                schedule=([], []),
            )
        self.assertEqual(ctx.exception.message, "Doctor")


if __name__ == "__main__":
    unittest.main()
