from __future__ import annotations

import unittest
from datetime import date, datetime, time, timezone

from shiftrecon.models import (
    AssignmentStatus,
    CoverageStatus,
    Shift,
    ShiftAssignment,
    ShiftPayType,
    TimeEntry,
    TimeEntryStatus,
)
from shiftrecon.services.coverage import (
    aggregate_shift,
    build_coverage_summary,
    coverage_percent,
    coverage_status,
    filter_coverage_view,
    summarize_coverage,
)
from shiftrecon.services.discrepancies import classify_range

UTC = timezone.utc
DAY = date(2026, 3, 2)


def _shift(shift_id: int, start: time | None = time(9), end: time | None = time(17), *, slots: int = 1) -> Shift:
    return Shift(
        id=shift_id,
        company_id=1,
        title=f"Shift {shift_id}",
        shift_code=None,
        shift_date=DAY,
        start_time=start,
        end_time=end,
        slots=slots,
        pay_type=ShiftPayType.HOURLY,
        client_id=None,
    )


def _assignment(assignment_id: int, shift_id: int, employee_id: int) -> ShiftAssignment:
    return ShiftAssignment(
        id=assignment_id,
        company_id=1,
        shift_id=shift_id,
        employee_id=employee_id,
        status=AssignmentStatus.CONFIRMED,
    )


def _entry(entry_id: int, employee_id: int, shift_id: int | None, start_hour: int = 9, end_hour: int = 17) -> TimeEntry:
    return TimeEntry(
        id=entry_id,
        company_id=1,
        employee_id=employee_id,
        shift_id=shift_id,
        clock_in=datetime(2026, 3, 2, start_hour, 0, tzinfo=UTC),
        clock_out=datetime(2026, 3, 2, end_hour, 0, tzinfo=UTC),
        break_minutes=0,
        status=TimeEntryStatus.APPROVED,
    )


def _summary(shifts, assignments, entries):  # type: ignore[no-untyped-def]
    report = classify_range(shifts, assignments, entries, [], tz=UTC, start_date=DAY, end_date=DAY)
    return build_coverage_summary(report)


class CoverageStatusTests(unittest.TestCase):
    def test_precedence(self) -> None:
        cases = [
            ((0, 0, 0, 0), CoverageStatus.EMPTY),
            ((2, 0, 2, 0), CoverageStatus.UNCOVERED),
            ((2, 2, 1, 1), CoverageStatus.PARTIAL),
            ((2, 3, 0, 1), CoverageStatus.OVER),
            ((0, 1, 0, 1), CoverageStatus.OVER),
            ((2, 2, 0, 0), CoverageStatus.FULL),
        ]
        for (assigned, clocked, missing, extra), expected in cases:
            with self.subTest(assigned=assigned, clocked=clocked, missing=missing, extra=extra):
                self.assertEqual(
                    coverage_status(
                        total_assigned=assigned,
                        total_clocked=clocked,
                        missing_count=missing,
                        extra_count=extra,
                    ),
                    expected,
                )

    def test_percent(self) -> None:
        self.assertEqual(coverage_percent(3, 2), 67)
        self.assertEqual(coverage_percent(2, 5), 100)
        self.assertEqual(coverage_percent(0, 1), 100)
        self.assertEqual(coverage_percent(0, 0), 0)
        self.assertEqual(coverage_percent(8, 5), 63)


class AggregateShiftTests(unittest.TestCase):
    def test_partial_shift_sets(self) -> None:
        summary = _summary(
            [_shift(1, slots=2)],
            [_assignment(1, 1, 1), _assignment(2, 1, 2)],
            [_entry(1, 1, 1)],
        )
        coverage = summary.items[0]

        self.assertEqual(coverage.status, CoverageStatus.PARTIAL)
        self.assertEqual([ref.employee_id for ref in coverage.missing_employees], [2])
        self.assertEqual(coverage.total_assigned, 2)
        self.assertEqual(coverage.total_clocked, 1)
        self.assertEqual(coverage.coverage_percent, 50)
        self.assertEqual(coverage.scheduled_hours, 16.0)
        self.assertEqual(coverage.worked_hours, 8.0)

    def test_partition_and_extra_laws(self) -> None:
        summary = _summary(
            [_shift(1, slots=3)],
            [_assignment(1, 1, 1), _assignment(2, 1, 2), _assignment(3, 1, 3)],
            [_entry(1, 1, 1), _entry(2, 3, 1, 10, 17), _entry(3, 4, 1), _entry(4, 5, 1)],
        )
        coverage = summary.items[0]

        assigned = {ref.employee_id for ref in coverage.assigned_employees}
        clocked = {ref.employee_id for ref in coverage.clocked_employees}
        missing = {ref.employee_id for ref in coverage.missing_employees}
        extra = {ref.employee_id for ref in coverage.extra_employees}

        self.assertEqual(missing | (clocked & assigned), assigned)
        self.assertEqual(missing & clocked, set())
        self.assertEqual(extra, clocked - assigned)
        self.assertEqual(extra, {4, 5})
        self.assertEqual(coverage.status, CoverageStatus.PARTIAL)

    def test_over_covered_shift(self) -> None:
        summary = _summary([_shift(1)], [_assignment(1, 1, 1)], [_entry(1, 1, 1), _entry(2, 2, 1)])
        self.assertEqual(summary.items[0].status, CoverageStatus.OVER)
        self.assertEqual(summary.items[0].coverage_percent, 100)

    def test_overnight_shift_is_full(self) -> None:
        shift = _shift(1, time(22), time(6))
        entry = TimeEntry(
            id=1,
            company_id=1,
            employee_id=4,
            shift_id=1,
            clock_in=datetime(2026, 3, 2, 22, 0, tzinfo=UTC),
            clock_out=datetime(2026, 3, 3, 6, 0, tzinfo=UTC),
            break_minutes=0,
            status=TimeEntryStatus.APPROVED,
        )
        summary = _summary([shift], [_assignment(1, 1, 4)], [entry])

        self.assertEqual(summary.items[0].status, CoverageStatus.FULL)
        self.assertEqual(summary.items[0].scheduled_hours, 8.0)

    def test_unplanned_entries_never_touch_a_shift(self) -> None:
        summary = _summary([_shift(1)], [_assignment(1, 1, 1)], [_entry(1, 1, 1), _entry(2, 5, None)])
        coverage = summary.items[0]

        self.assertEqual(coverage.status, CoverageStatus.FULL)
        self.assertEqual(coverage.extra_employees, ())
        self.assertEqual(summary.total_extras, 0)

    def test_empty_shift_is_neutral_and_hidden_from_issues(self) -> None:
        summary = _summary([_shift(1), _shift(2)], [_assignment(1, 2, 1)], [])

        empty = next(item for item in summary.items if item.shift_id == 1)
        self.assertEqual(empty.status, CoverageStatus.EMPTY)
        self.assertFalse(empty.has_issues)
        self.assertEqual([item.shift_id for item in filter_coverage_view(summary, "issues")], [2])
        self.assertEqual([item.shift_id for item in filter_coverage_view(summary, "all")], [1, 2])
        self.assertEqual(summary.empty, 1)
        self.assertEqual(summary.uncovered, 1)

    def test_aggregate_uses_only_items_of_that_shift(self) -> None:
        report = classify_range(
            [_shift(1), _shift(2)],
            [_assignment(1, 1, 1), _assignment(2, 2, 2)],
            [_entry(1, 1, 1)],
            [],
            tz=UTC,
        )
        coverage = aggregate_shift(_shift(2), report.items)
        self.assertEqual(coverage.status, CoverageStatus.UNCOVERED)


class SummaryTests(unittest.TestCase):
    def test_overall_percent_uses_slots(self) -> None:
        summary = _summary(
            [_shift(1, slots=2), _shift(2, slots=1)],
            [_assignment(1, 1, 1), _assignment(2, 1, 2), _assignment(3, 2, 3)],
            [_entry(1, 1, 1), _entry(2, 3, 2)],
        )

        self.assertEqual(summary.total_slots, 3)
        self.assertEqual(summary.total_clocked, 2)
        self.assertEqual(summary.overall_percent, 67)
        self.assertEqual(summary.total_no_shows, 1)
        self.assertEqual(summary.total_scheduled_hours, 24.0)
        self.assertEqual(summary.total_worked_hours, 16.0)

    def test_overall_percent_is_clamped(self) -> None:
        summary = _summary([_shift(1)], [], [_entry(1, 1, 1), _entry(2, 2, 1), _entry(3, 3, 1)])
        self.assertEqual(summary.overall_percent, 100)

    def test_no_shifts_means_full_overall(self) -> None:
        summary = summarize_coverage([])
        self.assertEqual(summary.total_shifts, 0)
        self.assertEqual(summary.overall_percent, 100)

    def test_status_counts_cover_every_status(self) -> None:
        summary = summarize_coverage([])
        self.assertEqual(set(summary.status_counts), set(CoverageStatus))

    def test_failed_shifts_are_counted_but_not_aggregated(self) -> None:
        with self.assertLogs("shiftrecon.reconcile", level="WARNING"):
            summary = _summary([_shift(1, None, time(17)), _shift(2)], [], [])

        self.assertEqual(summary.failed_shifts, 1)
        self.assertEqual([item.shift_id for item in summary.items], [2])


if __name__ == "__main__":
    unittest.main()
