from __future__ import annotations

import unittest
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from shiftrecon.models import DiscrepancyType, ShiftPayType
from shiftrecon.services.reconcile_calc import (
    LATE_THRESHOLD_MINUTES,
    clamp_percent,
    evaluate_attendance,
    planned_labor_hours,
    round_half_up,
    scheduled_hours,
    scheduled_window,
    to_local,
    whole_minutes_between,
    worked_hours,
)


def _dt(hour: int, minute: int = 0, *, day: int = 2) -> datetime:
    return datetime(2026, 3, day, hour, minute, tzinfo=timezone.utc)


class ScheduledHoursTests(unittest.TestCase):
    def test_day_shift_hours(self) -> None:
        self.assertEqual(scheduled_hours(time(9, 0), time(17, 0)), 8.0)

    def test_overnight_shift_wraps_past_midnight(self) -> None:
        self.assertEqual(scheduled_hours(time(22, 0), time(6, 0)), 8.0)

    def test_planned_labor_multiplies_by_slots(self) -> None:
        self.assertEqual(planned_labor_hours(time(9, 0), time(17, 0), 3), 24.0)
        self.assertEqual(planned_labor_hours(time(9, 0), time(17, 0), 0), 8.0)
        self.assertEqual(planned_labor_hours(time(9, 0), time(17, 0), None), 8.0)

    def test_scheduled_window_puts_overnight_end_on_next_day(self) -> None:
        start, end = scheduled_window(date(2026, 3, 2), time(22, 0), time(6, 0), timezone.utc)
        self.assertEqual(start, _dt(22))
        self.assertEqual(end, _dt(6, day=3))


class WorkedHoursTests(unittest.TestCase):
    def test_open_entry_counts_zero(self) -> None:
        self.assertEqual(worked_hours(_dt(9), None, 0), 0.0)

    def test_break_is_subtracted_and_rounded(self) -> None:
        self.assertEqual(worked_hours(_dt(9), _dt(17, 10), 30), 7.67)

    def test_never_negative(self) -> None:
        self.assertEqual(worked_hours(_dt(9), _dt(9, 20), 60), 0.0)
        self.assertEqual(worked_hours(_dt(10), _dt(9), 0), 0.0)

    def test_missing_break_is_zero(self) -> None:
        self.assertEqual(worked_hours(_dt(9), _dt(17), None), 8.0)


class EvaluateAttendanceTests(unittest.TestCase):
    def _evaluate(self, clock_in: datetime, clock_out: datetime | None, **kwargs) -> object:
        return evaluate_attendance(
            pay_type=kwargs.pop("pay_type", ShiftPayType.HOURLY),
            scheduled_start=_dt(8),
            scheduled_end=_dt(16),
            clock_in=clock_in,
            clock_out=clock_out,
            **kwargs,
        )

    def test_threshold_is_exclusive(self) -> None:
        at_threshold = self._evaluate(_dt(8, LATE_THRESHOLD_MINUTES), _dt(16))
        over_threshold = self._evaluate(_dt(8, LATE_THRESHOLD_MINUTES + 1), _dt(16))

        self.assertEqual(at_threshold.type, DiscrepancyType.OK)
        self.assertEqual(over_threshold.type, DiscrepancyType.LATE_ARRIVAL)
        self.assertEqual(over_threshold.minutes_diff, LATE_THRESHOLD_MINUTES + 1)

    def test_partial_minutes_truncate(self) -> None:
        verdict = self._evaluate(_dt(8, 5) + timedelta(seconds=59), _dt(16))
        self.assertEqual(verdict.type, DiscrepancyType.OK)

    def test_late_wins_over_early(self) -> None:
        verdict = self._evaluate(_dt(8, 30), _dt(15))
        self.assertEqual(verdict.type, DiscrepancyType.LATE_ARRIVAL)
        self.assertEqual(verdict.minutes_diff, 30)

    def test_early_departure(self) -> None:
        verdict = self._evaluate(_dt(8), _dt(15, 40))
        self.assertEqual(verdict.type, DiscrepancyType.EARLY_DEPARTURE)
        self.assertEqual(verdict.minutes_diff, 20)

    def test_open_entry_cannot_be_early(self) -> None:
        verdict = self._evaluate(_dt(8), None)
        self.assertEqual(verdict.type, DiscrepancyType.OK)

    def test_daily_pay_is_always_ok(self) -> None:
        verdict = self._evaluate(_dt(11), _dt(12), pay_type=ShiftPayType.DAILY)
        self.assertEqual(verdict.type, DiscrepancyType.OK)
        self.assertEqual(verdict.minutes_diff, 0)

    def test_custom_threshold(self) -> None:
        verdict = self._evaluate(_dt(8, 7), _dt(16), threshold_minutes=10)
        self.assertEqual(verdict.type, DiscrepancyType.OK)


class HelperTests(unittest.TestCase):
    def test_round_half_up(self) -> None:
        self.assertEqual(round_half_up(62.5), 63)
        self.assertEqual(round_half_up(66.4), 66)
        self.assertEqual(round_half_up(0.5), 1)

    def test_clamp_percent(self) -> None:
        self.assertEqual(clamp_percent(150), 100)
        self.assertEqual(clamp_percent(-3), 0)

    def test_whole_minutes_truncate_toward_zero(self) -> None:
        self.assertEqual(whole_minutes_between(_dt(8, 0), _dt(8, 7) + timedelta(seconds=30)), -7)

    def test_to_local_treats_naive_values_as_wall_clock(self) -> None:
        tz = ZoneInfo("America/New_York")
        naive = datetime(2026, 3, 2, 9, 0)
        aware = datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc)

        self.assertEqual(to_local(naive, tz).hour, 9)
        self.assertEqual(to_local(aware, tz).hour, 9)


if __name__ == "__main__":
    unittest.main()
