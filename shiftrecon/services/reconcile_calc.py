from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from math import floor

from shiftrecon.models import DiscrepancyType, ShiftPayType

LATE_THRESHOLD_MINUTES = 5
MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class AttendanceVerdict:
    type: DiscrepancyType
    minutes_diff: int


def _minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def scheduled_minutes(start_time: time, end_time: time) -> int:
    minutes = _minutes_of_day(end_time) - _minutes_of_day(start_time)
    if minutes < 0:
        minutes += MINUTES_PER_DAY
    return minutes


def scheduled_hours(start_time: time, end_time: time) -> float:
    return round(scheduled_minutes(start_time, end_time) / 60, 2)


def planned_labor_hours(start_time: time, end_time: time, slots: int | None) -> float:
    return round(scheduled_minutes(start_time, end_time) * max(1, slots or 1) / 60, 2)


def worked_hours(clock_in: datetime, clock_out: datetime | None, break_minutes: int | None) -> float:
    if clock_out is None:
        return 0.0
    gross_seconds = (clock_out - clock_in).total_seconds()
    net_seconds = gross_seconds - max(0, break_minutes or 0) * 60
    return round(max(0.0, net_seconds) / 3600, 2)


def to_local(value: datetime, tz: tzinfo) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def scheduled_window(day_date: date, start_time: time, end_time: time, tz: tzinfo) -> tuple[datetime, datetime]:
    start_dt = datetime.combine(day_date, start_time, tzinfo=tz)
    end_dt = start_dt + timedelta(minutes=scheduled_minutes(start_time, end_time))
    return start_dt, end_dt


def whole_minutes_between(later: datetime, earlier: datetime) -> int:
    seconds = (later - earlier).total_seconds()
    return int(seconds / 60)


def evaluate_attendance(
    *,
    pay_type: ShiftPayType | str | None,
    scheduled_start: datetime,
    scheduled_end: datetime,
    clock_in: datetime,
    clock_out: datetime | None,
    threshold_minutes: int = LATE_THRESHOLD_MINUTES,
) -> AttendanceVerdict:
    if pay_type is not None and ShiftPayType(pay_type) == ShiftPayType.DAILY:
        return AttendanceVerdict(type=DiscrepancyType.OK, minutes_diff=0)

    late_minutes = whole_minutes_between(clock_in, scheduled_start)
    if late_minutes > threshold_minutes:
        return AttendanceVerdict(type=DiscrepancyType.LATE_ARRIVAL, minutes_diff=late_minutes)

    if clock_out is not None:
        early_minutes = whole_minutes_between(scheduled_end, clock_out)
        if early_minutes > threshold_minutes:
            return AttendanceVerdict(type=DiscrepancyType.EARLY_DEPARTURE, minutes_diff=early_minutes)

    return AttendanceVerdict(type=DiscrepancyType.OK, minutes_diff=0)


def round_half_up(value: float) -> int:
    return int(floor(value + 0.5))


def clamp_percent(value: int) -> int:
    return max(0, min(100, value))


def format_hhmm(value: time | None) -> str:
    if value is None:
        return ""
    return f"{value.hour:02d}:{value.minute:02d}"
