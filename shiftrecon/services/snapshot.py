from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from shiftrecon.models import (
    COUNTED_ASSIGNMENT_STATUSES,
    Client,
    Employee,
    Shift,
    ShiftAssignment,
    ShiftAttendanceConfirmation,
    TimeEntry,
    TimeEntryStatus,
)


@dataclass(frozen=True)
class ReconciliationSnapshot:
    company_id: int
    start_date: date
    end_date: date
    shifts: list[Shift] = field(default_factory=list)
    assignments: list[ShiftAssignment] = field(default_factory=list)
    time_entries: list[TimeEntry] = field(default_factory=list)
    employees: list[Employee] = field(default_factory=list)
    clients: list[Client] = field(default_factory=list)
    confirmations: list[ShiftAttendanceConfirmation] = field(default_factory=list)

    def client_names(self) -> dict[int, str]:
        return {client.id: client.name for client in self.clients}


def local_range_bounds_utc(start_date: date, end_date: date, tz: tzinfo) -> tuple[datetime, datetime]:
    start_local = datetime.combine(start_date, time.min, tzinfo=tz)
    end_local = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=tz)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)


def load_reconciliation_snapshot(
    db: Session,
    *,
    company_id: int,
    start_date: date,
    end_date: date,
    tz: tzinfo,
) -> ReconciliationSnapshot:
    """Read everything one report needs in a handful of queries.

    Missing rows are never an error; an empty company yields an empty snapshot.
    """
    shifts = list(
        db.scalars(
            select(Shift)
            .where(
                Shift.company_id == company_id,
                Shift.shift_date >= start_date,
                Shift.shift_date <= end_date,
                Shift.deleted_at.is_(None),
            )
            .order_by(Shift.shift_date.asc(), Shift.start_time.asc(), Shift.id.asc())
        ).all()
    )
    shift_ids = [shift.id for shift in shifts]

    assignments: list[ShiftAssignment] = []
    confirmations: list[ShiftAttendanceConfirmation] = []
    if shift_ids:
        assignments = list(
            db.scalars(
                select(ShiftAssignment)
                .where(
                    ShiftAssignment.shift_id.in_(shift_ids),
                    ShiftAssignment.status.in_(sorted(COUNTED_ASSIGNMENT_STATUSES)),
                )
                .order_by(ShiftAssignment.id.asc())
            ).all()
        )
        confirmations = list(
            db.scalars(
                select(ShiftAttendanceConfirmation)
                .where(ShiftAttendanceConfirmation.shift_id.in_(shift_ids))
                .order_by(ShiftAttendanceConfirmation.id.asc())
            ).all()
        )

    range_start_utc, range_end_utc = local_range_bounds_utc(start_date, end_date, tz)
    unlinked_filter = (
        TimeEntry.shift_id.is_(None)
        & (TimeEntry.clock_in >= range_start_utc)
        & (TimeEntry.clock_in < range_end_utc)
    )
    entry_filter = or_(TimeEntry.shift_id.in_(shift_ids), unlinked_filter) if shift_ids else unlinked_filter
    time_entries = list(
        db.scalars(
            select(TimeEntry)
            .where(
                TimeEntry.company_id == company_id,
                TimeEntry.status != TimeEntryStatus.REJECTED,
                entry_filter,
            )
            .order_by(TimeEntry.clock_in.asc(), TimeEntry.id.asc())
        ).all()
    )

    employee_ids = {assignment.employee_id for assignment in assignments}
    employee_ids.update(entry.employee_id for entry in time_entries)
    employees: list[Employee] = []
    if employee_ids:
        employees = list(
            db.scalars(select(Employee).where(Employee.id.in_(sorted(employee_ids)))).all()
        )

    client_ids = {shift.client_id for shift in shifts if shift.client_id is not None}
    clients: list[Client] = []
    if client_ids:
        clients = list(db.scalars(select(Client).where(Client.id.in_(sorted(client_ids)))).all())

    return ReconciliationSnapshot(
        company_id=company_id,
        start_date=start_date,
        end_date=end_date,
        shifts=shifts,
        assignments=assignments,
        time_entries=time_entries,
        employees=employees,
        clients=clients,
        confirmations=confirmations,
    )
