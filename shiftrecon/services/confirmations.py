from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shiftrecon.errors import ApiError
from shiftrecon.models import (
    COUNTED_ASSIGNMENT_STATUSES,
    ConfirmationStatus,
    Shift,
    ShiftAssignment,
    ShiftAttendanceConfirmation,
)

logger = logging.getLogger("shiftrecon.confirmations")


def _write_failed(exc: SQLAlchemyError) -> ApiError:
    logger.warning("attendance_confirmation_write_failed", extra={"error": exc.__class__.__name__})
    return ApiError(
        status_code=503,
        code="CONFIRMATION_WRITE_FAILED",
        message="Attendance confirmation could not be saved. Please retry.",
    )


def _get_assignment(db: Session, *, company_id: int, assignment_id: int) -> ShiftAssignment:
    assignment = db.get(ShiftAssignment, assignment_id)
    if assignment is None or assignment.company_id != company_id:
        raise ApiError(status_code=404, code="ASSIGNMENT_NOT_FOUND", message="Assignment not found.")
    return assignment


def _get_shift(db: Session, *, company_id: int, shift_id: int) -> Shift:
    shift = db.get(Shift, shift_id)
    if shift is None or shift.company_id != company_id or shift.deleted_at is not None:
        raise ApiError(status_code=404, code="SHIFT_NOT_FOUND", message="Shift not found.")
    return shift


def confirm_attendance(
    db: Session,
    *,
    company_id: int,
    assignment_id: int,
    status: ConfirmationStatus,
    confirmed_by: str,
) -> ShiftAttendanceConfirmation:
    assignment = _get_assignment(db, company_id=company_id, assignment_id=assignment_id)
    if not assignment.is_counted:
        raise ApiError(
            status_code=422,
            code="ASSIGNMENT_NOT_ACTIVE",
            message="Rejected or removed assignments cannot be confirmed.",
        )

    now_utc = datetime.now(timezone.utc)
    confirmation = db.scalar(
        select(ShiftAttendanceConfirmation).where(ShiftAttendanceConfirmation.assignment_id == assignment.id)
    )
    if confirmation is None:
        confirmation = ShiftAttendanceConfirmation(
            company_id=assignment.company_id,
            shift_id=assignment.shift_id,
            assignment_id=assignment.id,
            employee_id=assignment.employee_id,
            status=status,
            confirmed_by=confirmed_by,
            confirmed_at=now_utc,
        )
        db.add(confirmation)
    else:
        confirmation.status = status
        confirmation.confirmed_by = confirmed_by
        confirmation.confirmed_at = now_utc

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise _write_failed(exc) from exc
    db.refresh(confirmation)

    logger.info(
        "attendance_confirmed",
        extra={
            "assignment_id": assignment.id,
            "shift_id": assignment.shift_id,
            "employee_id": assignment.employee_id,
            "status": ConfirmationStatus(status).value,
            "confirmed_by": confirmed_by,
        },
    )
    return confirmation


def confirm_all_present(db: Session, *, company_id: int, shift_id: int, confirmed_by: str) -> int:
    """Mark every unconfirmed active assignment of a shift as present.

    Existing confirmations are left alone, so an explicit absent survives.
    """
    shift = _get_shift(db, company_id=company_id, shift_id=shift_id)
    assignments = list(
        db.scalars(
            select(ShiftAssignment)
            .where(
                ShiftAssignment.shift_id == shift.id,
                ShiftAssignment.status.in_(sorted(COUNTED_ASSIGNMENT_STATUSES)),
            )
            .order_by(ShiftAssignment.id.asc())
        ).all()
    )
    confirmed_ids = set(
        db.scalars(
            select(ShiftAttendanceConfirmation.assignment_id).where(
                ShiftAttendanceConfirmation.shift_id == shift.id
            )
        ).all()
    )

    now_utc = datetime.now(timezone.utc)
    created = 0
    for assignment in assignments:
        if assignment.id in confirmed_ids or not assignment.is_counted:
            continue
        db.add(
            ShiftAttendanceConfirmation(
                company_id=assignment.company_id,
                shift_id=shift.id,
                assignment_id=assignment.id,
                employee_id=assignment.employee_id,
                status=ConfirmationStatus.PRESENT,
                confirmed_by=confirmed_by,
                confirmed_at=now_utc,
            )
        )
        created += 1

    if created == 0:
        return 0
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise _write_failed(exc) from exc

    logger.info(
        "attendance_confirmed",
        extra={
            "shift_id": shift.id,
            "status": ConfirmationStatus.PRESENT.value,
            "confirmed_count": created,
            "confirmed_by": confirmed_by,
        },
    )
    return created


def list_shift_confirmations(db: Session, *, company_id: int, shift_id: int) -> list[ShiftAttendanceConfirmation]:
    shift = _get_shift(db, company_id=company_id, shift_id=shift_id)
    return list(
        db.scalars(
            select(ShiftAttendanceConfirmation)
            .where(ShiftAttendanceConfirmation.shift_id == shift.id)
            .order_by(ShiftAttendanceConfirmation.employee_id.asc(), ShiftAttendanceConfirmation.id.asc())
        ).all()
    )


def confirmation_index(
    confirmations: Iterable[ShiftAttendanceConfirmation],
) -> dict[tuple[int, int], ShiftAttendanceConfirmation]:
    return {
        (confirmation.shift_id, confirmation.employee_id): confirmation
        for confirmation in confirmations or []
    }
